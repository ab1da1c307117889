"""Leave Planner.

Pick the workdays to take as leave so that they bridge weekends and
holidays into the longest possible stretches of time off.
"""

from leaveplan.classifier import DayRecord, InvalidRangeError, classify
from leaveplan.constraints import MandatoryRange, VacationConstraints, validate
from leaveplan.optimizer import LeaveOptimizer, rank_candidates, select
from leaveplan.oracle import CountryHolidayOracle, HolidayOracle, StaticHolidayOracle, get_oracle
from leaveplan.planner import (
    SuggestionResult,
    Summary,
    VacationPlan,
    compute_plan,
    compute_suggestions,
)
from leaveplan.segments import VacationBlock, describe

__all__ = [
    "CountryHolidayOracle",
    "DayRecord",
    "HolidayOracle",
    "InvalidRangeError",
    "LeaveOptimizer",
    "MandatoryRange",
    "StaticHolidayOracle",
    "SuggestionResult",
    "Summary",
    "VacationBlock",
    "VacationConstraints",
    "VacationPlan",
    "classify",
    "compute_plan",
    "compute_suggestions",
    "describe",
    "get_oracle",
    "rank_candidates",
    "select",
    "validate",
]
