"""Suggestion facade: classify a range once, rank leave plans, add statistics.

An empty plan list is the normal answer to an infeasible request (too many
days, conflicting constraints, inverted range). Malformed dates raise
``ValueError``.
"""

from __future__ import annotations

import asyncio
import datetime
from typing import NamedTuple

from loguru import logger

from leaveplan.classifier import DayRecord, InvalidRangeError, classify, parse_date
from leaveplan.constraints import VacationConstraints, mandatory_coverage
from leaveplan.optimizer import LeaveOptimizer
from leaveplan.oracle import CountryHolidayOracle, HolidayOracle
from leaveplan.segments import RunFormatter, VacationBlock, touched_runs

# ---------------------------------------------------------------------------
# Data types
# ---------------------------------------------------------------------------


class VacationPlan(NamedTuple):
    """A ranked leave selection."""

    dates: list[datetime.date]
    score: float
    total_days: int
    continuous_days: int
    description: str
    blocks: list[VacationBlock]


class Summary(NamedTuple):
    total_workdays: int
    total_holidays: int
    total_weekends: int
    requested_days: int
    constraints: VacationConstraints | None


class SuggestionResult(NamedTuple):
    plans: list[VacationPlan]
    summary: Summary


# ---------------------------------------------------------------------------
# Plan assembly
# ---------------------------------------------------------------------------


def build_plans(
    day_records: list[DayRecord],
    requested_days: int,
    constraints: VacationConstraints | None = None,
    limit: int | None = None,
) -> list[VacationPlan]:
    """Rank leave selections over already classified days.

    *limit* caps how many plans are materialized; ``None`` keeps them all.
    """
    optimizer = LeaveOptimizer(day_records, requested_days, constraints)
    candidates = optimizer.solve()
    if limit is not None:
        candidates = candidates[:limit]

    seq = optimizer.seq
    dates = seq.dates
    formatter = RunFormatter(seq)
    plans: list[VacationPlan] = []
    for candidate in candidates:
        runs = touched_runs(candidate.indices, seq)
        plans.append(
            VacationPlan(
                dates=[dates[i] for i in candidate.indices],
                score=candidate.score,
                total_days=len(candidate.indices),
                continuous_days=max(end - start + 1 for start, end, _ in runs),
                description=formatter.describe(runs),
                blocks=formatter.blocks(runs),
            )
        )
    return plans


def summarize(
    day_records: list[DayRecord],
    requested_days: int,
    constraints: VacationConstraints | None = None,
) -> Summary:
    return Summary(
        total_workdays=sum(1 for r in day_records if r.is_working_day),
        total_holidays=sum(1 for r in day_records if r.is_holiday),
        total_weekends=sum(
            1 for r in day_records if r.is_weekend and not r.is_holiday and not r.is_working_day
        ),
        requested_days=requested_days,
        constraints=constraints,
    )


async def _classify_range(
    start: str | datetime.date,
    end: str | datetime.date,
    oracle: HolidayOracle | None,
    cancel: asyncio.Event | None,
) -> list[DayRecord]:
    start_date = parse_date(start)
    end_date = parse_date(end)
    if oracle is None:
        oracle = CountryHolidayOracle()
    try:
        return await classify(start_date, end_date, oracle, cancel=cancel)
    except InvalidRangeError as exc:
        logger.info(f"No plan possible: {exc}")
        return []


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


async def compute_plan(
    start: str | datetime.date,
    end: str | datetime.date,
    requested_days: int,
    constraints: VacationConstraints | None = None,
    *,
    oracle: HolidayOracle | None = None,
    cancel: asyncio.Event | None = None,
    limit: int | None = None,
) -> list[VacationPlan]:
    """Ranked leave plans for ``[start, end]``, best first.

    Without an *oracle* a fresh China holiday calendar is used.
    """
    records = await _classify_range(start, end, oracle, cancel)
    if not records:
        return []
    return build_plans(records, requested_days, constraints, limit)


async def compute_suggestions(
    start: str | datetime.date,
    end: str | datetime.date,
    requested_days: int,
    constraints: VacationConstraints | None = None,
    *,
    oracle: HolidayOracle | None = None,
    cancel: asyncio.Event | None = None,
    limit: int | None = None,
) -> SuggestionResult:
    """Ranked plans plus range statistics and the constraints echo."""
    records = await _classify_range(start, end, oracle, cancel)
    plans = build_plans(records, requested_days, constraints, limit) if records else []
    summary = summarize(records, requested_days, constraints)
    logger.info(
        f"{len(plans)} plan(s) for {requested_days} day(s) over {len(records)} day(s): "
        f"{summary.total_workdays} workdays, {summary.total_holidays} holidays, "
        f"{summary.total_weekends} weekend days"
    )
    return SuggestionResult(plans=plans, summary=summary)


# ---------------------------------------------------------------------------
# Output formatting
# ---------------------------------------------------------------------------


def format_summary(summary: Summary) -> str:
    """Return a human-readable block of range statistics."""
    lines = [
        "  Range statistics:",
        f"    Workdays:        {summary.total_workdays}",
        f"    Holidays:        {summary.total_holidays}",
        f"    Weekend days:    {summary.total_weekends}",
        f"    Leave requested: {summary.requested_days}",
    ]
    constraints = summary.constraints
    if constraints is not None and not constraints.is_empty:
        lines.append("")
        lines.append("  Constraints:")
        if constraints.excluded_dates:
            excluded = ", ".join(sorted(d.isoformat() for d in constraints.excluded_dates))
            lines.append(f"    Excluded: {excluded}")
        for rng in constraints.mandatory_ranges:
            lines.append(
                f"    At least {rng.required_days} day(s) between "
                f"{rng.start_date.isoformat()} and {rng.end_date.isoformat()}"
            )
        if constraints.max_continuous_days is not None:
            if constraints.max_continuous_days == 0:
                lines.append("    No consecutive leave days")
            else:
                lines.append(
                    f"    At most {constraints.max_continuous_days} consecutive leave days"
                )
    return "\n".join(lines)


def format_plan(
    plan: VacationPlan,
    rank: int,
    constraints: VacationConstraints | None = None,
) -> str:
    """Return a human-readable summary of a leave plan."""
    lines: list[str] = []
    w = 64

    lines.append("")
    lines.append("=" * w)
    lines.append(f"  PLAN {rank}  (score {plan.score:g})")
    lines.append("=" * w)

    total_off = sum(b.total_days for b in plan.blocks)
    lines.append(f"  Leave days used: {plan.total_days}")
    lines.append(f"  Longest time off: {plan.continuous_days} days")
    if plan.total_days > 0:
        lines.append(f"  Efficiency: {total_off / plan.total_days:.1f}x (days off per leave day)")
    lines.append(f"  Runs: {plan.description}")
    lines.append("")

    lines.append("  Vacation Blocks:")
    lines.append("  " + "-" * (w - 4))
    for i, block in enumerate(plan.blocks, 1):
        n = block.total_days
        day_word = "day" if n == 1 else "days"
        if block.start_date == block.end_date:
            dr = block.start_date.strftime("%a, %b %d")
        else:
            dr = (
                f"{block.start_date.strftime('%a, %b %d')} -> "
                f"{block.end_date.strftime('%a, %b %d')}"
            )
        lines.append(f"  {i:>2}. {dr}  ({n} {day_word})")

        parts = [f"{block.leave_days} leave"]
        if block.holidays:
            parts.append(f"{block.holidays} holiday{'s' if block.holidays > 1 else ''}")
        if block.weekend_days:
            parts.append(f"{block.weekend_days} weekend")
        lines.append(f"      {' + '.join(parts)}")

    lines.append("")
    lines.append("  Days to request off:")
    for d in plan.dates:
        lines.append(f"    -> {d.strftime('%A, %B %d, %Y')}")

    coverage = mandatory_coverage(plan.dates, constraints)
    if coverage:
        lines.append("")
        lines.append("  Mandatory ranges:")
        for rng, taken, required in coverage:
            mark = "ok" if taken >= required else "MISSING"
            lines.append(
                f"    {rng.start_date.isoformat()} ~ {rng.end_date.isoformat()}: "
                f"{taken}/{required} [{mark}]"
            )

    return "\n".join(lines)
