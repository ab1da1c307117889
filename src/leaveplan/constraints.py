"""Leave constraints and their validation.

Constraints are a plain value bag. Nothing is cross-checked when they are
built: conflicting constraints simply make every candidate fail validation,
which the planner reports as "no plan found".
"""

from __future__ import annotations

import datetime
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, NamedTuple

from leaveplan.classifier import DayRecord, DaySequence, parse_date
from leaveplan.segments import touched_runs


class MandatoryRange(NamedTuple):
    """At least *required_days* leave days must fall inside the range."""

    start_date: datetime.date
    end_date: datetime.date
    required_days: int

    def contains(self, day: datetime.date) -> bool:
        return self.start_date <= day <= self.end_date


class VacationConstraints(NamedTuple):
    excluded_dates: frozenset[datetime.date] = frozenset()
    mandatory_ranges: tuple[MandatoryRange, ...] = ()
    max_continuous_days: int | None = None

    @classmethod
    def build(
        cls,
        excluded_dates: Iterable[str | datetime.date] = (),
        mandatory_ranges: Iterable[tuple[str | datetime.date, str | datetime.date, int]] = (),
        max_continuous_days: int | None = None,
    ) -> VacationConstraints:
        """Build constraints from ISO strings or dates."""
        if max_continuous_days is not None and max_continuous_days < 0:
            raise ValueError(f"max_continuous_days must be >= 0, got {max_continuous_days}")
        return cls(
            excluded_dates=frozenset(parse_date(d) for d in excluded_dates),
            mandatory_ranges=tuple(
                MandatoryRange(parse_date(s), parse_date(e), int(n))
                for s, e, n in mandatory_ranges
            ),
            max_continuous_days=max_continuous_days,
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> VacationConstraints:
        """Build constraints from the JSON config shape.

        ``{"excluded_dates": [...], "mandatory_ranges": [{"start_date": ...,
        "end_date": ..., "days": n}], "max_continuous_days": k}``
        """
        ranges = [
            (r["start_date"], r["end_date"], r["days"]) for r in data.get("mandatory_ranges", [])
        ]
        return cls.build(
            excluded_dates=data.get("excluded_dates", []),
            mandatory_ranges=ranges,
            max_continuous_days=data.get("max_continuous_days"),
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "excluded_dates": sorted(d.isoformat() for d in self.excluded_dates),
            "mandatory_ranges": [
                {
                    "start_date": r.start_date.isoformat(),
                    "end_date": r.end_date.isoformat(),
                    "days": r.required_days,
                }
                for r in self.mandatory_ranges
            ],
            "max_continuous_days": self.max_continuous_days,
        }

    @property
    def is_empty(self) -> bool:
        return (
            not self.excluded_dates
            and not self.mandatory_ranges
            and self.max_continuous_days is None
        )


def effective_run_limit(constraints: VacationConstraints) -> int | None:
    """The leave-only run cap; a limit of 0 still allows isolated days."""
    if constraints.max_continuous_days is None:
        return None
    return max(constraints.max_continuous_days, 1)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_indices(
    indices: Sequence[int],
    seq: DaySequence,
    constraints: VacationConstraints | None,
) -> bool:
    """Validate a sorted selection of day indices against *constraints*."""
    if constraints is None:
        return True

    dates = seq.dates
    excluded = constraints.excluded_dates
    if excluded:
        for i in indices:
            if dates[i] in excluded:
                return False

    for rng in constraints.mandatory_ranges:
        taken = 0
        for i in indices:
            if rng.start_date <= dates[i] <= rng.end_date:
                taken += 1
        if taken < rng.required_days:
            return False

    limit = effective_run_limit(constraints)
    if limit is not None:
        for _start, _end, count in touched_runs(indices, seq):
            if count > limit:
                return False

    return True


def validate(
    candidate_dates: Iterable[datetime.date],
    day_records: list[DayRecord],
    constraints: VacationConstraints | None,
) -> bool:
    """Return ``True`` if *candidate_dates* satisfy every constraint.

    Rules: no excluded date is taken; every mandatory range holds at least
    its required number of leave days; no leave-only run is longer than
    ``max_continuous_days`` (0 meaning every leave day stands alone).
    """
    candidates = set(candidate_dates)
    if constraints is None:
        return True
    if candidates & constraints.excluded_dates:
        return False
    for rng in constraints.mandatory_ranges:
        if sum(1 for d in candidates if rng.contains(d)) < rng.required_days:
            return False
    limit = effective_run_limit(constraints)
    if limit is None:
        return True
    seq = DaySequence(day_records)
    return all(count <= limit for _s, _e, count in touched_runs(seq.indices(candidates), seq))


def mandatory_coverage(
    dates: Iterable[datetime.date],
    constraints: VacationConstraints | None,
) -> list[tuple[MandatoryRange, int, int]]:
    """``(range, taken, required)`` for each mandatory range."""
    if constraints is None:
        return []
    chosen = list(dates)
    return [
        (rng, sum(1 for d in chosen if rng.contains(d)), rng.required_days)
        for rng in constraints.mandatory_ranges
    ]
