"""Leave Selection Engine

Chooses which workdays to take as leave so that they bridge weekends and
holidays into the longest possible stretches of time off.

Two search modes, picked deterministically by the size of the eligible
workday pool:

  1. Exhaustive  - every combination of the requested size is enumerated,
                   validated and scored (small pools only).
  2. Heuristic   - mandatory quotas are pre-selected, then leave is
                   attached to the edges of long holiday blocks and any
                   remaining budget is filled greedily by proximity to
                   days off.

Infeasibility is never an error: it yields an empty candidate list.
"""

from __future__ import annotations

import datetime
import itertools
from collections.abc import Sequence
from typing import NamedTuple

from loguru import logger

from leaveplan.classifier import DayRecord, DaySequence
from leaveplan.constraints import VacationConstraints, effective_run_limit, validate_indices
from leaveplan.segments import touched_runs

EXHAUSTIVE_POOL_LIMIT = 20
"""Largest eligible pool that is searched exhaustively."""

LONG_BLOCK_MIN_DAYS = 3
PROXIMITY_WINDOW = 3

# Greedy proximity weights
MAKEUP_DAY_BONUS = 5.0
HOLIDAY_WEIGHT = 10.0
REST_DAY_WEIGHT = 5.0

# Score bonus weights
ADJACENT_HOLIDAY_BONUS = 2.5
ADJACENT_REST_DAY_BONUS = 1.5
GOLDEN_WEEK_DAYS = 5
GOLDEN_WEEK_BONUS = 5.0
LONG_VACATION_DAYS = 7
LONG_VACATION_BONUS = 10.0

# ---------------------------------------------------------------------------
# Data types
# ---------------------------------------------------------------------------


class Candidate(NamedTuple):
    """A valid leave selection, as sorted day indices, with its score."""

    indices: tuple[int, ...]
    score: float


# ---------------------------------------------------------------------------
# Optimizer
# ---------------------------------------------------------------------------


class LeaveOptimizer:
    """Ranks leave selections of a fixed size over a classified date range.

    The score of a selection is its *efficiency* (longest inclusive run of
    days off touching the selection, per leave day, times 100) plus a small
    weighted bonus: the total length of every touched run, a bonus for each
    leave day that sits right next to a holiday or a rest day, and a bonus
    once the longest run reaches a golden-week length. The bonus only
    separates selections with equal or near-equal efficiency.
    """

    def __init__(
        self,
        day_records: list[DayRecord],
        requested_days: int,
        constraints: VacationConstraints | None = None,
    ):
        self.seq = DaySequence(day_records)
        self.requested_days = requested_days
        self.constraints = constraints

        excluded = constraints.excluded_dates if constraints is not None else frozenset()
        seq = self.seq
        self.pool: list[int] = [
            i for i in range(seq.num_days) if not seq.is_off[i] and seq.dates[i] not in excluded
        ]
        self._eligible: set[int] = set(self.pool)

        # Pre-compute per-day lookups for scoring
        self._adjacency: list[float] = [self._adjacency_bonus(i) for i in range(seq.num_days)]
        self._proximity: dict[int, float] = {i: self._proximity_score(i) for i in self.pool}
        # Stable sort keeps chronological order among equal scores
        self._ranked_pool: list[int] = sorted(self.pool, key=lambda i: -self._proximity[i])

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def _adjacency_bonus(self, i: int) -> float:
        seq = self.seq
        bonus = 0.0
        for j in (i - 1, i + 1):
            if not 0 <= j < seq.num_days:
                continue
            if seq.is_holiday[j]:
                bonus += ADJACENT_HOLIDAY_BONUS
            elif seq.is_weekend[j] and seq.is_off[j]:
                bonus += ADJACENT_REST_DAY_BONUS
        return bonus

    def _proximity_score(self, i: int) -> float:
        """Greedy priority of a single workday.

        A make-up workday on the rest pattern gets a flat bonus, since taking
        it restores a whole weekend. Every day off within the proximity
        window adds a weight divided by its distance, holidays weighing more
        than plain rest days.
        """
        seq = self.seq
        score = MAKEUP_DAY_BONUS if seq.is_weekend[i] else 0.0
        for dist in range(1, PROXIMITY_WINDOW + 1):
            for j in (i - dist, i + dist):
                if 0 <= j < seq.num_days and seq.is_off[j]:
                    weight = HOLIDAY_WEIGHT if seq.is_holiday[j] else REST_DAY_WEIGHT
                    score += weight / dist
        return score

    def score(self, indices: Sequence[int]) -> float:
        """Score a sorted, non-empty selection of day indices.

        Runs are merged in one pass, as in :func:`touched_runs`, without
        building intermediate lists.
        """
        off_before = self.seq.off_before
        off_after = self.seq.off_after
        adjacency = self._adjacency
        longest = 0
        bonus = 0.0
        run_start = run_end = -2
        for i in indices:
            bonus += adjacency[i]
            if i <= run_end + 1:
                if i + off_after[i] > run_end:
                    run_end = i + off_after[i]
                continue
            if run_end >= 0:
                length = run_end - run_start + 1
                bonus += length
                longest = max(longest, length)
            run_start = i - off_before[i]
            run_end = i + off_after[i]
        length = run_end - run_start + 1
        bonus += length
        longest = max(longest, length)

        efficiency = 100.0 * longest / len(indices)
        if longest >= GOLDEN_WEEK_DAYS:
            bonus += GOLDEN_WEEK_BONUS
        if longest >= LONG_VACATION_DAYS:
            bonus += LONG_VACATION_BONUS
        return round(efficiency + bonus, 2)

    def _is_valid(self, indices: Sequence[int]) -> bool:
        return validate_indices(indices, self.seq, self.constraints)

    def _within_run_limit(self, indices: Sequence[int]) -> bool:
        if self.constraints is None:
            return True
        limit = effective_run_limit(self.constraints)
        if limit is None:
            return True
        return all(count <= limit for _s, _e, count in touched_runs(indices, self.seq))

    # ------------------------------------------------------------------
    # Exhaustive search
    # ------------------------------------------------------------------

    def _solve_exhaustive(self) -> list[Candidate]:
        n = self.requested_days
        is_valid = self._is_valid
        score = self.score
        candidates: list[Candidate] = []
        checked = 0
        for combo in itertools.combinations(self.pool, n):
            checked += 1
            if not is_valid(combo):
                continue
            candidates.append(Candidate(combo, score(combo)))

        logger.debug(
            f"Exhaustive search: {checked} combinations, {len(candidates)} valid"
        )
        candidates.sort(key=lambda c: c.score, reverse=True)
        return candidates

    # ------------------------------------------------------------------
    # Heuristic search
    # ------------------------------------------------------------------

    def _preselect_mandatory(self) -> set[int] | None:
        """Fix just enough days to meet every mandatory quota.

        Days inside each range are taken in proximity order, skipping any
        that would break the run limit. Returns ``None`` when a quota cannot
        be met or the fixed days alone exceed the request.
        """
        fixed: set[int] = set()
        if self.constraints is None:
            return fixed

        dates = self.seq.dates
        for rng in self.constraints.mandatory_ranges:
            have = sum(1 for i in fixed if rng.contains(dates[i]))
            need = rng.required_days - have
            if need <= 0:
                continue
            for i in self._ranked_pool:
                if need == 0:
                    break
                if i in fixed or not rng.contains(dates[i]):
                    continue
                if self._within_run_limit(sorted(fixed | {i})):
                    fixed.add(i)
                    need -= 1
            if need > 0:
                logger.debug(
                    f"Mandatory range {rng.start_date}..{rng.end_date} "
                    f"short by {need} day(s)"
                )
                return None

        if len(fixed) > self.requested_days:
            logger.debug(
                f"Mandatory quotas need {len(fixed)} days, only {self.requested_days} requested"
            )
            return None
        return fixed

    def _long_blocks(self) -> list[tuple[int, int]]:
        """Maximal runs of at least LONG_BLOCK_MIN_DAYS consecutive days off."""
        return [
            (start, end)
            for start, end in self.seq.off_runs
            if end - start + 1 >= LONG_BLOCK_MIN_DAYS
        ]

    def _walk(self, pos: int, step: int, fixed: set[int], limit: int) -> list[int]:
        """Consecutive eligible workdays from *pos* outward, nearest first.

        Already fixed days are passed over; the walk stops at the first day
        that is neither fixed nor eligible.
        """
        picked: list[int] = []
        while 0 <= pos < self.seq.num_days and len(picked) < limit:
            if pos in fixed:
                pos += step
                continue
            if pos not in self._eligible:
                break
            picked.append(pos)
            pos += step
        return picked

    def _greedy_fill(self, seed: set[int]) -> set[int]:
        """Top *seed* up to the requested size in proximity order.

        The full constraint set is re-checked after each acceptance; a day
        that would break a constraint is skipped.
        """
        chosen = set(seed)
        for i in self._ranked_pool:
            if len(chosen) >= self.requested_days:
                break
            if i in chosen:
                continue
            trial = sorted(chosen | {i})
            if self._is_valid(trial):
                chosen.add(i)
        return chosen

    def _solve_heuristic(self) -> list[Candidate]:
        n = self.requested_days
        fixed = self._preselect_mandatory()
        if fixed is None:
            return []
        budget = n - len(fixed)

        seen: set[tuple[int, ...]] = set()
        candidates: list[Candidate] = []

        def consider(selection: set[int]) -> None:
            key = tuple(sorted(selection))
            if len(key) != n or key in seen:
                return
            seen.add(key)
            if self._is_valid(key):
                candidates.append(Candidate(key, self.score(key)))

        blocks = self._long_blocks()
        for start, end in blocks:
            before = self._walk(start - 1, -1, fixed, budget)
            after = self._walk(end + 1, 1, fixed, budget)
            for take_before in range(len(before) + 1):
                take_after = min(budget - take_before, len(after))
                seed = fixed | set(before[:take_before]) | set(after[:take_after])
                if not self._within_run_limit(sorted(seed)):
                    continue
                if len(seed) < n:
                    seed = self._greedy_fill(seed)
                consider(seed)

        # Pure greedy fallback, always offered as an alternative
        consider(self._greedy_fill(fixed))

        logger.debug(
            f"Heuristic search: {len(blocks)} long block(s), {len(candidates)} valid candidate(s)"
        )
        candidates.sort(key=lambda c: c.score, reverse=True)
        return candidates

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    @property
    def is_exhaustive(self) -> bool:
        return len(self.pool) <= EXHAUSTIVE_POOL_LIMIT

    def solve(self) -> list[Candidate]:
        """All valid candidates found, best first; empty when infeasible."""
        n = self.requested_days
        if n <= 0:
            return []
        if n > len(self.pool):
            logger.debug(f"Requested {n} days but only {len(self.pool)} eligible workdays")
            return []

        search = self._solve_exhaustive if self.is_exhaustive else self._solve_heuristic
        return search()

    def dates_for(self, candidate: Candidate) -> list[datetime.date]:
        return [self.seq.dates[i] for i in candidate.indices]


def rank_candidates(
    day_records: list[DayRecord],
    requested_days: int,
    constraints: VacationConstraints | None = None,
) -> list[Candidate]:
    return LeaveOptimizer(day_records, requested_days, constraints).solve()


def select(
    day_records: list[DayRecord],
    requested_days: int,
    constraints: VacationConstraints | None = None,
) -> list[datetime.date]:
    """Return the best leave selection, or an empty list if none is feasible."""
    optimizer = LeaveOptimizer(day_records, requested_days, constraints)
    candidates = optimizer.solve()
    if not candidates:
        return []
    return optimizer.dates_for(candidates[0])
