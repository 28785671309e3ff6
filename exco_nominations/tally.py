"""Vote counting for the admin dashboard.

Everything here is a pure function of the rows passed in: the same
nominations always give the same counts in the same order.

Ordering rules:
  * per-position counts follow the position enumeration order, then count
    descending, then nominee name ascending;
  * the cross-position ranking sorts by total descending, ties broken by
    nominee name ascending (plain string order, so "X" sorts before "x").

The cross-position ranking adds up a name's nominations over every position.
Identical spellings for different positions are therefore counted as the
same person, and different spellings as different people.
"""
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from exco_nominations.config import POSITIONS, TOP_NOMINEES_LIMIT, Position


@dataclass(frozen=True)
class PositionTally:
    position: Position
    nominee_name: str
    count: int
    percentage: int  # share of submitted ballots


@dataclass(frozen=True)
class RankedNominee:
    nominee_name: str
    total: int
    positions: Tuple[Position, ...]
    percentage: int  # total against ballot count; above 100 when named for several positions


@dataclass(frozen=True)
class NominationStats:
    per_position: List[PositionTally]
    ranking: List[RankedNominee]
    ballots: int
    submitted_count: int
    eligible_count: int
    participation_rate: int

    def top_n(self, n: int = TOP_NOMINEES_LIMIT) -> List[RankedNominee]:
        return self.ranking[:max(n, 0)]

    def for_position(self, position: Optional[Position]) -> List[PositionTally]:
        if position is None:
            return list(self.per_position)
        return [t for t in self.per_position if t.position == position]


def rounded_percentage(part: int, whole: int) -> int:
    """round(100 * part / whole) with halves rounded up; 0 when whole is 0."""
    if whole <= 0:
        return 0
    return (200 * part + whole) // (2 * whole)


def participation_rate(submitted_count: int, eligible_count: int) -> int:
    return rounded_percentage(submitted_count, eligible_count)


def _nominees(nomination: Mapping) -> Iterable[Tuple[Position, str]]:
    for position in POSITIONS:
        nominee = nomination.get(position.value)
        if nominee and nominee.strip():
            yield position, nominee


def compute_stats(nominations: Iterable[Mapping], eligible_count: int,
                  submitted_count: Optional[int] = None) -> NominationStats:
    nominations = list(nominations)
    per_position: Dict[Position, Dict[str, int]] = {position: defaultdict(int) for position in POSITIONS}
    totals: Dict[str, int] = defaultdict(int)
    positions_by_name: Dict[str, set] = defaultdict(set)

    for nomination in nominations:
        for position, nominee in _nominees(nomination):
            per_position[position][nominee] += 1
            totals[nominee] += 1
            positions_by_name[nominee].add(position)

    if submitted_count is None:
        submitted_count = len(nominations)
    tallies = [
        PositionTally(position, name, count, rounded_percentage(count, submitted_count))
        for position in POSITIONS
        for name, count in sorted(per_position[position].items(), key=lambda item: (-item[1], item[0]))
    ]
    ranking = [
        RankedNominee(
            nominee_name=name,
            total=total,
            positions=tuple(p for p in POSITIONS if p in positions_by_name[name]),
            percentage=rounded_percentage(total, len(nominations)),
        )
        for name, total in sorted(totals.items(), key=lambda item: (-item[1], item[0]))
    ]
    return NominationStats(
        per_position=tallies,
        ranking=ranking,
        ballots=len(nominations),
        submitted_count=submitted_count,
        eligible_count=eligible_count,
        participation_rate=participation_rate(submitted_count, eligible_count),
    )


def leading_candidates(candidates: Iterable[Mapping]) -> Dict[Position, Optional[Mapping]]:
    """Highest vote count per position among deduplicated candidates; ties go to the earlier name."""
    leaders: Dict[Position, Optional[Mapping]] = {position: None for position in POSITIONS}
    for candidate in candidates:
        try:
            position = Position(candidate["position"])
        except ValueError:
            continue
        current = leaders[position]
        key = (-(candidate.get("vote_count") or 0), candidate["canonical_name"])
        if current is None or key < (-(current.get("vote_count") or 0), current["canonical_name"]):
            leaders[position] = candidate
    return leaders
