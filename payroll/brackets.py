"""
Interval lookup and overlap rules for incentive brackets.

A bracket is anything exposing ``min_bound``, ``max_bound`` (``None`` means
unbounded above), ``percentage`` and ``is_active``; ``id`` is only needed for
``exclude_id``. Both bounds are inclusive everywhere.

Matching sorts by ``min_bound`` and takes the first hit. With a validated
(non-overlapping) configuration at most one bracket can match, so the order
only matters when overlap validation was bypassed: brackets sharing the same
``min_bound`` then resolve in whatever order the store returned them.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional, TypeVar

from core.exceptions import ValidationError

B = TypeVar("B")


@dataclass(frozen=True)
class BracketRange:
    """Plain bracket value used outside the ORM (previews, tests)."""

    min_bound: int
    max_bound: Optional[int]
    percentage: Decimal
    is_active: bool = True
    id: Optional[object] = None
    name: str = ""


def contains(bracket, value: int) -> bool:
    if value < bracket.min_bound:
        return False
    return bracket.max_bound is None or value <= bracket.max_bound


def match_bracket(brackets: Iterable[B], value: int) -> Optional[B]:
    """Return the first active bracket covering ``value``, or None."""
    for bracket in sorted(brackets, key=lambda b: b.min_bound):
        if bracket.is_active and contains(bracket, value):
            return bracket
    return None


def ranges_overlap(min1: int, max1: Optional[int], min2: int, max2: Optional[int]) -> bool:
    # None is +infinity, so a missing upper bound never fails its comparison
    if max1 is None and max2 is None:
        return True
    return (max2 is None or min1 <= max2) and (max1 is None or min2 <= max1)


def has_overlap(
    existing: Iterable,
    candidate_min: int,
    candidate_max: Optional[int],
    exclude_id=None,
) -> bool:
    for bracket in existing:
        if not bracket.is_active:
            continue
        if exclude_id is not None and bracket.id == exclude_id:
            continue
        if ranges_overlap(candidate_min, candidate_max, bracket.min_bound, bracket.max_bound):
            return True
    return False


def validate_bounds(min_bound, max_bound) -> None:
    errors = {}
    if min_bound is None:
        errors["min_bound"] = "Minimum bound is required."
    elif min_bound < 0:
        errors["min_bound"] = "Minimum bound cannot be negative."
    if max_bound is not None and min_bound is not None and max_bound < min_bound:
        errors["max_bound"] = "Maximum bound must be greater than or equal to the minimum bound."
    if errors:
        raise ValidationError(errors)
