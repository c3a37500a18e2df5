"""
Position queries over the recorded ranges.
"""

import logging
from typing import Hashable, Mapping, Optional, TypeVar

from ..ast import SourceRange
from ..classreader import ClassInfo
from .types import InvalidRangeError, MemberRef, RegionError

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)


def _best_match(table: Mapping[K, Mapping[SourceRange, int]], line: int, column: int) -> Optional[K]:
    """
    Key whose range contains the position. The narrowest range wins; of
    equal widths, the one recorded first.
    """
    best = None
    best_rank = None
    for key, ranges in table.items():
        for rng, seq in ranges.items():
            if not rng.is_single_line:
                raise InvalidRangeError(f"Range spans multiple lines: {rng}")
            if not rng.contains(line, column):
                continue
            rank = (rng.span, seq)
            if best_rank is None or rank < best_rank:
                best, best_rank = key, rank
    return best


class PositionQueryMixin:
    """Mixin answering which class or member sits at a source position."""

    # These attributes are defined in RegionMapper
    _analyzed: bool
    _class_ranges: dict[ClassInfo, dict[SourceRange, int]]
    _member_ranges: dict[MemberRef, dict[SourceRange, int]]

    def _require_analysis(self):
        if not self._analyzed:
            raise RegionError("Ranges queried before analyze() was run")

    def class_at(self, line: int, column: int) -> Optional[ClassInfo]:
        """Class referred to at a 1-based line and column, or None."""
        self._require_analysis()
        return _best_match(self._class_ranges, line, column)

    def member_at(self, line: int, column: int) -> Optional[MemberRef]:
        """Field or method referred to at a 1-based line and column, or None."""
        self._require_analysis()
        return _best_match(self._member_ranges, line, column)

    def ranges_of_class(self, cls: ClassInfo) -> list[SourceRange]:
        self._require_analysis()
        return sorted(self._class_ranges.get(cls, ()))

    def ranges_of_member(self, member: MemberRef) -> list[SourceRange]:
        self._require_analysis()
        return sorted(self._member_ranges.get(member, ()))

    def class_ranges(self) -> dict[ClassInfo, list[SourceRange]]:
        """Every class with a recorded range, each with its ranges in source order."""
        self._require_analysis()
        return {cls: sorted(ranges) for cls, ranges in self._class_ranges.items()}

    def member_ranges(self) -> dict[MemberRef, list[SourceRange]]:
        self._require_analysis()
        return {member: sorted(ranges) for member, ranges in self._member_ranges.items()}
