"""
The region mapper: source ranges of a decompiled class to its bytecode members.
"""

import itertools
import logging
from pathlib import Path
from typing import Optional

from .. import ast
from ..classreader import ClassInfo, ClassPath, MethodInfo
from ..parser import parse, parse_file
from .descriptors import DescriptorMixin
from .marking import MarkingScope, RangeMarkingMixin
from .members import MemberLookupMixin
from .names import NameResolutionMixin
from .queries import PositionQueryMixin
from .scopes import ScopeResolutionMixin
from .types import MemberRef

logger = logging.getLogger(__name__)


class RegionMapper(
    NameResolutionMixin,
    DescriptorMixin,
    MemberLookupMixin,
    ScopeResolutionMixin,
    RangeMarkingMixin,
    PositionQueryMixin,
):
    """
    Maps positions in the source text of one class to the classes and
    members they refer to.

    node is the class the source was decompiled from and unit its parsed
    compilation unit. Call analyze() before querying.
    """

    def __init__(self, classpath: ClassPath, node: ClassInfo, unit: ast.CompilationUnit, *,
                 warn_unresolved: bool = False, implicit_java_lang: bool = True):
        self.classpath = classpath
        self.node = node
        self.unit = unit
        self.warn_unresolved = warn_unresolved
        self.implicit_java_lang = implicit_java_lang
        self._analyzed = False
        self._reset()

    def _reset(self):
        self._simple_names: dict[str, set[ClassInfo]] = {}
        self._qualified_names: dict[str, ClassInfo] = {}
        self._class_ranges: dict[ClassInfo, dict[ast.SourceRange, int]] = {}
        self._member_ranges: dict[MemberRef, dict[ast.SourceRange, int]] = {}
        self._sequence = itertools.count()
        self._visits: list[tuple[ast.ASTNode, MarkingScope]] = []
        self._method_infos: dict[int, Optional[MethodInfo]] = {}
        self._context_owners: dict[int, Optional[ClassInfo]] = {}
        self._variable_cache: dict[int, list[tuple[str, Optional[str]]]] = {}

    @classmethod
    def from_source(cls, classpath: ClassPath, node: ClassInfo, source: str, **kwargs) -> "RegionMapper":
        return cls(classpath, node, parse(source), **kwargs)

    @classmethod
    def from_file(cls, classpath: ClassPath, node: ClassInfo, path: str | Path, **kwargs) -> "RegionMapper":
        return cls(classpath, node, parse_file(path), **kwargs)

    def analyze(self) -> "RegionMapper":
        """Build the name tables and mark every range. Running it again starts over."""
        self._analyzed = False
        self._reset()
        self.populate_lookups()
        self.collect_nodes()
        self.mark_class_ranges()
        self.mark_member_declarations()
        self.mark_member_references()
        self.mark_other_ranges()
        self._analyzed = True
        logger.info("Mapped %s: %d class range(s), %d member range(s)",
                    self.node.name,
                    sum(len(r) for r in self._class_ranges.values()),
                    sum(len(r) for r in self._member_ranges.values()))
        return self
