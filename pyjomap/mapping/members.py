"""
Field and method lookup through the class hierarchy.
"""

import logging
from typing import Iterator, Optional

from ..classreader import ClassInfo, ClassPath
from .descriptors import argument_count
from .types import DescriptorError, MemberRef

logger = logging.getLogger(__name__)


class MemberLookupMixin:
    """Mixin locating members declared on a class or its ancestors."""

    # These attributes are defined in RegionMapper
    classpath: ClassPath
    _qualified_names: dict[str, ClassInfo]

    def lookup_class(self, name: Optional[str]) -> Optional[ClassInfo]:
        """Class by internal name: name tables, program classes, then runtime classes."""
        if not name:
            return None
        if name in self._qualified_names:
            return self._qualified_names[name]
        cls = self.classpath.find_class(name)
        if cls is None:
            cls = self.classpath.load_foreign(name)
        return cls

    def superclass_chain(self, cls: ClassInfo) -> Iterator[ClassInfo]:
        """cls, then each superclass until one cannot be loaded."""
        seen = set()
        current = cls
        while current is not None and current.name not in seen:
            seen.add(current.name)
            yield current
            current = self.lookup_class(current.super_class)

    def _interfaces_of(self, cls: ClassInfo) -> Iterator[ClassInfo]:
        """Every interface implemented along the superclass chain, breadth first."""
        seen = set()
        pending = []
        for current in self.superclass_chain(cls):
            pending.extend(current.interfaces)
        while pending:
            name = pending.pop(0)
            if name in seen:
                continue
            seen.add(name)
            iface = self.lookup_class(name)
            if iface is None:
                continue
            yield iface
            pending.extend(iface.interfaces)

    def _hierarchy(self, cls: ClassInfo) -> Iterator[ClassInfo]:
        yield from self.superclass_chain(cls)
        yield from self._interfaces_of(cls)

    def find_field(self, cls: Optional[ClassInfo], name: str) -> Optional[MemberRef]:
        """Field by name, owned by the first class in the hierarchy declaring it."""
        if cls is None or not name:
            return None
        for current in self._hierarchy(cls):
            fld = current.get_field(name)
            if fld is not None:
                return MemberRef(current, fld.name, fld.descriptor, kind="field")
        return None

    def find_method(self, cls: Optional[ClassInfo], name: str, arg_count: int) -> Optional[MemberRef]:
        """
        Method by name and parameter count. Overloads of equal arity are
        not told apart; the first declared wins.
        """
        if cls is None or not name:
            return None
        for current in self._hierarchy(cls):
            for method in current.get_methods(name):
                try:
                    count = argument_count(method.descriptor)
                except DescriptorError as e:
                    logger.debug("Skipping %s.%s: %s", current.name, name, e)
                    continue
                if count == arg_count:
                    return MemberRef(current, method.name, method.descriptor, kind="method")
        return None

    def find_declared_field(self, cls: ClassInfo, name: str, descriptor: Optional[str]) -> Optional[MemberRef]:
        """Field declared on cls itself with exactly this name and descriptor."""
        if descriptor is None:
            return None
        for fld in cls.fields:
            if fld.name == name and fld.descriptor == descriptor:
                return MemberRef(cls, name, descriptor, kind="field")
        return None

    def find_declared_method(self, cls: ClassInfo, name: str, descriptor: Optional[str]) -> Optional[MemberRef]:
        """Method declared on cls itself with exactly this name and descriptor."""
        if descriptor is None:
            return None
        method = cls.get_method(name, descriptor)
        if method is None:
            return None
        return MemberRef(cls, name, descriptor, kind="method")
