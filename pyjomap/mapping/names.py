"""
Name resolution: simple and qualified class names to classes.
"""

import logging
from typing import Optional

from .. import ast
from ..classreader import ClassInfo, ClassPath
from .types import JAVA_LANG_CLASSES, NameLookupError

logger = logging.getLogger(__name__)


def _package_of(internal_name: str) -> str:
    if "/" not in internal_name:
        return ""
    return internal_name.rsplit("/", 1)[0]


def _strip_type_suffixes(text: str) -> str:
    """List<String>[] -> List"""
    if "<" in text:
        text = text[:text.index("<")]
    if "[" in text:
        text = text[:text.index("[")]
    return text.strip()


def qualified_candidates(dotted: str) -> list[str]:
    """
    Internal names a dotted name may denote, most packages first:
    a.b.C.D -> a/b/C/D, a/b/C$D, a/b$C$D, a$b$C$D
    """
    parts = dotted.split(".")
    candidates = []
    for split in range(len(parts), 0, -1):
        candidate = "/".join(parts[:split])
        for nested in parts[split:]:
            candidate += "$" + nested
        candidates.append(candidate)
    return candidates


class NameResolutionMixin:
    """Mixin providing the simple and qualified name tables."""

    # These attributes are defined in RegionMapper
    classpath: ClassPath
    node: ClassInfo
    unit: ast.CompilationUnit
    warn_unresolved: bool
    implicit_java_lang: bool
    _simple_names: dict[str, set[ClassInfo]]
    _qualified_names: dict[str, ClassInfo]

    # These methods are expected from other mixins
    record_class_range: callable

    def populate_lookups(self):
        """Build the name tables for the class under analysis."""
        # The analyzed class itself
        self._register(self.node)
        # Classes named by imports
        for imp in self.unit.imports:
            self._register_import(imp)
        # Package siblings, or default-package siblings
        if self.unit.package is not None:
            package = self.unit.package.name.replace(".", "/")
        else:
            package = ""
        self._register_package(package)
        # java.lang is implicitly imported
        if self.implicit_java_lang:
            self._register_java_lang()
        logger.debug("Name tables for %s: %d simple names, %d qualified names",
                     self.node.name, len(self._simple_names), len(self._qualified_names))

    def _name_lookup(self, simple: str) -> set[ClassInfo]:
        if not simple:
            raise NameLookupError(f"Requested name lookup, but gave {simple!r}")
        return self._simple_names.setdefault(simple, set())

    def _register(self, cls: ClassInfo, alias_nested: bool = True):
        self._name_lookup(cls.simple_name).add(cls)
        self._qualified_names[cls.name] = cls
        # Nested classes in scope are also known by their own name
        if alias_nested and "$" in cls.simple_name:
            inner = cls.simple_name.rsplit("$", 1)[1]
            if inner and not inner[0].isdigit():
                self._name_lookup(inner).add(cls)

    def _encloses_node(self, cls: ClassInfo) -> bool:
        """Whether cls is a member class of the analyzed class or of a class enclosing it."""
        if "$" not in cls.name:
            return False
        outer = cls.name.rsplit("$", 1)[0]
        return self.node.name == outer or self.node.name.startswith(outer + "$")

    def _register_import(self, imp: ast.ImportDeclaration):
        name = imp.name.replace(".", "/")
        if imp.is_wildcard and not imp.is_static:
            self._register_package(name)
            return
        if imp.is_static and not imp.is_wildcard:
            # import static a.B.member -> a.B
            name = _package_of(name)
            if not name:
                return
        cls = self._import_target(name)
        if cls is None:
            logger.debug("Could not resolve import %s", imp.name)
            return
        self._register(cls)
        if imp.range is not None:
            self.record_class_range(cls, imp.range)

    def _import_target(self, name: str) -> Optional[ClassInfo]:
        candidates = qualified_candidates(name.replace("/", "."))
        for candidate in candidates:
            if self.classpath.contains(candidate):
                return self.classpath.find_class(candidate)
        for candidate in candidates:
            cls = self.classpath.load_foreign(candidate)
            if cls is not None:
                return cls
        return None

    def _register_package(self, package: str):
        for name in self.classpath.class_names():
            if _package_of(name) != package:
                continue
            cls = self.classpath.find_class(name)
            if cls is not None:
                self._register(cls, alias_nested=self._encloses_node(cls))

    def _register_java_lang(self):
        for simple in sorted(JAVA_LANG_CLASSES):
            if self._simple_names.get(simple):
                continue
            cls = self.classpath.load_foreign(f"java/lang/{simple}")
            if cls is not None:
                self._register(cls)

    def resolve_simple(self, name: str) -> frozenset[ClassInfo]:
        """Every class registered under a simple name; more than one is ambiguous."""
        if not name:
            raise NameLookupError(f"Requested name lookup, but gave {name!r}")
        return frozenset(self._simple_names.get(name, ()))

    def resolve_qualified(self, name: str) -> Optional[ClassInfo]:
        """Class registered under a qualified name (a.b.C or a/b/C)."""
        if not name:
            raise NameLookupError(f"Requested name lookup, but gave {name!r}")
        return self._qualified_names.get(name.replace(".", "/"))

    def resolve_class(self, text: str) -> Optional[ClassInfo]:
        """
        Class denoted by a type name as written in source. Generic and
        array suffixes are ignored. Ambiguous and unknown names give None.
        """
        if not text:
            raise NameLookupError(f"Requested name lookup, but gave {text!r}")
        name = _strip_type_suffixes(text)
        if not name:
            raise NameLookupError(f"Requested name lookup, but gave {text!r}")

        if "." in name:
            for candidate in qualified_candidates(name):
                if candidate in self._qualified_names:
                    return self._qualified_names[candidate]
            # Outer.Inner spelled through an imported outer class
            name = name.replace(".", "$")

        matches = self._simple_names.get(name, set())
        if len(matches) == 1:
            return next(iter(matches))
        if len(matches) > 1:
            logger.warning("Multiple classes for simple name '%s': %s",
                           name, ", ".join(sorted(c.name for c in matches)))
        elif self.warn_unresolved:
            logger.warning("Could not find a class for '%s'", name)
        else:
            logger.debug("Could not find a class for '%s'", name)
        return None
