"""
JVM descriptors: synthesis from source types and decoding.
"""

import logging
from typing import Mapping, Optional, Sequence

from .. import ast
from .types import DescriptorError, OBJECT_DESCRIPTOR, PRIMITIVE_DESCRIPTORS

logger = logging.getLogger(__name__)


def _parse_field_descriptor(desc: str, pos: int) -> int:
    """Return the position just past the field descriptor starting at pos."""
    while pos < len(desc) and desc[pos] == "[":
        pos += 1
    if pos >= len(desc):
        raise DescriptorError(f"Truncated descriptor: {desc!r}")
    ch = desc[pos]
    if ch == "L":
        end = desc.find(";", pos)
        if end == -1:
            raise DescriptorError(f"Unterminated class name in descriptor: {desc!r}")
        return end + 1
    if ch in "BCDFIJSZ":
        return pos + 1
    raise DescriptorError(f"Unknown descriptor char {ch!r} in {desc!r}")


def argument_descriptors(descriptor: str) -> list[str]:
    """Parameter descriptors of a method descriptor."""
    if not descriptor.startswith("("):
        raise DescriptorError(f"Not a method descriptor: {descriptor!r}")
    args = []
    i = 1  # Skip '('
    while i < len(descriptor) and descriptor[i] != ")":
        end = _parse_field_descriptor(descriptor, i)
        args.append(descriptor[i:end])
        i = end
    if i >= len(descriptor):
        raise DescriptorError(f"Unterminated argument list: {descriptor!r}")
    return args


def argument_count(descriptor: str) -> int:
    return len(argument_descriptors(descriptor))


def return_descriptor(descriptor: str) -> str:
    close = descriptor.find(")")
    if not descriptor.startswith("(") or close == -1:
        raise DescriptorError(f"Not a method descriptor: {descriptor!r}")
    return descriptor[close + 1:]


def referenced_class(descriptor: Optional[str]) -> Optional[str]:
    """
    Internal name of the class a field descriptor refers to.
    Arrays and primitives refer to no class.
    """
    if descriptor and descriptor.startswith("L") and descriptor.endswith(";"):
        return descriptor[1:-1]
    return None


class DescriptorMixin:
    """Mixin turning source-level types into JVM descriptors."""

    # These methods are expected from other mixins
    resolve_class: callable

    def type_descriptor(self, t: Optional[ast.Type], extra_dimensions: int = 0,
                        type_variables: Optional[Mapping[str, str]] = None) -> Optional[str]:
        """
        Descriptor of a source type, or None when a named type does not
        resolve. extra_dimensions covers C-style declarators (int x[]).
        """
        if t is None:
            return None
        try:
            desc = self._descriptor(t, type_variables or {})
        except DescriptorError as e:
            logger.debug("No descriptor for %s: %s", t, e)
            return None
        if desc is None:
            return None
        return "[" * extra_dimensions + desc

    def _descriptor(self, t: ast.Type, type_variables: Mapping[str, str]) -> Optional[str]:
        if isinstance(t, ast.PrimitiveType):
            if t.name not in PRIMITIVE_DESCRIPTORS:
                raise DescriptorError(f"Unknown primitive type: {t.name}")
            return PRIMITIVE_DESCRIPTORS[t.name]

        elif isinstance(t, ast.ClassType):
            if t.name in type_variables:
                return type_variables[t.name]
            cls = self.resolve_class(t.name)
            if cls is None:
                return None
            return f"L{cls.name};"

        elif isinstance(t, ast.ArrayType):
            element = self._descriptor(t.element_type, type_variables)
            if element is None:
                return None
            return "[" * t.dimensions + element

        raise DescriptorError(f"Unsupported type: {type(t).__name__}")

    def parameter_descriptor(self, param: ast.FormalParameter,
                             type_variables: Optional[Mapping[str, str]] = None) -> Optional[str]:
        """Varargs (T...) are arrays in bytecode."""
        dims = param.dimensions + (1 if param.varargs else 0)
        return self.type_descriptor(param.type, dims, type_variables)

    def method_descriptor(self, decl: ast.MethodDeclaration | ast.ConstructorDeclaration,
                          type_variables: Optional[Mapping[str, str]] = None,
                          leading: Sequence[str] = ()) -> Optional[str]:
        """
        Descriptor of a method or constructor declaration, or None if any
        parameter or the return type does not resolve. leading holds the
        descriptors of synthetic parameters the compiler prepends.
        """
        variables = dict(type_variables or {})
        variables.update(self.type_variable_erasures(decl.type_parameters, variables))
        parts = list(leading)
        for param in decl.parameters:
            desc = self.parameter_descriptor(param, variables)
            if desc is None:
                return None
            parts.append(desc)
        if isinstance(decl, ast.ConstructorDeclaration):
            ret = "V"
        else:
            ret = self.type_descriptor(decl.return_type, decl.dimensions, variables)
            if ret is None:
                return None
        return f"({''.join(parts)}){ret}"

    def type_variable_erasures(self, type_parameters: Sequence[ast.TypeParameter],
                               type_variables: Optional[Mapping[str, str]] = None) -> dict[str, str]:
        """Type variable name -> descriptor of its erasure (first bound, else Object)."""
        variables = dict(type_variables or {})
        erasures = {}
        for tp in type_parameters:
            # Shadow outer variables of the same name before resolving bounds
            variables[tp.name] = OBJECT_DESCRIPTOR
            erasure = None
            if tp.bounds:
                erasure = self.type_descriptor(tp.bounds[0], type_variables=variables)
            erasures[tp.name] = erasure or OBJECT_DESCRIPTOR
            variables[tp.name] = erasures[tp.name]
        return erasures
