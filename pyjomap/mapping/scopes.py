"""
Scope resolution: the class an expression evaluates to.
"""

import logging
from typing import Iterator, Optional

from .. import ast
from ..classreader import ClassInfo, MethodInfo
from ..parser import expression_name
from .descriptors import referenced_class, return_descriptor
from .types import DescriptorError, MemberRef, VariableBinding

logger = logging.getLogger(__name__)

MethodContext = ast.MethodDeclaration | ast.ConstructorDeclaration


class ScopeResolutionMixin:
    """
    Mixin resolving the static type of the scope of a member access.

    Only reference types resolve; arrays, primitives and type variables give
    None.
    """

    # These attributes are defined in RegionMapper
    node: ClassInfo
    _qualified_names: dict[str, ClassInfo]
    _method_infos: dict[int, Optional[MethodInfo]]
    _context_owners: dict[int, Optional[ClassInfo]]
    _variable_cache: dict[int, list[tuple[str, Optional[str]]]]

    # These methods are expected from other mixins
    resolve_class: callable
    type_descriptor: callable
    parameter_descriptor: callable
    find_field: callable
    find_method: callable
    lookup_class: callable

    def type_of_scope(self, expression: ast.Expression,
                      context: Optional[MethodContext] = None) -> Optional[ClassInfo]:
        """
        Class of the value an expression denotes. context is the method or
        constructor the expression appears in.
        """
        if isinstance(expression, ast.ThisExpression):
            if expression.qualifier:
                return self.resolve_class(expression.qualifier)
            return self.context_class(context)

        elif isinstance(expression, ast.SuperExpression):
            if expression.qualifier:
                # Interface.super.method()
                return self.resolve_class(expression.qualifier)
            cls = self.context_class(context)
            return self.lookup_class(cls.super_class) if cls is not None else None

        elif isinstance(expression, ast.Identifier):
            cls = self.resolve_class(expression.name)
            if cls is not None:
                return cls
            binding = self.find_variable(expression.name, context)
            if binding is not None:
                return self._class_of_descriptor(binding.descriptor)
            member = self.find_field(self.context_class(context), expression.name)
            if member is not None:
                return self._class_of_descriptor(member.descriptor)
            return None

        elif isinstance(expression, ast.NewInstance):
            if expression.qualifier is None and isinstance(expression.type, ast.ClassType):
                return self.resolve_class(expression.type.name)
            return None

        elif isinstance(expression, ast.FieldAccess):
            owner = self.type_of_scope(expression.target, context)
            if owner is None:
                # Fully qualified class name: java.util.Collections
                dotted = expression_name(expression)
                return self.resolve_class(dotted) if dotted else None
            member = self.find_field(owner, expression.field)
            if member is None:
                return None
            return self._class_of_descriptor(member.descriptor)

        elif isinstance(expression, ast.MethodInvocation):
            if expression.target is None:
                logger.error("Could not resolve scope of method call '%s', no context present",
                             expression.method)
                return None
            owner = self.type_of_scope(expression.target, context)
            member = self.find_method(owner, expression.method, len(expression.arguments))
            if member is None:
                return None
            return self._class_of_return(member)

        elif isinstance(expression, ast.ParenthesizedExpression):
            return self.type_of_scope(expression.expression, context)

        elif isinstance(expression, ast.CastExpression):
            if isinstance(expression.type, ast.ClassType):
                return self.resolve_class(expression.type.name)
            return None

        return None

    def context_class(self, context: Optional[MethodContext]) -> Optional[ClassInfo]:
        """
        Class whose body declares the context; the analyzed class by default.
        None inside anonymous class bodies.
        """
        if context is None:
            return self.node
        return self._context_owners.get(id(context), self.node)

    def _class_of_descriptor(self, descriptor: Optional[str]) -> Optional[ClassInfo]:
        name = referenced_class(descriptor)
        if name is None:
            return None
        return self._qualified_names.get(name)

    def _class_of_return(self, member: MemberRef) -> Optional[ClassInfo]:
        try:
            return self._class_of_descriptor(return_descriptor(member.descriptor))
        except DescriptorError as e:
            logger.debug("Bad descriptor on %s: %s", member, e)
            return None

    def find_variable(self, name: str, context: Optional[MethodContext]) -> Optional[VariableBinding]:
        """
        Local variable of the context method: the bytecode's local variable
        table first, then parameters and locals declared in source.
        """
        if context is None:
            return None
        method = self._method_infos.get(id(context))
        if method is not None:
            for var in method.local_variables:
                if var.name == name:
                    return VariableBinding(name, var.descriptor, method)
        for var_name, descriptor in self._source_variables(context):
            if var_name == name:
                return VariableBinding(name, descriptor, method)
        return None

    def _source_variables(self, context: MethodContext) -> list[tuple[str, Optional[str]]]:
        key = id(context)
        if key not in self._variable_cache:
            self._variable_cache[key] = list(self._declared_variables(context))
        return self._variable_cache[key]

    def _declared_variables(self, context: MethodContext) -> Iterator[tuple[str, Optional[str]]]:
        for node in ast.walk(context):
            if isinstance(node, ast.FormalParameter):
                yield node.name, self.parameter_descriptor(node)
            elif isinstance(node, ast.LocalVariableDeclaration):
                for declarator in node.declarators:
                    yield declarator.name, self.type_descriptor(node.type, declarator.dimensions)
            elif isinstance(node, ast.EnhancedForStatement):
                yield node.name, self.type_descriptor(node.type)
            elif isinstance(node, ast.CatchClause):
                # Multi-catch variables have no single class
                declared = node.types[0] if len(node.types) == 1 else None
                yield node.name, self.type_descriptor(declared)
            elif isinstance(node, ast.Resource):
                yield node.name, self.type_descriptor(node.type)
            elif isinstance(node, ast.LambdaExpression):
                for param in node.parameters:
                    if isinstance(param, str):
                        yield param, None
