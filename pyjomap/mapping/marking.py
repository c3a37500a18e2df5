"""
Range marking: records which source ranges refer to which classes and members.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Iterator, Mapping, Optional

from .. import ast
from ..classreader import ClassInfo, ClassPath, MethodInfo
from .types import MemberRef

logger = logging.getLogger(__name__)

TYPE_DECLARATIONS = (
    ast.ClassDeclaration,
    ast.InterfaceDeclaration,
    ast.EnumDeclaration,
    ast.AnnotationTypeDeclaration,
)

ENUM_CONSTRUCTOR_PREFIX = ("Ljava/lang/String;", "I")


@dataclass(eq=False)
class MarkingScope:
    """Where a node sits: the class whose body holds it and the enclosing method."""
    owner: Optional[ClassInfo] = None
    declaration: Optional[ast.TypeDeclaration] = None
    outer: Optional["MarkingScope"] = None
    context: Optional[ast.MethodDeclaration | ast.ConstructorDeclaration] = None
    type_variables: Mapping[str, str] = field(default_factory=dict)
    anonymous: bool = False

    @property
    def is_top_level(self) -> bool:
        return self.declaration is None and not self.anonymous


class RangeMarkingMixin:
    """Mixin running the marking passes over the syntax tree."""

    # These attributes are defined in RegionMapper
    classpath: ClassPath
    node: ClassInfo
    unit: ast.CompilationUnit
    _qualified_names: dict[str, ClassInfo]
    _class_ranges: dict[ClassInfo, dict[ast.SourceRange, int]]
    _member_ranges: dict[MemberRef, dict[ast.SourceRange, int]]
    _sequence: Iterator[int]
    _visits: list[tuple[ast.ASTNode, MarkingScope]]
    _method_infos: dict[int, Optional[MethodInfo]]
    _context_owners: dict[int, Optional[ClassInfo]]

    # These methods are expected from other mixins
    resolve_class: callable
    type_descriptor: callable
    method_descriptor: callable
    type_variable_erasures: callable
    type_of_scope: callable
    find_variable: callable
    find_field: callable
    find_method: callable
    find_declared_field: callable
    find_declared_method: callable

    def record_class_range(self, cls: ClassInfo, rng: Optional[ast.SourceRange]):
        if rng is None:
            return
        ranges = self._class_ranges.setdefault(cls, {})
        if rng not in ranges:
            ranges[rng] = next(self._sequence)

    def record_member_range(self, member: MemberRef, rng: Optional[ast.SourceRange]):
        if rng is None:
            return
        ranges = self._member_ranges.setdefault(member, {})
        if rng not in ranges:
            ranges[rng] = next(self._sequence)

    # ==================== TRAVERSAL ====================

    def collect_nodes(self):
        """Flatten the tree once, remembering each node's scope."""
        self._visits = list(self._visit(self.unit, MarkingScope()))

    def _visit(self, node: ast.ASTNode, scope: MarkingScope) -> Iterator[tuple[ast.ASTNode, MarkingScope]]:
        yield node, scope
        if isinstance(node, TYPE_DECLARATIONS):
            scope = self._enter_type(node, scope)
        elif isinstance(node, (ast.MethodDeclaration, ast.ConstructorDeclaration)):
            scope = MarkingScope(
                owner=scope.owner,
                declaration=scope.declaration,
                outer=scope.outer,
                context=node,
                type_variables=scope.type_variables,
                anonymous=scope.anonymous,
            )
            self._context_owners[id(node)] = self._this_class(scope)
        elif isinstance(node, (ast.NewInstance, ast.EnumConstant)) and node.body is not None:
            yield from self._visit_anonymous(node, scope)
            return
        for child in node.children():
            yield from self._visit(child, scope)

    def _visit_anonymous(self, node: ast.NewInstance | ast.EnumConstant, scope: MarkingScope):
        # Arguments belong to the enclosing scope, the body to an unnamed class
        body_scope = MarkingScope(outer=scope, context=None,
                                  type_variables=scope.type_variables, anonymous=True)
        for child in node.children():
            if any(child is member for member in node.body):
                yield from self._visit(child, body_scope)
            else:
                yield from self._visit(child, scope)

    def _enter_type(self, decl: ast.TypeDeclaration, scope: MarkingScope) -> MarkingScope:
        cls = self._declared_class(decl, scope)
        variables = dict(scope.type_variables)
        variables.update(self.type_variable_erasures(getattr(decl, "type_parameters", ()), variables))
        return MarkingScope(
            owner=cls,
            declaration=decl,
            outer=scope,
            context=None,
            type_variables=variables,
        )

    def _declared_class(self, decl: ast.TypeDeclaration, scope: MarkingScope) -> Optional[ClassInfo]:
        """Class compiled from a type declaration, if the classpath has it."""
        if scope.is_top_level:
            if decl.name == self.node.simple_name:
                return self.node
            package = self.node.package
            return self._program_class(f"{package}/{decl.name}" if package else decl.name)
        if scope.owner is None:
            return None
        if scope.context is not None:
            # Local classes compile to Outer$1Name
            pattern = re.compile(re.escape(scope.owner.name) + r"\$\d+" + re.escape(decl.name))
            for name in self.classpath.class_names():
                if pattern.fullmatch(name):
                    return self._program_class(name)
            logger.debug("No class file for local class %s in %s", decl.name, scope.owner.name)
            return None
        return self._program_class(f"{scope.owner.name}${decl.name}")

    def _program_class(self, name: str) -> Optional[ClassInfo]:
        if name in self._qualified_names:
            return self._qualified_names[name]
        return self.classpath.find_class(name)

    # ==================== PASS 1: CLASS REFERENCES ====================

    def mark_class_ranges(self):
        """Type references, type declaration names, constructor names and annotations."""
        for node, _scope in self._visits:
            if isinstance(node, ast.ClassType):
                self._mark_class(node.name, node.range)
            elif isinstance(node, ast.ArrayType):
                element = node.element_type
                if isinstance(element, ast.ClassType):
                    self._mark_class(element.name, node.range)
            elif isinstance(node, TYPE_DECLARATIONS):
                self._mark_class(node.name, node.name_range)
            elif isinstance(node, ast.ConstructorDeclaration):
                self._mark_class(node.name, node.name_range)
            elif isinstance(node, ast.Annotation):
                self._mark_class(node.name, node.name_range)

    def _mark_class(self, name: str, rng: Optional[ast.SourceRange]):
        if rng is None or not name:
            return
        cls = self.resolve_class(name)
        if cls is not None:
            self.record_class_range(cls, rng)

    # ==================== PASS 2: MEMBER DECLARATIONS ====================

    def mark_member_declarations(self):
        """Fields, methods, constructors and enum constants matched by name and descriptor."""
        for node, scope in self._visits:
            cls = scope.owner
            if cls is None:
                continue
            if isinstance(node, ast.FieldDeclaration):
                for declarator in node.declarators:
                    desc = self.type_descriptor(node.type, declarator.dimensions, scope.type_variables)
                    member = self.find_declared_field(cls, declarator.name, desc)
                    if member is not None:
                        self.record_member_range(member, declarator.name_range)

            elif isinstance(node, ast.MethodDeclaration):
                desc = self.method_descriptor(node, scope.type_variables)
                self._method_infos[id(node)] = cls.get_method(node.name, desc) if desc else None
                member = self.find_declared_method(cls, node.name, desc)
                if member is not None:
                    self.record_member_range(member, node.name_range)

            elif isinstance(node, ast.ConstructorDeclaration):
                desc = self.method_descriptor(node, scope.type_variables, self._constructor_prefix(scope))
                self._method_infos[id(node)] = cls.get_method("<init>", desc) if desc else None
                member = self.find_declared_method(cls, "<init>", desc)
                if member is not None:
                    self.record_member_range(member, node.name_range)

            elif isinstance(node, ast.EnumConstant):
                member = self.find_declared_field(cls, node.name, f"L{cls.name};")
                if member is not None:
                    self.record_member_range(member, node.name_range)

    def _constructor_prefix(self, scope: MarkingScope) -> tuple[str, ...]:
        """Synthetic leading constructor parameters added by javac."""
        decl = scope.declaration
        if isinstance(decl, ast.EnumDeclaration):
            return ENUM_CONSTRUCTOR_PREFIX
        outer = scope.outer
        if (isinstance(decl, ast.ClassDeclaration)
                and outer is not None and outer.owner is not None
                and outer.context is None
                and not isinstance(outer.declaration, (ast.InterfaceDeclaration, ast.AnnotationTypeDeclaration))
                and not any(m.keyword == "static" for m in decl.modifiers)):
            # Inner (non-static member) classes take the outer instance first
            return (f"L{outer.owner.name};",)
        return ()

    # ==================== PASS 3: MEMBER REFERENCES ====================

    def mark_member_references(self):
        """Field accesses and method calls, through the scope they are made on."""
        for node, scope in self._visits:
            if isinstance(node, ast.FieldAccess) and node.name_range is not None:
                member = self._resolve_field_access(node, scope)
                if member is not None:
                    self.record_member_range(member, node.name_range)
            elif isinstance(node, ast.MethodInvocation) and node.name_range is not None:
                member = self._resolve_method_call(node, scope)
                if member is not None:
                    self.record_member_range(member, node.name_range)

    def _this_class(self, scope: MarkingScope) -> Optional[ClassInfo]:
        if scope.owner is not None:
            return scope.owner
        # Anonymous bodies and declarations with no class file have no known class
        return self.node if scope.is_top_level else None

    def _is_plain_this(self, expression: Optional[ast.Expression]) -> bool:
        return isinstance(expression, ast.ThisExpression) and not expression.qualifier

    def _resolve_field_access(self, node: ast.FieldAccess, scope: MarkingScope) -> Optional[MemberRef]:
        if self._is_plain_this(node.target):
            return self.find_field(self._this_class(scope), node.field)
        owner = self.type_of_scope(node.target, scope.context)
        return self.find_field(owner, node.field)

    def _resolve_method_call(self, node: ast.MethodInvocation, scope: MarkingScope) -> Optional[MemberRef]:
        arg_count = len(node.arguments)
        if node.target is None or self._is_plain_this(node.target):
            return self.find_method(self._this_class(scope), node.method, arg_count)
        owner = self.type_of_scope(node.target, scope.context)
        return self.find_method(owner, node.method, arg_count)

    # ==================== PASS 4: RESIDUAL NAMES ====================

    def mark_other_ranges(self):
        """
        Bare identifiers: class names used as qualifiers (Math.max), and
        fields read without this.
        """
        for node, scope in self._visits:
            if not isinstance(node, ast.Identifier) or node.range is None:
                continue
            # Never attempt to look up 'this'
            if node.name == "this":
                continue
            cls = self.resolve_class(node.name)
            if cls is not None:
                self.record_class_range(cls, node.range)
                continue
            if self.find_variable(node.name, scope.context) is not None:
                continue
            member = self.find_field(self._this_class(scope), node.name)
            if member is not None:
                self.record_member_range(member, node.range)
