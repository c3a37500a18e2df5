"""
Java 8 parser using Lark.

Produces the positioned AST of pyjomap.ast from decompiled source text.
"""

import sys
from bisect import bisect_right
from dataclasses import replace
from functools import lru_cache
from pathlib import Path
from typing import Iterator, Optional
from lark import Lark, Transformer, v_args, Token
from lark.exceptions import LarkError, UnexpectedInput
from . import ast

sys.setrecursionlimit(100000)


GRAMMAR_FILE = Path(__file__).parent / "java8.lark"


class ParseError(Exception):
    """Source text the grammar does not accept."""

    def __init__(self, message: str, line: Optional[int] = None, column: Optional[int] = None):
        super().__init__(message)
        self.line = line
        self.column = column


def _unescaped_characters(source: str) -> Iterator[tuple[str, int, int]]:
    """Each character after escape processing, with the first and last source offset it came from."""
    i = 0
    while i < len(source):
        if i < len(source) - 5 and source[i] == '\\' and source[i+1] == 'u':
            j = i + 2
            while j < len(source) and source[j] == 'u':
                j += 1
            if j + 4 <= len(source):
                hex_digits = source[j:j+4]
                if all(c in '0123456789abcdefABCDEF' for c in hex_digits):
                    yield chr(int(hex_digits, 16)), i, j + 3
                    i = j + 4
                    continue
        yield source[i], i, i
        i += 1


def preprocess_unicode_escapes(source: str) -> str:
    r"""
    Preprocess Unicode escapes in Java source code.
    Java requires \\uXXXX escapes to be processed before lexical analysis.
    """
    return ''.join(ch for ch, _, _ in _unescaped_characters(source))


class EscapeMap:
    """
    Positions in the source as written for offsets into the unescaped text,
    so ranges after a \\uXXXX escape still point at what the editor shows.
    """

    def __init__(self, source: str, offsets: list[tuple[int, int]]):
        self._line_starts = [0] + [i + 1 for i, ch in enumerate(source) if ch == "\n"]
        self._offsets = offsets

    def _line_column(self, offset: int) -> tuple[int, int]:
        line = bisect_right(self._line_starts, offset)
        return line, offset - self._line_starts[line - 1] + 1

    def position(self, offset: int) -> tuple[int, int]:
        """Line and column of the unescaped character at offset."""
        if offset >= len(self._offsets):
            return self._line_column(self._offsets[-1][1] + 1) if self._offsets else (1, 1)
        return self._line_column(self._offsets[offset][0])

    def range(self, start: int, end: int) -> Optional[ast.SourceRange]:
        """Range of unescaped offsets [start, end)."""
        if end <= start:
            return None
        begin_line, begin_column = self._line_column(self._offsets[start][0])
        end_line, end_column = self._line_column(self._offsets[end - 1][1])
        return ast.SourceRange(begin_line, begin_column, end_line, end_column)


def unescape_source(source: str) -> tuple[str, Optional[EscapeMap]]:
    """Unescaped text, and the map back to the source when it had escapes."""
    if "\\u" not in source:
        return source, None
    characters = list(_unescaped_characters(source))
    text = ''.join(ch for ch, _, _ in characters)
    if len(text) == len(source):
        return text, None
    return text, EscapeMap(source, [(first, last) for _, first, last in characters])


def token_range(token: Token, escapes: Optional[EscapeMap] = None) -> ast.SourceRange:
    """Range of a single token; lark end columns are exclusive."""
    if escapes is not None:
        return escapes.range(token.start_pos, token.end_pos)
    return ast.SourceRange(token.line, token.column, token.end_line, token.end_column - 1)


def meta_range(meta, escapes: Optional[EscapeMap] = None) -> Optional[ast.SourceRange]:
    """Range of a rule match. Matches spanning several lines get no range."""
    if meta.empty:
        return None
    if escapes is not None:
        rng = escapes.range(meta.start_pos, meta.end_pos)
    else:
        rng = ast.SourceRange(meta.line, meta.column, meta.end_line, meta.end_column - 1)
    if rng is None or not rng.is_single_line:
        return None
    return rng



def _join_ranges(first: Optional[ast.SourceRange],
                 last: Optional[ast.SourceRange]) -> Optional[ast.SourceRange]:
    if first is None or last is None or first.begin_line != last.end_line:
        return None
    return ast.SourceRange(first.begin_line, first.begin_column, last.end_line, last.end_column)


def _number_kind(text: str) -> str:
    lower = text.lower()
    if lower.startswith(("0x", "0b")):
        return "long" if lower.endswith("l") else "int"
    if lower.endswith("l"):
        return "long"
    if lower.endswith("f"):
        return "float"
    if lower.endswith("d") or "." in lower or "e" in lower:
        return "double"
    return "int"


def expression_name(expr: ast.Expression) -> Optional[str]:
    """Dotted text of a name-shaped expression (a.b.C), None for anything else."""
    if isinstance(expr, ast.Identifier):
        return expr.name
    if isinstance(expr, ast.FieldAccess):
        prefix = expression_name(expr.target)
        if prefix is not None:
            return f"{prefix}.{expr.field}"
    return None


def expression_range(expr: ast.Expression) -> Optional[ast.SourceRange]:
    if isinstance(expr, ast.Identifier):
        return expr.range
    if isinstance(expr, ast.FieldAccess):
        return _join_ranges(expression_range(expr.target), expr.name_range)
    return None


class Java8Transformer(Transformer):
    """Transforms Lark parse tree to AST nodes."""

    def __init__(self, escapes: Optional[EscapeMap] = None):
        super().__init__()
        self.escapes = escapes

    def _token_range(self, token: Token) -> ast.SourceRange:
        return token_range(token, self.escapes)

    def _meta_range(self, meta) -> Optional[ast.SourceRange]:
        return meta_range(meta, self.escapes)

    def _to_tuple(self, items) -> tuple:
        """Convert list to tuple, filtering None values."""
        if items is None:
            return ()
        return tuple(item for item in items if item is not None)

    def _first(self, items):
        return items[0] if items else None

    def _join_tokens(self, items) -> str:
        return "".join(str(item) for item in items)

    # ==================== COMPILATION UNIT ====================

    def start(self, items):
        return items[0]

    def compilation_unit(self, items):
        package, imports, types = items
        return ast.CompilationUnit(
            package=package,
            imports=imports,
            types=types
        )

    def import_declarations(self, items):
        return tuple(items)

    def type_declarations(self, items):
        return self._to_tuple(items)

    @v_args(meta=True)
    def package_declaration(self, meta, items):
        annotations, name = items
        return ast.PackageDeclaration(
            annotations=annotations,
            name=name,
            range=self._meta_range(meta)
        )

    @v_args(meta=True)
    def import_declaration(self, meta, items):
        is_static, name, is_wildcard = items
        return ast.ImportDeclaration(
            name=name,
            is_static=bool(is_static),
            is_wildcard=bool(is_wildcard),
            range=self._meta_range(meta)
        )

    def import_static(self, items):
        return True

    def import_wildcard(self, items):
        return True

    def qualified_name(self, items):
        return ".".join(str(item) for item in items)

    def type_declaration(self, items):
        return self._first(items)

    # ==================== CLASS DECLARATION ====================

    def class_declaration(self, items):
        modifiers, name, type_params, extends, implements, body = items
        return ast.ClassDeclaration(
            modifiers=modifiers,
            name=str(name),
            type_parameters=type_params or (),
            extends=extends,
            implements=implements or (),
            body=body,
            name_range=self._token_range(name)
        )

    def superclass(self, items):
        return items[0]

    def superinterfaces(self, items):
        return items[0]

    def class_type_list(self, items):
        return tuple(items)

    def class_body(self, items):
        return self._to_tuple(items)

    def class_body_declaration(self, items):
        return self._first(items)

    def interface_declaration(self, items):
        modifiers, name, type_params, extends, body = items
        return ast.InterfaceDeclaration(
            modifiers=modifiers,
            name=str(name),
            type_parameters=type_params or (),
            extends=extends or (),
            body=body,
            name_range=self._token_range(name)
        )

    def extends_interfaces(self, items):
        return items[0]

    def enum_declaration(self, items):
        modifiers, name, implements, constants, body = items
        return ast.EnumDeclaration(
            modifiers=modifiers,
            name=str(name),
            implements=implements or (),
            constants=constants,
            body=body,
            name_range=self._token_range(name)
        )

    def enum_constants(self, items):
        return tuple(items)

    def enum_constant(self, items):
        annotations, name, arguments, body = items
        return ast.EnumConstant(
            annotations=annotations,
            name=str(name),
            arguments=arguments or (),
            body=body,
            name_range=self._token_range(name)
        )

    def enum_body_declarations(self, items):
        return self._to_tuple(items)

    def annotation_type_declaration(self, items):
        modifiers, name, body = items
        return ast.AnnotationTypeDeclaration(
            modifiers=modifiers,
            name=str(name),
            body=body,
            name_range=self._token_range(name)
        )

    def annotation_type_body(self, items):
        return self._to_tuple(items)

    def annotation_type_member(self, items):
        return self._first(items)

    def annotation_method(self, items):
        modifiers, return_type, name, dims, default = items
        return ast.MethodDeclaration(
            modifiers=modifiers,
            type_parameters=(),
            return_type=return_type,
            name=str(name),
            parameters=(),
            throws=(),
            body=None,
            dimensions=dims or 0,
            default_value=default,
            name_range=self._token_range(name)
        )

    def default_value(self, items):
        return items[0]

    # ==================== MODIFIERS AND ANNOTATIONS ====================

    def modifiers(self, items):
        result = []
        for item in items:
            if isinstance(item, ast.Annotation):
                result.append(ast.Modifier(keyword=None, annotation=item))
            else:
                result.append(ast.Modifier(keyword=item, annotation=None))
        return tuple(result)

    def modifier_keyword(self, items):
        return str(items[0])

    def annotations(self, items):
        return tuple(items)

    def annotation(self, items):
        *names, arguments = items
        return ast.Annotation(
            name=".".join(str(n) for n in names),
            arguments=arguments or (),
            name_range=_join_ranges(self._token_range(names[0]), self._token_range(names[-1]))
        )

    def annotation_arguments(self, items):
        value = items[0]
        if value is None:
            return ()
        if isinstance(value, tuple):
            return value
        return (ast.AnnotationArgument(name=None, value=value),)

    def element_value_pairs(self, items):
        return tuple(items)

    def element_value_pair(self, items):
        name, value = items
        return ast.AnnotationArgument(name=str(name), value=value)

    def element_value_array(self, items):
        return ast.ArrayInitializer(elements=tuple(items))

    # ==================== TYPES ====================

    @v_args(meta=True)
    def primitive_type(self, meta, items):
        return ast.PrimitiveType(name=items[0], range=self._meta_range(meta))

    def primitive_type_name(self, items):
        return str(items[0])

    @v_args(meta=True)
    def void_type(self, meta, items):
        return ast.PrimitiveType(name="void", range=self._meta_range(meta))

    @v_args(meta=True)
    def class_type(self, meta, items):
        name = ".".join(segment for segment, _ in items)
        type_args = ()
        for _, args in reversed(items):
            if args:
                type_args = args
                break
        return ast.ClassType(name=name, type_arguments=type_args, range=self._meta_range(meta))

    def class_type_segment(self, items):
        name, type_args = items
        return str(name), type_args or ()

    @v_args(meta=True)
    def array_type(self, meta, items):
        element_type, dims = items
        return ast.ArrayType(element_type=element_type, dimensions=dims, range=self._meta_range(meta))

    def dims(self, items):
        # "[" and "]" are kept, one pair per dimension
        return len(items) // 2

    def type_arguments(self, items):
        return items[0] if items else ()

    def type_argument_list(self, items):
        result = []
        for item in items:
            if isinstance(item, ast.TypeArgument):
                result.append(item)
            else:
                result.append(ast.TypeArgument(type=item, wildcard=None))
        return tuple(result)

    def wildcard(self, items):
        bound = items[0]
        if bound is None:
            return ast.TypeArgument(type=None, wildcard="?")
        return bound

    def wildcard_bound(self, items):
        kind, bound = items
        return ast.TypeArgument(type=bound, wildcard=str(kind))

    def type_parameters(self, items):
        return tuple(items)

    def type_parameter(self, items):
        _annotations, name, bounds = items
        return ast.TypeParameter(name=str(name), bounds=bounds or ())

    def type_bound(self, items):
        return tuple(items)

    # ==================== FIELDS AND METHODS ====================

    def field_declaration(self, items):
        modifiers, field_type, declarators = items
        return ast.FieldDeclaration(
            modifiers=modifiers,
            type=field_type,
            declarators=declarators
        )

    def variable_declarators(self, items):
        return tuple(items)

    def variable_declarator(self, items):
        name, dims, initializer = items
        return ast.VariableDeclarator(
            name=str(name),
            dimensions=dims or 0,
            initializer=initializer,
            name_range=self._token_range(name)
        )

    def initializer(self, items):
        return items[0]

    def array_initializer(self, items):
        return ast.ArrayInitializer(elements=tuple(items))

    def method_declaration(self, items):
        modifiers, type_params, return_type, name, params, dims, throws, body = items
        return ast.MethodDeclaration(
            modifiers=modifiers,
            type_parameters=type_params or (),
            return_type=return_type,
            name=str(name),
            parameters=params,
            throws=throws or (),
            body=body,
            dimensions=dims or 0,
            name_range=self._token_range(name)
        )

    def method_body(self, items):
        return self._first(items)

    def formal_parameters(self, items):
        return tuple(items)

    def formal_parameter(self, items):
        modifiers, param_type, ellipsis, name, dims = items
        return ast.FormalParameter(
            modifiers=modifiers,
            type=param_type,
            varargs=ellipsis is not None,
            name=str(name),
            dimensions=dims or 0,
            name_range=self._token_range(name)
        )

    def throws_clause(self, items):
        return items[0]

    def constructor_declaration(self, items):
        modifiers, type_params, name, params, throws, body = items
        return ast.ConstructorDeclaration(
            modifiers=modifiers,
            type_parameters=type_params or (),
            name=str(name),
            parameters=params,
            throws=throws or (),
            body=body,
            name_range=self._token_range(name)
        )

    def static_initializer(self, items):
        return ast.StaticInitializer(body=items[0])

    def instance_initializer(self, items):
        return ast.InstanceInitializer(body=items[0])

    # ==================== STATEMENTS ====================

    def block(self, items):
        return ast.Block(statements=self._to_tuple(items))

    def local_variable_declaration_statement(self, items):
        return items[0]

    def local_variable_declaration(self, items):
        modifiers, var_type, declarators = items
        return ast.LocalVariableDeclaration(
            modifiers=modifiers,
            type=var_type,
            declarators=declarators
        )

    def local_class_declaration(self, items):
        return ast.LocalClassDeclaration(declaration=items[0])

    def empty_statement(self, items):
        return ast.EmptyStatement()

    def expression_statement(self, items):
        return ast.ExpressionStatement(expression=items[0])

    def if_statement(self, items):
        condition, then_branch, else_branch = items
        return ast.IfStatement(
            condition=condition,
            then_branch=then_branch,
            else_branch=else_branch
        )

    def else_clause(self, items):
        return items[0]

    def while_statement(self, items):
        condition, body = items
        return ast.WhileStatement(condition=condition, body=body)

    def do_statement(self, items):
        body, condition = items
        return ast.DoWhileStatement(body=body, condition=condition)

    def for_statement(self, items):
        init, condition, update, body = items
        return ast.ForStatement(
            init=init,
            condition=condition,
            update=update or (),
            body=body
        )

    def for_init(self, items):
        return items[0]

    def for_update(self, items):
        return items[0]

    def statement_expression_list(self, items):
        return tuple(items)

    def enhanced_for_statement(self, items):
        modifiers, var_type, name, iterable, body = items
        return ast.EnhancedForStatement(
            modifiers=modifiers,
            type=var_type,
            name=str(name),
            iterable=iterable,
            body=body,
            name_range=self._token_range(name)
        )

    def return_statement(self, items):
        return ast.ReturnStatement(expression=items[0])

    def throw_statement(self, items):
        return ast.ThrowStatement(expression=items[0])

    def break_statement(self, items):
        label = items[0]
        return ast.BreakStatement(label=str(label) if label is not None else None)

    def continue_statement(self, items):
        label = items[0]
        return ast.ContinueStatement(label=str(label) if label is not None else None)

    def synchronized_statement(self, items):
        expression, body = items
        return ast.SynchronizedStatement(expression=expression, body=body)

    def labeled_statement(self, items):
        label, statement = items
        return ast.LabeledStatement(label=str(label), statement=statement)

    def assert_statement(self, items):
        condition, message = items
        return ast.AssertStatement(condition=condition, message=message)

    def assert_message(self, items):
        return items[0]

    def explicit_constructor_invocation(self, items):
        kind, arguments = items
        return ast.ExplicitConstructorInvocation(
            kind=kind,
            arguments=arguments,
            qualifier=None,
            type_arguments=()
        )

    def constructor_kind(self, items):
        return str(items[0])

    def try_statement(self, items):
        resources, body, catches, finally_block = items
        return ast.TryStatement(
            resources=resources or (),
            body=body,
            catches=catches,
            finally_block=finally_block
        )

    def resource_specification(self, items):
        return tuple(items)

    def resource(self, items):
        modifiers, resource_type, name, expression = items
        return ast.Resource(
            modifiers=modifiers,
            type=resource_type,
            name=str(name),
            expression=expression
        )

    def catches(self, items):
        return tuple(items)

    def catch_clause(self, items):
        modifiers, types, name, body = items
        return ast.CatchClause(modifiers=modifiers, types=types, name=str(name), body=body)

    def catch_type(self, items):
        return tuple(items)

    def finally_clause(self, items):
        return items[0]

    def switch_statement(self, items):
        expression, *rest = items
        cases = []
        trailing_labels = []
        for item in rest:
            if isinstance(item, ast.SwitchCase):
                cases.append(item)
            else:
                trailing_labels.append(item)
        if trailing_labels:
            cases.append(ast.SwitchCase(labels=tuple(trailing_labels), statements=()))
        return ast.SwitchStatement(expression=expression, cases=tuple(cases))

    def switch_group(self, items):
        labels = tuple(item for item in items if not isinstance(item, ast.Statement))
        statements = tuple(item for item in items if isinstance(item, ast.Statement))
        return ast.SwitchCase(labels=labels, statements=statements)

    def case_label(self, items):
        return items[0]

    def default_label(self, items):
        return None

    # ==================== EXPRESSIONS ====================

    def lambda_expression(self, items):
        parameters, body = items
        return ast.LambdaExpression(parameters=parameters, body=body)

    def lambda_single(self, items):
        return (str(items[0]),)

    def lambda_empty(self, items):
        return ()

    def lambda_inferred(self, items):
        return tuple(str(item) for item in items)

    def lambda_typed(self, items):
        return tuple(items)

    def assignment(self, items):
        target, operator, value = items
        return ast.Assignment(target=target, operator=operator, value=value)

    def conditional_expression(self, items):
        condition, then_expr, else_expr = items
        return ast.ConditionalExpression(
            condition=condition,
            then_expr=then_expr,
            else_expr=else_expr
        )

    def _binary_expression(self, items):
        left, operator, right = items
        return ast.BinaryExpression(left=left, operator=operator, right=right)

    conditional_or_expression = _binary_expression
    conditional_and_expression = _binary_expression
    inclusive_or_expression = _binary_expression
    exclusive_or_expression = _binary_expression
    and_expression = _binary_expression
    equality_expression = _binary_expression
    relational_expression = _binary_expression
    shift_expression = _binary_expression
    additive_expression = _binary_expression
    multiplicative_expression = _binary_expression

    # ">" ">" arrives as two tokens
    assignment_operator = _join_tokens
    or_op = _join_tokens
    and_op = _join_tokens
    bitor_op = _join_tokens
    xor_op = _join_tokens
    bitand_op = _join_tokens
    eq_op = _join_tokens
    rel_op = _join_tokens
    shift_op = _join_tokens
    add_op = _join_tokens
    mul_op = _join_tokens
    sign_op = _join_tokens
    not_op = _join_tokens

    def instanceof_expression(self, items):
        expression, target_type = items
        return ast.InstanceOfExpression(expression=expression, type=target_type)

    def pre_increment_expression(self, items):
        return ast.UnaryExpression(operator="++", operand=items[0], prefix=True)

    def pre_decrement_expression(self, items):
        return ast.UnaryExpression(operator="--", operand=items[0], prefix=True)

    def unary_sign_expression(self, items):
        operator, operand = items
        return ast.UnaryExpression(operator=operator, operand=operand, prefix=True)

    def unary_not_expression(self, items):
        operator, operand = items
        return ast.UnaryExpression(operator=operator, operand=operand, prefix=True)

    def cast_expression(self, items):
        cast_type, expression = items
        return ast.CastExpression(type=cast_type, expression=expression)

    def post_increment_expression(self, items):
        return ast.UnaryExpression(operator="++", operand=items[0], prefix=False)

    def post_decrement_expression(self, items):
        return ast.UnaryExpression(operator="--", operand=items[0], prefix=False)

    # ==================== PRIMARY EXPRESSIONS ====================

    def primary(self, items):
        result, *selectors = items
        for selector in selectors:
            result = self._apply_selector(result, selector)
        return result

    def _apply_selector(self, target, selector):
        kind = selector[0]
        if kind == "field":
            name = selector[1]
            return ast.FieldAccess(target=target, field=str(name), name_range=self._token_range(name))
        if kind == "call":
            _, name, arguments, type_args = selector
            return ast.MethodInvocation(
                target=target,
                type_arguments=type_args,
                method=str(name),
                arguments=arguments,
                name_range=self._token_range(name)
            )
        if kind == "index":
            return ast.ArrayAccess(array=target, index=selector[1])
        if kind == "this":
            return ast.ThisExpression(
                qualifier=expression_name(target),
                range=self._token_range(selector[1])
            )
        if kind == "class":
            return ast.ClassLiteral(type=ast.ClassType(
                name=expression_name(target) or "",
                type_arguments=(),
                range=expression_range(target)
            ))
        if kind == "new":
            return replace(selector[1], qualifier=target)
        if kind == "super":
            _, keyword, name, arguments = selector
            base = ast.SuperExpression(
                qualifier=expression_name(target),
                range=self._token_range(keyword)
            )
            return self._super_member(base, name, arguments)
        if kind == "ref":
            _, name, type_args = selector
            return ast.MethodReference(
                target=target,
                type_arguments=type_args,
                method=str(name),
                name_range=self._token_range(name)
            )
        raise ValueError(f"Unknown selector: {kind}")

    def _super_member(self, base, name, arguments):
        if arguments is None:
            return ast.FieldAccess(target=base, field=str(name), name_range=self._token_range(name))
        return ast.MethodInvocation(
            target=base,
            type_arguments=(),
            method=str(name),
            arguments=arguments,
            name_range=self._token_range(name)
        )

    def literal(self, items):
        token = items[0]
        value = str(token)
        if token.type == "NUMBER":
            kind = _number_kind(value)
        elif token.type == "STRING_LITERAL":
            kind = "string"
        elif token.type == "CHARACTER_LITERAL":
            kind = "char"
        elif value in ("true", "false"):
            kind = "boolean"
        else:
            kind = "null"
        return ast.Literal(value=value, kind=kind)

    def class_literal(self, items):
        return ast.ClassLiteral(type=items[0])

    def this_atom(self, items):
        return ast.ThisExpression(qualifier=None, range=self._token_range(items[0]))

    def super_access(self, items):
        keyword, _dot, name, arguments = items
        base = ast.SuperExpression(qualifier=None, range=self._token_range(keyword))
        return self._super_member(base, name, arguments)

    def paren_expression(self, items):
        return ast.ParenthesizedExpression(expression=items[0])

    def identifier_atom(self, items):
        token = items[0]
        return ast.Identifier(name=str(token), range=self._token_range(token))

    def unqualified_call(self, items):
        name, arguments = items
        return ast.MethodInvocation(
            target=None,
            type_arguments=(),
            method=str(name),
            arguments=arguments,
            name_range=self._token_range(name)
        )

    def class_instance_creation(self, items):
        created_type, arguments, body = items
        return ast.NewInstance(
            qualifier=None,
            type_arguments=(),
            type=created_type,
            arguments=arguments,
            body=body
        )

    def array_creation_expression(self, items):
        element_type, sizes, rest = items
        if isinstance(sizes, tuple):
            return ast.NewArray(
                type=element_type,
                dimensions=sizes + (None,) * (rest or 0),
                initializer=None
            )
        return ast.NewArray(type=element_type, dimensions=(None,) * sizes, initializer=rest)

    def dim_exprs(self, items):
        return tuple(items)

    def dim_expr(self, items):
        return items[0]

    # Selectors become tagged tuples folded onto their target by primary()

    def field_selector(self, items):
        return ("field", items[0])

    def method_selector(self, items):
        type_args, name, arguments = items
        return ("call", name, arguments, type_args or ())

    def array_selector(self, items):
        return ("index", items[0])

    def this_selector(self, items):
        return ("this", items[1])

    def class_selector(self, items):
        return ("class",)

    def new_selector(self, items):
        return ("new", items[0])

    def super_selector(self, items):
        _dot, keyword, _dot2, name, arguments = items
        return ("super", keyword, name, arguments)

    def method_reference_selector(self, items):
        type_args, name = items
        return ("ref", name, type_args or ())

    def method_reference_name(self, items):
        return items[0]

    def new_keyword(self, items):
        return items[0]

    def arguments(self, items):
        return items[0] or ()

    def argument_list(self, items):
        return tuple(items)


class Java8Parser:
    """Main parser class for Java 8."""

    def __init__(self):
        with open(GRAMMAR_FILE, "r") as f:
            grammar = f.read()

        self._parser = Lark(
            grammar,
            parser="earley",
            lexer="basic",
            propagate_positions=True,
            maybe_placeholders=True,
        )

    def parse(self, source: str) -> ast.CompilationUnit:
        """Parse Java source code and return AST."""
        text, escapes = unescape_source(source)
        try:
            tree = self._parser.parse(text)
        except UnexpectedInput as e:
            line, column = e.line, e.column
            if escapes is not None and e.pos_in_stream is not None:
                line, column = escapes.position(e.pos_in_stream)
            raise ParseError(f"line {line}, column {column}: {e}", line, column) from e
        except LarkError as e:
            raise ParseError(str(e)) from e
        return Java8Transformer(escapes).transform(tree)

    def parse_file(self, path: str) -> ast.CompilationUnit:
        """Parse a Java file and return AST."""
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            source = f.read()
        return self.parse(source)


@lru_cache(maxsize=1)
def default_parser() -> Java8Parser:
    return Java8Parser()


def parse(source: str) -> ast.CompilationUnit:
    return default_parser().parse(source)


def parse_file(path: str) -> ast.CompilationUnit:
    return default_parser().parse_file(path)
