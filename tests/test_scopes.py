"""Tests for scope resolution of expressions."""

import logging

import pytest

from pyjomap import ast

from conftest import field, make_class, method


SOURCE = "\n".join([
    "package a;",
    "",
    "import java.io.PrintStream;",
    "import java.util.List;",
    "",
    "public class Shop extends Base {",
    "    private Item item;",
    "",
    "    void sell(Item sold, int count) {",
    "        String label = sold.name();",
    "        Object data = null;",
    "        for (Item each : items()) {",
    "        }",
    "    }",
    "}",
])


def shop_classes():
    return [
        make_class("a/Base", fields=[field("owner", "La/Person;")]),
        make_class("a/Shop", super_class="a/Base", fields=[field("item", "La/Item;")], methods=[
            method("sell", "(La/Item;I)V", local_variables=[
                ("this", "La/Shop;"), ("sold", "La/Item;"), ("count", "I"),
                ("label", "Ljava/lang/String;"), ("data", "Ljava/util/List;"),
            ]),
            method("items", "()Ljava/util/List;"),
        ]),
        make_class("a/Item", fields=[field("price", "I")], methods=[
            method("name", "()Ljava/lang/String;"),
            method("copy", "()La/Item;"),
        ]),
        make_class("a/Person"),
    ]


@pytest.fixture
def mapper(map_source):
    return map_source(SOURCE, "a/Shop", *shop_classes())


@pytest.fixture
def sell(mapper):
    return mapper.unit.types[0].body[1]


def ident(name):
    return ast.Identifier(name)


class TestTypeOfScope:
    def test_this(self, mapper):
        assert mapper.type_of_scope(ast.ThisExpression(None)).name == "a/Shop"

    def test_qualified_this(self, mapper):
        assert mapper.type_of_scope(ast.ThisExpression("Item")).name == "a/Item"

    def test_super(self, mapper):
        assert mapper.type_of_scope(ast.SuperExpression(None)).name == "a/Base"

    def test_class_name(self, mapper):
        assert mapper.type_of_scope(ident("Item")).name == "a/Item"
        assert mapper.type_of_scope(ident("System")).name == "java/lang/System"

    def test_field_of_analyzed_class(self, mapper):
        assert mapper.type_of_scope(ident("item")).name == "a/Item"
        assert mapper.type_of_scope(ident("owner")).name == "a/Person"

    def test_parameter(self, mapper, sell):
        assert mapper.type_of_scope(ident("sold"), sell).name == "a/Item"

    def test_local_variable_table_wins(self, mapper, sell):
        # Declared Object in source, List in the bytecode
        assert mapper.type_of_scope(ident("data"), sell).name == "java/util/List"

    def test_primitive_variable(self, mapper, sell):
        assert mapper.type_of_scope(ident("count"), sell) is None

    def test_new_instance(self, mapper):
        creation = ast.NewInstance(None, (), ast.ClassType("Item", ()), (), None)
        assert mapper.type_of_scope(creation).name == "a/Item"

    def test_field_access(self, mapper):
        assert mapper.type_of_scope(ast.FieldAccess(ident("System"), "out")).name == "java/io/PrintStream"
        chained = ast.FieldAccess(ast.ThisExpression(None), "item")
        assert mapper.type_of_scope(chained).name == "a/Item"

    def test_primitive_field(self, mapper):
        assert mapper.type_of_scope(ast.FieldAccess(ident("item"), "price")) is None

    def test_qualified_class_name(self, mapper):
        assert mapper.type_of_scope(ast.FieldAccess(ast.FieldAccess(ident("java"), "util"), "List")).name == \
            "java/util/List"

    def test_method_invocation_return_type(self, mapper):
        call = ast.MethodInvocation(ident("item"), (), "copy", ())
        assert mapper.type_of_scope(call).name == "a/Item"
        call = ast.MethodInvocation(ident("item"), (), "name", ())
        assert mapper.type_of_scope(call).name == "java/lang/String"

    def test_method_invocation_without_target(self, mapper, caplog):
        call = ast.MethodInvocation(None, (), "items", ())
        with caplog.at_level(logging.ERROR):
            assert mapper.type_of_scope(call) is None
        assert "Could not resolve scope of method call 'items'" in caplog.text

    def test_parenthesized_and_cast(self, mapper):
        assert mapper.type_of_scope(ast.ParenthesizedExpression(ast.ThisExpression(None))).name == "a/Shop"
        cast = ast.CastExpression(ast.ClassType("List", ()), ident("whatever"))
        assert mapper.type_of_scope(cast).name == "java/util/List"
        assert mapper.type_of_scope(ast.CastExpression(ast.PrimitiveType("int"), ident("x"))) is None

    def test_unsupported_expression(self, mapper):
        assert mapper.type_of_scope(ast.Literal("1", "int")) is None


class TestFindVariable:
    def test_source_declarations(self, mapper, sell):
        each = mapper.find_variable("each", sell)
        assert each is not None
        assert each.descriptor == "La/Item;"

    def test_bytecode_variables(self, mapper, sell):
        binding = mapper.find_variable("label", sell)
        assert binding.descriptor == "Ljava/lang/String;"
        assert binding.method.name == "sell"

    def test_no_context(self, mapper):
        assert mapper.find_variable("sold", None) is None

    def test_unknown(self, mapper, sell):
        assert mapper.find_variable("nothing", sell) is None
