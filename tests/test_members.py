"""Tests for field and method lookup through the class hierarchy."""

import pytest

from pyjomap.mapping import MemberRef

from conftest import INTERFACE, STATIC, field, make_class, method


def hierarchy():
    return [
        make_class("a/Shape", interfaces=["a/Named"], fields=[field("area", "D")], methods=[
            method("draw", "()V"),
            method("draw", "(I)V"),
            method("broken", "(Q)V"),
        ]),
        make_class("a/Square", super_class="a/Shape", fields=[field("side", "I")], methods=[
            method("draw", "(I)V"),
            method("resize", "(II)V"),
        ]),
        make_class("a/Named", access_flags=INTERFACE, fields=[field("PREFIX", "Ljava/lang/String;", STATIC)], methods=[
            method("name", "()Ljava/lang/String;"),
        ]),
        make_class("a/Orphan", super_class="a/Missing"),
        make_class("a/Loop1", super_class="a/Loop2"),
        make_class("a/Loop2", super_class="a/Loop1"),
    ]


@pytest.fixture
def mapper(map_source):
    return map_source("package a;\n\nclass Square {\n}", "a/Square", *hierarchy())


class TestLookupClass:
    def test_program_then_runtime(self, mapper):
        assert mapper.lookup_class("a/Shape").name == "a/Shape"
        assert mapper.lookup_class("java/util/ArrayList").name == "java/util/ArrayList"
        assert mapper.lookup_class("a/Missing") is None
        assert mapper.lookup_class(None) is None

    def test_superclass_chain(self, mapper):
        chain = [c.name for c in mapper.superclass_chain(mapper.lookup_class("a/Square"))]
        assert chain == ["a/Square", "a/Shape", "java/lang/Object"]

    def test_cycle_guard(self, mapper):
        chain = [c.name for c in mapper.superclass_chain(mapper.lookup_class("a/Loop1"))]
        assert chain == ["a/Loop1", "a/Loop2"]
        assert mapper.find_field(mapper.lookup_class("a/Loop1"), "nothing") is None


class TestFindField:
    def test_declared(self, mapper):
        square = mapper.lookup_class("a/Square")
        assert mapper.find_field(square, "side") == MemberRef(square, "side", "I")

    def test_inherited_field_is_owned_by_declaring_class(self, mapper):
        ref = mapper.find_field(mapper.lookup_class("a/Square"), "area")
        assert ref.owner.name == "a/Shape"
        assert ref.kind == "field"
        assert ref.is_field

    def test_interface_constant(self, mapper):
        ref = mapper.find_field(mapper.lookup_class("a/Square"), "PREFIX")
        assert ref.owner.name == "a/Named"

    def test_missing(self, mapper):
        assert mapper.find_field(mapper.lookup_class("a/Square"), "nope") is None
        assert mapper.find_field(None, "side") is None

    def test_unresolvable_superclass(self, mapper):
        assert mapper.find_field(mapper.lookup_class("a/Orphan"), "area") is None


class TestFindMethod:
    def test_arity(self, mapper):
        square = mapper.lookup_class("a/Square")
        assert mapper.find_method(square, "draw", 1) == MemberRef(square, "draw", "(I)V")
        assert mapper.find_method(square, "draw", 0).owner.name == "a/Shape"
        assert mapper.find_method(square, "draw", 2) is None

    def test_inherited_from_object(self, mapper):
        ref = mapper.find_method(mapper.lookup_class("a/Square"), "toString", 0)
        assert ref.owner.name == "java/lang/Object"
        assert ref.is_method

    def test_interface_method(self, mapper):
        ref = mapper.find_method(mapper.lookup_class("a/Square"), "name", 0)
        assert ref.owner.name == "a/Named"

    def test_bad_descriptor_is_skipped(self, mapper):
        assert mapper.find_method(mapper.lookup_class("a/Square"), "broken", 1) is None

    def test_member_identity_ignores_kind(self, mapper):
        square = mapper.lookup_class("a/Square")
        assert MemberRef(square, "side", "I", kind="field") == MemberRef(square, "side", "I")
        assert len({mapper.find_field(square, "side"), mapper.find_field(square, "side")}) == 1


class TestDeclaredMembers:
    def test_exact_match(self, mapper):
        square = mapper.lookup_class("a/Square")
        assert mapper.find_declared_method(square, "resize", "(II)V") is not None
        assert mapper.find_declared_method(square, "resize", "(IJ)V") is None
        assert mapper.find_declared_method(square, "draw", "()V") is None
        assert mapper.find_declared_field(square, "side", "I") is not None
        assert mapper.find_declared_field(square, "side", "J") is None

    def test_unknown_descriptor(self, mapper):
        square = mapper.lookup_class("a/Square")
        assert mapper.find_declared_method(square, "resize", None) is None
        assert mapper.find_declared_field(square, "side", None) is None
