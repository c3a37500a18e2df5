"""Shared fixtures: class builders, a class-file assembler and a runtime classpath."""

import struct
import zipfile
from pathlib import Path

import pytest

from pyjomap.classfile import CLASS_FILE_MAGIC, AccessFlags, ClassFileVersion, ConstantPoolTag
from pyjomap.classreader import ClassInfo, ClassPath, FieldInfo, LocalVariable, MethodInfo
from pyjomap.mapping import RegionMapper
from pyjomap.parser import Java8Parser


# ==================== IN-MEMORY CLASSES ====================

def field(name, descriptor, access=AccessFlags.PRIVATE):
    return FieldInfo(access_flags=access, name=name, descriptor=descriptor)


def method(name, descriptor, access=AccessFlags.PUBLIC, local_variables=()):
    variables = tuple(
        LocalVariable(name=var_name, descriptor=var_desc, index=index)
        for index, (var_name, var_desc) in enumerate(local_variables)
    )
    return MethodInfo(access_flags=access, name=name, descriptor=descriptor, local_variables=variables)


def make_class(name, super_class="java/lang/Object", interfaces=(), fields=(), methods=(),
               access_flags=AccessFlags.PUBLIC | AccessFlags.SUPER):
    return ClassInfo(
        name=name,
        super_class=super_class,
        interfaces=tuple(interfaces),
        fields=tuple(fields),
        methods=tuple(methods),
        access_flags=access_flags,
    )


INTERFACE = AccessFlags.PUBLIC | AccessFlags.INTERFACE | AccessFlags.ABSTRACT
STATIC = AccessFlags.PUBLIC | AccessFlags.STATIC


def runtime_classes():
    """A small slice of the JDK, enough for the sources used in the tests."""
    return [
        make_class("java/lang/Object", super_class=None, methods=[
            method("<init>", "()V"),
            method("toString", "()Ljava/lang/String;"),
            method("hashCode", "()I"),
            method("equals", "(Ljava/lang/Object;)Z"),
        ]),
        make_class("java/lang/String", interfaces=["java/lang/Comparable"], methods=[
            method("length", "()I"),
            method("substring", "(I)Ljava/lang/String;"),
            method("substring", "(II)Ljava/lang/String;"),
            method("trim", "()Ljava/lang/String;"),
        ]),
        make_class("java/lang/Comparable", access_flags=INTERFACE, methods=[
            method("compareTo", "(Ljava/lang/Object;)I"),
        ]),
        make_class("java/lang/Math", methods=[
            method("max", "(II)I", STATIC),
            method("abs", "(I)I", STATIC),
        ]),
        make_class("java/lang/System", fields=[
            field("out", "Ljava/io/PrintStream;", STATIC),
        ]),
        make_class("java/lang/Runnable", access_flags=INTERFACE, methods=[
            method("run", "()V"),
        ]),
        make_class("java/lang/Override", access_flags=INTERFACE | AccessFlags.ANNOTATION),
        make_class("java/io/PrintStream", methods=[
            method("println", "(Ljava/lang/String;)V"),
        ]),
        make_class("java/util/List", access_flags=INTERFACE, methods=[
            method("size", "()I"),
            method("get", "(I)Ljava/lang/Object;"),
            method("add", "(Ljava/lang/Object;)Z"),
        ]),
        make_class("java/util/ArrayList", interfaces=["java/util/List"], methods=[
            method("<init>", "()V"),
        ]),
    ]


# ==================== CLASS FILE ASSEMBLER ====================

class ClassFileBuilder:
    """Assembles minimal class files: constant pool, fields, methods and their local variables."""

    def __init__(self, name, super_class="java/lang/Object", access_flags=AccessFlags.PUBLIC | AccessFlags.SUPER,
                 major_version=ClassFileVersion.JAVA_8[0]):
        self.name = name
        self.super_class = super_class
        self.access_flags = access_flags
        self.major_version = major_version
        self.interfaces = []
        self.fields = []
        self.methods = []
        self.source_file = None
        self._pool = []
        self._next_index = 1
        self._utf8 = {}
        self._classes = {}

    def _add(self, data, slots=1):
        index = self._next_index
        self._pool.append(data)
        self._next_index += slots
        return index

    def utf8(self, text):
        if text not in self._utf8:
            encoded = text.encode("utf-8")
            self._utf8[text] = self._add(struct.pack(">BH", ConstantPoolTag.UTF8, len(encoded)) + encoded)
        return self._utf8[text]

    def class_ref(self, name):
        if name not in self._classes:
            self._classes[name] = self._add(struct.pack(">BH", ConstantPoolTag.CLASS, self.utf8(name)))
        return self._classes[name]

    def long_constant(self, value):
        return self._add(struct.pack(">Bq", ConstantPoolTag.LONG, value), slots=2)

    def add_interface(self, name):
        self.interfaces.append(name)
        return self

    def add_field(self, name, descriptor, access=AccessFlags.PRIVATE):
        self.fields.append((access, name, descriptor))
        return self

    def add_method(self, name, descriptor, access=AccessFlags.PUBLIC, local_variables=(), exceptions=()):
        self.methods.append((access, name, descriptor, tuple(local_variables), tuple(exceptions)))
        return self

    def _attribute(self, name, payload):
        return struct.pack(">HI", self.utf8(name), len(payload)) + payload

    def _code_attribute(self, local_variables):
        table = struct.pack(">H", len(local_variables))
        for index, (var_name, var_desc) in enumerate(local_variables):
            table += struct.pack(">HHHHH", 0, 1, self.utf8(var_name), self.utf8(var_desc), index)
        code = b"\xb1"  # return
        payload = struct.pack(">HHI", 1, max(1, len(local_variables)), len(code)) + code
        payload += struct.pack(">H", 0)  # exception table
        payload += struct.pack(">H", 1) + self._attribute("LocalVariableTable", table)
        return self._attribute("Code", payload)

    def _exceptions_attribute(self, exceptions):
        payload = struct.pack(">H", len(exceptions))
        for name in exceptions:
            payload += struct.pack(">H", self.class_ref(name))
        return self._attribute("Exceptions", payload)

    def build(self) -> bytes:
        body = bytearray()
        super_index = self.class_ref(self.super_class) if self.super_class else 0
        body += struct.pack(">HHH", self.access_flags, self.class_ref(self.name), super_index)

        body += struct.pack(">H", len(self.interfaces))
        for name in self.interfaces:
            body += struct.pack(">H", self.class_ref(name))

        body += struct.pack(">H", len(self.fields))
        for access, name, descriptor in self.fields:
            body += struct.pack(">HHHH", access, self.utf8(name), self.utf8(descriptor), 0)

        body += struct.pack(">H", len(self.methods))
        for access, name, descriptor, local_variables, exceptions in self.methods:
            attributes = []
            if local_variables:
                attributes.append(self._code_attribute(local_variables))
            if exceptions:
                attributes.append(self._exceptions_attribute(exceptions))
            body += struct.pack(">HHHH", access, self.utf8(name), self.utf8(descriptor), len(attributes))
            body += b"".join(attributes)

        class_attributes = []
        if self.source_file:
            class_attributes.append(self._attribute("SourceFile", struct.pack(">H", self.utf8(self.source_file))))
        body += struct.pack(">H", len(class_attributes)) + b"".join(class_attributes)

        header = struct.pack(">IHHH", CLASS_FILE_MAGIC, 0, self.major_version, self._next_index)
        return header + b"".join(self._pool) + bytes(body)


def write_jar(path: Path, classes: dict[str, bytes], extra: dict[str, bytes] = None) -> Path:
    with zipfile.ZipFile(path, "w") as zf:
        for name, data in classes.items():
            zf.writestr(f"{name}.class", data)
        for name, data in (extra or {}).items():
            zf.writestr(name, data)
    return path


def write_classes(directory: Path, classes: dict[str, bytes]) -> Path:
    for name, data in classes.items():
        target = directory / f"{name}.class"
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
    return directory


# ==================== FIXTURES ====================

@pytest.fixture(scope="session")
def parser():
    return Java8Parser()


@pytest.fixture
def classpath():
    cp = ClassPath()
    for cls in runtime_classes():
        cp.add_class(cls, runtime=True)
    yield cp
    cp.close()


@pytest.fixture
def map_source(classpath, parser):
    """Parse source, put the program classes on the classpath and analyze node_name."""
    def build(source, node_name, *program_classes, **kwargs):
        for cls in program_classes:
            classpath.add_class(cls)
        node = classpath.find_class(node_name)
        assert node is not None, f"{node_name} is not a program class"
        return RegionMapper(classpath, node, parser.parse(source), **kwargs).analyze()
    return build
