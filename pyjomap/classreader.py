"""
Java class file reader and classpath.

Reads the declarations the region mapper needs (names, supertypes, field and
method descriptors, local variable tables) from class files in directories,
jars and jmods.
"""

import logging
import os
import struct
import subprocess
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, Optional
from .classfile import CLASS_FILE_MAGIC, AccessFlags, ClassFileVersion, ConstantPoolTag

logger = logging.getLogger(__name__)


class ClassFormatError(ValueError):
    """Malformed or truncated class file."""


@dataclass
class ConstantPoolEntry:
    """A constant pool entry."""
    tag: int
    value: Any


@dataclass(frozen=True)
class LocalVariable:
    """One LocalVariableTable entry."""
    name: str
    descriptor: str
    index: int
    start_pc: int = 0
    length: int = 0


@dataclass
class FieldInfo:
    """Parsed field information."""
    access_flags: int
    name: str
    descriptor: str
    signature: Optional[str] = None
    attributes: dict = field(default_factory=dict)

    @property
    def is_static(self) -> bool:
        return bool(self.access_flags & AccessFlags.STATIC)


@dataclass
class MethodInfo:
    """Parsed method information."""
    access_flags: int
    name: str
    descriptor: str
    signature: Optional[str] = None
    exceptions: tuple[str, ...] = ()
    local_variables: tuple[LocalVariable, ...] = ()
    attributes: dict = field(default_factory=dict)

    @property
    def is_static(self) -> bool:
        return bool(self.access_flags & AccessFlags.STATIC)


@dataclass(eq=False)
class ClassInfo:
    """
    Parsed class file information.

    Two ClassInfo objects are the same class when their internal names match,
    whichever classpath entry they were read from.
    """
    name: str
    super_class: Optional[str] = None
    interfaces: tuple[str, ...] = ()
    fields: tuple[FieldInfo, ...] = ()
    methods: tuple[MethodInfo, ...] = ()
    access_flags: int = AccessFlags.PUBLIC | AccessFlags.SUPER
    version: tuple[int, int] = ClassFileVersion.JAVA_8
    signature: Optional[str] = None
    source_file: Optional[str] = None

    def __eq__(self, other):
        if not isinstance(other, ClassInfo):
            return NotImplemented
        return self.name == other.name

    def __hash__(self):
        return hash(self.name)

    @property
    def simple_name(self) -> str:
        return self.name.rsplit("/", 1)[-1]

    @property
    def package(self) -> str:
        if "/" not in self.name:
            return ""
        return self.name.rsplit("/", 1)[0]

    @property
    def is_interface(self) -> bool:
        return bool(self.access_flags & AccessFlags.INTERFACE)

    def get_field(self, name: str) -> Optional[FieldInfo]:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def get_methods(self, name: str) -> list[MethodInfo]:
        return [m for m in self.methods if m.name == name]

    def get_method(self, name: str, descriptor: str) -> Optional[MethodInfo]:
        for m in self.methods:
            if m.name == name and m.descriptor == descriptor:
                return m
        return None


class ClassReader:
    """Reads Java class files."""

    def __init__(self, data: bytes):
        self.data = data
        self.pos = 0
        self.constant_pool: list[Optional[ConstantPoolEntry]] = [None]  # 1-indexed

    def _read_u1(self) -> int:
        val = self.data[self.pos]
        self.pos += 1
        return val

    def _read_u2(self) -> int:
        val = struct.unpack_from(">H", self.data, self.pos)[0]
        self.pos += 2
        return val

    def _read_u4(self) -> int:
        val = struct.unpack_from(">I", self.data, self.pos)[0]
        self.pos += 4
        return val

    def _read_i4(self) -> int:
        val = struct.unpack_from(">i", self.data, self.pos)[0]
        self.pos += 4
        return val

    def _read_i8(self) -> int:
        val = struct.unpack_from(">q", self.data, self.pos)[0]
        self.pos += 8
        return val

    def _read_f4(self) -> float:
        val = struct.unpack_from(">f", self.data, self.pos)[0]
        self.pos += 4
        return val

    def _read_f8(self) -> float:
        val = struct.unpack_from(">d", self.data, self.pos)[0]
        self.pos += 8
        return val

    def _read_bytes(self, length: int) -> bytes:
        if self.pos + length > len(self.data):
            raise ClassFormatError("Truncated class file")
        val = self.data[self.pos:self.pos + length]
        self.pos += length
        return val

    def _entry(self, index: int) -> ConstantPoolEntry:
        if not 0 < index < len(self.constant_pool) or self.constant_pool[index] is None:
            raise ClassFormatError(f"Bad constant pool index: {index}")
        return self.constant_pool[index]

    def _get_utf8(self, index: int) -> Optional[str]:
        """Get UTF8 string from constant pool."""
        if index == 0:
            return None
        entry = self._entry(index)
        if entry.tag == ConstantPoolTag.UTF8:
            return entry.value
        raise ClassFormatError(f"Expected UTF8 at index {index}, got tag {entry.tag}")

    def _get_class_name(self, index: int) -> Optional[str]:
        """Get class name from constant pool."""
        if index == 0:
            return None
        entry = self._entry(index)
        if entry.tag == ConstantPoolTag.CLASS:
            return self._get_utf8(entry.value)
        raise ClassFormatError(f"Expected CLASS at index {index}, got tag {entry.tag}")

    def _read_constant_pool(self):
        """Read the constant pool."""
        count = self._read_u2()
        i = 1
        while i < count:
            tag = self._read_u1()

            if tag == ConstantPoolTag.UTF8:
                length = self._read_u2()
                # Modified UTF-8; close enough for names and descriptors
                value = self._read_bytes(length).decode("utf-8", errors="replace")
                entry = ConstantPoolEntry(tag, value)

            elif tag == ConstantPoolTag.INTEGER:
                entry = ConstantPoolEntry(tag, self._read_i4())

            elif tag == ConstantPoolTag.FLOAT:
                entry = ConstantPoolEntry(tag, self._read_f4())

            elif tag in (ConstantPoolTag.LONG, ConstantPoolTag.DOUBLE):
                value = self._read_i8() if tag == ConstantPoolTag.LONG else self._read_f8()
                self.constant_pool.append(ConstantPoolEntry(tag, value))
                self.constant_pool.append(None)  # Takes 2 slots
                i += 2
                continue

            elif tag in (ConstantPoolTag.CLASS, ConstantPoolTag.STRING,
                         ConstantPoolTag.METHOD_TYPE, ConstantPoolTag.MODULE,
                         ConstantPoolTag.PACKAGE):
                entry = ConstantPoolEntry(tag, self._read_u2())

            elif tag in (ConstantPoolTag.FIELDREF, ConstantPoolTag.METHODREF,
                         ConstantPoolTag.INTERFACE_METHODREF, ConstantPoolTag.NAME_AND_TYPE,
                         ConstantPoolTag.DYNAMIC, ConstantPoolTag.INVOKE_DYNAMIC):
                first = self._read_u2()
                second = self._read_u2()
                entry = ConstantPoolEntry(tag, (first, second))

            elif tag == ConstantPoolTag.METHOD_HANDLE:
                kind = self._read_u1()
                ref_idx = self._read_u2()
                entry = ConstantPoolEntry(tag, (kind, ref_idx))

            else:
                raise ClassFormatError(f"Unknown constant pool tag: {tag}")

            self.constant_pool.append(entry)
            i += 1

    def _read_attributes(self) -> dict:
        """Read attributes and return as dict."""
        count = self._read_u2()
        attrs = {}
        for _ in range(count):
            name_idx = self._read_u2()
            name = self._get_utf8(name_idx)
            length = self._read_u4()
            start = self.pos

            if name == "Signature":
                sig_idx = self._read_u2()
                attrs["Signature"] = self._get_utf8(sig_idx)

            elif name == "Exceptions":
                num_exc = self._read_u2()
                attrs["Exceptions"] = tuple(
                    self._get_class_name(self._read_u2()) for _ in range(num_exc)
                )

            elif name == "SourceFile":
                sf_idx = self._read_u2()
                attrs["SourceFile"] = self._get_utf8(sf_idx)

            elif name == "Code":
                self._read_u2()  # max_stack
                self._read_u2()  # max_locals
                code_length = self._read_u4()
                self._read_bytes(code_length)
                exception_table_length = self._read_u2()
                self._read_bytes(exception_table_length * 8)
                attrs["Code"] = self._read_attributes()

            elif name == "LocalVariableTable":
                num_vars = self._read_u2()
                variables = []
                for _ in range(num_vars):
                    start_pc = self._read_u2()
                    var_length = self._read_u2()
                    var_name = self._get_utf8(self._read_u2())
                    descriptor = self._get_utf8(self._read_u2())
                    index = self._read_u2()
                    variables.append(LocalVariable(
                        name=var_name,
                        descriptor=descriptor,
                        index=index,
                        start_pc=start_pc,
                        length=var_length,
                    ))
                attrs["LocalVariableTable"] = tuple(variables)

            elif name == "ConstantValue":
                cv_idx = self._read_u2()
                attrs["ConstantValue"] = self._entry(cv_idx).value

            # Skip other attributes
            self.pos = start + length
            if self.pos > len(self.data):
                raise ClassFormatError(f"Attribute {name} runs past the end of the class file")

        return attrs

    def _read_field(self) -> FieldInfo:
        """Read a field."""
        access = self._read_u2()
        name_idx = self._read_u2()
        desc_idx = self._read_u2()
        attrs = self._read_attributes()

        return FieldInfo(
            access_flags=access,
            name=self._get_utf8(name_idx),
            descriptor=self._get_utf8(desc_idx),
            signature=attrs.get("Signature"),
            attributes=attrs,
        )

    def _read_method(self) -> MethodInfo:
        """Read a method."""
        access = self._read_u2()
        name_idx = self._read_u2()
        desc_idx = self._read_u2()
        attrs = self._read_attributes()
        code = attrs.get("Code", {})

        return MethodInfo(
            access_flags=access,
            name=self._get_utf8(name_idx),
            descriptor=self._get_utf8(desc_idx),
            signature=attrs.get("Signature"),
            exceptions=attrs.get("Exceptions", ()),
            local_variables=code.get("LocalVariableTable", ()),
            attributes=attrs,
        )

    def read(self) -> ClassInfo:
        """Read the class file and return ClassInfo."""
        try:
            return self._read_class()
        except (struct.error, IndexError) as e:
            raise ClassFormatError(f"Truncated class file: {e}") from e

    def _read_class(self) -> ClassInfo:
        # Magic number
        magic = self._read_u4()
        if magic != CLASS_FILE_MAGIC:
            raise ClassFormatError(f"Invalid class file magic: {hex(magic)}")

        # Version
        minor = self._read_u2()
        major = self._read_u2()

        # Constant pool
        self._read_constant_pool()

        # Access flags
        access_flags = self._read_u2()

        # This/super class
        this_class = self._get_class_name(self._read_u2())
        super_class = self._get_class_name(self._read_u2())
        if this_class is None:
            raise ClassFormatError("Class file has no this_class")

        # Interfaces
        interfaces_count = self._read_u2()
        interfaces = tuple(
            self._get_class_name(self._read_u2())
            for _ in range(interfaces_count)
        )

        # Fields
        fields_count = self._read_u2()
        fields = tuple(self._read_field() for _ in range(fields_count))

        # Methods
        methods_count = self._read_u2()
        methods = tuple(self._read_method() for _ in range(methods_count))

        # Class attributes
        attrs = self._read_attributes()

        return ClassInfo(
            name=this_class,
            super_class=super_class,
            interfaces=interfaces,
            fields=fields,
            methods=methods,
            access_flags=access_flags,
            version=(major, minor),
            signature=attrs.get("Signature"),
            source_file=attrs.get("SourceFile"),
        )


def _normalize(class_name: str) -> str:
    return class_name.replace(".", "/")


@dataclass
class ClassPathEntry:
    """A directory or an archive; jmods keep their classes under classes/."""
    source: Path | zipfile.ZipFile
    prefix: str = ""
    runtime: bool = False

    def read(self, class_name: str) -> Optional[bytes]:
        member = f"{self.prefix}{class_name}.class"
        if isinstance(self.source, zipfile.ZipFile):
            try:
                return self.source.read(member)
            except KeyError:
                return None
        path = self.source / member
        if path.is_file():
            return path.read_bytes()
        return None

    def class_names(self) -> Iterator[str]:
        if isinstance(self.source, zipfile.ZipFile):
            for member in self.source.namelist():
                if not member.startswith(self.prefix) or not member.endswith(".class"):
                    continue
                name = member[len(self.prefix):-len(".class")]
                if not _is_special(name):
                    yield name
        else:
            for path in self.source.rglob("*.class"):
                name = path.relative_to(self.source).with_suffix("").as_posix()
                if not _is_special(name):
                    yield name


def _is_special(name: str) -> bool:
    return name.startswith("META-INF/") or name.endswith(("module-info", "package-info"))


class ClassPath:
    """
    Manages a classpath for looking up classes.

    Entries are either program entries (the classes being decompiled) or
    runtime entries (the JDK and libraries). Runtime classes are only reached
    through load_foreign().
    """

    def __init__(self):
        self.entries: list[ClassPathEntry] = []
        self._zip_files: list[zipfile.ZipFile] = []
        self._program_classes: dict[str, ClassInfo] = {}
        self._runtime_classes: dict[str, ClassInfo] = {}
        self._cache: dict[str, Optional[ClassInfo]] = {}
        self._foreign_cache: dict[str, Optional[ClassInfo]] = {}
        self._names: Optional[list[str]] = None
        self._name_set: Optional[frozenset[str]] = None

    def add_path(self, path: str | Path, runtime: bool = False):
        """Add a path to the classpath (directory, jar, zip or jmod)."""
        path = Path(path)
        if path.suffix in (".jar", ".zip", ".jmod"):
            zf = zipfile.ZipFile(path, "r")
            self._zip_files.append(zf)
            prefix = "classes/" if path.suffix == ".jmod" else ""
            self.entries.append(ClassPathEntry(zf, prefix, runtime))
        elif path.is_dir():
            self.entries.append(ClassPathEntry(path, "", runtime))
        else:
            raise ValueError(f"Invalid classpath entry: {path}")
        self._names = None
        self._name_set = None
        logger.debug("Added %s classpath entry %s", "runtime" if runtime else "program", path)

    def add_class(self, info: ClassInfo, runtime: bool = False):
        """Add an in-memory class."""
        if runtime:
            self._runtime_classes[info.name] = info
        else:
            self._program_classes[info.name] = info
            self._names = None
            self._name_set = None

    def add_jdk(self, java_home: Optional[str | Path] = None):
        """Add the runtime classes of a JDK: rt.jar up to Java 8, jmods after."""
        home = Path(java_home) if java_home else _find_java_home()
        if home is None:
            raise FileNotFoundError("Could not locate a JDK (set JAVA_HOME)")
        for rt_jar in (home / "lib" / "rt.jar", home / "jre" / "lib" / "rt.jar"):
            if rt_jar.exists():
                self.add_path(rt_jar, runtime=True)
                logger.info("Using runtime classes from %s", rt_jar)
                return
        jmods = sorted((home / "jmods").glob("*.jmod"))
        if not jmods:
            raise FileNotFoundError(f"No rt.jar or jmods under {home}")
        for jmod in jmods:
            self.add_path(jmod, runtime=True)
        logger.info("Using runtime classes from %d jmods in %s", len(jmods), home / "jmods")

    def _program_entries(self) -> list[ClassPathEntry]:
        return [e for e in self.entries if not e.runtime]

    def _runtime_entries(self) -> list[ClassPathEntry]:
        return [e for e in self.entries if e.runtime]

    def class_names(self) -> list[str]:
        """Internal names of every program class, sorted."""
        if self._names is None:
            names = set(self._program_classes)
            for entry in self._program_entries():
                names.update(entry.class_names())
            self._names = sorted(names)
        return list(self._names)

    def contains(self, class_name: str) -> bool:
        """Whether a program class of that name exists."""
        if self._name_set is None:
            self._name_set = frozenset(self.class_names())
        return _normalize(class_name) in self._name_set

    def find_class(self, class_name: str) -> Optional[ClassInfo]:
        """Find and parse a program class by name (e.g., 'com/example/Foo')."""
        class_name = _normalize(class_name)
        if class_name in self._program_classes:
            return self._program_classes[class_name]
        if class_name in self._cache:
            return self._cache[class_name]
        info = self._read_from(self._program_entries(), class_name)
        self._cache[class_name] = info
        return info

    def classes(self) -> Iterator[ClassInfo]:
        """Every program class."""
        for name in self.class_names():
            info = self.find_class(name)
            if info is not None:
                yield info

    def load_foreign(self, class_name: str) -> Optional[ClassInfo]:
        """
        Load a class from the runtime entries. Failures (missing class,
        unreadable entry, malformed class file) return None; results are
        cached so each name is loaded at most once.
        """
        class_name = _normalize(class_name)
        if class_name in self._foreign_cache:
            return self._foreign_cache[class_name]
        info = self._runtime_classes.get(class_name)
        if info is None:
            try:
                info = self._read_from(self._runtime_entries(), class_name)
            except (ClassFormatError, OSError, zipfile.BadZipFile) as e:
                logger.debug("Failed to load foreign class %s: %s", class_name, e)
                info = None
        if info is None:
            logger.debug("Foreign class %s not found", class_name)
        self._foreign_cache[class_name] = info
        return info

    def _read_from(self, entries: list[ClassPathEntry], class_name: str) -> Optional[ClassInfo]:
        for entry in entries:
            data = entry.read(class_name)
            if data is not None:
                return ClassReader(data).read()
        return None

    def close(self):
        """Close all zip files."""
        for zf in self._zip_files:
            zf.close()
        self._zip_files.clear()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


def _find_java_home() -> Optional[Path]:
    env_home = os.environ.get("JAVA_HOME")
    if env_home:
        return Path(env_home)
    try:
        result = subprocess.run(
            ["java", "-XshowSettings:properties", "-version"],
            capture_output=True, text=True
        )
    except OSError:
        return None
    # Parse java.home from output
    for line in result.stderr.split("\n"):
        if "java.home" in line:
            return Path(line.split("=")[1].strip())
    return None


def read_class_file(path: str | Path) -> ClassInfo:
    """Read a single class file."""
    data = Path(path).read_bytes()
    reader = ClassReader(data)
    return reader.read()
