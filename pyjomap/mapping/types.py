"""
Value types, errors and constants for the region mapper.
"""

from dataclasses import dataclass, field
from typing import Optional

from ..classreader import ClassInfo, MethodInfo


class RegionError(Exception):
    """Error raised by the region mapper."""
    pass


class NameLookupError(RegionError):
    """A class lookup was requested with an empty name."""
    pass


class InvalidRangeError(RegionError):
    """A recorded source range spans more than one line."""
    pass


class DescriptorError(RegionError):
    """A type cannot be expressed as a JVM descriptor."""
    pass


@dataclass(frozen=True)
class MemberRef:
    """
    A field or method of a class. Equal triples (owner, name, descriptor)
    are the same member no matter how often they are constructed.
    """
    owner: ClassInfo
    name: str
    descriptor: str
    kind: str = field(default="method", compare=False)

    @property
    def is_method(self) -> bool:
        return self.kind == "method"

    @property
    def is_field(self) -> bool:
        return self.kind == "field"

    def __str__(self) -> str:
        if self.is_field:
            return f"{self.owner.name}.{self.name}:{self.descriptor}"
        return f"{self.owner.name}.{self.name}{self.descriptor}"


@dataclass(frozen=True)
class VariableBinding:
    """A local variable visible in a method."""
    name: str
    descriptor: Optional[str]
    method: Optional[MethodInfo] = field(default=None, compare=False)


PRIMITIVE_DESCRIPTORS = {
    "boolean": "Z",
    "byte": "B",
    "char": "C",
    "short": "S",
    "int": "I",
    "long": "J",
    "float": "F",
    "double": "D",
    "void": "V",
}

OBJECT_DESCRIPTOR = "Ljava/lang/Object;"

JAVA_LANG_CLASSES = {
    "Object", "String", "Class", "System", "Thread", "Throwable",
    "Exception", "RuntimeException", "Error",
    # Common exceptions
    "ArithmeticException", "ArrayIndexOutOfBoundsException", "ArrayStoreException",
    "ClassCastException", "ClassNotFoundException", "CloneNotSupportedException",
    "IllegalAccessException", "IllegalArgumentException", "IllegalMonitorStateException",
    "IllegalStateException", "IllegalThreadStateException", "IndexOutOfBoundsException",
    "InstantiationException", "InterruptedException", "NegativeArraySizeException",
    "NoSuchFieldException", "NoSuchMethodException", "NullPointerException",
    "NumberFormatException", "ReflectiveOperationException", "SecurityException",
    "StringIndexOutOfBoundsException", "TypeNotPresentException",
    "UnsupportedOperationException",
    # Errors
    "AssertionError", "LinkageError", "VirtualMachineError", "OutOfMemoryError",
    "StackOverflowError", "NoClassDefFoundError", "ExceptionInInitializerError",
    "Math", "StrictMath", "Number",
    "Byte", "Short", "Integer", "Long", "Float", "Double", "Character", "Boolean",
    "StringBuilder", "StringBuffer", "CharSequence",
    "Comparable", "Cloneable", "Runnable", "Iterable", "AutoCloseable",
    "Enum", "Void", "ClassLoader", "Process", "Runtime", "ThreadLocal",
    # Annotations
    "Deprecated", "Override", "SuppressWarnings", "SafeVarargs", "FunctionalInterface",
}
