"""pyjomap - map source positions of decompiled Java classes to their bytecode members."""

from .ast import SourceRange
from .classreader import ClassFormatError, ClassInfo, ClassPath, read_class_file
from .mapping import RegionMapper, MemberRef, RegionError
from .parser import Java8Parser, ParseError

__version__ = "0.1.0"
__all__ = [
    "ClassFormatError",
    "ClassInfo",
    "ClassPath",
    "Java8Parser",
    "MemberRef",
    "ParseError",
    "RegionError",
    "RegionMapper",
    "SourceRange",
    "read_class_file",
]
