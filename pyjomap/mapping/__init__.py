"""
Region mapping package.
"""

from .types import (
    RegionError,
    NameLookupError,
    InvalidRangeError,
    DescriptorError,
    MemberRef,
    VariableBinding,
    JAVA_LANG_CLASSES,
)
from .mapper import RegionMapper

__all__ = [
    'RegionError',
    'NameLookupError',
    'InvalidRangeError',
    'DescriptorError',
    'RegionMapper',
    'MemberRef',
    'VariableBinding',
    'JAVA_LANG_CLASSES',
]
