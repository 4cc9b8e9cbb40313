"""
Error registry: canonical error names <-> platform errno codes.

The registry is a small immutable table built once at import time from the
platform's errno module. The portable names exist everywhere; the extended
names are registered only when the platform defines them.
"""

import errno
import os
from dataclasses import dataclass
from typing import Iterator, List, Tuple

from core.errors import UnknownError, UnrepresentableError


@dataclass(frozen=True)
class ErrorDescriptor:
    """One configurable error: its canonical name and platform code."""
    name: str
    code: int

    @property
    def strerror(self) -> str:
        return os.strerror(self.code)


PORTABLE_ERROR_NAMES = (
    'EACCES', 'EAGAIN', 'EBADF', 'EEXIST', 'EIO',
    'EINTR', 'ENOENT', 'ENOMEM', 'ENOSPC', 'EPERM',
)

# Configuration name -> errno attribute, for names that are platform-conditional
EXTENDED_ERROR_NAMES = (
    ('EBUSY', 'EBUSY'),
    ('EDQUOT', 'EDQUOT'),
    ('EFBIG', 'EFBIG'),
    ('EMFILE', 'EMFILE'),
    ('EMLINK', 'EMLINK'),
    ('ENFILE', 'ENFILE'),
    ('ENODEV', 'ENODEV'),
    ('ENOTEMPTY', 'ENOTEMPTY'),
    ('ENXIO', 'ENXIO'),
    ('EOPNOTSUPP', 'EOPNOTSUPP'),
    ('EROFS', 'EROFS'),
    ('ESTALE', 'ESTALE'),
    ('ETXTBUSY', 'ETXTBSY'),
)


def _build_registry() -> Tuple[ErrorDescriptor, ...]:
    descriptors = []
    seen_codes = set()

    candidates = [(name, name) for name in PORTABLE_ERROR_NAMES] + list(EXTENDED_ERROR_NAMES)
    for name, attr in candidates:
        code = getattr(errno, attr, None)
        if code is None:
            continue
        # First name wins for a shared code
        if code in seen_codes:
            continue
        seen_codes.add(code)
        descriptors.append(ErrorDescriptor(name=name, code=code))

    return tuple(descriptors)


ERROR_REGISTRY: Tuple[ErrorDescriptor, ...] = _build_registry()


def name_to_code(name: str) -> int:
    """
    Resolve an error name to its platform code.

    Args:
        name: Error name, matched case-insensitively (e.g. 'enospc')

    Returns:
        The errno value

    Raises:
        UnknownError: If the name is not registered on this platform
    """
    if isinstance(name, str):
        wanted = name.upper()
        for descriptor in ERROR_REGISTRY:
            if descriptor.name == wanted:
                return descriptor.code

    raise UnknownError(name)


def code_to_name(code: int) -> str:
    """
    Resolve a platform code to its canonical error name.

    Raises:
        UnrepresentableError: If no registered name has this code. The
            exception keeps the raw code for diagnostics.
    """
    for descriptor in ERROR_REGISTRY:
        if descriptor.code == code:
            return descriptor.name

    raise UnrepresentableError(code)


def describe_code(code: int) -> str:
    """Name for a code, or the decimal code when no name exists."""
    try:
        return code_to_name(code)
    except UnrepresentableError:
        return str(code)


def iter_descriptors() -> Iterator[ErrorDescriptor]:
    return iter(ERROR_REGISTRY)


def supported_error_names() -> List[str]:
    return [descriptor.name for descriptor in ERROR_REGISTRY]


def unavailable_error_names() -> List[str]:
    """Extended names the current platform does not define."""
    registered = set(supported_error_names())
    return [name for name, _ in EXTENDED_ERROR_NAMES if name not in registered]
