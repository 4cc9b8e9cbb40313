"""
Operation catalog: the filesystem operations eligible for fault injection.

open, stat, lstat and fstat are never intercepted.
"""

from typing import Dict, Tuple


FILESYSTEM_CATEGORY = 'filesystem'

# Categories accepted by FaultInject
FAULT_CATEGORIES: Tuple[str, ...] = (FILESYSTEM_CATEGORY,)

# Reserved for future fault APIs, rejected for now
RESERVED_CATEGORIES: Tuple[str, ...] = ('network',)

FSIO_OPERATIONS: Tuple[str, ...] = (
    'chmod',
    'chown',
    'chroot',
    'close',
    'closedir',
    'fchmod',
    'fchown',
    'lchown',
    'lseek',
    'mkdir',
    'opendir',
    'read',
    'readdir',
    'readlink',
    'rename',
    'rmdir',
    'unlink',
    'utimes',
    'write',
)

# Positioned variants share the binding of their sequential operation
COUPLED_OPERATIONS: Dict[str, str] = {
    'pread': 'read',
    'pwrite': 'write',
}

NEVER_INTERCEPTED: Tuple[str, ...] = ('open', 'stat', 'lstat', 'fstat')

_SUPPORTED = frozenset(FSIO_OPERATIONS)


def normalize(name: str) -> str:
    """Canonical (lower-case) key for an operation name."""
    return name.lower()


def is_supported(name: str) -> bool:
    """Case-insensitive membership test against the catalog."""
    if not isinstance(name, str):
        return False
    return normalize(name) in _SUPPORTED


def is_supported_category(category: str) -> bool:
    if not isinstance(category, str):
        return False
    return category.lower() in FAULT_CATEGORIES


def binding_key(operation: str) -> str:
    """Fault table key consulted when `operation` is invoked."""
    operation = normalize(operation)
    return COUPLED_OPERATIONS.get(operation, operation)
