"""
Fault table: operation name -> configured errno, for one configuration
generation.

The table is filled while directives are parsed and only read once
sessions start. A reload never clears a table in place; the owner swaps
in the fresh instance returned by reset(), so a session still holding the
old table keeps seeing a consistent snapshot.
"""

import logging
import os
from typing import Dict, ItemsView, List, Optional

from core.error_registry import describe_code
from core.errors import AlreadyBound
from core.operations import normalize


logger = logging.getLogger(__name__)


class FaultTable:
    """Bindings of operations to error codes for a single generation."""

    def __init__(self):
        self._bindings: Dict[str, int] = {}

    def bind(self, operation: str, error_code: int):
        """
        Bind an operation to an error code.

        Configuration is additive within a generation: an existing binding
        is never overwritten.

        Raises:
            AlreadyBound: If the operation already has a binding
        """
        key = normalize(operation)
        if key in self._bindings:
            raise AlreadyBound(key, self._bindings[key])

        self._bindings[key] = error_code
        logger.debug(f"Bound {key} -> {describe_code(error_code)} ({error_code})")

    def lookup(self, operation: str) -> Optional[int]:
        """Configured errno for the operation, or None when unbound."""
        return self._bindings.get(normalize(operation))

    def count(self) -> int:
        return len(self._bindings)

    def reset(self) -> 'FaultTable':
        """Return the fresh, empty table for the next generation."""
        return FaultTable()

    def items(self) -> ItemsView[str, int]:
        return self._bindings.items()

    def dump(self) -> List[str]:
        """
        Render every binding, one line each.

        Format: "  write: ENOSPC (28) [No space left on device]"
        """
        return [
            f"  {operation}: {describe_code(code)} ({code}) [{os.strerror(code)}]"
            for operation, code in self._bindings.items()
        ]

    def to_dict(self) -> Dict[str, dict]:
        return {
            operation: {'error': describe_code(code), 'errno': code}
            for operation, code in self._bindings.items()
        }

    def __contains__(self, operation) -> bool:
        return isinstance(operation, str) and normalize(operation) in self._bindings

    def __len__(self) -> int:
        return len(self._bindings)

    def __repr__(self) -> str:
        return f"FaultTable({self._bindings!r})"
