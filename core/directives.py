"""
Configuration directives: FaultEngine and FaultInject.

    FaultEngine on|off
    FaultInject filesystem <ERROR_NAME> <operation> [operation ...]

Directive handlers receive already-tokenized arguments. Every failure is a
ConfigError, which aborts startup or reload.

A FaultInject directive commits its operations one by one. When a later
operation is rejected, the operations bound before it in the same
directive stay bound.
"""

import logging
import shlex
from typing import List, Sequence

from core.error_registry import name_to_code
from core.errors import AlreadyBound, ConfigError, DuplicateBinding, UnknownError, \
    UnknownErrorName, UnsupportedCategory, UnsupportedOperation
from core.fault_table import FaultTable
from core.operations import FILESYSTEM_CATEGORY, is_supported, is_supported_category


logger = logging.getLogger(__name__)

FAULT_ENGINE = 'FaultEngine'
FAULT_INJECT = 'FaultInject'

_TRUE_TOKENS = {'on', 'yes', 'true', '1'}
_FALSE_TOKENS = {'off', 'no', 'false', '0'}


def parse_boolean(token) -> bool:
    """
    Parse a configuration Boolean.

    Raises:
        ConfigError: If the token is not on/off, yes/no, true/false or 1/0
    """
    if isinstance(token, bool):
        return token

    value = str(token).strip().lower()
    if value in _TRUE_TOKENS:
        return True
    if value in _FALSE_TOKENS:
        return False

    raise ConfigError("expected Boolean parameter", FAULT_ENGINE)


def tokenize(line: str) -> List[str]:
    """Split a directive line into tokens, shell-style."""
    try:
        return shlex.split(line, comments=True)
    except ValueError as e:
        raise ConfigError(f"cannot parse directive {line!r}: {e}")


def set_fault_engine(args: Sequence) -> bool:
    """usage: FaultEngine on|off"""
    if len(args) != 1:
        raise ConfigError(f"wrong number of parameters (expected 1, got {len(args)})",
                          FAULT_ENGINE)

    return parse_boolean(args[0])


def apply_fault_inject(table: FaultTable, category: str, error: str,
                       operations: Sequence[str]):
    """
    Validate one FaultInject directive and commit its bindings.

    Raises:
        UnsupportedCategory: category is not 'filesystem'
        UnknownErrorName: error is not in the error registry
        UnsupportedOperation: an operation is not in the catalog
        DuplicateBinding: an operation is already bound in this generation
    """
    # Only the filesystem category exists; 'network' is reserved
    if not is_supported_category(category):
        raise UnsupportedCategory(category, FAULT_INJECT)

    try:
        xerrno = name_to_code(error)
    except UnknownError:
        raise UnknownErrorName(error, FAULT_INJECT) from None

    for operation in operations:
        if not is_supported(operation):
            raise UnsupportedOperation(category, operation, FAULT_INJECT)

        try:
            table.bind(operation, xerrno)
        except AlreadyBound:
            raise DuplicateBinding(category, operation, FAULT_INJECT) from None

        logger.debug(f"{FAULT_INJECT}: {FILESYSTEM_CATEGORY} {operation} -> {error.upper()}")


def set_fault_inject(table: FaultTable, args: Sequence[str]):
    """usage: FaultInject category error oper1 ..."""
    if len(args) < 3:
        raise ConfigError("missing parameters", FAULT_INJECT)

    apply_fault_inject(table, args[0], args[1], list(args[2:]))


def handle_directive(module, name: str, args: Sequence[str]):
    """
    Dispatch one tokenized directive to the fault module.

    Args:
        module: FaultModule receiving the configuration
        name: Directive name (case-insensitive)
        args: Directive arguments, without the name
    """
    key = name.lower()
    if key == FAULT_ENGINE.lower():
        engine = set_fault_engine(args)
        # The first FaultEngine of a generation wins
        if module.engine is not None:
            logger.warning(f"{FAULT_ENGINE} {args[0]} ignored, already "
                           f"{'on' if module.engine else 'off'}")
            return
        module.engine = engine
    elif key == FAULT_INJECT.lower():
        set_fault_inject(module.fault_table, args)
    else:
        raise ConfigError(f"unknown directive: {name}")
