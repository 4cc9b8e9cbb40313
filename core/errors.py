"""
Exception hierarchy for fsfault.

Configuration errors are fatal: they abort startup or reload. Registry and
table errors are raised by the lookup layers and translated into
configuration errors by the directive handlers.

Injected faults are NOT represented here. They are delivered as plain
OSError instances, exactly as the real primitive would raise them.
"""


class FaultError(Exception):
    """Base class for all fsfault errors."""
    pass


class ConfigError(FaultError):
    """Raised when a configuration directive or file is invalid."""

    def __init__(self, message: str, directive: str = None):
        self.directive = directive
        if directive:
            message = f"{directive}: {message}"
        super().__init__(message)


class UnsupportedCategory(ConfigError):
    """FaultInject category is not 'filesystem'."""

    def __init__(self, category: str, directive: str = None):
        self.category = category
        super().__init__(f"unsupported category: {category}", directive)


class UnknownErrorName(ConfigError):
    """FaultInject error name is not in the error registry."""

    def __init__(self, name: str, directive: str = None):
        self.name = name
        super().__init__(f"unknown/unsupported error: {name}", directive)


class UnsupportedOperation(ConfigError):
    """FaultInject operation is not in the operation catalog."""

    def __init__(self, category: str, operation: str, directive: str = None):
        self.category = category
        self.operation = operation
        super().__init__(f"unknown/unsupported {category} operation: {operation}", directive)


class DuplicateBinding(ConfigError):
    """An operation already has a fault configured in this generation."""

    def __init__(self, category: str, operation: str, directive: str = None):
        self.category = category
        self.operation = operation
        super().__init__(f"{category} configuration already exists for '{operation}'", directive)


class UnknownError(FaultError, LookupError):
    """No error descriptor matches the given name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"unknown error name: {name!r}")


class UnrepresentableError(FaultError, LookupError):
    """No error descriptor matches the given code. The raw code is kept."""

    def __init__(self, code: int):
        self.code = code
        super().__init__(f"no error name for code {code}")


class AlreadyBound(FaultError):
    """Fault table already holds a binding for the operation."""

    def __init__(self, operation: str, error_code: int):
        self.operation = operation
        self.error_code = error_code
        super().__init__(f"operation {operation!r} already bound to errno {error_code}")
