"""
fsfault Utilities
Operator-facing error message formatting.
"""

from .error_messages import format_error, log_error

__all__ = ['format_error', 'log_error']
