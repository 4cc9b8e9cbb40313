"""
fsfault Core Module
Fault table, directives, and the faulting filesystem provider.
"""

from .config import Config
from .errors import ConfigError, FaultError
from .fault_module import FaultModule, SessionState
from .fault_provider import FaultProvider
from .fault_table import FaultTable
from .fsio import FSProvider, RealProvider
from .logger import setup_logging
from .session import Session

__all__ = [
    'Config',
    'ConfigError',
    'FaultError',
    'FaultModule',
    'SessionState',
    'FaultProvider',
    'FaultTable',
    'FSProvider',
    'RealProvider',
    'Session',
    'setup_logging'
]
