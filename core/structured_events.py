"""
Structured Event Logging System

Diagnostic output of the fault module is emitted as structured events
instead of free-form strings. Events are:
- Machine-readable (JSON lines)
- Filterable by trace level, like a trace channel
- Append-only (never modified)

Trace levels on the 'fault' channel:
- TRACE_DETAIL (4): one event per injected fault
- TRACE_REGISTER (7): provider registration and session decisions
- TRACE_DUMP (20): full fault table enumeration

An emitter configured with trace level N emits every event whose level is
N or lower. Level 0 disables tracing.
"""

import json
import logging
from collections import Counter, deque
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, Deque, List
from datetime import datetime
from enum import Enum, auto
import uuid


logger = logging.getLogger(__name__)

TRACE_CHANNEL = 'fault'

TRACE_DETAIL = 4
TRACE_REGISTER = 7
TRACE_DUMP = 20

# Events kept in memory per emitter family; older events are dropped
EVENT_BUFFER_SIZE = 1000


class EventType(Enum):
    """Types of events the fault module emits."""
    FAULT_INJECTED = auto()
    FAULT_TABLE_DUMP = auto()

    PROVIDER_REGISTERED = auto()
    PROVIDER_UNREGISTERED = auto()

    SESSION_STARTED = auto()
    CONFIG_RELOADED = auto()
    MODULE_UNLOADED = auto()


class EventSeverity(Enum):
    """Severity levels for events."""
    DEBUG = auto()
    INFO = auto()
    WARNING = auto()
    ERROR = auto()
    CRITICAL = auto()


@dataclass
class StructuredEvent:
    """
    A structured event with consistent format.

    All events have these core fields plus event-specific context.
    """
    event_id: str
    event_type: EventType
    timestamp: datetime
    severity: EventSeverity
    message: str
    trace_level: int = TRACE_DETAIL
    context: Dict[str, Any] = field(default_factory=dict)
    session_id: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'event_id': self.event_id,
            'event_type': self.event_type.name,
            'timestamp': self.timestamp.isoformat(),
            'severity': self.severity.name,
            'message': self.message,
            'trace_level': self.trace_level,
            'context': self.context,
            'session_id': self.session_id,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict) -> 'StructuredEvent':
        """Create from dictionary."""
        data = data.copy()
        data['event_type'] = EventType[data['event_type']]
        data['severity'] = EventSeverity[data['severity']]
        data['timestamp'] = datetime.fromisoformat(data['timestamp'])
        return cls(**data)


class EventEmitter:
    """
    Emits structured events to the configured sinks.

    Sinks:
    - Standard logging (console)
    - File (JSON lines)
    - In-memory buffer (always on)
    """

    def __init__(
        self,
        trace_level: int = 0,
        log_file: Optional[Path] = None,
        session_id: Optional[str] = None,
        enable_console: bool = True,
        enable_file: bool = False,
        buffer_size: int = EVENT_BUFFER_SIZE
    ):
        """
        Initialize event emitter.

        Args:
            trace_level: Highest trace level that is emitted (0 = off)
            log_file: Path to event log file (JSON lines format)
            session_id: Session identifier stamped on every event
            enable_console: Emit to standard logging
            enable_file: Emit to log_file
            buffer_size: Most recent events kept in memory
        """
        self.trace_level = trace_level
        self.log_file = Path(log_file) if log_file else (
            Path.home() / '.fsfault' / 'events.jsonl'
        )
        self.session_id = session_id
        self.enable_console = enable_console
        self.enable_file = enable_file

        self.event_buffer: Deque[StructuredEvent] = deque(maxlen=buffer_size)

        if self.enable_file:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)

    def is_enabled(self, level: int) -> bool:
        """Whether events at `level` pass the channel's trace level."""
        return 0 < level <= self.trace_level

    def bind_session(self, session_id: str) -> 'EventEmitter':
        """Emitter sharing these sinks and buffer, stamping events with `session_id`."""
        bound = EventEmitter(
            trace_level=self.trace_level,
            log_file=self.log_file,
            session_id=session_id,
            enable_console=self.enable_console,
            enable_file=self.enable_file,
            buffer_size=self.event_buffer.maxlen,
        )
        bound.event_buffer = self.event_buffer
        return bound

    def emit(
        self,
        event_type: EventType,
        message: str,
        level: int = TRACE_DETAIL,
        severity: EventSeverity = EventSeverity.DEBUG,
        context: Optional[Dict] = None
    ) -> Optional[StructuredEvent]:
        """
        Emit a structured event.

        Returns:
            The emitted event, or None when `level` is above the trace level
        """
        if not self.is_enabled(level):
            return None

        event = StructuredEvent(
            event_id=str(uuid.uuid4()),
            event_type=event_type,
            timestamp=datetime.now(),
            severity=severity,
            message=message,
            trace_level=level,
            context=context or {},
            session_id=self.session_id,
        )

        self.event_buffer.append(event)

        if self.enable_console:
            self._emit_to_console(event)

        if self.enable_file:
            self._emit_to_file(event)

        return event

    def _emit_to_console(self, event: StructuredEvent):
        """Emit event via standard logging."""
        level_map = {
            EventSeverity.DEBUG: logging.DEBUG,
            EventSeverity.INFO: logging.INFO,
            EventSeverity.WARNING: logging.WARNING,
            EventSeverity.ERROR: logging.ERROR,
            EventSeverity.CRITICAL: logging.CRITICAL
        }

        logger.log(
            level_map.get(event.severity, logging.DEBUG),
            f"<{TRACE_CHANNEL}:{event.trace_level}> {event.message}"
        )

    def _emit_to_file(self, event: StructuredEvent):
        """Emit event to JSON lines file."""
        try:
            with open(self.log_file, 'a') as f:
                f.write(event.to_json() + '\n')
        except OSError as e:
            logger.error(f"Failed to write event to file: {e}")

    def get_session_events(self) -> List[StructuredEvent]:
        return list(self.event_buffer)

    def query_events(
        self,
        event_type: Optional[EventType] = None,
        since: Optional[datetime] = None
    ) -> List[StructuredEvent]:
        """Buffered events, optionally filtered by type and time."""
        filtered = list(self.event_buffer)

        if event_type:
            filtered = [e for e in filtered if e.event_type == event_type]

        if since:
            filtered = [e for e in filtered if e.timestamp >= since]

        return filtered


class EventBuilder:
    """Convenience methods for the fault module's events."""

    def __init__(self, emitter: EventEmitter):
        self.emitter = emitter

    def fault_injected(
        self,
        operation: str,
        description: str,
        error_name: str,
        error_code: int,
        strerror: str,
        target: Optional[Dict[str, Any]] = None
    ) -> Optional[StructuredEvent]:
        """
        Emit one injected-fault event.

        `description` identifies the call, e.g. "write 5 ('/srv/a.txt', 12 bytes)".
        """
        context = {
            'operation': operation,
            'error': error_name,
            'errno': error_code,
        }
        if target:
            context.update(target)

        return self.emitter.emit(
            EventType.FAULT_INJECTED,
            f"fsio: {description}, returning {error_name} ({strerror})",
            level=TRACE_DETAIL,
            context=context
        )

    def provider_registered(self, fault_count: int, mount_path: str) -> Optional[StructuredEvent]:
        return self.emitter.emit(
            EventType.PROVIDER_REGISTERED,
            f"filesystem fault injections ({fault_count}) configured, registering custom FS",
            level=TRACE_REGISTER,
            severity=EventSeverity.INFO,
            context={'fault_count': fault_count, 'mount_path': mount_path}
        )

    def provider_unregistered(self, mount_path: str) -> Optional[StructuredEvent]:
        return self.emitter.emit(
            EventType.PROVIDER_UNREGISTERED,
            f"unmounted custom FS from {mount_path}",
            level=TRACE_REGISTER,
            severity=EventSeverity.INFO,
            context={'mount_path': mount_path}
        )

    def session_started(self, engine_enabled: bool, fault_count: int) -> Optional[StructuredEvent]:
        state = 'on' if engine_enabled else 'off'
        return self.emitter.emit(
            EventType.SESSION_STARTED,
            f"FaultEngine {state}, {fault_count} filesystem fault(s) configured",
            level=TRACE_REGISTER,
            context={'engine_enabled': engine_enabled, 'fault_count': fault_count}
        )

    def table_dump(self, lines: List[str], bindings: Dict[str, dict]) -> Optional[StructuredEvent]:
        return self.emitter.emit(
            EventType.FAULT_TABLE_DUMP,
            "fault table:\n" + "\n".join(lines) if lines else "fault table: (empty)",
            level=TRACE_DUMP,
            context={'bindings': bindings}
        )

    def config_reloaded(self, generation: int) -> Optional[StructuredEvent]:
        return self.emitter.emit(
            EventType.CONFIG_RELOADED,
            f"configuration reloaded, generation {generation}",
            level=TRACE_REGISTER,
            severity=EventSeverity.INFO,
            context={'generation': generation}
        )

    def module_unloaded(self, generation: int) -> Optional[StructuredEvent]:
        return self.emitter.emit(
            EventType.MODULE_UNLOADED,
            "fault module unloaded",
            level=TRACE_REGISTER,
            severity=EventSeverity.INFO,
            context={'generation': generation}
        )


class EventAnalyzer:
    """
    Summarizes injected faults recorded in a JSON lines event log.

    Useful after a test run to confirm which error paths were exercised.
    """

    def __init__(self, log_file: Path):
        self.log_file = Path(log_file)
        self.events: List[StructuredEvent] = []

    def load_events(self, since: Optional[datetime] = None):
        """
        Load events from the log file.

        Args:
            since: Only load events after this timestamp
        """
        self.events = []

        if not self.log_file.exists():
            return

        with open(self.log_file, 'r') as f:
            for line in f:
                try:
                    event = StructuredEvent.from_dict(json.loads(line))
                except (json.JSONDecodeError, KeyError, ValueError, TypeError):
                    continue  # Skip malformed lines

                if since and event.timestamp < since:
                    continue

                self.events.append(event)

        logger.info(f"Loaded {len(self.events)} events")

    def _injected(self) -> List[StructuredEvent]:
        return [e for e in self.events if e.event_type == EventType.FAULT_INJECTED]

    def get_fault_summary(self) -> Dict[str, int]:
        """Injected fault count per operation."""
        return dict(Counter(e.context.get('operation') for e in self._injected()))

    def get_error_summary(self) -> Dict[str, int]:
        """Injected fault count per error name."""
        return dict(Counter(e.context.get('error') for e in self._injected()))

    def sessions_with_faults(self) -> List[str]:
        return sorted({e.session_id for e in self._injected() if e.session_id})
