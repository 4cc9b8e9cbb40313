"""
Test suite for structured_events module.

Tests cover:
- Event creation and serialization
- Trace level filtering
- Event emission to the file sink
- Event analysis of injected faults
"""

import json
import logging
from datetime import datetime, timedelta

import pytest

from core.structured_events import (
    StructuredEvent,
    EventType,
    EventSeverity,
    EventEmitter,
    EventBuilder,
    EventAnalyzer,
    TRACE_DETAIL,
    TRACE_DUMP,
    TRACE_REGISTER,
)


class TestStructuredEvent:
    """Test structured event data structure."""

    def test_event_serialization(self):
        event = StructuredEvent(
            event_id="test123",
            event_type=EventType.FAULT_INJECTED,
            timestamp=datetime.now(),
            severity=EventSeverity.DEBUG,
            message="fsio: unlink '/a', returning EACCES (Permission denied)",
            context={'operation': 'unlink'}
        )

        data = event.to_dict()
        assert data['event_type'] == 'FAULT_INJECTED'
        assert data['severity'] == 'DEBUG'
        assert data['trace_level'] == TRACE_DETAIL

        parsed = json.loads(event.to_json())
        assert parsed['event_id'] == "test123"

    def test_event_deserialization(self):
        data = {
            'event_id': 'abc',
            'event_type': 'PROVIDER_REGISTERED',
            'timestamp': datetime.now().isoformat(),
            'severity': 'INFO',
            'message': 'registered',
            'trace_level': TRACE_REGISTER,
            'context': {'fault_count': 1},
            'session_id': 's1',
        }

        event = StructuredEvent.from_dict(data)
        assert event.event_type == EventType.PROVIDER_REGISTERED
        assert event.severity == EventSeverity.INFO
        assert event.session_id == 's1'


class TestTraceLevels:

    def test_level_zero_disables_everything(self):
        emitter = EventEmitter(trace_level=0, enable_console=False)
        assert emitter.emit(EventType.FAULT_INJECTED, "x") is None
        assert emitter.get_session_events() == []

    @pytest.mark.parametrize("trace_level,level,enabled", [
        (4, TRACE_DETAIL, True),
        (4, TRACE_REGISTER, False),
        (7, TRACE_REGISTER, True),
        (7, TRACE_DUMP, False),
        (20, TRACE_DUMP, True),
    ])
    def test_is_enabled(self, trace_level, level, enabled):
        assert EventEmitter(trace_level=trace_level, enable_console=False).is_enabled(level) is enabled

    def test_console_output_uses_channel_prefix(self, caplog):
        emitter = EventEmitter(trace_level=TRACE_DETAIL)
        with caplog.at_level(logging.DEBUG, logger='core.structured_events'):
            emitter.emit(EventType.FAULT_INJECTED, "fsio: read 3")
        assert "<fault:4> fsio: read 3" in caplog.text


class TestEmitter:

    def test_file_sink_writes_json_lines(self, tmp_path):
        log_file = tmp_path / "events" / "events.jsonl"
        emitter = EventEmitter(trace_level=TRACE_DUMP, log_file=log_file,
                               enable_console=False, enable_file=True)

        emitter.emit(EventType.SESSION_STARTED, "one", level=TRACE_REGISTER)
        emitter.emit(EventType.FAULT_INJECTED, "two")

        lines = log_file.read_text().splitlines()
        assert [json.loads(line)['message'] for line in lines] == ["one", "two"]

    def test_bound_emitter_stamps_session(self, events):
        bound = events.bind_session("session-1")
        event = bound.emit(EventType.FAULT_INJECTED, "x")

        assert event.session_id == "session-1"
        assert events.get_session_events() == [event]

    def test_buffer_keeps_most_recent_events(self):
        emitter = EventEmitter(trace_level=TRACE_DUMP, enable_console=False, buffer_size=10)
        for i in range(25):
            emitter.bind_session(f"session-{i}").emit(EventType.FAULT_INJECTED, str(i))

        buffered = emitter.get_session_events()
        assert len(buffered) == 10
        assert [e.message for e in buffered] == [str(i) for i in range(15, 25)]

    def test_query_by_type_and_time(self, events):
        events.emit(EventType.FAULT_INJECTED, "a")
        events.emit(EventType.SESSION_STARTED, "b", level=TRACE_REGISTER)

        assert len(events.query_events(EventType.FAULT_INJECTED)) == 1
        assert events.query_events(since=datetime.now() + timedelta(hours=1)) == []


class TestEventBuilder:

    def test_fault_injected_message_and_context(self, events):
        event = EventBuilder(events).fault_injected(
            'write', "write 5 ('/tmp/a', 3 bytes)", 'ENOSPC', 28,
            'No space left on device', target={'fd': 5, 'size': 3}
        )

        assert event.message == (
            "fsio: write 5 ('/tmp/a', 3 bytes), returning ENOSPC (No space left on device)"
        )
        assert event.context == {
            'operation': 'write', 'error': 'ENOSPC', 'errno': 28, 'fd': 5, 'size': 3
        }

    def test_empty_table_dump(self, events):
        event = EventBuilder(events).table_dump([], {})
        assert event.message == "fault table: (empty)"
        assert event.trace_level == TRACE_DUMP


class TestEventAnalyzer:

    def _write_log(self, tmp_path):
        log_file = tmp_path / "events.jsonl"
        emitter = EventEmitter(trace_level=TRACE_DUMP, log_file=log_file,
                               enable_console=False, enable_file=True)
        builder = EventBuilder(emitter.bind_session("s1"))
        builder.fault_injected('write', 'write 3', 'ENOSPC', 28, 'full')
        builder.fault_injected('write', 'write 3', 'ENOSPC', 28, 'full')
        builder.fault_injected('unlink', "unlink '/a'", 'EACCES', 13, 'denied')
        EventBuilder(emitter).session_started(True, 2)

        with open(log_file, 'a') as f:
            f.write("not json\n")
        return log_file

    def test_summaries(self, tmp_path):
        analyzer = EventAnalyzer(self._write_log(tmp_path))
        analyzer.load_events()

        assert len(analyzer.events) == 4
        assert analyzer.get_fault_summary() == {'write': 2, 'unlink': 1}
        assert analyzer.get_error_summary() == {'ENOSPC': 2, 'EACCES': 1}
        assert analyzer.sessions_with_faults() == ['s1']

    def test_missing_log_file(self, tmp_path):
        analyzer = EventAnalyzer(tmp_path / "missing.jsonl")
        analyzer.load_events()
        assert analyzer.events == []

    def test_since_filter(self, tmp_path):
        analyzer = EventAnalyzer(self._write_log(tmp_path))
        analyzer.load_events(since=datetime.now() + timedelta(hours=1))
        assert analyzer.events == []
