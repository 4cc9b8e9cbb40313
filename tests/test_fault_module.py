"""Tests for the fault module lifecycle: configure, session start, reload, unload."""

import errno
import gc
import os

import pytest

from core.errors import ConfigError
from core.fault_module import FaultModule, PROVIDER_NAME
from core.fault_provider import FaultProvider
from core.fsio import RealProvider
from core.session import Session
from core.structured_events import EventEmitter, EventType, TRACE_REGISTER


@pytest.fixture
def module(events):
    return FaultModule(events=events)


def _configure(module, *lines):
    module.load_directives(lines)


def test_engine_on_with_faults_mounts_provider(module):
    _configure(module, "FaultEngine on", "FaultInject filesystem ENOSPC write")
    session = Session()

    state = module.session_init(session)

    assert state.engine_enabled
    assert state.intercepting
    assert isinstance(session.fs("/tmp/x"), FaultProvider)
    assert session.fs_registry.is_mounted("/", PROVIDER_NAME)
    assert isinstance(state.provider.delegate, RealProvider)


def test_engine_off_never_intercepts(module):
    _configure(module, "FaultEngine off", "FaultInject filesystem EIO read")
    session = Session()

    state = module.session_init(session)

    assert not state.engine_enabled
    assert not state.intercepting
    assert isinstance(session.fs("/"), RealProvider)


def test_engine_absent_means_off(module):
    _configure(module, "FaultInject filesystem EIO read")
    state = module.session_init(Session())
    assert not state.engine_enabled
    assert not state.intercepting


def test_engine_on_without_faults_does_not_mount(module):
    _configure(module, "FaultEngine on")
    session = Session()

    state = module.session_init(session)

    assert state.engine_enabled
    assert not state.intercepting
    assert session.fs_registry.mounts() == []


def test_session_sees_injected_fault(module, tmp_path):
    _configure(module, "FaultEngine on", "FaultInject filesystem EACCES unlink")
    target = tmp_path / "keep.txt"
    target.write_text("x")
    session = Session()
    module.session_init(session)

    with pytest.raises(OSError) as exc:
        session.fs(str(target)).unlink(str(target))

    assert exc.value.errno == errno.EACCES
    assert target.exists()


def test_mount_path_limits_interception(events, tmp_path):
    module = FaultModule(events=events, mount_path="/srv/data")
    _configure(module, "FaultEngine on", "FaultInject filesystem EIO read")
    session = Session()
    module.session_init(session)

    assert isinstance(session.fs("/srv/data/file"), FaultProvider)
    assert isinstance(session.fs("/etc/passwd"), RealProvider)


def test_reload_isolates_running_session(module, tmp_path):
    _configure(module, "FaultEngine on", "FaultInject filesystem ENOSPC write")
    old_session = Session()
    old_state = module.session_init(old_session)

    module.restart()
    _configure(module, "FaultEngine on", "FaultInject filesystem EIO read")
    new_state = module.session_init(Session())

    assert module.generation == 1
    assert old_state.provider.fault_table.lookup("write") == errno.ENOSPC
    assert old_state.provider.fault_table.lookup("read") is None
    assert new_state.provider.fault_table.lookup("write") is None
    assert new_state.provider.fault_table.lookup("read") == errno.EIO


def test_restart_clears_engine_and_bindings(module):
    _configure(module, "FaultEngine on", "FaultInject filesystem EIO read")
    module.restart()

    assert module.engine is None
    assert module.fault_table.count() == 0
    # binding allowed again in the new generation
    _configure(module, "FaultInject filesystem EACCES read")
    assert module.fault_table.lookup("read") == errno.EACCES


def test_restart_emits_reload_event(module, events):
    module.restart()
    [event] = events.query_events(EventType.CONFIG_RELOADED)
    assert event.context["generation"] == 1


def test_directive_error_propagates(module):
    with pytest.raises(ConfigError):
        _configure(module, "FaultInject filesystem ENOPE read")


def test_load_directives_skips_blank_and_comment_lines(module):
    _configure(module, "", "# comment only", "FaultEngine yes")
    assert module.engine is True


def test_session_events_at_dump_level(module, events):
    _configure(module, "FaultEngine on", "FaultInject filesystem ENOSPC write close")
    session = Session()
    module.session_init(session)

    [registered] = events.query_events(EventType.PROVIDER_REGISTERED)
    assert registered.message == "filesystem fault injections (2) configured, registering custom FS"
    assert registered.session_id == session.session_id

    [dump] = events.query_events(EventType.FAULT_TABLE_DUMP)
    assert dump.session_id == session.session_id
    assert f"  write: ENOSPC ({errno.ENOSPC}) [{os.strerror(errno.ENOSPC)}]" in dump.message
    assert dump.context["bindings"]["close"]["error"] == "ENOSPC"


def test_no_dump_below_dump_level():
    events = EventEmitter(trace_level=TRACE_REGISTER, enable_console=False)
    module = FaultModule(events=events)
    _configure(module, "FaultEngine on", "FaultInject filesystem EIO read")

    state = module.session_init(Session())
    session_events = state.provider.events.emitter

    assert session_events.query_events(EventType.FAULT_TABLE_DUMP) == []
    assert len(session_events.query_events(EventType.PROVIDER_REGISTERED)) == 1


def test_dump_table_returns_lines(module):
    _configure(module, "FaultInject filesystem EIO read")
    assert module.dump_table() == [f"  read: EIO ({errno.EIO}) [{os.strerror(errno.EIO)}]"]


def test_unload_unmounts_before_dropping_table(module):
    _configure(module, "FaultEngine on", "FaultInject filesystem EIO read")
    session = Session()
    module.session_init(session)

    module.unload()

    assert not session.fs_registry.is_mounted("/", PROVIDER_NAME)
    assert isinstance(session.fs("/"), RealProvider)
    assert module.fault_table is None
    assert not module.loaded


def test_unload_is_idempotent(module):
    module.unload()
    module.unload()
    assert not module.loaded


def test_unloaded_module_rejects_use(module):
    module.unload()
    with pytest.raises(RuntimeError):
        module.session_init(Session())
    with pytest.raises(RuntimeError):
        _configure(module, "FaultEngine on")


def test_double_session_init_does_not_double_mount(module):
    _configure(module, "FaultEngine on", "FaultInject filesystem EIO read")
    session = Session()
    first = module.session_init(session)
    second = module.session_init(session)

    assert first.intercepting
    assert not second.intercepting
    assert session.fs("/") is first.provider


def test_session_exit_unmounts_provider(module, events):
    _configure(module, "FaultEngine on", "FaultInject filesystem EIO read")
    session = Session()
    module.session_init(session)

    assert module.session_exit(session) is True

    assert not session.fs_registry.is_mounted("/", PROVIDER_NAME)
    assert isinstance(session.fs("/"), RealProvider)
    [unregistered] = events.query_events(EventType.PROVIDER_UNREGISTERED)
    assert unregistered.session_id == session.session_id
    assert module.session_exit(session) is False


def test_session_exit_without_provider(module):
    _configure(module, "FaultEngine off", "FaultInject filesystem EIO read")
    session = Session()
    module.session_init(session)

    assert module.session_exit(session) is False


def test_ended_sessions_are_not_retained(module):
    _configure(module, "FaultEngine on", "FaultInject filesystem EIO read")

    for _ in range(50):
        session = Session()
        module.session_init(session)
        module.session_exit(session)

    assert len(module._registries) == 0


def test_abandoned_sessions_are_released(module):
    _configure(module, "FaultEngine on", "FaultInject filesystem EIO read")

    for _ in range(50):
        module.session_init(Session())
    gc.collect()

    assert len(module._registries) == 0


def test_unload_skips_exited_sessions(module, events):
    _configure(module, "FaultEngine on", "FaultInject filesystem EIO read")
    live, ended = Session(), Session()
    module.session_init(live)
    module.session_init(ended)
    module.session_exit(ended)

    module.unload()

    assert not live.fs_registry.is_mounted("/", PROVIDER_NAME)
    assert len(events.query_events(EventType.PROVIDER_UNREGISTERED)) == 2
