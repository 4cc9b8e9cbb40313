"""
Fault module lifecycle.

    init        FaultModule(): empty fault table, generation 0
    config      handle_directive() / load_directives() / configure()
    reload      restart(): fresh fault table, engine decision cleared
    session     session_init(): resolve the engine once, mount the
                faulting provider when faults are configured
                session_exit(): unmount it when the session ends
    teardown    unload(): unmount providers, then drop the table

Faults are injected only for session workers, never for the daemon
context that parses configuration. A session keeps the table it was
started with for its whole lifetime; reloads only affect sessions started
afterwards.
"""

import logging
import weakref
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from core.directives import handle_directive, tokenize
from core.error_registry import supported_error_names
from core.errors import ConfigError, UnknownErrorName, UnsupportedCategory, UnsupportedOperation
from core.fault_provider import FaultProvider
from core.fault_table import FaultTable
from core.operations import FAULT_CATEGORIES, FSIO_OPERATIONS
from core.session import Session
from core.structured_events import EventBuilder, EventEmitter, TRACE_DUMP
from core.vfs import FSRegistry
from utils.error_messages import format_directive_error


logger = logging.getLogger(__name__)

MODULE_VERSION = 'fsfault/0.1'
PROVIDER_NAME = 'fault'


def _choices_for(error: ConfigError) -> Optional[List[str]]:
    if isinstance(error, UnknownErrorName):
        return supported_error_names()
    if isinstance(error, UnsupportedOperation):
        return list(FSIO_OPERATIONS)
    if isinstance(error, UnsupportedCategory):
        return list(FAULT_CATEGORIES)
    return None


@dataclass(frozen=True)
class SessionState:
    """Engine decision of one session, fixed at session start."""
    engine_enabled: bool
    provider: Optional[FaultProvider] = None
    generation: int = 0

    @property
    def intercepting(self) -> bool:
        return self.provider is not None


class FaultModule:
    """Owns the current configuration generation of the fault engine."""

    def __init__(self, events: Optional[EventEmitter] = None, mount_path: str = '/'):
        """
        Args:
            events: Diagnostic event emitter (tracing off when None)
            mount_path: Path the faulting provider is mounted at
        """
        self.events = events or EventEmitter(enable_console=False)
        self.mount_path = mount_path
        self.generation = 0
        self.fault_table: Optional[FaultTable] = FaultTable()
        # None until a FaultEngine directive is seen; absent means off
        self.engine: Optional[bool] = None
        # Registries holding a mounted faulting provider; ended sessions drop out
        self._registries: "weakref.WeakSet[FSRegistry]" = weakref.WeakSet()

    @property
    def loaded(self) -> bool:
        return self.fault_table is not None

    def _require_loaded(self):
        if not self.loaded:
            raise RuntimeError(f"{MODULE_VERSION} is unloaded")

    # Configuration

    def handle_directive(self, name: str, args: Sequence[str]):
        """Apply one tokenized FaultEngine/FaultInject directive."""
        self._require_loaded()
        handle_directive(self, name, args)

    def load_directives(self, lines: Iterable[str]):
        """Apply directive lines such as 'FaultInject filesystem EIO read'."""
        for line in lines:
            tokens = tokenize(line)
            if not tokens:
                continue
            self.handle_directive(tokens[0], tokens[1:])

    def configure(self, config):
        """Apply every directive of a loaded Config."""
        for name, args in config.directives():
            try:
                self.handle_directive(name, args)
            except ConfigError as e:
                logger.error(format_directive_error(' '.join([name] + list(args)), str(e),
                                                    _choices_for(e)))
                raise

        logger.info(
            f"{MODULE_VERSION}: engine {'on' if self.engine else 'off'}, "
            f"{self.fault_table.count()} filesystem fault(s) configured"
        )

    def restart(self):
        """
        Start a new configuration generation.

        The old table is replaced, not cleared, so sessions holding it are
        unaffected.
        """
        self._require_loaded()
        self.fault_table = self.fault_table.reset()
        self.engine = None
        self.generation += 1
        EventBuilder(self.events).config_reloaded(self.generation)

    # Sessions

    def session_init(self, session: Session) -> SessionState:
        """
        Decide, once, whether this session gets fault injection.

        The faulting provider is mounted only when FaultEngine is on and at
        least one fault is configured.
        """
        self._require_loaded()

        engine = bool(self.engine)
        table = self.fault_table
        session_events = self.events.bind_session(session.session_id)
        builder = EventBuilder(session_events)

        builder.session_started(engine, table.count())
        if not engine or table.count() == 0:
            return SessionState(engine_enabled=engine, generation=self.generation)

        builder.provider_registered(table.count(), self.mount_path)
        if session_events.is_enabled(TRACE_DUMP):
            builder.table_dump(table.dump(), table.to_dict())

        registry = session.fs_registry
        provider = FaultProvider(
            delegate=registry.lookup(self.mount_path),
            fault_table=table,
            events=session_events,
        )

        try:
            registry.register_fs(provider, PROVIDER_NAME, self.mount_path)
        except ValueError as e:
            logger.warning(f"{MODULE_VERSION}: unable to register custom FS: {e}")
            return SessionState(engine_enabled=engine, generation=self.generation)

        self._registries.add(registry)
        return SessionState(engine_enabled=engine, provider=provider, generation=self.generation)

    def session_exit(self, session: Session) -> bool:
        """Unmount the session's faulting provider, if it has one."""
        registry = session.fs_registry
        self._registries.discard(registry)

        if not registry.unmount_fs(self.mount_path, PROVIDER_NAME):
            return False

        EventBuilder(self.events.bind_session(session.session_id)).provider_unregistered(self.mount_path)
        return True

    def dump_table(self) -> List[str]:
        """Enumerate the current fault table at the dump trace level."""
        self._require_loaded()
        lines = self.fault_table.dump()
        EventBuilder(self.events).table_dump(lines, self.fault_table.to_dict())
        return lines

    # Teardown

    def unload(self):
        """Unmount every faulting provider, then release the table."""
        if not self.loaded:
            return

        builder = EventBuilder(self.events)
        for registry in list(self._registries):
            if registry.unmount_fs(self.mount_path, PROVIDER_NAME):
                builder.provider_unregistered(self.mount_path)
        self._registries.clear()

        builder.module_unloaded(self.generation)
        self.fault_table = None
        self.engine = False
