"""
Per-session state.

Each accepted connection is served by its own worker, and each worker
owns one Session. Nothing here is shared between sessions.
"""

import os
import uuid
from dataclasses import dataclass, field
from typing import Optional

from core.fsio import RealProvider
from core.vfs import FSRegistry


@dataclass
class Session:
    """Ambient state of one session worker."""
    session_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    pid: int = field(default_factory=os.getpid)
    chroot_path: Optional[str] = None
    fs_registry: FSRegistry = None

    def __post_init__(self):
        if self.fs_registry is None:
            self.fs_registry = FSRegistry(default=RealProvider(session=self))

    def fs(self, path='/'):
        """Provider that serves `path` for this session."""
        return self.fs_registry.lookup(path)
