"""
Minimal virtual-filesystem registry.

Stands in for the host server's FS registration mechanism: providers are
mounted by (mount path, name), and a path resolves to the provider with
the longest matching mount path. Unmatched paths fall back to the default
provider.
"""

import logging
import posixpath
from typing import Dict, List, Tuple

from core.fsio import FSProvider


logger = logging.getLogger(__name__)


def _clean(path) -> str:
    path = posixpath.normpath(str(path).replace('\\', '/'))
    # normpath keeps a leading '//' as-is
    if path.startswith('//'):
        path = '/' + path.lstrip('/')
    return path


def _is_under(path: str, mount_path: str) -> bool:
    # Root mount also serves relative paths
    if mount_path == '/':
        return True
    return path == mount_path or path.startswith(mount_path + '/')


class FSRegistry:
    """Mount table of filesystem providers."""

    def __init__(self, default: FSProvider):
        self.default = default
        self._mounts: Dict[Tuple[str, str], FSProvider] = {}

    def register_fs(self, provider: FSProvider, name: str, mount_path: str = '/') -> FSProvider:
        """
        Mount a provider.

        Raises:
            ValueError: If a provider with the same name is already mounted
                at that path
        """
        key = (_clean(mount_path), name)
        if key in self._mounts:
            raise ValueError(f"FS '{name}' already registered at {key[0]}")

        self._mounts[key] = provider
        logger.debug(f"Registered FS '{name}' at {key[0]}")
        return provider

    def unmount_fs(self, mount_path: str, name: str) -> bool:
        """Remove a mounted provider. Returns False when nothing matched."""
        key = (_clean(mount_path), name)
        if self._mounts.pop(key, None) is None:
            return False

        logger.debug(f"Unmounted FS '{name}' from {key[0]}")
        return True

    def lookup(self, path='/') -> FSProvider:
        """Provider responsible for `path` (longest mount path wins)."""
        path = _clean(path)
        best = None
        best_len = -1
        for (mount_path, _name), provider in self._mounts.items():
            if _is_under(path, mount_path) and len(mount_path) > best_len:
                best = provider
                best_len = len(mount_path)

        return best if best is not None else self.default

    def is_mounted(self, mount_path: str, name: str) -> bool:
        return (_clean(mount_path), name) in self._mounts

    def mounts(self) -> List[Tuple[str, str]]:
        return sorted(self._mounts)
