"""
Faulting filesystem provider.

Wraps a delegate provider and a fault table. Each interceptable operation
consults the table: unbound operations go to the delegate untouched; bound
operations never reach the delegate and raise the configured OSError
instead, after a diagnostic event is emitted.

pread shares the 'read' binding and pwrite shares the 'write' binding.
open, stat, lstat and fstat always pass through.
"""

import logging
import os
from typing import Dict, Optional, Tuple

import psutil

from core.error_registry import describe_code
from core.fault_table import FaultTable
from core.fsio import FSProvider
from core.operations import COUPLED_OPERATIONS, FSIO_OPERATIONS, binding_key
from core.structured_events import EventBuilder, EventEmitter


logger = logging.getLogger(__name__)


class FaultProvider(FSProvider):
    """Provider that substitutes configured failures for real calls."""

    name = 'fault'

    def __init__(self, delegate: FSProvider, fault_table: FaultTable,
                 events: Optional[EventEmitter] = None):
        """
        Args:
            delegate: Provider that performs unfaulted operations
            fault_table: Bindings of this session's configuration generation
            events: Emitter for diagnostic events (tracing off when None)
        """
        self.delegate = delegate
        self.fault_table = fault_table
        self.events = EventBuilder(events or EventEmitter(enable_console=False))
        # fd -> (path, st_dev, st_ino) as seen at open
        self._fd_paths: Dict[int, Tuple[str, int, int]] = {}

    @staticmethod
    def intercepted_operations() -> Dict[str, str]:
        """Every intercepted operation mapped to the binding it consults."""
        mapping = {operation: operation for operation in FSIO_OPERATIONS}
        mapping.update(COUPLED_OPERATIONS)
        return mapping

    def _fault_for(self, operation: str) -> Optional[int]:
        return self.fault_table.lookup(binding_key(operation))

    def _fd_path(self, fd) -> Optional[str]:
        """Path of a descriptor, for diagnostics only."""
        cached = self._fd_paths.get(fd)
        if cached is not None:
            path, dev, ino = cached
            try:
                st = self.delegate.fstat(fd)
            except OSError:
                st = None
            if st is not None and (st.st_dev, st.st_ino) == (dev, ino):
                return path
            # Closed or reused behind our back
            del self._fd_paths[fd]

        try:
            for open_file in psutil.Process().open_files():
                if open_file.fd == fd:
                    return open_file.path
        except (psutil.AccessDenied, psutil.NoSuchProcess):
            pass

        return None

    def _inject(self, operation: str, xerrno: int, description: str,
                filename=None, **target):
        """Report the injected fault, then fail the call with it."""
        strerror = os.strerror(xerrno)
        self.events.fault_injected(
            operation,
            description,
            describe_code(xerrno),
            xerrno,
            strerror,
            target={k: v for k, v in target.items() if v is not None},
        )
        if filename is None:
            raise OSError(xerrno, strerror)
        raise OSError(xerrno, strerror, filename)

    def _inject_fd(self, operation: str, xerrno: int, fd, extra: str = '', **target):
        path = self._fd_path(fd)
        self._inject(operation, xerrno, f"{operation} {fd} ('{path}'{extra})",
                     fd=fd, path=path, **target)

    # Pass-through operations

    def open(self, path, flags, mode=0o777):
        fd = self.delegate.open(path, flags, mode)
        st = self.delegate.fstat(fd)
        self._fd_paths[fd] = (os.fspath(path), st.st_dev, st.st_ino)
        return fd

    def stat(self, path):
        return self.delegate.stat(path)

    def lstat(self, path):
        return self.delegate.lstat(path)

    def fstat(self, fd):
        return self.delegate.fstat(fd)

    # Descriptor operations

    def close(self, fd):
        xerrno = self._fault_for('close')
        if xerrno is None:
            self.delegate.close(fd)
            self._fd_paths.pop(fd, None)
            return

        self._inject_fd('close', xerrno, fd)

    def read(self, fd, size):
        xerrno = self._fault_for('read')
        if xerrno is None:
            return self.delegate.read(fd, size)

        self._inject_fd('read', xerrno, fd, f", {size} bytes", size=size)

    def pread(self, fd, size, offset):
        xerrno = self._fault_for('pread')
        if xerrno is None:
            return self.delegate.pread(fd, size, offset)

        self._inject_fd('pread', xerrno, fd, f", {size} bytes, {offset} offset",
                        size=size, offset=offset)

    def write(self, fd, data):
        xerrno = self._fault_for('write')
        if xerrno is None:
            return self.delegate.write(fd, data)

        self._inject_fd('write', xerrno, fd, f", {len(data)} bytes", size=len(data))

    def pwrite(self, fd, data, offset):
        xerrno = self._fault_for('pwrite')
        if xerrno is None:
            return self.delegate.pwrite(fd, data, offset)

        self._inject_fd('pwrite', xerrno, fd, f", {len(data)} bytes, {offset} offset",
                        size=len(data), offset=offset)

    def lseek(self, fd, pos, how):
        xerrno = self._fault_for('lseek')
        if xerrno is None:
            return self.delegate.lseek(fd, pos, how)

        self._inject_fd('lseek', xerrno, fd, f", {pos} offset, whence {how}",
                        offset=pos, whence=how)

    def fchmod(self, fd, mode):
        xerrno = self._fault_for('fchmod')
        if xerrno is None:
            return self.delegate.fchmod(fd, mode)

        self._inject_fd('fchmod', xerrno, fd, f", mode {mode:04o}", mode=mode)

    def fchown(self, fd, uid, gid):
        xerrno = self._fault_for('fchown')
        if xerrno is None:
            return self.delegate.fchown(fd, uid, gid)

        self._inject_fd('fchown', xerrno, fd, f", UID {uid}, GID {gid}", uid=uid, gid=gid)

    # Path operations

    def chmod(self, path, mode):
        xerrno = self._fault_for('chmod')
        if xerrno is None:
            return self.delegate.chmod(path, mode)

        self._inject('chmod', xerrno, f"chmod '{path}' to {mode:04o}", path,
                     path=os.fspath(path), mode=mode)

    def chown(self, path, uid, gid):
        xerrno = self._fault_for('chown')
        if xerrno is None:
            return self.delegate.chown(path, uid, gid)

        self._inject('chown', xerrno, f"chown '{path}' to UID {uid}, GID {gid}", path,
                     path=os.fspath(path), uid=uid, gid=gid)

    def lchown(self, path, uid, gid):
        xerrno = self._fault_for('lchown')
        if xerrno is None:
            return self.delegate.lchown(path, uid, gid)

        self._inject('lchown', xerrno, f"lchown '{path}' to UID {uid}, GID {gid}", path,
                     path=os.fspath(path), uid=uid, gid=gid)

    def chroot(self, path):
        xerrno = self._fault_for('chroot')
        if xerrno is None:
            return self.delegate.chroot(path)

        # Session root stays unchanged, as on a real chroot failure
        self._inject('chroot', xerrno, f"chroot '{path}'", path, path=os.fspath(path))

    def mkdir(self, path, mode=0o777):
        xerrno = self._fault_for('mkdir')
        if xerrno is None:
            return self.delegate.mkdir(path, mode)

        self._inject('mkdir', xerrno, f"mkdir '{path}'", path, path=os.fspath(path), mode=mode)

    def rmdir(self, path):
        xerrno = self._fault_for('rmdir')
        if xerrno is None:
            return self.delegate.rmdir(path)

        self._inject('rmdir', xerrno, f"rmdir '{path}'", path, path=os.fspath(path))

    def rename(self, src, dst):
        xerrno = self._fault_for('rename')
        if xerrno is None:
            return self.delegate.rename(src, dst)

        self._inject('rename', xerrno, f"rename '{src}' to '{dst}'", src,
                     path=os.fspath(src), destination=os.fspath(dst))

    def unlink(self, path):
        xerrno = self._fault_for('unlink')
        if xerrno is None:
            return self.delegate.unlink(path)

        self._inject('unlink', xerrno, f"unlink '{path}'", path, path=os.fspath(path))

    def readlink(self, path):
        xerrno = self._fault_for('readlink')
        if xerrno is None:
            return self.delegate.readlink(path)

        self._inject('readlink', xerrno, f"readlink '{path}'", path, path=os.fspath(path))

    def utimes(self, path, times=None):
        xerrno = self._fault_for('utimes')
        if xerrno is None:
            return self.delegate.utimes(path, times)

        self._inject('utimes', xerrno, f"utimes '{path}'", path, path=os.fspath(path))

    # Directory handles

    def opendir(self, path):
        xerrno = self._fault_for('opendir')
        if xerrno is None:
            return self.delegate.opendir(path)

        self._inject('opendir', xerrno, f"opendir '{path}'", path, path=os.fspath(path))

    def readdir(self, dirh):
        xerrno = self._fault_for('readdir')
        if xerrno is None:
            return self.delegate.readdir(dirh)

        self._inject('readdir', xerrno, f"readdir {dirh!r}")

    def closedir(self, dirh):
        xerrno = self._fault_for('closedir')
        if xerrno is None:
            return self.delegate.closedir(dirh)

        self._inject('closedir', xerrno, f"closedir {dirh!r}")
