"""
Filesystem provider interface and the real, os-backed implementation.

A provider is a set of named filesystem operations. The host resolves a
provider per path (see core.vfs) and calls it instead of the os module
directly, which is what lets a faulting provider be mounted in front of
the real one.

Failures are reported the way the os module reports them: by raising
OSError with errno set.
"""

import errno
import os


HAVE_PREAD = hasattr(os, 'pread')
HAVE_PWRITE = hasattr(os, 'pwrite')
HAVE_CHROOT = hasattr(os, 'chroot')
HAVE_CHOWN = hasattr(os, 'chown')
HAVE_LCHOWN = hasattr(os, 'lchown')
HAVE_FCHOWN = hasattr(os, 'fchown')
HAVE_FCHMOD = hasattr(os, 'fchmod')


def not_implemented(filename=None):
    """Raise the ENOSYS error the platform reports for a missing call."""
    raise OSError(errno.ENOSYS, os.strerror(errno.ENOSYS), filename)


class FSProvider:
    """Capability interface: every filesystem operation a provider offers."""

    name = 'base'

    OPERATIONS = (
        'open', 'close', 'read', 'pread', 'write', 'pwrite', 'lseek',
        'stat', 'lstat', 'fstat',
        'chmod', 'fchmod', 'chown', 'fchown', 'lchown', 'chroot',
        'mkdir', 'rmdir', 'rename', 'unlink', 'readlink', 'utimes',
        'opendir', 'readdir', 'closedir',
    )

    def open(self, path, flags, mode=0o777):
        raise NotImplementedError

    def close(self, fd):
        raise NotImplementedError

    def read(self, fd, size):
        raise NotImplementedError

    def pread(self, fd, size, offset):
        raise NotImplementedError

    def write(self, fd, data):
        raise NotImplementedError

    def pwrite(self, fd, data, offset):
        raise NotImplementedError

    def lseek(self, fd, pos, how):
        raise NotImplementedError

    def stat(self, path):
        raise NotImplementedError

    def lstat(self, path):
        raise NotImplementedError

    def fstat(self, fd):
        raise NotImplementedError

    def chmod(self, path, mode):
        raise NotImplementedError

    def fchmod(self, fd, mode):
        raise NotImplementedError

    def chown(self, path, uid, gid):
        raise NotImplementedError

    def fchown(self, fd, uid, gid):
        raise NotImplementedError

    def lchown(self, path, uid, gid):
        raise NotImplementedError

    def chroot(self, path):
        raise NotImplementedError

    def mkdir(self, path, mode=0o777):
        raise NotImplementedError

    def rmdir(self, path):
        raise NotImplementedError

    def rename(self, src, dst):
        raise NotImplementedError

    def unlink(self, path):
        raise NotImplementedError

    def readlink(self, path):
        raise NotImplementedError

    def utimes(self, path, times=None):
        raise NotImplementedError

    def opendir(self, path):
        raise NotImplementedError

    def readdir(self, dirh):
        raise NotImplementedError

    def closedir(self, dirh):
        raise NotImplementedError


class RealProvider(FSProvider):
    """
    Provider backed by the real os primitives.

    Platform gaps follow the host's rules: a missing positioned read falls
    back to a sequential read; a missing positioned write, and missing
    ownership/chroot calls, fail with ENOSYS.
    """

    name = 'core'

    def __init__(self, session=None):
        self.session = session

    def open(self, path, flags, mode=0o777):
        return os.open(path, flags, mode)

    def close(self, fd):
        os.close(fd)

    def read(self, fd, size):
        return os.read(fd, size)

    def pread(self, fd, size, offset):
        if not HAVE_PREAD:
            return os.read(fd, size)
        return os.pread(fd, size, offset)

    def write(self, fd, data):
        return os.write(fd, data)

    def pwrite(self, fd, data, offset):
        if not HAVE_PWRITE:
            not_implemented()
        return os.pwrite(fd, data, offset)

    def lseek(self, fd, pos, how):
        return os.lseek(fd, pos, how)

    def stat(self, path):
        return os.stat(path)

    def lstat(self, path):
        return os.lstat(path)

    def fstat(self, fd):
        return os.fstat(fd)

    def chmod(self, path, mode):
        os.chmod(path, mode)

    def fchmod(self, fd, mode):
        if not HAVE_FCHMOD:
            not_implemented()
        os.fchmod(fd, mode)

    def chown(self, path, uid, gid):
        if not HAVE_CHOWN:
            not_implemented(path)
        os.chown(path, uid, gid)

    def fchown(self, fd, uid, gid):
        if not HAVE_FCHOWN:
            not_implemented()
        os.fchown(fd, uid, gid)

    def lchown(self, path, uid, gid):
        if not HAVE_LCHOWN:
            not_implemented(path)
        os.lchown(path, uid, gid)

    def chroot(self, path):
        if not HAVE_CHROOT:
            not_implemented(path)
        os.chroot(path)

        # Only a successful chroot moves the session's effective root
        if self.session is not None:
            self.session.chroot_path = os.fspath(path)

    def mkdir(self, path, mode=0o777):
        os.mkdir(path, mode)

    def rmdir(self, path):
        os.rmdir(path)

    def rename(self, src, dst):
        os.rename(src, dst)

    def unlink(self, path):
        os.unlink(path)

    def readlink(self, path):
        return os.readlink(path)

    def utimes(self, path, times=None):
        os.utime(path, times)

    def opendir(self, path):
        return os.scandir(path)

    def readdir(self, dirh):
        """Next directory entry, or None at the end of the directory."""
        return next(dirh, None)

    def closedir(self, dirh):
        dirh.close()
