"""Path, hashing and file-name helpers."""

from __future__ import annotations

import errno
import hashlib
import os
import re
import stat
from typing import BinaryIO

_NON_POSIX_CHARS = re.compile(r"[^A-Za-z0-9._-]")
_CHUNK_SIZE = 4 * 1024


def build_clean_path(base: str, subpath: str, absolute: bool = False) -> str:
    """Join ``subpath`` onto ``base`` unless it is absolute, and normalise it."""
    if os.path.isabs(subpath):
        return os.path.normpath(subpath)
    if absolute and not os.path.isabs(base):
        base = os.path.abspath(base)
    return os.path.normpath(os.path.join(base, subpath))


def check_executable(file: str) -> None:
    """Raise unless ``file`` is a non-directory with an execute bit set."""
    mode = os.stat(file).st_mode
    if stat.S_ISDIR(mode) or not mode & 0o111:
        raise PermissionError(errno.EACCES, os.strerror(errno.EACCES), file)


def is_file_exist(file: str) -> bool:
    """Return True if ``file`` exists and is not a directory."""
    try:
        return not stat.S_ISDIR(os.stat(file).st_mode)
    except OSError:
        return False


def find_executables_on_path(progname: str) -> list[str]:
    """Return every executable named ``progname`` reachable through PATH."""
    search_path = os.environ.get("PATH", "")
    if not search_path:
        return []
    found = []
    for directory in search_path.split(os.pathsep):
        # an empty element means the current directory, as in a Unix shell
        candidate = os.path.normpath(os.path.join(directory or ".", progname))
        try:
            check_executable(candidate)
        except OSError:
            continue
        found.append(candidate)
    return found


def hash_stream(stream: BinaryIO) -> str:
    """Return the hex SHA-1 digest of everything read from ``stream``."""
    digest = hashlib.sha1()
    for chunk in iter(lambda: stream.read(_CHUNK_SIZE), b""):
        digest.update(chunk)
    return digest.hexdigest()


def hash_file(file_name: str) -> str:
    """Return the hex SHA-1 digest of the file's contents."""
    with open(file_name, "rb") as stream:
        return hash_stream(stream)


def posix_portable_filename(filename: str) -> str:
    """Replace every character outside the POSIX portable set with '_'."""
    return _NON_POSIX_CHARS.sub("_", filename)