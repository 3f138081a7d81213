"""Concurrent directory tree walking that reports only the type of each entry."""

from __future__ import annotations

import enum
import os
import stat
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Callable, List, Optional


class FileType(enum.Enum):
    """The kind of a directory entry."""

    REGULAR = "regular"
    DIR = "dir"
    SYMLINK = "symlink"
    NAMED_PIPE = "named_pipe"
    SOCKET = "socket"
    DEVICE = "device"
    CHAR_DEVICE = "char_device"
    IRREGULAR = "irregular"

    @property
    def is_regular(self) -> bool:
        return self is FileType.REGULAR


class SkipDir(Exception):
    """Raised by a callback to skip the directory (or symlink) just reported."""


class SkipFiles(Exception):
    """Raised by a callback to skip remaining regular files in the current directory.

    Child directories are still traversed.
    """


class TraverseLink(Exception):
    """Raised by a callback to follow the symlink just reported as a directory."""


WalkFunc = Callable[[str, FileType], None]


@dataclass(frozen=True)
class _WalkItem:
    dir: str
    callback_done: bool = False


def _entry_type(entry: os.DirEntry) -> Optional[FileType]:
    try:
        if entry.is_symlink():
            return FileType.SYMLINK
        if entry.is_dir(follow_symlinks=False):
            return FileType.DIR
        if entry.is_file(follow_symlinks=False):
            return FileType.REGULAR
        mode = entry.stat(follow_symlinks=False).st_mode
    except FileNotFoundError:
        # Removed while we were looking at it.
        return None
    if stat.S_ISBLK(mode):
        return FileType.DEVICE
    if stat.S_ISCHR(mode):
        return FileType.CHAR_DEVICE
    if stat.S_ISFIFO(mode):
        return FileType.NAMED_PIPE
    if stat.S_ISSOCK(mode):
        return FileType.SOCKET
    return FileType.IRREGULAR


def _read_dir(dir_name: str, fn: Callable[[str, str, FileType], None]) -> None:
    """Call ``fn`` for each entry of ``dir_name`` without descending."""
    with os.scandir(dir_name) as it:
        entries = sorted(it, key=lambda e: e.name)
    skip_files = False
    for entry in entries:
        typ = _entry_type(entry)
        if typ is None:
            continue
        if skip_files and typ.is_regular:
            continue
        try:
            fn(dir_name, entry.name, typ)
        except SkipFiles:
            skip_files = True


class _Walker:
    def __init__(self, fn: WalkFunc) -> None:
        self.fn = fn

    def walk(self, item: _WalkItem) -> List[_WalkItem]:
        queued: List[_WalkItem] = []
        if not item.callback_done:
            try:
                self.fn(item.dir, FileType.DIR)
            except SkipDir:
                return queued

        def on_dir_ent(dir_name: str, base_name: str, typ: FileType) -> None:
            joined = dir_name + os.sep + base_name
            if typ is FileType.DIR:
                queued.append(_WalkItem(joined))
                return
            if typ is FileType.SYMLINK:
                try:
                    self.fn(joined, typ)
                except TraverseLink:
                    queued.append(_WalkItem(joined, callback_done=True))
                except SkipDir:
                    pass
                return
            self.fn(joined, typ)

        _read_dir(item.dir, on_dir_ent)
        return queued


def walk(root: str, walk_fn: WalkFunc) -> None:
    """Walk the tree under ``root``, calling ``walk_fn(path, type)`` for every entry.

    ``walk_fn`` is called from several threads and must be safe for that.
    It may raise SkipDir, SkipFiles or TraverseLink to steer the walk; any
    other exception stops the walk and is raised from here. It is the
    callback's job to avoid symlink cycles when asking for traversal.
    """
    workers = max(4, os.cpu_count() or 1)
    walker = _Walker(walk_fn)
    pool = ThreadPoolExecutor(max_workers=workers)
    try:
        pending = {pool.submit(walker.walk, _WalkItem(str(root)))}
        while pending:
            done, pending = wait(pending, return_when=FIRST_COMPLETED)
            for future in done:
                for item in future.result():
                    pending.add(pool.submit(walker.walk, item))
    finally:
        pool.shutdown(wait=True, cancel_futures=True)