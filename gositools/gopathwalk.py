"""Walking source roots to find directories that hold ``.go`` files."""

from __future__ import annotations

import enum
import logging
import os
import sys
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence

from gositools import fastwalk
from gositools.fastwalk import FileType

_log = logging.getLogger(__name__)

Logf = Callable[..., None]


class RootType(enum.Enum):
    """The kind of a walk root."""

    UNKNOWN = 0
    GOROOT = 1
    GOPATH = 2
    CURRENT_MODULE = 3
    MODULE_CACHE = 4
    OTHER = 5


@dataclass(frozen=True)
class Root:
    """A starting point for a walk."""

    path: str
    type: RootType = RootType.UNKNOWN


@dataclass
class Options:
    """Settings for a walk.

    ``logf`` takes a printf-style format and arguments; when set, debug
    logging goes through it.
    """

    logf: Optional[Logf] = None
    modules_enabled: bool = False


AddFunc = Callable[[Root, str], None]
SkipFunc = Callable[[Root, str], bool]


class Walker:
    """Callback state for walking one root."""

    def __init__(
        self,
        root: Optional[Root] = None,
        add: Optional[AddFunc] = None,
        skip: Optional[SkipFunc] = None,
        opts: Optional[Options] = None,
    ) -> None:
        self.root = root
        self.add = add
        self.skip = skip
        self.opts = opts if opts is not None else Options()
        self.ignored_dirs: List[os.stat_result] = []

    def _logf(self, fmt: str, *args: Any) -> None:
        if self.opts.logf is not None:
            self.opts.logf(fmt, *args)

    def _load_ignored(self) -> None:
        assert self.root is not None
        ignored_paths: List[str] = []
        if self.root.type is RootType.MODULE_CACHE:
            ignored_paths = ["cache"]
        if not self.opts.modules_enabled and self.root.type is RootType.GOPATH:
            ignored_paths = self._read_ignore_file(self.root.path) + ["v", "mod"]
        for rel in ignored_paths:
            full = os.path.join(self.root.path, rel)
            try:
                info = os.stat(full)
            except OSError as exc:
                self._logf("Error statting ignored directory: %s", exc)
                continue
            self.ignored_dirs.append(info)
            self._logf("Directory added to ignore list: %s", full)

    def _read_ignore_file(self, path: str) -> List[str]:
        """Read relative directories to ignore from ``<path>/.goimportsignore``."""
        file = os.path.join(path, ".goimportsignore")
        try:
            with open(file, encoding="utf-8", errors="replace") as handle:
                content = handle.read()
        except OSError as exc:
            self._logf("%s", exc)
            return []
        self._logf("Read %s", file)
        stripped = (line.strip() for line in content.splitlines())
        return [line for line in stripped if line and not line.startswith("#")]

    def _should_skip_dir(self, info: os.stat_result, dir: str) -> bool:
        if any(os.path.samestat(info, ignored) for ignored in self.ignored_dirs):
            return True
        if self.skip is not None:
            return self.skip(self.root, dir)
        return False

    def walk(self, path: str, typ: FileType) -> None:
        """fastwalk callback for one entry."""
        assert self.root is not None
        dir = os.path.dirname(path) or "."
        if typ.is_regular:
            if dir == self.root.path and self.root.type in (RootType.GOROOT, RootType.GOPATH):
                # Regular files directly in a GOPATH/src or GOROOT/src are not packages.
                raise fastwalk.SkipFiles
            if not path.endswith(".go"):
                return
            assert self.add is not None
            self.add(self.root, dir)
            raise fastwalk.SkipFiles
        if typ is FileType.DIR:
            base = os.path.basename(path)
            if (
                base == ""
                or base[0] in "._"
                or base == "testdata"
                or (
                    self.root.type is RootType.GOROOT
                    and self.opts.modules_enabled
                    and base == "vendor"
                )
                or (not self.opts.modules_enabled and base == "node_modules")
            ):
                raise fastwalk.SkipDir
            try:
                info = os.lstat(path)
            except OSError:
                return
            if self._should_skip_dir(info, path):
                raise fastwalk.SkipDir
            return
        if typ is FileType.SYMLINK:
            base = os.path.basename(path)
            if base.startswith(".#"):
                return
            if self.should_traverse(dir, base):
                raise fastwalk.TraverseLink

    def should_traverse(self, dir: str, name: str) -> bool:
        """Report whether the symlink ``name`` in ``dir`` should be followed.

        Links that lead back to one of their own ancestors are refused.
        """
        path = os.path.join(dir, name)
        try:
            os.lstat(path)
            target = os.path.realpath(path, strict=True)
        except OSError:
            return False
        try:
            target_info = os.stat(target)
        except OSError as exc:
            print(exc, file=sys.stderr)
            return False
        if not os.path.isdir(target):
            return False
        if self._should_skip_dir(target_info, dir):
            return False
        while True:
            parent = os.path.dirname(path) or "."
            if parent == path:
                return True
            try:
                parent_info = os.stat(parent)
            except OSError:
                return False
            if os.path.samestat(target_info, parent_info):
                return False
            path = parent


def walk(roots: Sequence[Root], add: AddFunc, opts: Options) -> None:
    """Find package directories under each root, calling ``add(root, dir)`` concurrently."""
    walk_skip(roots, add, lambda root, dir: False, opts)


def walk_skip(roots: Sequence[Root], add: AddFunc, skip: SkipFunc, opts: Options) -> None:
    """Like :func:`walk`, skipping directories for which ``skip(root, dir)`` is true."""
    for root in roots:
        walk_dir(root, add, skip, opts)


def walk_dir(root: Root, add: AddFunc, skip: Optional[SkipFunc], opts: Options) -> None:
    """Walk a single root."""
    walker = Walker(root, add, skip, opts)
    if not os.path.exists(root.path):
        walker._logf("skipping nonexistent directory: %s", root.path)
        return
    started = time.monotonic()
    walker._logf("gopathwalk: scanning %s", root.path)
    walker._load_ignored()
    try:
        fastwalk.walk(root.path, walker.walk)
    except OSError as exc:
        _log.warning("gopathwalk: scanning directory %s: %s", root.path, exc)
    walker._logf(
        "gopathwalk: scanned %s in %.3fs", root.path, time.monotonic() - started
    )