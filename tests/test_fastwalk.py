import os
import threading

import pytest

from gositools.fastwalk import FileType, SkipDir, SkipFiles, TraverseLink, walk


def _build(tmp_path, files):
    symlinks = {}
    for rel, contents in files.items():
        path = tmp_path / "src" / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        if contents.startswith("LINK:"):
            symlinks[path] = contents[len("LINK:"):]
        else:
            path.write_text(contents)
    for path, dst in symlinks.items():
        os.symlink(dst, path)


def _recorder(root, callback):
    """Return a walk callback plus the mapping and duplicate list it fills."""
    got = {}
    duplicates = []
    lock = threading.Lock()

    def fn(path, typ):
        with lock:
            assert path.startswith(root)
            key = path[len(root):].replace(os.sep, "/")
            if key in got:
                duplicates.append(key)
            got[key] = typ
        callback(path, typ)

    return fn, got, duplicates


def _noop(path, typ):
    return None


def test_basic(tmp_path):
    _build(tmp_path, {"foo/foo.go": "one", "bar/bar.go": "two", "skip/skip.go": "skip"})
    root = str(tmp_path)
    fn, got, duplicates = _recorder(root, _noop)
    walk(root, fn)
    assert duplicates == []
    assert got == {
        "": FileType.DIR,
        "/src": FileType.DIR,
        "/src/bar": FileType.DIR,
        "/src/bar/bar.go": FileType.REGULAR,
        "/src/foo": FileType.DIR,
        "/src/foo/foo.go": FileType.REGULAR,
        "/src/skip": FileType.DIR,
        "/src/skip/skip.go": FileType.REGULAR,
    }


def test_long_file_name(tmp_path):
    long_name = "x" * 255
    _build(tmp_path, {long_name: "one"})
    root = str(tmp_path)
    fn, got, duplicates = _recorder(root, _noop)
    walk(root, fn)
    assert duplicates == []
    assert got == {
        "": FileType.DIR,
        "/src": FileType.DIR,
        "/src/" + long_name: FileType.REGULAR,
    }


def test_symlink(tmp_path):
    _build(
        tmp_path,
        {
            "foo/foo.go": "one",
            "bar/bar.go": "LINK:../foo/foo.go",
            "symdir": "LINK:foo",
            "broken/broken.go": "LINK:../nonexistent",
        },
    )
    root = str(tmp_path)
    fn, got, duplicates = _recorder(root, _noop)
    walk(root, fn)
    assert duplicates == []
    assert got == {
        "": FileType.DIR,
        "/src": FileType.DIR,
        "/src/bar": FileType.DIR,
        "/src/bar/bar.go": FileType.SYMLINK,
        "/src/foo": FileType.DIR,
        "/src/foo/foo.go": FileType.REGULAR,
        "/src/symdir": FileType.SYMLINK,
        "/src/broken": FileType.DIR,
        "/src/broken/broken.go": FileType.SYMLINK,
    }


def test_skip_dir(tmp_path):
    def callback(path, typ):
        if typ is FileType.DIR and path.endswith("skip"):
            raise SkipDir

    _build(tmp_path, {"foo/foo.go": "one", "bar/bar.go": "two", "skip/skip.go": "skip"})
    root = str(tmp_path)
    fn, got, duplicates = _recorder(root, callback)
    walk(root, fn)
    assert duplicates == []
    assert got == {
        "": FileType.DIR,
        "/src": FileType.DIR,
        "/src/bar": FileType.DIR,
        "/src/bar/bar.go": FileType.REGULAR,
        "/src/foo": FileType.DIR,
        "/src/foo/foo.go": FileType.REGULAR,
        "/src/skip": FileType.DIR,
    }


def test_skip_files(tmp_path):
    lock = threading.Lock()
    want = {
        "": FileType.DIR,
        "/src": FileType.DIR,
        "/src/zzz": FileType.DIR,
        "/src/zzz/c.go": FileType.REGULAR,
    }

    def callback(path, typ):
        if path.endswith("_skipfiles.go"):
            with lock:
                want["/src/" + os.path.basename(path)] = FileType.REGULAR
            raise SkipFiles

    _build(tmp_path, {"a_skipfiles.go": "a", "b_skipfiles.go": "b", "zzz/c.go": "c"})
    root = str(tmp_path)
    fn, got, duplicates = _recorder(root, callback)
    walk(root, fn)
    assert duplicates == []
    assert got == want
    assert len(want) == 5


def test_traverse_symlink(tmp_path):
    def callback(path, typ):
        if typ is FileType.SYMLINK:
            raise TraverseLink

    _build(
        tmp_path,
        {
            "foo/foo.go": "one",
            "bar/bar.go": "two",
            "skip/skip.go": "skip",
            "symdir": "LINK:foo",
        },
    )
    root = str(tmp_path)
    fn, got, duplicates = _recorder(root, callback)
    walk(root, fn)
    assert duplicates == []
    assert got == {
        "": FileType.DIR,
        "/src": FileType.DIR,
        "/src/bar": FileType.DIR,
        "/src/bar/bar.go": FileType.REGULAR,
        "/src/foo": FileType.DIR,
        "/src/foo/foo.go": FileType.REGULAR,
        "/src/skip": FileType.DIR,
        "/src/skip/skip.go": FileType.REGULAR,
        "/src/symdir": FileType.SYMLINK,
        "/src/symdir/foo.go": FileType.REGULAR,
    }


def test_callback_error_propagates(tmp_path):
    _build(tmp_path, {"foo/foo.go": "one"})

    def callback(path, typ):
        if path.endswith("foo.go"):
            raise ValueError("stop here")

    with pytest.raises(ValueError, match="stop here"):
        walk(str(tmp_path), callback)


def test_missing_root_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        walk(str(tmp_path / "absent"), _noop)


def test_reported_types_know_regularity(tmp_path):
    _build(tmp_path, {"f.go": "package f"})
    root = str(tmp_path)
    fn, got, duplicates = _recorder(root, _noop)
    walk(root, fn)
    assert duplicates == []
    assert got["/src/f.go"].is_regular
    assert not got["/src"].is_regular
    assert not got[""].is_regular