import os

import pytest

from crashkit.paths import FileLock, FsPath, current_exe


def test_recursive_paths(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    base = FsPath(".foo")
    nested = base.join("bar")
    nested2 = nested.join("baz")
    file = nested2.join("unicode ❤️ Юля.txt")

    nested2.create_dir_all()
    file.touch()
    assert file.is_file()

    nested.remove_all()
    assert not file.is_file()
    assert not nested.is_file()
    assert not nested.is_dir()
    assert base.is_dir()

    base.remove_all()
    assert not base.is_dir()


def test_path_joining_unix():
    path = FsPath("foo/bar/baz.txt")
    assert path.path == "foo/bar/baz.txt"
    assert path.filename() == "baz.txt"

    joined = path.join("extra")
    assert joined.path == "foo/bar/baz.txt/extra"
    assert joined.filename() == "extra"

    joined = path.join("/root/path")
    assert joined.path == "/root/path"
    assert joined.filename() == "path"


def test_join_does_not_double_separator():
    assert FsPath("foo/").join("bar").path == "foo/bar"
    assert FsPath("").join("bar").path == "/bar"


def test_path_relative_filename():
    assert FsPath("foobar.txt").filename() == "foobar.txt"


def test_filename_matches_and_ends_with():
    path = FsPath("dir/report.dmp")
    assert path.filename_matches("report.dmp")
    assert not path.filename_matches("dir/report.dmp")
    assert path.ends_with(".dmp")
    assert not path.ends_with("x" * 40)


def test_append():
    assert FsPath("dump/abc").append(".dmp").path == "dump/abc.dmp"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("foo/bar/baz.txt", "foo/bar"),
        ("foo", "."),
        ("/foo", "/"),
        ("/", "/"),
        ("foo/bar/", "foo"),
        ("", "."),
    ],
)
def test_parent(raw, expected):
    assert FsPath(raw).parent().path == expected


def test_path_basics(tmp_path):
    (tmp_path / "a_file").write_bytes(b"x")
    (tmp_path / "a_dir").mkdir()
    entries = list(FsPath(str(tmp_path)).iter_directory())
    assert len(entries) == 2
    for entry in entries:
        assert entry.is_file() or entry.is_dir()
    assert sorted(e.filename() for e in entries) == ["a_dir", "a_file"]


def test_iter_missing_directory_yields_nothing(tmp_path):
    assert list(FsPath(str(tmp_path / "missing")).iter_directory()) == []


def test_path_current_exe():
    exe = current_exe()
    assert exe.is_file()


def test_path_directory(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    path_1 = FsPath("foo")
    path_2 = FsPath("foo/bar")

    path_1.remove_all()

    path_1.create_dir_all()
    assert path_1.is_dir()

    path_1.remove()
    assert not path_1.is_dir()

    path_2.create_dir_all()
    assert path_2.is_dir()

    path_2.remove_all()
    assert not path_2.is_dir()


def test_create_dir_all_absolute(tmp_path):
    target = FsPath(str(tmp_path)).join("a/b/c")
    target.create_dir_all()
    target.create_dir_all()
    assert target.is_dir()


def test_append_read_roundtrip(tmp_path):
    data = b"\x82\xa9some prop\xb1lf\ncrlf\r\nlf\n...\xaasome other\xa4prop"
    file = FsPath(str(tmp_path / ".mpack-buf"))
    file.append_bytes(data)
    read_back = file.read_bytes()
    assert len(read_back) == len(data)
    assert read_back == data
    file.remove()
    assert not file.is_file()


def test_append_accumulates_and_write_truncates(tmp_path):
    file = FsPath(str(tmp_path / "f.bin"))
    file.append_bytes(b"abc")
    file.append_bytes(b"def")
    assert file.read_bytes() == b"abcdef"
    assert file.size() == 6
    file.write_bytes(b"xy")
    assert file.read_bytes() == b"xy"


def test_read_empty_file(tmp_path):
    file = FsPath(str(tmp_path / "empty"))
    file.touch()
    assert file.read_bytes() == b""
    assert file.size() == 0


def test_touch_keeps_contents(tmp_path):
    file = FsPath(str(tmp_path / "keep"))
    file.write_bytes(b"hello")
    file.touch()
    assert file.read_bytes() == b"hello"


def test_read_missing_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        FsPath(str(tmp_path / "nope")).read_bytes()


def test_size_of_directory_is_zero(tmp_path):
    assert FsPath(str(tmp_path)).size() == 0


def test_remove_missing_is_silent(tmp_path):
    missing = FsPath(str(tmp_path / "missing"))
    missing.remove()
    assert not missing.is_file()
    assert not missing.is_dir()


def test_absolute(tmp_path):
    file = tmp_path / "abs.txt"
    file.write_bytes(b"")
    assert FsPath(str(file)).absolute().path == os.path.realpath(str(file))


def test_absolute_missing_raises(tmp_path):
    with pytest.raises(OSError):
        FsPath(str(tmp_path / "missing")).absolute()


def test_filelock_exclusive(tmp_path):
    lock_path = str(tmp_path / "run.lock")
    first = FileLock(lock_path)
    second = FileLock(lock_path)
    assert first.try_lock()
    assert first.is_locked
    assert not second.try_lock()
    assert not second.is_locked
    first.unlock()
    assert not first.is_locked
    assert not os.path.exists(lock_path)
    assert second.try_lock()
    second.unlock()
    assert not os.path.exists(lock_path)


def test_filelock_context_manager(tmp_path):
    lock_path = str(tmp_path / "ctx.lock")
    with FileLock(lock_path) as lock:
        assert lock.is_locked
        assert os.path.exists(lock_path)
        with pytest.raises(BlockingIOError):
            with FileLock(lock_path):
                pass
    assert not lock.is_locked
    assert not os.path.exists(lock_path)