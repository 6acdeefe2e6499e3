# crashkit

Building blocks for a crash reporter. This package has no dependencies. It
provides three kinds of helpers:

- Filesystem paths and lock files, through `crashkit.paths`.
- Windows-style path handling that works on any platform, through
  `crashkit.winpaths`.
- Build-id and debug-id extraction from ELF images, through `crashkit.elf`.

## Installation

```
pip install crashkit
```

## Filesystem paths

`crashkit.paths.FsPath` is an immutable wrapper around a path string. It can
be passed wherever `os.PathLike` is accepted.

```python
from crashkit.paths import FsPath, FileLock, current_exe

run_dir = FsPath(".crash-db").join("run")
run_dir.create_dir_all()

event_file = run_dir.join("__event")
event_file.write_bytes(b"first")
event_file.append_bytes(b" second")
assert event_file.read_bytes() == b"first second"

for entry in run_dir.iter_directory():
    print(entry.filename(), entry.size())

run_dir.remove_all()
print(current_exe())
```

### Building and inspecting paths

- `join(other)` adds `other` after a `/`. If `other` starts with `/`, the
  result is `other` alone.
- `append(suffix)` adds `suffix` with no separator.
- `filename()` returns the text after the last `/`. If there is no `/`, it
  returns the whole path.
- `filename_matches(name)` compares the file name with `name`.
- `ends_with(suffix)` tests whether the path ends with `suffix`.
- `parent()` returns the directory part. It follows POSIX `dirname`, so
  `"foo"` gives `"."`.
- `absolute()` returns the canonical path. It raises `OSError` if the path
  does not exist.

### Querying the filesystem

- `is_dir()` and `is_file()` report what kind of entry the path is.
- `size()` returns the size of a regular file, and `0` for anything else.
- `iter_directory()` yields the entries of a directory. It yields nothing
  if the directory cannot be opened.

### Creating and removing

- `create_dir_all()` creates the directory and any missing parents.
- `touch()` creates the file if it is missing. Its contents stay as they
  are.
- `remove()` deletes a file or an empty directory. A missing path is not an
  error.
- `remove_all()` also deletes everything below a directory.

### Reading and writing

- `read_bytes()` returns the whole file. It raises `ValueError` for files
  larger than `MAX_READ_TO_BUFFER`, which is 128 MiB.
- `write_bytes(data)` replaces the contents of the file.
- `append_bytes(data)` adds to the end of the file.

### The running executable

`current_exe()` returns the path of the running executable:

- On Linux it reads `/proc/self/exe`.
- On macOS it uses `sys.executable`.
- Elsewhere, or if the path cannot be found, it returns `None`.

### Lock files

`FileLock` takes an exclusive lock on a lock file, without blocking. It uses
`flock` on POSIX and `msvcrt.locking` on Windows.

- `try_lock()` returns whether it got the lock.
- `unlock()` releases the lock and removes the file.

When used in a `with` block, a lock held elsewhere raises `BlockingIOError`:

```python
with FileLock(FsPath(".crash-db").join(".lock")):
    ...
```

## Windows paths

`crashkit.winpaths.WinPath` handles Windows-style path strings on any
platform:

- Both `/` and `\` count as separators.
- `join` returns a drive-qualified argument such as `D:\x` unchanged.
- `join` keeps the current drive for a rooted argument such as `\x`.
- For any other argument, `join` inserts `\` when one is needed.
- `filename_matches` and `ends_with` ignore case.
- `dir_prefixes()` lists, in order, the directories that must exist for the
  whole path to exist. Separators right after a drive colon are skipped.

```python
from crashkit.winpaths import WinPath

WinPath("C:\\foo\\bar.txt").join("/root/path")   # WinPath('C:/root/path')
WinPath("foo/bar/baz.txt").join("extra")          # WinPath('foo/bar/baz.txt\\extra')
```

## ELF identifiers

`crashkit.elf.ModuleImage` describes how a module's file is laid out in
memory, as a list of `MappedRegion(offset, size, addr)` entries. Bytes are
read from one of two sources:

- An in-memory copy of the file, given as `image=`. Addresses index into
  these bytes.
- A `reader(addr, size)` callable that fetches live memory.

```python
from crashkit.elf import MappedRegion, ModuleImage, read_ids_from_elf

data = open("/bin/ls", "rb").read()
image = ModuleImage(
    file="/bin/ls",
    mappings=[MappedRegion(offset=0, size=len(data), addr=0)],
    image=data,
)
print(read_ids_from_elf(image))  # {"code_id": "...", "debug_id": "..."}
```

`read_ids_from_elf` reads the GNU build id from the PT_NOTE segments.

- If a build id is found, it becomes `code_id`, written as hex. Its first
  16 bytes also give `debug_id`.
- If there is no build id, `debug_id` comes from `text_fallback_id`. That
  function XOR-folds the first 4096 bytes of `.text` into 16 bytes. In this
  case there is no `code_id`.

The debug id is formatted as a little-endian GUID. The lower-level helpers
can also be called directly:

- `code_id_from_notes`
- `code_id_from_elf`
- `text_fallback_id`
- `debug_id_from_bytes`

`ModuleImage.push_mapping` and `is_duplicated_mapping` merge consecutive
mappings of one inode, keeping at most five regions. `image_addr()` and
`image_size()` report the module's extent in memory.

## What this package does not do

This package does not list the modules loaded into a running process. It
does not read `/proc/self/maps` or the auxiliary vector, and it keeps no
module cache. To identify a module, you supply the mappings and their bytes
yourself, as a `ModuleImage`. The package also installs no crash handlers
and sends no reports.

## Running the tests

```
pip install -e .[test]
pytest
```