# sqfsread

`sqfsread` is a pure-Python library of building blocks for reading SquashFS
filesystem images. It uses only the standard library.

## What it provides

- **Errors** – `sqfsread.errors` defines `SquashfsError` and its subclasses
  `BadFormatError`, `BadVersionError`, `BadCompressionError` and
  `UnsupportedError`. It also holds `MdCursor` (a metadata block position
  and an offset in it) and `Block`, a reference-counted data block with
  `ref()` and `deref()` (which returns `True` when the last reference is
  dropped).
- **Byte order** – `sqfsread.byteorder` decodes little-endian unsigned
  integers of exactly 2, 4 or 8 bytes (`swapin16`, `swapin32`, `swapin64`;
  other lengths raise `ValueError`) and exchanges the bytes of a 16-bit value
  (`swap16`).
- **Positioned reads** – `sqfsread.fileio.pread(fd, count, offset)` reads up
  to `count` bytes at `offset`; the result may be short at end of file.
- **Stack** – `sqfsread.stack.Stack` is a LIFO container whose optional
  `freer` callback runs on each popped item. `pop()` returns `False` when
  empty; `top()` and `at()` raise `SquashfsError` when there is no such item.
- **Lookup tables** – `sqfsread.table.MetadataTable(fd, start, each, count)`
  reads the list of metadata block pointers of an on-disk table, and
  `get(fs, index)` returns the raw bytes of one fixed-size record.
- **Extended attributes** – `sqfsread.xattr` has `xattr_init(fs)` to load the
  xattr id table, `XattrIterator` to walk the attributes of an inode
  (`read`, `name`, `name_size`, `value_size`, `value`, `find`), `find_prefix`
  to match the `user.`, `trusted.` and `security.` namespaces (`XattrPrefix`),
  and `lookup(fs, inode, name)`, which returns the value or `None`.
- **Stat data** – `sqfsread.stat.stat_inode(fs, inode)` returns a
  `StatResult`; a positive `fs.uid` or `fs.gid` overrides the owner.
  `makedev` combines device numbers and `enoattr` gives the "no such
  attribute" error number.
- **Tree traversal** – `sqfsread.traverse.Traversal(fs, inode)` and
  `traverse(fs, inode_id)` walk a directory tree depth-first. Each step is
  either an entry (`dir_end` false, `entry` and `path` set) or the end of a
  directory (`dir_end` true). Iterating yields the traversal itself, so
  `prune()` can skip the directory just returned; it is also a context
  manager that calls `close()`.
- **Inode number mapping** – `sqfsread.inodemap.create_inode_map(fs,
  ino_bits)` picks `Ino64Map` (inode ids used directly), `Ino32ExportMap`
  (inode numbers resolved through the export table) or `Ino32Map` (inode
  numbers resolved through a reference-counted cache filled by `register`
  and emptied by `forget`). `lookup_inode` and `lowlevel_stat` build on it.
- **Opening images** – `sqfsread.util.fd_open` and `fd_close` open and close
  image files; `open_image(path, offset, init, subdir)` opens a file, hands
  the descriptor to your `init` callable, prints a message from
  `describe_open_error` on failure and closes the descriptor again.

## What it does not do

The package does not parse the superblock, inodes or directories, does not
decompress blocks, and has no command-line tools and no mounting support.
Modules that need those take a filesystem object from the caller and
document the methods it must provide (such as `md_cache`, `md_read`,
`inode_get`, `dir_open`, `id_get`, `inode_root`, `export_ok` and
`export_inode`).

## Examples

Decoding on-disk integers:

```python
from sqfsread.byteorder import swapin16, swapin32

assert swapin16(b"\xbe\xba") == 0xBABE
assert swapin32(b"\x01\xee\xff\xc0") == 0xC0FFEE01
```

Matching an extended attribute namespace:

```python
from sqfsread.xattr import XattrPrefix, find_prefix

assert find_prefix("user.comment") is XattrPrefix.USER
assert find_prefix("other.comment") is None
```

A stack with a release hook:

```python
from sqfsread.stack import Stack

released = []
stack = Stack(released.append)
stack.push("a")
stack.push("b")
assert stack.top() == "b"
stack.pop()
assert released == ["b"] and len(stack) == 1
```

## Running the tests

Install the package with its `test` extra and run `pytest` from the
project directory.