import os
import struct
from types import SimpleNamespace

import pytest

from sqfsread.errors import SquashfsError
from sqfsread.xattr import (
    INVALID_BLK,
    INVALID_XATTR,
    XATTR_VALUE_OOL,
    XattrIterator,
    XattrPrefix,
    find_prefix,
    lookup,
    xattr_init,
)

BASE = 4096


def _pair(kind, name, value):
    return (
        struct.pack("<HH", kind, len(name))
        + name
        + struct.pack("<I", len(value))
        + value
    )


def _ool_pair(kind, name, ref):
    return (
        struct.pack("<HH", kind | XATTR_VALUE_OOL, len(name))
        + name
        + struct.pack("<I", 8)
        + struct.pack("<Q", ref)
    )


PAIRS = [
    (0, b"foo", b"bar"),
    (1, b"overlay.opaque", b"y"),
    (2, b"selinux", b"system_u:object_r:etc_t:s0"),
]
MAIN = b"".join(_pair(*p) for p in PAIRS)
EXPECTED = [
    (b"user.foo", b"bar"),
    (b"trusted.overlay.opaque", b"y"),
    (b"security.selinux", b"system_u:object_r:etc_t:s0"),
]


class FakeTable:
    def __init__(self, entries):
        self.entries = entries

    def get(self, fs, index):
        return self.entries[index]


class FakeFs:
    def __init__(self, blocks, id_entries):
        self.blocks = blocks
        self.xattr_info = SimpleNamespace(
            xattr_table_start=BASE, xattr_ids=len(id_entries)
        )
        self.xattr_table = FakeTable(id_entries)

    def md_read(self, cursor, size):
        out = bytearray()
        while len(out) < size:
            data, nxt = self.blocks[cursor.block]
            chunk = data[cursor.offset:cursor.offset + size - len(out)]
            out += chunk
            cursor.offset += len(chunk)
            if cursor.offset >= len(data):
                if nxt is None:
                    break
                cursor.block, cursor.offset = nxt, 0
        return bytes(out)


def _id(ref, count, size=0):
    return struct.pack("<QII", ref, count, size)


def _simple_fs():
    return FakeFs({BASE: (MAIN, None)}, [_id(0, len(PAIRS), len(MAIN))])


def _collect(it):
    result = []
    while it.remain:
        it.read()
        result.append((it.name(), it.value()))
    return result


def test_iterates_all_attributes():
    it = XattrIterator(_simple_fs(), SimpleNamespace(xattr=0))
    assert it.remain == 3
    assert _collect(it) == EXPECTED


def test_iterates_across_block_boundary():
    fs = FakeFs(
        {BASE: (MAIN[:10], BASE + 64), BASE + 64: (MAIN[10:], None)},
        [_id(0, len(PAIRS))],
    )
    assert _collect(XattrIterator(fs, SimpleNamespace(xattr=0))) == EXPECTED


def test_name_size_and_value_size():
    it = XattrIterator(_simple_fs(), SimpleNamespace(xattr=0))
    for name, value in EXPECTED:
        it.read()
        assert it.name_size() == len(name)
        assert it.value_size() == len(value)
        assert it.name(prefix=False) == name.split(b".", 1)[1]


def test_types_reported():
    it = XattrIterator(_simple_fs(), SimpleNamespace(xattr=0))
    kinds = []
    while it.remain:
        it.read()
        kinds.append(it.type)
    assert kinds == [XattrPrefix.USER, XattrPrefix.TRUSTED, XattrPrefix.SECURITY]


def test_read_skips_unread_values():
    it = XattrIterator(_simple_fs(), SimpleNamespace(xattr=0))
    it.read()
    it.read()
    it.read()
    assert it.name() == EXPECTED[2][0]
    assert it.value() == EXPECTED[2][1]


def test_read_past_end_raises():
    it = XattrIterator(_simple_fs(), SimpleNamespace(xattr=0))
    _collect(it)
    with pytest.raises(SquashfsError):
        it.read()


def test_second_inode_starts_at_reference():
    ref = len(_pair(*PAIRS[0])) + len(_pair(*PAIRS[1]))
    fs = FakeFs({BASE: (MAIN, None)}, [_id(0, 3), _id(ref, 1)])
    assert _collect(XattrIterator(fs, SimpleNamespace(xattr=1))) == EXPECTED[2:]


def test_no_xattrs_for_invalid_index():
    it = XattrIterator(_simple_fs(), SimpleNamespace(xattr=INVALID_XATTR))
    assert it.remain == 0
    assert _collect(it) == []


def test_no_xattrs_when_table_empty():
    fs = FakeFs({BASE: (MAIN, None)}, [])
    it = XattrIterator(fs, SimpleNamespace(xattr=0))
    assert it.remain == 0
    assert lookup(fs, SimpleNamespace(xattr=0), "user.foo") is None


def test_unknown_prefix_type_raises():
    data = _pair(5, b"odd", b"v")
    fs = FakeFs({BASE: (data, None)}, [_id(0, 1)])
    it = XattrIterator(fs, SimpleNamespace(xattr=0))
    with pytest.raises(SquashfsError):
        it.read()


def _ool_fs():
    big = b"out-of-line value " * 4
    ool_area = struct.pack("<I", len(big)) + big
    main = _ool_pair(0, b"big", 512 << 16) + _pair(0, b"after", b"v")
    fs = FakeFs(
        {BASE: (main, None), BASE + 512: (ool_area, None)}, [_id(0, 2)]
    )
    return fs, big


def test_out_of_line_value():
    fs, big = _ool_fs()
    it = XattrIterator(fs, SimpleNamespace(xattr=0))
    assert _collect(it) == [(b"user.big", big), (b"user.after", b"v")]


def test_out_of_line_value_skipped():
    fs, _ = _ool_fs()
    it = XattrIterator(fs, SimpleNamespace(xattr=0))
    it.read()
    it.read()
    assert it.name() == b"user.after"
    assert it.value() == b"v"


def test_lookup_found_and_missing():
    fs = _simple_fs()
    inode = SimpleNamespace(xattr=0)
    assert lookup(fs, inode, "trusted.overlay.opaque") == b"y"
    assert lookup(fs, inode, b"security.selinux") == EXPECTED[2][1]
    assert lookup(fs, inode, "user.missing") is None
    ool, big = _ool_fs()
    assert lookup(ool, inode, "user.big") == big


def test_find_with_unknown_namespace():
    it = XattrIterator(_simple_fs(), SimpleNamespace(xattr=0))
    assert it.find("system.posix_acl_access") is False
    assert it.remain == 3


def test_find_positions_on_entry():
    it = XattrIterator(_simple_fs(), SimpleNamespace(xattr=0))
    assert it.find("trusted.overlay.opaque") is True
    assert it.remain == 1
    assert it.value() == b"y"


@pytest.mark.parametrize(
    "name, expected",
    [
        ("user.comment", XattrPrefix.USER),
        (b"trusted.x", XattrPrefix.TRUSTED),
        ("security.selinux", XattrPrefix.SECURITY),
        ("os2.name", None),
        ("user", None),
    ],
)
def test_find_prefix(name, expected):
    assert find_prefix(name) is expected


@pytest.mark.parametrize(
    "text, expected",
    [
        (b"user.", XattrPrefix.USER),
        (b"trusted.", XattrPrefix.TRUSTED),
        (b"security.", XattrPrefix.SECURITY),
    ],
)
def test_prefix_text(text, expected):
    assert find_prefix(text + b"name") is expected
    assert find_prefix(text[:-1]) is None


@pytest.fixture
def open_fd(tmp_path):
    fds = []

    def _open(content):
        path = tmp_path / f"img{len(fds)}"
        path.write_bytes(content)
        fd = os.open(path, os.O_RDONLY)
        fds.append(fd)
        return fd

    yield _open
    for fd in fds:
        os.close(fd)


@pytest.mark.parametrize("offset", [0, 50])
def test_xattr_init_reads_header_and_index(open_fd, offset):
    image = b"\0" * 100 + struct.pack("<QII", 31337, 3, 0) + struct.pack("<Q", 4242)
    fd = open_fd(b"\xaa" * offset + image)
    fs = SimpleNamespace(
        sb=SimpleNamespace(xattr_id_table_start=100), fd=fd, offset=offset
    )
    xattr_init(fs)
    assert fs.xattr_info.xattr_ids == 3
    assert fs.xattr_info.xattr_table_start == 31337
    assert fs.xattr_table.blocks == [4242]
    assert fs.xattr_table.each == 16


def test_xattr_init_without_table(open_fd):
    fd = open_fd(b"")
    fs = SimpleNamespace(
        sb=SimpleNamespace(xattr_id_table_start=INVALID_BLK), fd=fd, offset=0
    )
    xattr_init(fs)
    assert fs.xattr_info.xattr_ids == 0
    assert XattrIterator(fs, SimpleNamespace(xattr=0)).remain == 0


def test_xattr_init_short_header(open_fd):
    fd = open_fd(b"\0" * 8)
    fs = SimpleNamespace(sb=SimpleNamespace(xattr_id_table_start=4), fd=fd, offset=0)
    with pytest.raises(SquashfsError):
        xattr_init(fs)