import os
import struct

import pytest

from sqfsread.errors import Block, SquashfsError
from sqfsread.table import METADATA_SIZE, MetadataTable


class FakeMdFs:
    def __init__(self, blocks):
        self.blocks = blocks
        self.requested = []

    def md_cache(self, pos):
        self.requested.append(pos)
        return self.blocks[pos]


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


def _entry(i):
    return i.to_bytes(16, "little")


def _two_block_setup(open_fd):
    entries = b"".join(_entry(i) for i in range(1000))
    first, second = entries[:METADATA_SIZE], entries[METADATA_SIZE:]
    fd = open_fd(struct.pack("<QQ", 7000, 9000))
    table = MetadataTable(fd, 0, 16, 1000)
    fs = FakeMdFs({7000: Block(first, refcount=5), 9000: Block(second, refcount=5)})
    return table, fs


def test_reads_block_pointers(open_fd):
    table, _ = _two_block_setup(open_fd)
    assert table.blocks == [7000, 9000]
    assert table.each == 16


@pytest.mark.parametrize("index", [0, 1, 511, 512, 600, 999])
def test_get_returns_record(open_fd, index):
    table, fs = _two_block_setup(open_fd)
    assert table.get(fs, index) == _entry(index)


def test_get_uses_correct_block(open_fd):
    table, fs = _two_block_setup(open_fd)
    table.get(fs, 0)
    table.get(fs, 999)
    assert fs.requested == [7000, 9000]


def test_get_releases_block(open_fd):
    fd = open_fd(struct.pack("<Q", 123))
    table = MetadataTable(fd, 0, 4, 3)
    block = Block(b"aaaabbbbcccc", refcount=2)
    fs = FakeMdFs({123: block})
    assert table.get(fs, 1) == b"bbbb"
    assert block.refcount == 1


def test_start_offset(open_fd):
    fd = open_fd(b"\xff" * 24 + struct.pack("<Q", 55))
    table = MetadataTable(fd, 24, 8, 10)
    assert table.blocks == [55]


def test_empty_table(open_fd):
    fd = open_fd(b"")
    table = MetadataTable(fd, 0, 16, 0)
    assert table.blocks == []
    with pytest.raises(SquashfsError):
        table.get(FakeMdFs({}), 0)


def test_short_index_raises(open_fd):
    fd = open_fd(struct.pack("<Q", 1))
    with pytest.raises(SquashfsError):
        MetadataTable(fd, 0, 16, 1000)


def test_index_out_of_range(open_fd):
    table, fs = _two_block_setup(open_fd)
    with pytest.raises(SquashfsError):
        table.get(fs, 2000)
    with pytest.raises(SquashfsError):
        table.get(fs, -1)


def test_truncated_block_raises(open_fd):
    fd = open_fd(struct.pack("<Q", 8))
    table = MetadataTable(fd, 0, 8, 4)
    fs = FakeMdFs({8: Block(b"12345678abc")})
    with pytest.raises(SquashfsError):
        table.get(fs, 1)