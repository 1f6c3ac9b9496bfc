"""On-disk layout of a VFS image: constants and record codecs."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field

MAGIC_NUMBER = 0x20250604
BLOCK_SIZE = 1024

VFS_MIN_BLOCKS = 50
VFS_MAX_BLOCKS = 64 * BLOCK_SIZE

MAX_INODE_BLOCKS = 8
MAX_VFS_BLOCKS = MAX_INODE_BLOCKS * BLOCK_SIZE * 8

INODE_MODE_FILE = 0x8000
INODE_MODE_DIR = 0x4000
DEFAULT_PERM = 0o640

FILENAME_MAX_LEN = 28
ROOTDIR_INODE = 1
SB_BLOCK_NUMBER = 0

NUM_DIRECT_PTRS = 7
NUM_INDIRECT_PTRS = BLOCK_SIZE // 4

_SUPERBLOCK_FORMAT = struct.Struct(f"<10I{MAX_INODE_BLOCKS}H3I")
_INODE_FORMAT = struct.Struct(f"<4HI{NUM_DIRECT_PTRS}II3I8x")
_DIR_ENTRY_FORMAT = struct.Struct(f"<I{FILENAME_MAX_LEN}s")

SUPERBLOCK_SIZE = _SUPERBLOCK_FORMAT.size
INODE_SIZE = _INODE_FORMAT.size
INODES_PER_BLOCK = BLOCK_SIZE // INODE_SIZE
BITS_PER_BLOCK = BLOCK_SIZE * 8
DIR_ENTRY_SIZE = _DIR_ENTRY_FORMAT.size
DIR_ENTRIES_PER_BLOCK = BLOCK_SIZE // DIR_ENTRY_SIZE


class VfsError(Exception):
    """Raised when an image operation fails."""


def _pack(fmt: struct.Struct, what: str, *values: object) -> bytes:
    try:
        return fmt.pack(*values)
    except struct.error as exc:
        raise VfsError(f"cannot encode {what}: {exc}") from exc


def _unpack(fmt: struct.Struct, what: str, data: bytes) -> tuple:
    if len(data) < fmt.size:
        raise VfsError(f"{what} needs {fmt.size} bytes, got {len(data)}")
    return fmt.unpack_from(data)


@dataclass
class Superblock:
    """The filesystem superblock stored in block 0."""

    magic: int = MAGIC_NUMBER
    block_size: int = BLOCK_SIZE
    total_blocks: int = 0
    superblock_blocks: int = 1
    inode_blocks: int = 0
    bitmap_blocks: int = 0
    free_blocks: int = 0
    inode_size: int = INODE_SIZE
    inode_count: int = 0
    free_inodes: int = 0
    bitmap_zeroes: list[int] = field(default_factory=lambda: [0] * MAX_INODE_BLOCKS)
    inode_start: int = 0
    bitmap_start: int = 0
    data_start: int = 0

    def pack(self) -> bytes:
        if len(self.bitmap_zeroes) != MAX_INODE_BLOCKS:
            raise VfsError(f"bitmap_zeroes must hold {MAX_INODE_BLOCKS} counters")
        return _pack(
            _SUPERBLOCK_FORMAT,
            "superblock",
            self.magic,
            self.block_size,
            self.total_blocks,
            self.superblock_blocks,
            self.inode_blocks,
            self.bitmap_blocks,
            self.free_blocks,
            self.inode_size,
            self.inode_count,
            self.free_inodes,
            *self.bitmap_zeroes,
            self.inode_start,
            self.bitmap_start,
            self.data_start,
        )

    @classmethod
    def unpack(cls, data: bytes) -> Superblock:
        values = _unpack(_SUPERBLOCK_FORMAT, "superblock", data)
        head = values[:10]
        zeroes = list(values[10 : 10 + MAX_INODE_BLOCKS])
        inode_start, bitmap_start, data_start = values[10 + MAX_INODE_BLOCKS :]
        return cls(
            *head,
            bitmap_zeroes=zeroes,
            inode_start=inode_start,
            bitmap_start=bitmap_start,
            data_start=data_start,
        )


@dataclass
class Inode:
    """An inode describing a file or directory."""

    mode: int = 0
    uid: int = 0
    gid: int = 0
    blocks: int = 0
    size: int = 0
    direct: list[int] = field(default_factory=lambda: [0] * NUM_DIRECT_PTRS)
    indirect: int = 0
    atime: int = 0
    mtime: int = 0
    ctime: int = 0

    def pack(self) -> bytes:
        if len(self.direct) != NUM_DIRECT_PTRS:
            raise VfsError(f"an inode holds exactly {NUM_DIRECT_PTRS} direct pointers")
        return _pack(
            _INODE_FORMAT,
            "inode",
            self.mode,
            self.uid,
            self.gid,
            self.blocks,
            self.size,
            *self.direct,
            self.indirect,
            self.atime,
            self.mtime,
            self.ctime,
        )

    @classmethod
    def unpack(cls, data: bytes) -> Inode:
        values = _unpack(_INODE_FORMAT, "inode", data)
        mode, uid, gid, blocks, size = values[:5]
        direct = list(values[5 : 5 + NUM_DIRECT_PTRS])
        indirect, atime, mtime, ctime = values[5 + NUM_DIRECT_PTRS :]
        return cls(mode, uid, gid, blocks, size, direct, indirect, atime, mtime, ctime)


@dataclass
class DirEntry:
    """A directory entry linking a name to an inode number."""

    inode: int = 0
    name: str = ""

    def pack(self) -> bytes:
        raw = self.name.encode("utf-8", "surrogateescape")[:FILENAME_MAX_LEN]
        return _pack(_DIR_ENTRY_FORMAT, "directory entry", self.inode, raw)

    @classmethod
    def unpack(cls, data: bytes) -> DirEntry:
        inode, raw = _unpack(_DIR_ENTRY_FORMAT, "directory entry", data)
        name = raw.split(b"\0", 1)[0].decode("utf-8", "surrogateescape")
        return cls(inode, name)