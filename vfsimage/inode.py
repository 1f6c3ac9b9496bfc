"""Inode table access and block bookkeeping of files."""

from __future__ import annotations

import logging
import os
import struct
import time

from vfsimage.bitmap import bitmap_free_block, bitmap_set_first_free
from vfsimage.blockdev import read_block, write_block
from vfsimage.layout import (
    INODE_MODE_FILE,
    INODE_SIZE,
    INODES_PER_BLOCK,
    NUM_DIRECT_PTRS,
    NUM_INDIRECT_PTRS,
    ROOTDIR_INODE,
    Inode,
    VfsError,
)
from vfsimage.superblock import read_superblock, write_superblock

_log = logging.getLogger(__name__)

_POINTERS = struct.Struct(f"<{NUM_INDIRECT_PTRS}I")


def _read_pointers(image_path: str | os.PathLike, block_number: int) -> list[int]:
    return list(_POINTERS.unpack(read_block(image_path, block_number)))


def _write_pointers(image_path: str | os.PathLike, block_number: int, pointers: list[int]) -> None:
    write_block(image_path, block_number, _POINTERS.pack(*pointers))


def _inode_location(image_path: str | os.PathLike, inode_number: int) -> tuple[int, int]:
    sb = read_superblock(image_path)
    if inode_number < ROOTDIR_INODE or inode_number >= sb.inode_count:
        raise VfsError(f"invalid inode number ({inode_number})")
    block_index, slot = divmod(inode_number, INODES_PER_BLOCK)
    return sb.inode_start + block_index, slot * INODE_SIZE


def _current_ids() -> tuple[int, int]:
    uid = os.getuid() if hasattr(os, "getuid") else 0
    gid = os.getgid() if hasattr(os, "getgid") else 0
    return uid & 0xFFFF, gid & 0xFFFF


def _now() -> int:
    return int(time.time()) & 0xFFFFFFFF


def read_inode(image_path: str | os.PathLike, inode_number: int) -> Inode:
    """Read inode number inode_number from the inode table."""
    block_number, start = _inode_location(image_path, inode_number)
    block = read_block(image_path, block_number)
    return Inode.unpack(block[start : start + INODE_SIZE])


def write_inode(image_path: str | os.PathLike, inode_number: int, inode: Inode) -> None:
    """Store an inode at position inode_number of the inode table."""
    block_number, start = _inode_location(image_path, inode_number)
    block = bytearray(read_block(image_path, block_number))
    block[start : start + INODE_SIZE] = inode.pack()
    write_block(image_path, block_number, block)


def free_inode(image_path: str | os.PathLike, inode_number: int) -> bool:
    """Release a used inode; returns False if it was already free."""
    sb = read_superblock(image_path)
    if inode_number <= ROOTDIR_INODE or inode_number >= sb.inode_count:
        raise VfsError(f"invalid inode number ({inode_number})")

    if read_inode(image_path, inode_number).mode == 0:
        return False

    write_inode(image_path, inode_number, Inode())
    sb.free_inodes += 1
    write_superblock(image_path, sb)
    return True


def get_block_number_at(image_path: str | os.PathLike, inode: Inode, index: int) -> int:
    """Return the block number at position index of a file, or 0 if out of range."""
    if index >= inode.blocks:
        return 0
    if index < NUM_DIRECT_PTRS:
        return inode.direct[index]

    if inode.indirect == 0:
        raise VfsError(
            f"indirect block is 0, with index {index} and {inode.blocks} blocks"
        )
    indirect_index = index - NUM_DIRECT_PTRS
    if indirect_index >= NUM_INDIRECT_PTRS:
        raise VfsError(
            f"indirect index {indirect_index} is beyond {NUM_INDIRECT_PTRS} pointers"
        )
    return _read_pointers(image_path, inode.indirect)[indirect_index]


def create_empty_file_in_free_inode(image_path: str | os.PathLike, perms: int) -> int:
    """Initialise the first free inode as an empty regular file and return its number."""
    sb = read_superblock(image_path)
    if sb.free_inodes == 0:
        raise VfsError("no free inodes")

    for inode_nbr in range(ROOTDIR_INODE + 1, sb.inode_count):
        if read_inode(image_path, inode_nbr).mode != 0:
            continue
        uid, gid = _current_ids()
        now = _now()
        inode = Inode(
            mode=INODE_MODE_FILE | perms,
            uid=uid,
            gid=gid,
            atime=now,
            mtime=now,
            ctime=now,
        )
        write_inode(image_path, inode_nbr, inode)
        sb.free_inodes -= 1
        write_superblock(image_path, sb)
        return inode_nbr

    raise VfsError("no free inodes")


def inode_append_block(
    image_path: str | os.PathLike, inode: Inode, new_block_number: int
) -> None:
    """Append an already allocated block to the end of a file.

    The inode is updated in memory; the caller writes it back.
    """
    sb = read_superblock(image_path)
    if new_block_number < sb.data_start or new_block_number >= sb.total_blocks:
        raise VfsError(f"block {new_block_number} out of range for a file")

    for i, pointer in enumerate(inode.direct):
        if pointer == 0:
            inode.direct[i] = new_block_number
            inode.blocks += 1
            return

    if inode.indirect == 0:
        inode.indirect = bitmap_set_first_free(image_path)
        pointers = [0] * NUM_INDIRECT_PTRS
    else:
        pointers = _read_pointers(image_path, inode.indirect)

    try:
        slot = pointers.index(0)
    except ValueError:
        raise VfsError("the file has reached its block limit") from None

    pointers[slot] = new_block_number
    _write_pointers(image_path, inode.indirect, pointers)
    inode.blocks += 1


def _release(image_path: str | os.PathLike, block_number: int) -> None:
    try:
        bitmap_free_block(image_path, block_number)
    except VfsError as exc:
        _log.warning("could not free block %d: %s", block_number, exc)


def inode_trunc_data(image_path: str | os.PathLike, inode: Inode) -> None:
    """Free every data block of a file and reset its size.

    The inode is updated in memory; the caller writes it back.
    """
    for i, pointer in enumerate(inode.direct):
        if pointer != 0:
            _release(image_path, pointer)
            inode.direct[i] = 0

    if inode.indirect != 0:
        for pointer in _read_pointers(image_path, inode.indirect):
            if pointer != 0:
                _release(image_path, pointer)
        _release(image_path, inode.indirect)
        inode.indirect = 0

    inode.size = 0
    inode.blocks = 0
    now = _now()
    inode.mtime = now
    inode.atime = now