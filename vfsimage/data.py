"""Reading and writing file contents through an inode."""

from __future__ import annotations

import os
import time

from vfsimage.bitmap import bitmap_set_first_free
from vfsimage.blockdev import read_block, write_block
from vfsimage.inode import get_block_number_at, inode_append_block, read_inode, write_inode
from vfsimage.layout import BLOCK_SIZE, NUM_DIRECT_PTRS, NUM_INDIRECT_PTRS, Inode, VfsError
from vfsimage.superblock import read_superblock

MAX_FILE_SIZE = (NUM_DIRECT_PTRS + NUM_INDIRECT_PTRS) * BLOCK_SIZE


def _block_of(image_path: str | os.PathLike, inode: Inode, index: int) -> int:
    block_num = get_block_number_at(image_path, inode, index)
    if block_num <= 0:
        raise VfsError(f"unexpected error getting block {index} of the file")
    return block_num


def _spans(offset: int, length: int):
    """Yield (file block index, offset in block, count) covering a byte range."""
    index, start = divmod(offset, BLOCK_SIZE)
    remaining = length
    while remaining > 0:
        count = min(remaining, BLOCK_SIZE - start)
        yield index, start, count
        remaining -= count
        index += 1
        start = 0


def inode_write_data(
    image_path: str | os.PathLike, inode_number: int, data: bytes, offset: int
) -> int:
    """Write data into a file at offset, allocating blocks as needed.

    Returns the number of bytes written.
    """
    inode = read_inode(image_path, inode_number)
    data = bytes(data)
    final_size = offset + len(data)
    if final_size > MAX_FILE_SIZE:
        raise VfsError("write exceeds the maximum file size")

    sb = read_superblock(image_path)
    required_blocks = -(-final_size // BLOCK_SIZE)
    if required_blocks > inode.blocks:
        to_allocate = required_blocks - inode.blocks
        if to_allocate > sb.free_blocks:
            raise VfsError(f"not enough free blocks ({to_allocate} required)")
        for _ in range(to_allocate):
            inode_append_block(image_path, inode, bitmap_set_first_free(image_path))

    position = 0
    for index, start, count in _spans(offset, len(data)):
        block_num = _block_of(image_path, inode, index)
        block = bytearray(read_block(image_path, block_num))
        block[start : start + count] = data[position : position + count]
        write_block(image_path, block_num, block)
        position += count

    inode.size = max(inode.size, final_size)
    now = int(time.time()) & 0xFFFFFFFF
    inode.mtime = now
    inode.atime = now
    write_inode(image_path, inode_number, inode)
    return len(data)


def inode_read_data(
    image_path: str | os.PathLike, inode_number: int, length: int, offset: int
) -> bytes:
    """Read up to length bytes of a file starting at offset."""
    inode = read_inode(image_path, inode_number)
    if offset >= inode.size:
        raise VfsError("offset beyond the file size")
    length = min(length, inode.size - offset)

    chunks = []
    for index, start, count in _spans(offset, length):
        block = read_block(image_path, _block_of(image_path, inode, index))
        chunks.append(block[start : start + count])

    inode.atime = int(time.time()) & 0xFFFFFFFF
    write_inode(image_path, inode_number, inode)
    return b"".join(chunks)