"""Creation of a new, empty filesystem image."""

from __future__ import annotations

import os

from vfsimage.bitmap import bitmap_set_first_free
from vfsimage.blockdev import create_block_device, write_block
from vfsimage.inode import write_inode
from vfsimage.layout import (
    BITS_PER_BLOCK,
    BLOCK_SIZE,
    DIR_ENTRIES_PER_BLOCK,
    INODE_MODE_DIR,
    INODES_PER_BLOCK,
    MAX_INODE_BLOCKS,
    ROOTDIR_INODE,
    VFS_MAX_BLOCKS,
    VFS_MIN_BLOCKS,
    DirEntry,
    Inode,
    Superblock,
    VfsError,
)
from vfsimage.superblock import read_superblock, write_superblock


def round_up_inodes(count: int) -> int:
    """Round an inode count up so the inode blocks are completely used."""
    return -(-count // INODES_PER_BLOCK) * INODES_PER_BLOCK


def init_superblock(
    image_path: str | os.PathLike, total_blocks: int, total_inodes: int
) -> Superblock:
    """Write a fresh superblock and mark the metadata blocks as used."""
    inode_blocks = total_inodes // INODES_PER_BLOCK
    bitmap_blocks = -(-total_blocks // BITS_PER_BLOCK)
    if bitmap_blocks > MAX_INODE_BLOCKS:
        raise VfsError(f"{total_blocks} blocks need more than {MAX_INODE_BLOCKS} bitmap blocks")

    superblock_blocks = 1
    inode_start = superblock_blocks
    bitmap_start = inode_start + inode_blocks
    data_start = bitmap_start + bitmap_blocks

    zeroes = [0] * MAX_INODE_BLOCKS
    zeroes[0] = BITS_PER_BLOCK - data_start
    for i in range(1, bitmap_blocks):
        zeroes[i] = BITS_PER_BLOCK

    sb = Superblock(
        total_blocks=total_blocks,
        superblock_blocks=superblock_blocks,
        inode_blocks=inode_blocks,
        bitmap_blocks=bitmap_blocks,
        free_blocks=total_blocks,
        inode_count=total_inodes,
        free_inodes=total_inodes,
        bitmap_zeroes=zeroes,
        inode_start=inode_start,
        bitmap_start=bitmap_start,
        data_start=data_start,
    )
    write_superblock(image_path, sb)

    for expected in range(data_start):
        if bitmap_set_first_free(image_path) != expected:
            raise VfsError("unexpected error while reserving metadata blocks")

    return read_superblock(image_path)


def create_root_dir(image_path: str | os.PathLike) -> None:
    """Create the root directory holding only the '.' and '..' entries."""
    sb = read_superblock(image_path)
    if sb.free_inodes == 0 or sb.free_blocks == 0:
        raise VfsError("no room left for the root directory")

    block_number = bitmap_set_first_free(image_path)

    entries = [DirEntry(ROOTDIR_INODE, "."), DirEntry(ROOTDIR_INODE, "..")]
    entries += [DirEntry()] * (DIR_ENTRIES_PER_BLOCK - len(entries))
    data = b"".join(entry.pack() for entry in entries).ljust(BLOCK_SIZE, b"\0")
    write_block(image_path, block_number, data)

    uid = os.getuid() & 0xFFFF if hasattr(os, "getuid") else 0
    gid = os.getgid() & 0xFFFF if hasattr(os, "getgid") else 0
    now = int(__import_time().time()) & 0xFFFFFFFF
    root = Inode(
        mode=INODE_MODE_DIR | 0o755,
        uid=uid,
        gid=gid,
        blocks=1,
        size=BLOCK_SIZE,
        atime=now,
        mtime=now,
        ctime=now,
    )
    root.direct[0] = block_number
    write_inode(image_path, ROOTDIR_INODE, root)

    sb = read_superblock(image_path)
    sb.free_inodes -= 1
    write_superblock(image_path, sb)


def __import_time():
    import time

    return time


def make_filesystem(
    image_path: str | os.PathLike, total_blocks: int, inode_count: int
) -> Superblock:
    """Create a new image file holding an empty filesystem."""
    if total_blocks < VFS_MIN_BLOCKS or total_blocks >= VFS_MAX_BLOCKS:
        raise VfsError(
            f"total blocks must be an integer between {VFS_MIN_BLOCKS} and {VFS_MAX_BLOCKS}"
        )
    if inode_count < INODES_PER_BLOCK or inode_count >= total_blocks:
        raise VfsError(
            f"inode count must be at least {INODES_PER_BLOCK} and below the block count"
        )

    create_block_device(image_path, total_blocks, BLOCK_SIZE)
    init_superblock(image_path, total_blocks, round_up_inodes(inode_count))
    create_root_dir(image_path)
    return read_superblock(image_path)