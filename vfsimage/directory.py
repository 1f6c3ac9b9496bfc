"""The root directory: entries, lookups and listing helpers."""

from __future__ import annotations

import logging
import os
import time

try:
    import grp
    import pwd
except ImportError:  # pragma: no cover - platforms without user databases
    grp = None
    pwd = None

from vfsimage.blockdev import read_block, write_block
from vfsimage.inode import get_block_number_at, read_inode
from vfsimage.layout import (
    DIR_ENTRIES_PER_BLOCK,
    DIR_ENTRY_SIZE,
    FILENAME_MAX_LEN,
    INODE_MODE_DIR,
    INODE_MODE_FILE,
    ROOTDIR_INODE,
    DirEntry,
    Inode,
    VfsError,
)

_log = logging.getLogger(__name__)

_ALLOWED_PUNCTUATION = frozenset("._-")


def str_file_type(mode: int) -> str:
    """Return 'd' for directories, '-' for regular files, '?' otherwise."""
    if mode & INODE_MODE_DIR == INODE_MODE_DIR:
        return "d"
    if mode & INODE_MODE_FILE == INODE_MODE_FILE:
        return "-"
    return "?"


def str_file_permissions(mode: int) -> str:
    """Return Unix-style permission letters such as 'rwxr-xr-x'."""
    return "".join(
        letter if mode & (1 << (8 - i)) else "-" for i, letter in enumerate("rwxrwxrwx")
    )


def str_user(uid: int) -> str:
    """Return the user name for uid, or the number itself if unknown."""
    if pwd is not None:
        try:
            return pwd.getpwuid(uid).pw_name
        except KeyError:
            pass
    return str(uid)


def str_group(gid: int) -> str:
    """Return the group name for gid, or the number itself if unknown."""
    if grp is not None:
        try:
            return grp.getgrgid(gid).gr_name
        except KeyError:
            pass
    return str(gid)


def str_timestamp(ts: int) -> str:
    """Format a Unix timestamp in local time."""
    return time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(ts))


def format_inode(inode: Inode, inode_nbr: int, filename: str) -> str:
    """Return one listing line describing a file."""
    return (
        f"{inode_nbr:4d} {str_file_type(inode.mode)}{str_file_permissions(inode.mode)} "
        f"{str_user(inode.uid):<10} {str_group(inode.gid):<10} "
        f"{inode.blocks:3d} {inode.size:8d} "
        f"{str_timestamp(inode.ctime)} {str_timestamp(inode.mtime)} "
        f"{str_timestamp(inode.atime)} {filename}"
    )


def name_is_valid(name: str | None) -> bool:
    """Check a file name: 1 to 27 ASCII letters, digits, '.', '_' or '-'."""
    if not name or len(name) >= FILENAME_MAX_LEN:
        return False
    return all(
        (c.isascii() and c.isalnum()) or c in _ALLOWED_PUNCTUATION for c in name
    )


def _name_key(name: str) -> bytes:
    return name.encode("utf-8", "surrogateescape")[:FILENAME_MAX_LEN].split(b"\0", 1)[0]


def _entries(block: bytes) -> list[DirEntry]:
    return [
        DirEntry.unpack(block[j * DIR_ENTRY_SIZE : (j + 1) * DIR_ENTRY_SIZE])
        for j in range(DIR_ENTRIES_PER_BLOCK)
    ]


def _root_blocks(image_path: str | os.PathLike):
    """Yield (block number, block bytes) for each data block of the root directory."""
    root = read_inode(image_path, ROOTDIR_INODE)
    for i in range(root.blocks):
        block_num = get_block_number_at(image_path, root, i)
        if block_num <= 0:
            raise VfsError(f"unexpected error looking up block {i} of the root directory")
        yield block_num, read_block(image_path, block_num)


def _store_entry(
    image_path: str | os.PathLike, block_num: int, block: bytes, slot: int, entry: DirEntry
) -> None:
    data = bytearray(block)
    data[slot * DIR_ENTRY_SIZE : (slot + 1) * DIR_ENTRY_SIZE] = entry.pack()
    write_block(image_path, block_num, data)


def dir_lookup(image_path: str | os.PathLike, filename: str) -> int:
    """Return the inode number named filename in the root directory, or 0."""
    key = _name_key(filename)
    for _, block in _root_blocks(image_path):
        for entry in _entries(block):
            if entry.inode != 0 and _name_key(entry.name) == key:
                return entry.inode
    return 0


def add_dir_entry(image_path: str | os.PathLike, filename: str, inode_number: int) -> None:
    """Add an entry to the first free slot of the root directory."""
    if not name_is_valid(filename):
        raise VfsError(f"invalid file name: {filename!r}")
    for block_num, block in _root_blocks(image_path):
        for slot, entry in enumerate(_entries(block)):
            if entry.inode == 0:
                _store_entry(image_path, block_num, block, slot, DirEntry(inode_number, filename))
                return
    raise VfsError("no space left in the directory")


def remove_dir_entry(image_path: str | os.PathLike, filename: str) -> bool:
    """Clear the entry named filename; returns False if there was none."""
    key = _name_key(filename)
    for block_num, block in _root_blocks(image_path):
        for slot, entry in enumerate(_entries(block)):
            if entry.inode != 0 and _name_key(entry.name) == key:
                _store_entry(image_path, block_num, block, slot, DirEntry())
                return True
    return False


def list_entries(image_path: str | os.PathLike) -> list[tuple[int, str, Inode]]:
    """Return (inode number, name, inode) of each file in the root directory.

    The '.' and '..' entries are left out; unreadable blocks and inodes are skipped.
    """
    root = read_inode(image_path, ROOTDIR_INODE)
    result = []
    for i in range(root.blocks):
        try:
            block_num = get_block_number_at(image_path, root, i)
            if block_num <= 0:
                raise VfsError(f"bad block at position {i}")
            block = read_block(image_path, block_num)
        except VfsError as exc:
            _log.warning("cannot read block %d of the directory: %s", i, exc)
            continue
        for entry in _entries(block):
            if entry.inode == 0 or entry.name in (".", ".."):
                continue
            try:
                inode = read_inode(image_path, entry.inode)
            except VfsError as exc:
                _log.warning("cannot read inode %d: %s", entry.inode, exc)
                continue
            result.append((entry.inode, entry.name, inode))
    return result