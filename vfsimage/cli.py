"""Command-line entry points for working with VFS images."""

from __future__ import annotations

import os
import sys
from typing import Callable, Sequence

from vfsimage.bitmap import format_bitmap_block
from vfsimage.blockdev import read_block
from vfsimage.data import inode_read_data, inode_write_data
from vfsimage.directory import (
    add_dir_entry,
    dir_lookup,
    format_inode,
    list_entries,
    name_is_valid,
    remove_dir_entry,
)
from vfsimage.inode import (
    create_empty_file_in_free_inode,
    free_inode,
    inode_trunc_data,
    read_inode,
    write_inode,
)
from vfsimage.layout import BLOCK_SIZE, DEFAULT_PERM, INODE_MODE_FILE, Inode, VfsError
from vfsimage.mkfs import make_filesystem
from vfsimage.superblock import format_superblock, read_superblock

EXIT_SUCCESS = 0
EXIT_FAILURE = 1

_CAT_CHUNK = 4096
_MAX_LISTED = 1024

LISTING_HEADER = (
    "Inode Perms     User       Group     Size Blocks     "
    "Created            Accessed           Modified           Name"
)


def _args(argv: Sequence[str] | None) -> list[str]:
    return list(sys.argv[1:] if argv is None else argv)


def _err(message: str) -> None:
    print(message, file=sys.stderr)


def _usage(prog: str, synopsis: str) -> int:
    _err(f"Usage: {prog} {synopsis}")
    return EXIT_FAILURE


def _check_image(image_path: str) -> bool:
    try:
        read_superblock(image_path)
    except VfsError as exc:
        _err(f"Error reading superblock: {exc}")
        return False
    return True


def _find_regular_file(image_path: str, filename: str) -> tuple[int, Inode] | None:
    """Look up filename and return its inode if it is a regular file."""
    try:
        inode_num = dir_lookup(image_path, filename)
    except VfsError:
        inode_num = 0
    if inode_num <= 0:
        _err(f"File '{filename}' not found")
        return None
    try:
        inode = read_inode(image_path, inode_num)
    except VfsError as exc:
        _err(f"Error reading inode of '{filename}': {exc}")
        return None
    if inode.mode & INODE_MODE_FILE != INODE_MODE_FILE:
        _err(f"'{filename}' is not a regular file")
        return None
    return inode_num, inode


def _for_each_file(
    prog: str, argv: Sequence[str] | None, action: Callable[[str, str], None]
) -> int:
    args = _args(argv)
    if len(args) < 2:
        return _usage(prog, "image file1 [file2...]")
    image_path, *filenames = args
    if not _check_image(image_path):
        return EXIT_FAILURE
    for filename in filenames:
        action(image_path, filename)
    return EXIT_SUCCESS


def _parse_count(text: str) -> int:
    try:
        return int(text)
    except ValueError:
        return 0


def mkfs_main(argv: Sequence[str] | None = None) -> int:
    """Create a new image: mkfs IMAGE TOTAL_BLOCKS INODE_COUNT."""
    args = _args(argv)
    if len(args) != 3:
        return _usage("vfs-mkfs", "<image_name> <total_blocks> <inode_count>")
    image_path = args[0]
    total_blocks = _parse_count(args[1])
    inode_count = _parse_count(args[2])
    try:
        make_filesystem(image_path, total_blocks, inode_count)
    except VfsError as exc:
        _err(f"Error: {exc}")
        return EXIT_FAILURE
    print(f"Block device created successfully: {image_path}")
    _err(f"Block device initialized successfully: {image_path}")
    return EXIT_SUCCESS


def info_main(argv: Sequence[str] | None = None) -> int:
    """Print the superblock and block bitmap of an image."""
    args = _args(argv)
    if len(args) != 1:
        return _usage("vfs-info", "image")
    image_path = args[0]
    try:
        sb = read_superblock(image_path)
    except VfsError as exc:
        _err(f"Error reading superblock: {exc}")
        return EXIT_FAILURE

    sys.stdout.write(format_superblock(sb))
    sys.stdout.write("\nBlock bitmap:\n")
    to_print = sb.total_blocks
    for i in range(sb.bitmap_blocks):
        try:
            buffer = read_block(image_path, sb.bitmap_start + i)
        except VfsError as exc:
            _err(f"Error reading bitmap block {i}: {exc}")
            return EXIT_FAILURE
        sys.stdout.write(format_bitmap_block(buffer, max(0, min(to_print, BLOCK_SIZE))))
        to_print -= BLOCK_SIZE
    return EXIT_SUCCESS


def copy_main(argv: Sequence[str] | None = None) -> int:
    """Copy a host file into the image: copy IMAGE SOURCE DEST_NAME."""
    args = _args(argv)
    if len(args) != 3:
        return _usage("vfs-copy", "image source_file dest_name")
    image_path, host_file, dest_name = args

    if not _check_image(image_path):
        return EXIT_FAILURE
    if not name_is_valid(dest_name):
        _err(f"Invalid name: {dest_name}")
        return EXIT_FAILURE
    try:
        exists = dir_lookup(image_path, dest_name) != 0
    except VfsError:
        exists = True
    if exists:
        _err(f"The name '{dest_name}' already exists in the directory")
        return EXIT_FAILURE

    try:
        with open(host_file, "rb") as source:
            perms = os.fstat(source.fileno()).st_mode & 0o777
            try:
                new_inode = create_empty_file_in_free_inode(image_path, perms)
            except VfsError as exc:
                _err(f"Error creating destination file in the image: {exc}")
                return EXIT_FAILURE
            try:
                add_dir_entry(image_path, dest_name, new_inode)
            except VfsError as exc:
                _err(f"Error adding directory entry for {dest_name}: {exc}")
                return EXIT_FAILURE

            offset = 0
            for chunk in iter(lambda: source.read(BLOCK_SIZE), b""):
                try:
                    inode_write_data(image_path, new_inode, chunk, offset)
                except VfsError as exc:
                    _err(
                        f"Error writing data to inode {new_inode}, "
                        f"{len(chunk)} bytes at offset {offset}: {exc}"
                    )
                    return EXIT_FAILURE
                offset += len(chunk)
    except OSError as exc:
        _err(f"Error ({exc.strerror or exc}) reading file {host_file}")
        return EXIT_FAILURE
    return EXIT_SUCCESS


def _touch_one(image_path: str, filename: str) -> None:
    if not name_is_valid(filename):
        _err(f"Invalid name: {filename}")
        return
    try:
        exists = dir_lookup(image_path, filename) != 0
    except VfsError:
        exists = True
    if exists:
        _err(f"The file '{filename}' already exists")
        return
    try:
        new_inode = create_empty_file_in_free_inode(image_path, DEFAULT_PERM)
    except VfsError as exc:
        _err(f"Error creating file '{filename}': {exc}")
        return
    try:
        add_dir_entry(image_path, filename, new_inode)
    except VfsError as exc:
        _err(f"Error adding entry for '{filename}': {exc}")
        try:
            free_inode(image_path, new_inode)
        except VfsError:
            pass
        return
    print(f"File '{filename}' created (inode {new_inode})")


def touch_main(argv: Sequence[str] | None = None) -> int:
    """Create empty files in the image."""
    return _for_each_file("vfs-touch", argv, _touch_one)


def _listing(prog: str, argv: Sequence[str] | None, sort: bool) -> int:
    args = _args(argv)
    if len(args) != 1:
        return _usage(prog, "image")
    image_path = args[0]
    if not _check_image(image_path):
        return EXIT_FAILURE
    try:
        entries = list_entries(image_path)
    except VfsError as exc:
        _err(f"Error reading root directory: {exc}")
        return EXIT_FAILURE
    if sort:
        entries = sorted(
            entries[:_MAX_LISTED],
            key=lambda item: item[1].encode("utf-8", "surrogateescape"),
        )
    print(LISTING_HEADER)
    for inode_nbr, name, inode in entries:
        print(format_inode(inode, inode_nbr, name))
    return EXIT_SUCCESS


def ls_main(argv: Sequence[str] | None = None) -> int:
    """List the root directory in on-disk order."""
    return _listing("vfs-ls", argv, sort=False)


def lsort_main(argv: Sequence[str] | None = None) -> int:
    """List the root directory sorted by name."""
    return _listing("vfs-lsort", argv, sort=True)


def _cat_one(image_path: str, filename: str) -> None:
    found = _find_regular_file(image_path, filename)
    if found is None:
        return
    inode_num, inode = found
    sys.stdout.flush()
    out = getattr(sys.stdout, "buffer", None)
    offset = 0
    remaining = inode.size
    while remaining > 0:
        try:
            chunk = inode_read_data(image_path, inode_num, min(remaining, _CAT_CHUNK), offset)
        except VfsError as exc:
            _err(f"Error reading file '{filename}': {exc}")
            break
        if not chunk:
            _err(f"Error reading file '{filename}'")
            break
        if out is not None:
            out.write(chunk)
        else:
            sys.stdout.write(chunk.decode("utf-8", "replace"))
        offset += len(chunk)
        remaining -= len(chunk)
    if out is not None:
        out.flush()


def cat_main(argv: Sequence[str] | None = None) -> int:
    """Write the contents of files in the image to standard output."""
    return _for_each_file("vfs-cat", argv, _cat_one)


def _trunc_one(image_path: str, filename: str) -> None:
    found = _find_regular_file(image_path, filename)
    if found is None:
        return
    inode_num, inode = found
    try:
        inode_trunc_data(image_path, inode)
    except VfsError as exc:
        _err(f"Error truncating file '{filename}': {exc}")
        return
    try:
        write_inode(image_path, inode_num, inode)
    except VfsError as exc:
        _err(f"Error updating inode of '{filename}': {exc}")
        return
    print(f"File '{filename}' truncated")


def trunc_main(argv: Sequence[str] | None = None) -> int:
    """Truncate files in the image to zero length."""
    return _for_each_file("vfs-trunc", argv, _trunc_one)


def _rm_one(image_path: str, filename: str) -> None:
    found = _find_regular_file(image_path, filename)
    if found is None:
        return
    inode_num, inode = found
    steps = (
        (lambda: remove_dir_entry(image_path, filename), "removing directory entry for"),
        (lambda: inode_trunc_data(image_path, inode), "freeing blocks of"),
        (lambda: free_inode(image_path, inode_num), "freeing inode of"),
    )
    for step, what in steps:
        try:
            step()
        except VfsError as exc:
            _err(f"Error {what} '{filename}': {exc}")
            return
    print(f"File '{filename}' removed")


def rm_main(argv: Sequence[str] | None = None) -> int:
    """Remove files from the image."""
    return _for_each_file("vfs-rm", argv, _rm_one)