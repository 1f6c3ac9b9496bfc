"""Fixed-size block access to an image file."""

from __future__ import annotations

import os

from vfsimage.layout import BLOCK_SIZE, VfsError


def read_block(image_path: str | os.PathLike, block_number: int) -> bytes:
    """Return the contents of one block of the image."""
    if block_number < 0:
        raise VfsError(f"invalid block number {block_number}")
    try:
        with open(image_path, "rb") as image:
            image.seek(block_number * BLOCK_SIZE)
            data = image.read(BLOCK_SIZE)
    except OSError as exc:
        raise VfsError(f"cannot read block {block_number} of {image_path}: {exc}") from exc
    if len(data) != BLOCK_SIZE:
        raise VfsError(f"short read of block {block_number} of {image_path}")
    return data


def write_block(image_path: str | os.PathLike, block_number: int, data: bytes) -> None:
    """Overwrite one block of an existing image."""
    if block_number < 0:
        raise VfsError(f"invalid block number {block_number}")
    data = bytes(data)
    if len(data) != BLOCK_SIZE:
        raise VfsError(f"a block holds {BLOCK_SIZE} bytes, got {len(data)}")
    try:
        with open(image_path, "r+b") as image:
            image.seek(block_number * BLOCK_SIZE)
            written = image.write(data)
    except OSError as exc:
        raise VfsError(f"cannot write block {block_number} of {image_path}: {exc}") from exc
    if written != BLOCK_SIZE:
        raise VfsError(f"short write of block {block_number} of {image_path}")


def create_block_device(
    image_path: str | os.PathLike, total_blocks: int, block_size: int
) -> None:
    """Create a new zero-filled image; fails if the file already exists."""
    zero = bytes(block_size)
    try:
        fd = os.open(image_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        with os.fdopen(fd, "wb") as image:
            for _ in range(total_blocks):
                image.write(zero)
    except OSError as exc:
        raise VfsError(f"cannot create image {image_path}: {exc}") from exc