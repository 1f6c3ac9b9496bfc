"""Allocation bitmap of data blocks."""

from __future__ import annotations

import os

from vfsimage.blockdev import read_block, write_block
from vfsimage.layout import BITS_PER_BLOCK, BLOCK_SIZE, VfsError
from vfsimage.superblock import read_superblock, write_superblock

_ROW_WIDTH = 64


def _bit_mask(bit_index: int) -> int:
    return 0x80 >> bit_index


def bitmap_free_block(image_path: str | os.PathLike, block_nbr: int) -> bool:
    """Mark a data block free and zero its contents.

    Returns False when the block was already free, True otherwise.
    """
    sb = read_superblock(image_path)
    if block_nbr <= sb.data_start or block_nbr >= sb.total_blocks:
        raise VfsError(f"invalid block number ({block_nbr})")

    offset, in_block_bit = divmod(block_nbr, BITS_PER_BLOCK)
    byte_index, bit_index = divmod(in_block_bit, 8)
    mask = _bit_mask(bit_index)

    bitmap_block_num = sb.bitmap_start + offset
    bitmap = bytearray(read_block(image_path, bitmap_block_num))
    if not bitmap[byte_index] & mask:
        return False

    bitmap[byte_index] &= ~mask & 0xFF
    write_block(image_path, bitmap_block_num, bitmap)
    write_block(image_path, block_nbr, bytes(BLOCK_SIZE))

    sb.bitmap_zeroes[offset] += 1
    sb.free_blocks += 1
    write_superblock(image_path, sb)
    return True


def bitmap_set_first_free(image_path: str | os.PathLike) -> int:
    """Mark the first free block as used and return its number."""
    sb = read_superblock(image_path)
    if sb.free_blocks == 0:
        raise VfsError("no free blocks")

    offset = next(
        (i for i, zeroes in enumerate(sb.bitmap_zeroes[: sb.bitmap_blocks]) if zeroes > 0),
        None,
    )
    if offset is None:
        raise VfsError("inconsistency: bitmap_zeroes shows no free blocks")

    bitmap_block_num = sb.bitmap_start + offset
    bitmap = bytearray(read_block(image_path, bitmap_block_num))

    byte_index = next((i for i, byte in enumerate(bitmap) if byte != 0xFF), None)
    if byte_index is None:
        raise VfsError("inconsistency: bitmap is full but metadata shows free space")

    bit_index = 8 - (~bitmap[byte_index] & 0xFF).bit_length()
    bitmap[byte_index] |= _bit_mask(bit_index)

    block_number = offset * BITS_PER_BLOCK + byte_index * 8 + bit_index
    if block_number >= sb.total_blocks:
        raise VfsError("block number out of range")

    write_block(image_path, bitmap_block_num, bitmap)
    sb.bitmap_zeroes[offset] -= 1
    sb.free_blocks -= 1
    write_superblock(image_path, sb)
    return block_number


def format_bitmap_block(buffer: bytes, size: int) -> str:
    """Render the first size bits of a bitmap, '#' used and '.' free, 64 per row."""
    cells = "".join(
        "#" if buffer[i // 8] & _bit_mask(i % 8) else "." for i in range(size)
    )
    rows = [cells[start : start + _ROW_WIDTH] for start in range(0, len(cells), _ROW_WIDTH)]
    return "".join(row + "\n" for row in rows)