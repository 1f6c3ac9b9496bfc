import pytest

from vfsimage.bitmap import bitmap_free_block, bitmap_set_first_free, format_bitmap_block
from vfsimage.blockdev import create_block_device, read_block, write_block
from vfsimage.layout import BITS_PER_BLOCK, BLOCK_SIZE, MAX_INODE_BLOCKS, Superblock, VfsError
from vfsimage.superblock import read_superblock, write_superblock

DATA_START = 3


def _make_image(path, total_blocks):
    create_block_device(path, total_blocks, BLOCK_SIZE)
    zeroes = [BITS_PER_BLOCK - DATA_START] + [0] * (MAX_INODE_BLOCKS - 1)
    sb = Superblock(
        total_blocks=total_blocks,
        inode_blocks=1,
        bitmap_blocks=1,
        free_blocks=total_blocks,
        inode_count=16,
        free_inodes=16,
        bitmap_zeroes=zeroes,
        inode_start=1,
        bitmap_start=2,
        data_start=DATA_START,
    )
    write_superblock(path, sb)
    return path


@pytest.fixture
def image(tmp_path):
    path = _make_image(tmp_path / "disk.img", 100)
    for _ in range(DATA_START):
        bitmap_set_first_free(path)
    return path


def test_allocation_is_sequential_from_zero(tmp_path):
    path = _make_image(tmp_path / "disk.img", 100)
    got = [bitmap_set_first_free(path) for _ in range(DATA_START + 2)]
    assert got == list(range(DATA_START + 2))


def test_allocation_updates_counters(image):
    before = read_superblock(image)
    bitmap_set_first_free(image)
    after = read_superblock(image)
    assert after.free_blocks == before.free_blocks - 1
    assert after.bitmap_zeroes[0] == before.bitmap_zeroes[0] - 1


def test_allocation_sets_bitmap_bit(image):
    block = bitmap_set_first_free(image)
    assert block == DATA_START
    sb = read_superblock(image)
    bitmap = read_block(image, sb.bitmap_start)
    assert (bitmap[block // 8] >> (7 - block % 8)) & 1 == 1
    assert bitmap[0] == 0xF0


def test_free_then_reallocate_same_block(image):
    bitmap_set_first_free(image)
    second = bitmap_set_first_free(image)
    before = read_superblock(image)
    assert bitmap_free_block(image, second) is True
    freed = read_superblock(image)
    assert freed.free_blocks == before.free_blocks + 1
    assert freed.bitmap_zeroes[0] == before.bitmap_zeroes[0] + 1
    assert bitmap_set_first_free(image) == second
    assert read_superblock(image) == before


def test_free_zeroes_block_contents(image):
    bitmap_set_first_free(image)
    block = bitmap_set_first_free(image)
    write_block(image, block, b"\xaa" * BLOCK_SIZE)
    bitmap_free_block(image, block)
    assert read_block(image, block) == bytes(BLOCK_SIZE)


def test_free_already_free_block_is_noop(image):
    before = read_superblock(image)
    assert bitmap_free_block(image, DATA_START + 10) is False
    assert read_superblock(image) == before


@pytest.mark.parametrize("offset", [0, -1])
def test_free_at_or_below_data_start_raises(image, offset):
    with pytest.raises(VfsError):
        bitmap_free_block(image, DATA_START + offset)


def test_free_beyond_end_raises(image):
    total = read_superblock(image).total_blocks
    with pytest.raises(VfsError):
        bitmap_free_block(image, total)


def test_exhaustion_raises(tmp_path):
    path = _make_image(tmp_path / "small.img", 10)
    got = [bitmap_set_first_free(path) for _ in range(10)]
    assert got == list(range(10))
    assert read_superblock(path).free_blocks == 0
    with pytest.raises(VfsError):
        bitmap_set_first_free(path)


def test_out_of_range_allocation_raises(tmp_path):
    path = _make_image(tmp_path / "small.img", 10)
    for _ in range(10):
        bitmap_set_first_free(path)
    sb = read_superblock(path)
    sb.free_blocks = 5
    write_superblock(path, sb)
    bitmap_before = read_block(path, sb.bitmap_start)
    with pytest.raises(VfsError):
        bitmap_set_first_free(path)
    assert read_block(path, sb.bitmap_start) == bitmap_before


def test_format_single_bit():
    assert format_bitmap_block(bytes([0x80]), 8) == "#.......\n"


def test_format_empty():
    assert format_bitmap_block(bytes(BLOCK_SIZE), 0) == ""