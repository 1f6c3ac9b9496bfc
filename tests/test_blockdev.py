import os

import pytest

from vfsimage.blockdev import create_block_device, read_block, write_block
from vfsimage.layout import BLOCK_SIZE, VfsError


@pytest.fixture
def image(tmp_path):
    path = tmp_path / "disk.img"
    create_block_device(path, 8, BLOCK_SIZE)
    return path


def test_create_has_expected_size(image):
    assert os.path.getsize(image) == 8 * BLOCK_SIZE


def test_new_blocks_are_zero(image):
    assert read_block(image, 3) == bytes(BLOCK_SIZE)


def test_write_then_read_round_trip(image):
    payload = bytes(range(256)) * (BLOCK_SIZE // 256)
    write_block(image, 5, payload)
    assert read_block(image, 5) == payload
    assert read_block(image, 4) == bytes(BLOCK_SIZE)
    assert read_block(image, 6) == bytes(BLOCK_SIZE)


def test_write_keeps_file_size(image):
    write_block(image, 0, b"\xff" * BLOCK_SIZE)
    assert os.path.getsize(image) == 8 * BLOCK_SIZE


def test_create_refuses_existing_file(image):
    with pytest.raises(VfsError):
        create_block_device(image, 8, BLOCK_SIZE)


def test_read_past_end_raises(image):
    with pytest.raises(VfsError):
        read_block(image, 8)


def test_read_negative_block_raises(image):
    with pytest.raises(VfsError):
        read_block(image, -1)


def test_write_wrong_length_raises(image):
    with pytest.raises(VfsError):
        write_block(image, 1, b"short")


def test_missing_image_raises(tmp_path):
    missing = tmp_path / "nothing.img"
    with pytest.raises(VfsError):
        read_block(missing, 0)
    with pytest.raises(VfsError):
        write_block(missing, 0, bytes(BLOCK_SIZE))
    assert not missing.exists()