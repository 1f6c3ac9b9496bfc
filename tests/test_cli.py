import pytest

from vfsimage.cli import (
    LISTING_HEADER,
    cat_main,
    copy_main,
    info_main,
    ls_main,
    lsort_main,
    mkfs_main,
    rm_main,
    touch_main,
    trunc_main,
)
from vfsimage.directory import dir_lookup
from vfsimage.superblock import read_superblock


@pytest.fixture
def image(tmp_path):
    path = tmp_path / "disk.img"
    assert mkfs_main([str(path), "100", "32"]) == 0
    return str(path)


def _names_in_listing(text):
    return [line.split()[-1] for line in text.splitlines()[1:] if line.strip()]


def test_mkfs_creates_valid_image(image, capsys):
    sb = read_superblock(image)
    assert sb.total_blocks == 100
    assert sb.free_inodes == sb.inode_count - 1
    assert dir_lookup(image, ".") == 1


@pytest.mark.parametrize(
    "args",
    [
        ["x.img"],
        ["x.img", "10", "32"],
        ["x.img", "100", "5"],
        ["x.img", "100", "100"],
        ["x.img", "abc", "32"],
    ],
)
def test_mkfs_rejects_bad_arguments(tmp_path, args):
    args = [str(tmp_path / args[0])] + args[1:]
    assert mkfs_main(args) == 1
    assert not (tmp_path / "x.img").exists() or len(args) == 1


def test_mkfs_refuses_existing_file(image):
    assert mkfs_main([image, "100", "32"]) == 1


def test_info_prints_superblock_and_bitmap(image, capsys):
    capsys.readouterr()
    assert info_main([image]) == 0
    out = capsys.readouterr().out
    assert "Magic: 0x20250604" in out
    bitmap = out.split("Block bitmap:\n", 1)[1]
    sb = read_superblock(image)
    assert bitmap.count("#") == sb.total_blocks - sb.free_blocks
    assert bitmap.count("#") + bitmap.count(".") == sb.total_blocks


def test_info_fails_on_invalid_image(tmp_path):
    bogus = tmp_path / "bogus.img"
    bogus.write_bytes(bytes(4096))
    assert info_main([str(bogus)]) == 1


def test_touch_and_ls(image, capsys):
    assert touch_main([image, "zeta", "alpha", "mid"]) == 0
    capsys.readouterr()
    assert ls_main([image]) == 0
    out = capsys.readouterr().out
    assert out.splitlines()[0] == LISTING_HEADER
    assert _names_in_listing(out) == ["zeta", "alpha", "mid"]


def test_lsort_sorts_by_name(image, capsys):
    touch_main([image, "zeta", "alpha", "mid"])
    capsys.readouterr()
    assert lsort_main([image]) == 0
    assert _names_in_listing(capsys.readouterr().out) == ["alpha", "mid", "zeta"]


def test_touch_skips_invalid_and_existing_names(image, capsys):
    assert touch_main([image, "bad/name", "ok"]) == 0
    free_before = read_superblock(image).free_inodes
    assert touch_main([image, "ok"]) == 0
    err = capsys.readouterr().err
    assert "Invalid name: bad/name" in err
    assert read_superblock(image).free_inodes == free_before
    assert dir_lookup(image, "bad/name") == 0


def test_copy_and_cat_round_trip(image, tmp_path, capsysbinary):
    payload = bytes(range(256)) * 40 + b"tail!"
    host = tmp_path / "host.bin"
    host.write_bytes(payload)
    assert copy_main([image, str(host), "data.bin"]) == 0
    capsysbinary.readouterr()
    assert cat_main([image, "data.bin"]) == 0
    assert capsysbinary.readouterr().out == payload


def test_copy_rejects_existing_name(image, tmp_path):
    host = tmp_path / "h.txt"
    host.write_bytes(b"hello")
    assert copy_main([image, str(host), "h.txt"]) == 0
    assert copy_main([image, str(host), "h.txt"]) == 1


def test_copy_missing_host_file(image, tmp_path):
    assert copy_main([image, str(tmp_path / "nope"), "x"]) == 1
    assert dir_lookup(image, "x") == 0


def test_cat_missing_file_reports_error(image, capsys):
    assert cat_main([image, "ghost"]) == 0
    assert "ghost" in capsys.readouterr().err


def test_cat_directory_is_refused(image, capsys):
    assert cat_main([image, "."]) == 0
    assert "not a regular file" in capsys.readouterr().err


def test_trunc_empties_file(image, tmp_path, capsysbinary):
    host = tmp_path / "h.txt"
    host.write_bytes(b"x" * 3000)
    copy_main([image, str(host), "f"])
    free_after_copy = read_superblock(image).free_blocks
    assert trunc_main([image, "f"]) == 0
    assert read_superblock(image).free_blocks == free_after_copy + 3
    capsysbinary.readouterr()
    cat_main([image, "f"])
    assert capsysbinary.readouterr().out == b""


def test_rm_restores_resources(image, tmp_path, capsys):
    before = read_superblock(image)
    host = tmp_path / "big.bin"
    host.write_bytes(b"z" * (9 * 1024 + 7))
    assert copy_main([image, str(host), "big"]) == 0
    assert read_superblock(image).free_blocks < before.free_blocks
    capsys.readouterr()
    assert rm_main([image, "big"]) == 0
    assert "'big'" in capsys.readouterr().out
    after = read_superblock(image)
    assert after.free_blocks == before.free_blocks
    assert after.free_inodes == before.free_inodes
    assert dir_lookup(image, "big") == 0


@pytest.mark.parametrize(
    "main", [touch_main, cat_main, trunc_main, rm_main, ls_main, lsort_main, info_main, copy_main]
)
def test_usage_errors(main):
    assert main([]) == 1