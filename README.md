# vfsimage

A small virtual filesystem that lives inside a single image file. The image
is made of 1024-byte blocks:

- block 0 holds the superblock,
- then come the inode blocks (64-byte inodes, 16 per block; inode 0 is
  unused and inode 1 is the root directory),
- then the block bitmap (one bit per block, `1` = used),
- then the data blocks.

There is a single, flat root directory. Each file has 7 direct block pointers
plus one indirect block of 256 pointers, so a file holds at most
263 blocks (269,312 bytes).

The package has no dependencies outside the standard library.

## Installation

```
pip install .
```

## Commands

| Command | Purpose |
|---|---|
| `vfs-mkfs IMAGE TOTAL_BLOCKS INODE_COUNT` | Create a new image file holding an empty filesystem |
| `vfs-info IMAGE` | Show the superblock and a map of used (`#`) and free (`.`) blocks, 64 per row |
| `vfs-copy IMAGE HOST_FILE NAME` | Copy a file from the host into the image, keeping its permission bits |
| `vfs-touch IMAGE NAME [NAME...]` | Create empty files with permissions `rw-r-----` |
| `vfs-ls IMAGE` | List the root directory in on-disk order |
| `vfs-lsort IMAGE` | List the root directory sorted by name |
| `vfs-cat IMAGE NAME [NAME...]` | Write file contents to standard output |
| `vfs-trunc IMAGE NAME [NAME...]` | Truncate files to zero length, freeing their blocks |
| `vfs-rm IMAGE NAME [NAME...]` | Remove files, freeing their blocks and inodes |

Every command exits with status 0 on success and 1 on a usage error or when
the image cannot be read. Commands that take several names report a problem
with one name on standard error and go on with the next.

`vfs-mkfs` refuses to overwrite an existing file. `TOTAL_BLOCKS` must be at
least 50 and below 65536. `INODE_COUNT` must be at least 16 and below
`TOTAL_BLOCKS`; it is then rounded up to fill whole inode blocks.

File names are 1 to 27 characters made of ASCII letters, digits, `.`, `_`
and `-`.

Each line of `vfs-ls` and `vfs-lsort` shows the inode number, type and
permissions, owner, group, block count, size in bytes, then the creation,
modification and access times in local time, and the name.

## Example

```
vfs-mkfs disk.img 200 64
vfs-touch disk.img empty.txt
vfs-copy disk.img notes.txt notes.txt
vfs-lsort disk.img
vfs-cat disk.img notes.txt
vfs-trunc disk.img notes.txt
vfs-rm disk.img notes.txt empty.txt
vfs-info disk.img
```

## Library use

```python
from vfsimage.mkfs import make_filesystem
from vfsimage.inode import create_empty_file_in_free_inode
from vfsimage.directory import add_dir_entry, dir_lookup, list_entries
from vfsimage.data import inode_write_data, inode_read_data

make_filesystem("disk.img", 200, 64)
ino = create_empty_file_in_free_inode("disk.img", 0o640)
add_dir_entry("disk.img", "hello.txt", ino)
inode_write_data("disk.img", dir_lookup("disk.img", "hello.txt"), b"hello", 0)
print(inode_read_data("disk.img", ino, 5, 0))   # b'hello'
for number, name, inode in list_entries("disk.img"):
    print(number, name, inode.size)
```

The modules:

- `vfsimage.layout` – constants, `Superblock`, `Inode` and `DirEntry` with
  `pack()` / `unpack()`, and `VfsError`.
- `vfsimage.blockdev` – `read_block`, `write_block`, `create_block_device`.
- `vfsimage.superblock` – `read_superblock`, `write_superblock`,
  `format_superblock`.
- `vfsimage.bitmap` – `bitmap_set_first_free`, `bitmap_free_block`,
  `format_bitmap_block`.
- `vfsimage.inode` – `read_inode`, `write_inode`, `free_inode`,
  `get_block_number_at`, `create_empty_file_in_free_inode`,
  `inode_append_block`, `inode_trunc_data`.
- `vfsimage.data` – `inode_write_data`, `inode_read_data`.
- `vfsimage.mkfs` – `make_filesystem`, `init_superblock`, `create_root_dir`,
  `round_up_inodes`.
- `vfsimage.directory` – `dir_lookup`, `add_dir_entry`, `remove_dir_entry`,
  `list_entries`, `name_is_valid`, `format_inode` and the `str_*` helpers.
- `vfsimage.cli` – the `*_main` functions behind the commands.

Failures raise `vfsimage.layout.VfsError`. `inode_append_block` and
`inode_trunc_data` change the `Inode` in memory only; write it back with
`write_inode`.

## What it does not do

- There are no subdirectories: only the root directory exists.
- The root directory never grows past its single block of 32 entries, two of
  which are `.` and `..`, so it holds at most 30 files.
- There is no command to rename files or to copy a file from the image back to
  a host file other than through `vfs-cat`.
- The filesystem cannot be mounted; it is reached only through this package.
- There is no consistency checker and no locking; concurrent writers to one
  image are not supported.