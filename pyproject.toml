[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "vfsimage"
version = "0.1.0"
description = "Create and manage a simple block-based virtual filesystem stored in an image file"
requires-python = ">=3.10"
dependencies = []
keywords = ["filesystem", "inode", "bitmap", "disk-image", "block-device"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Filesystems",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
vfs-mkfs = "vfsimage.cli:mkfs_main"
vfs-info = "vfsimage.cli:info_main"
vfs-copy = "vfsimage.cli:copy_main"
vfs-touch = "vfsimage.cli:touch_main"
vfs-ls = "vfsimage.cli:ls_main"
vfs-lsort = "vfsimage.cli:lsort_main"
vfs-cat = "vfsimage.cli:cat_main"
vfs-trunc = "vfsimage.cli:trunc_main"
vfs-rm = "vfsimage.cli:rm_main"

[tool.hatch.build.targets.wheel]
packages = ["vfsimage"]

[tool.pytest.ini_options]
addopts = "-ra"
