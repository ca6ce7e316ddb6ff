[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sqfsread"
version = "0.6.1"
description = "Building blocks for reading SquashFS images: metadata tables, extended attributes, stat data, tree traversal and inode number mapping"
requires-python = ">=3.10"
dependencies = []
keywords = ["squashfs", "filesystem", "image", "xattr", "read-only", "fuse"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Filesystems",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["sqfsread"]

[tool.hatch.build.targets.sdist]
include = ["sqfsread", "tests"]

[tool.pytest.ini_options]
addopts = "-ra"
