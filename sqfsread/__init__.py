"""Building blocks for reading SquashFS images: tables, xattrs, stat data, traversal and inode mapping."""

__version__ = "0.6.1"