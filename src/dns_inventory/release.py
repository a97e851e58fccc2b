# Copyright (c) 2024 ansible-dns-inventory Contributors
# MIT License

"""ansible-dns-inventory release metadata."""

from __future__ import annotations

__version__ = "0.3.0"
__author__ = "ansible-dns-inventory Contributors"
__codename__ = "Zonewalker"

# Version info tuple for programmatic comparison
VERSION_INFO = (0, 3, 0)
