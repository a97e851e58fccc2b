# Copyright (c) 2024 ansible-dns-inventory Contributors
# MIT License

"""
ansible-dns-inventory: Ansible dynamic inventory from DNS TXT records.

Builds a hierarchical Ansible inventory out of host attributes published as
DNS TXT records (or stored in etcd) and exports it in several shapes.

Features:
    - DNS zone transfer (AXFR, optional TSIG) and no-transfer modes
    - etcd datasource with bulk record import
    - Deterministic group tree: environment > role > service chain
    - Ansible JSON, host/group maps, raw attributes and tree exports

This package exposes release metadata; see ``dns_inventory.cli.inventory``
for the command line entry point.
"""

from __future__ import annotations

from dns_inventory.release import __version__, __author__, __codename__

__all__ = [
    "__version__",
    "__author__",
    "__codename__",
]
