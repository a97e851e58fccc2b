"""
Inventory Module

Host attribute parsing, record expansion, the inventory tree and its exports.
"""

from dns_inventory.inventory.attributes import AttributeParser, HostAttributes
from dns_inventory.inventory.expander import RecordFilter, expand
from dns_inventory.inventory.tree import Node
from dns_inventory.inventory.export import export_groups, export_hosts, export_inventory
from dns_inventory.inventory.manager import InventoryManager

__all__ = [
    'AttributeParser',
    'HostAttributes',
    'RecordFilter',
    'expand',
    'Node',
    'export_groups',
    'export_hosts',
    'export_inventory',
    'InventoryManager',
]
