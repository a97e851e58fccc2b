"""
Inventory Exporters

Flat views of a sorted inventory tree, ready for JSON/YAML encoding.
"""

from typing import Dict, List, Set

from dns_inventory.inventory.tree import Node


def export_inventory(tree: Node) -> Dict[str, Dict[str, List[str]]]:
    """
    Export the tree as an Ansible dynamic inventory.

    Every group maps to ``{"children": [...], "hosts": [...]}``; empty lists
    are left out.
    """
    inventory: Dict[str, Dict[str, List[str]]] = {}

    for node in tree.walk():
        group: Dict[str, List[str]] = {}

        children = sorted(child.name for child in node.children)
        if children:
            group['children'] = children

        if node.hosts:
            group['hosts'] = sorted(node.hosts)

        inventory[node.name] = group

    return inventory


def export_hosts(tree: Node) -> Dict[str, List[str]]:
    """
    Export the tree as a map of hosts and the groups they belong to.

    A host placed directly in several groups collects the names of all of
    them and of their ancestors.
    """
    collected: Dict[str, Set[str]] = {}

    for node in tree.walk():
        if not node.hosts:
            continue

        names = {node.name}
        names.update(ancestor.name for ancestor in node.get_ancestors())

        for host in node.hosts:
            collected.setdefault(host, set()).update(names)

    return {host: sorted(names) for host, names in sorted(collected.items())}


def export_groups(tree: Node) -> Dict[str, List[str]]:
    """Export the tree as a map of groups and every host they contain."""
    return {node.name: sorted(node.get_all_hosts()) for node in tree.walk()}
