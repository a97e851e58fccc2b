"""
Inventory Tree

A rooted tree of Ansible groups. The root is the ``all`` group; every other
node is created on demand while host attributes are imported.

Lifecycle: a tree is built by ``import_hosts()`` and frozen by
``sort_children()``; exports expect a sorted tree and nothing mutates it
afterwards.
"""

import weakref
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

from dns_inventory.inventory.attributes import HostAttributes


# Ansible root group name
ROOT_GROUP = 'all'
# Name element of the per-environment host/OS groups
HOST_GROUP = 'host'


class Node:
    """Represents an inventory group: child groups plus member hosts."""

    def __init__(self, name: str, parent: Optional['Node'] = None):
        """
        Initialize a Node.

        Args:
            name: Group name
            parent: Parent group; kept as a weak reference
        """
        self.name = name
        self._parent: Optional['weakref.ReferenceType[Node]'] = (
            weakref.ref(parent) if parent is not None else None
        )
        self._children: List['Node'] = []
        self._index: Dict[str, 'Node'] = {}
        self.hosts: Set[str] = set()

    @classmethod
    def root(cls) -> 'Node':
        """Create an empty tree."""
        return cls(ROOT_GROUP)

    @property
    def parent(self) -> Optional['Node']:
        """Return the parent group, or None for the root."""
        if self._parent is None:
            return None
        return self._parent()

    @property
    def children(self) -> List['Node']:
        """Return child groups in their current order."""
        return list(self._children)

    def get_child(self, name: str) -> Optional['Node']:
        return self._index.get(name)

    def add_child(self, name: str) -> 'Node':
        """
        Return the child called ``name``, creating it if necessary.

        A node never gets a child named like itself: asking for one returns
        the node.
        """
        if name == self.name:
            return self

        child = self._index.get(name)
        if child is None:
            child = Node(name, parent=self)
            self._children.append(child)
            self._index[name] = child

        return child

    def add_host(self, host: str) -> None:
        """Add a host to this group."""
        self.hosts.add(host)

    def import_hosts(self, hosts: Mapping[str, Iterable[HostAttributes]], sep: str) -> None:
        """
        Load hosts and their (expanded) attributes into the tree under this node.

        For every attribute set a host is placed under its own environment and
        under the ``all`` environment:

            env > env_role > env_role_srv1 > ... > env_role_srv1_..._srvN
            env > env_host > env_host_os

        Under the ``all`` environment only the first service element is used
        for hosts of other environments.

        Args:
            hosts: Hostname to list of single-role, single-service attributes
            sep: Group name separator
        """
        for host, attr_list in hosts.items():
            for attrs in attr_list:
                envs = [attrs.env]
                if attrs.env != ROOT_GROUP:
                    envs.append(ROOT_GROUP)

                for env in envs:
                    # root > environment
                    env_node = self.add_child(env)

                    # root > environment > role
                    group_name = env + sep + attrs.role
                    group_node = env_node.add_child(group_name)

                    # root > environment > role > service[1] > ... > service[N]
                    for i, srv in enumerate(attrs.srv.split(sep)):
                        if srv and (i == 0 or env != ROOT_GROUP or attrs.env == ROOT_GROUP):
                            group_name = group_name + sep + srv
                            group_node = group_node.add_child(group_name)

                    group_node.add_host(host)

                    host_group = env + sep + HOST_GROUP
                    env_node.add_child(host_group).add_child(host_group + sep + attrs.os).add_host(host)

    def get_ancestors(self) -> List['Node']:
        """Return ancestor groups, nearest first, ending with the root."""
        ancestors = []
        node = self.parent
        while node is not None:
            ancestors.append(node)
            node = node.parent
        return ancestors

    def get_all_hosts(self) -> Set[str]:
        """Return the hosts of this group and of all descendant groups."""
        result: Set[str] = set()
        self._collect_hosts(result)
        return result

    def _collect_hosts(self, result: Set[str]) -> None:
        result.update(self.hosts)
        for child in self._children:
            child._collect_hosts(result)

    def sort_children(self) -> None:
        """Sort child groups by name, recursively."""
        self._children.sort(key=lambda node: node.name)
        for child in self._children:
            child.sort_children()

    def walk(self) -> Iterable['Node']:
        """Yield this node and its descendants, pre-order."""
        yield self
        for child in self._children:
            yield from child.walk()

    def to_dict(self) -> Dict[str, Any]:
        """Export this subtree as nested dicts (tree export mode)."""
        return {
            'name': self.name,
            'children': [child.to_dict() for child in self._children],
            'hosts': sorted(self.hosts),
        }

    def __repr__(self) -> str:
        return f"Node({self.name!r}, hosts={len(self.hosts)}, children={len(self._children)})"
