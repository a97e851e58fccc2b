"""
Output Formatting

Encoders for exported inventory maps:

- json: compact JSON
- yaml: block-style YAML
- yaml-list: one ``"key": ["value", ...]`` line per entry
- yaml-csv: one ``"key": "value,..."`` line per entry
- yaml-flow: one ``"host": [{attributes}, ...]`` line per host (attributes only)

Line-oriented formats are valid YAML and keep large inventories grep-able.
"""

import json
from typing import Any, Dict, List, Mapping, Sequence

import yaml

from dns_inventory.config import KeysConfig
from dns_inventory.errors import FormatError
from dns_inventory.inventory.attributes import HostAttributes, attributes_to_dict


FORMATS = ('json', 'yaml', 'yaml-list', 'yaml-csv', 'yaml-flow')


def attributes_map(
    hosts: Mapping[str, Sequence[HostAttributes]],
    keys: KeysConfig,
) -> Dict[str, List[Dict[str, str]]]:
    """Convert a host -> attributes map into plain dicts keyed by configured names."""
    return {
        host: [attributes_to_dict(attrs, keys) for attrs in attr_list]
        for host, attr_list in sorted(hosts.items())
    }


def to_json(value: Any) -> str:
    return json.dumps(value, sort_keys=True)


def to_yaml(value: Any) -> str:
    return yaml.safe_dump(value, default_flow_style=False, sort_keys=True)


def to_flow_lines(value: Mapping[str, Sequence[Any]], format_name: str) -> str:
    """
    Encode a map one entry per line.

    Args:
        value: host/group -> list of names, or host -> list of attribute dicts
        format_name: yaml-list, yaml-csv or yaml-flow
    """
    lines = []

    for key in sorted(value):
        items = value[key]
        if format_name == 'yaml-list':
            encoded = json.dumps([str(item) for item in items], separators=(',', ':'))
        elif format_name == 'yaml-csv':
            encoded = json.dumps(','.join(str(item) for item in items))
        elif format_name == 'yaml-flow':
            encoded = '[' + ','.join(json.dumps(item) for item in items) + ']'
        else:
            raise FormatError(format_name)
        lines.append(f"{json.dumps(key)}: {encoded}")

    return '\n'.join(lines) + ('\n' if lines else '')


def marshal(value: Any, format_name: str) -> str:
    """
    Encode an exported map.

    Raises:
        FormatError: Unknown format
    """
    if format_name == 'json':
        return to_json(value)
    if format_name == 'yaml':
        return to_yaml(value)
    if format_name in ('yaml-list', 'yaml-csv', 'yaml-flow'):
        return to_flow_lines(value, format_name)

    raise FormatError(format_name)
