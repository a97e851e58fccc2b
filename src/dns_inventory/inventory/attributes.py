"""
Host Attributes

Parses, validates and renders host attribute strings such as::

    OS=linux;ENV=dev;ROLE=app;SRV=tomcat_backend_auth;VARS=port=8080,debug=1

Separators and key names come from the ``txt`` configuration section and are
bound when an AttributeParser is created.
"""

import re
from dataclasses import dataclass
from typing import Dict, Mapping, Pattern

from dns_inventory.config import KeysConfig, TxtConfig, VarsConfig
from dns_inventory.errors import AttributeValidationError


# Attribute fields in record order
FIELDS = ('os', 'env', 'role', 'srv', 'vars')
# Fields that must not be blank
REQUIRED_FIELDS = ('os', 'env', 'role')

# Printable ASCII
VARS_EXPRESSION = r'^[\x20-\x7e]*$'


@dataclass(frozen=True)
class HostAttributes:
    """
    Attributes of a host found in one host record.

    ``role`` and ``srv`` may hold comma-separated lists until the record is
    expanded (see ``dns_inventory.inventory.expander``).
    """

    os: str
    env: str
    role: str
    srv: str = ''
    vars: str = ''


def safety_expressions(separator: str) -> Dict[str, str]:
    """
    Build the attribute safety expressions for a group name separator.

    Group names are made of attribute values joined with the separator, so
    values are restricted to alphanumerics. ROLE and SRV may carry comma lists
    and SRV may carry the separator itself to describe a service chain. When
    the separator is ``-``, ``_`` is also accepted for compatibility with
    inventories created before the separator was configurable.
    """
    legacy = '_' if separator == '-' else ''
    base = '^[A-Za-z0-9' + legacy

    return {
        'os': base + ']*$',
        'env': base + ']*$',
        'role': base + ',]*$',
        'srv': base + ',' + re.escape(separator) + ']*$',
        'vars': VARS_EXPRESSION,
    }


def field_keys(keys: KeysConfig) -> Dict[str, str]:
    """Map attribute fields to their configured key names."""
    return {
        'os': keys.os,
        'env': keys.env,
        'role': keys.role,
        'srv': keys.srv,
        'vars': keys.vars,
    }


class AttributeParser:
    """
    Parse host attribute strings into HostAttributes.

    Example:
        parser = AttributeParser(config.txt)
        attrs = parser.parse("OS=linux;ENV=dev;ROLE=app;SRV=tomcat")
    """

    def __init__(self, txt: TxtConfig):
        self.kv = txt.kv
        self.keys = txt.keys
        self.expressions = safety_expressions(txt.keys.separator)
        self._patterns: Dict[str, Pattern[str]] = {
            name: re.compile(expr) for name, expr in self.expressions.items()
        }
        self._field_keys = field_keys(txt.keys)
        self._key_fields = {key: name for name, key in self._field_keys.items()}

    def parse(self, raw: str) -> HostAttributes:
        """
        Parse and validate a raw attribute string.

        Unknown keys and items without an equal sign are ignored. A value is
        everything after the first equal sign, so VARS may contain more.

        Raises:
            AttributeValidationError: A field is blank or fails its pattern
        """
        values = dict.fromkeys(FIELDS, '')

        for item in raw.split(self.kv.separator):
            key, eq, value = item.partition(self.kv.equalsign)
            if not eq:
                continue
            name = self._key_fields.get(key)
            if name is not None:
                values[name] = value

        attrs = HostAttributes(**values)
        self.validate(attrs)
        return attrs

    def validate(self, attrs: HostAttributes) -> None:
        """Check every field against its safety pattern."""
        for name in FIELDS:
            value = getattr(attrs, name)
            key = self._field_keys[name]

            if name in REQUIRED_FIELDS and not value.strip():
                raise AttributeValidationError(key, value, reason="value must not be blank")

            if not self._patterns[name].fullmatch(value):
                raise AttributeValidationError(key, value, self.expressions[name])

    def render(self, attrs: HostAttributes) -> str:
        """Render attributes back into a raw attribute string."""
        self.validate(attrs)

        return self.kv.separator.join(
            f"{self._field_keys[name]}{self.kv.equalsign}{getattr(attrs, name)}"
            for name in FIELDS
        )


def attributes_to_dict(attrs: HostAttributes, keys: KeysConfig) -> Dict[str, str]:
    """Serialize attributes using the configured key names."""
    return {key: getattr(attrs, name) for name, key in field_keys(keys).items()}


def attributes_from_dict(data: Mapping[str, object], keys: KeysConfig) -> HostAttributes:
    """
    Build attributes from a mapping keyed by the configured key names.

    Missing or null values become empty strings. Other values must already be
    strings: YAML reads an unquoted ``yes`` or ``1.10`` as a bool or a float.

    Raises:
        AttributeValidationError: A value is not a string
    """
    values = {}
    for name, key in field_keys(keys).items():
        value = data.get(key)
        if value is None:
            value = ''
        elif not isinstance(value, str):
            raise AttributeValidationError(
                key, str(value), reason=f"value must be a string, got {type(value).__name__}: {value!r}",
            )
        values[name] = value
    return HostAttributes(**values)


def parse_variables(raw: str, config: VarsConfig) -> Dict[str, str]:
    """
    Parse the VARS attribute into a dict of host variables.

    Pairs are split on the first equal sign; pairs without one are dropped.
    """
    variables: Dict[str, str] = {}
    if not raw:
        return variables

    for pair in raw.split(config.separator):
        key, eq, value = pair.partition(config.equalsign)
        if eq and key:
            variables[key] = value

    return variables
