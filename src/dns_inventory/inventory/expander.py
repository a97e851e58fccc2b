"""
Record Expander

Expands host records whose ROLE or SRV hold comma-separated lists into one
record per (role, service) combination, and filters expanded records.
"""

import re
from dataclasses import replace
from typing import Callable, Iterable, Iterator, List, Pattern, Tuple

from dns_inventory.config import FilterConfig, FilterSpec, KeysConfig
from dns_inventory.errors import ConfigurationError
from dns_inventory.inventory.attributes import HostAttributes


HOST_FILTER_KEY = 'host'
OPERATORS = ('in', 'notin', 'regex', 'notregex')


def expand(hostname: str, attrs: HostAttributes) -> Iterator[Tuple[str, HostAttributes]]:
    """
    Yield one (hostname, attributes) pair per role/service combination.

    Order follows the order of the lists in the record. An empty SRV yields a
    single entry with an empty service.
    """
    for role in attrs.role.split(','):
        for srv in attrs.srv.split(','):
            yield hostname, replace(attrs, role=role, srv=srv)


class RecordFilter:
    """
    A set of host record filters; a record must pass all of them.

    Filter keys are ``host`` (the hostname) or a configured attribute key
    name other than the VARS key. Operators:

    - in: value is one of the filter values
    - notin: value is none of the filter values
    - regex: value matches one of the regular expressions
    - notregex: value matches none of the regular expressions
    """

    def __init__(self, filters: Iterable[FilterSpec], keys: KeysConfig):
        self._key_fields = {
            keys.os: 'os',
            keys.env: 'env',
            keys.role: 'role',
            keys.srv: 'srv',
        }
        self._tests: List[Tuple[FilterSpec, Callable[[str], bool]]] = []

        for spec in filters:
            self._check_key(spec)
            self._tests.append((spec, self._compile(spec)))

    @classmethod
    def from_config(cls, config: FilterConfig, keys: KeysConfig) -> 'RecordFilter':
        """Create a filter from configuration; disabled filtering passes everything."""
        return cls(config.filters if config.enabled else [], keys)

    def __len__(self) -> int:
        return len(self._tests)

    def _check_key(self, spec: FilterSpec) -> None:
        if spec.key != HOST_FILTER_KEY and spec.key not in self._key_fields:
            raise ConfigurationError(f"unknown filter key: {spec.key!r}", key='filter.filters')

    def _compile(self, spec: FilterSpec) -> Callable[[str], bool]:
        values = list(spec.values)

        if spec.operator == 'in':
            allowed = set(values)
            return lambda value: value in allowed
        if spec.operator == 'notin':
            denied = set(values)
            return lambda value: value not in denied

        if spec.operator in ('regex', 'notregex'):
            try:
                patterns: List[Pattern[str]] = [re.compile(v) for v in values]
            except re.error as e:
                raise ConfigurationError(
                    f"invalid regular expression in filter for {spec.key!r}: {e}",
                    key='filter.filters',
                )
            if spec.operator == 'regex':
                return lambda value: any(p.search(value) for p in patterns)
            return lambda value: not any(p.search(value) for p in patterns)

        raise ConfigurationError(
            f"unknown filter operator: {spec.operator!r} (expected one of: {', '.join(OPERATORS)})",
            key='filter.filters',
        )

    def _value(self, key: str, hostname: str, attrs: HostAttributes) -> str:
        if key == HOST_FILTER_KEY:
            return hostname
        return getattr(attrs, self._key_fields[key])

    def matches(self, hostname: str, attrs: HostAttributes) -> bool:
        """Return True if the record passes every filter."""
        for spec, test in self._tests:
            if not test(self._value(spec.key, hostname, attrs)):
                return False
        return True

    def apply(
        self, records: Iterable[Tuple[str, HostAttributes]]
    ) -> Iterator[Tuple[str, HostAttributes]]:
        """Yield the records that pass every filter."""
        for hostname, attrs in records:
            if self.matches(hostname, attrs):
                yield hostname, attrs
