"""
Inventory Manager

Turns datasource records into an inventory tree:

    records -> parse -> expand -> filter -> import -> sort
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import yaml

from dns_inventory.config import Config
from dns_inventory.datasource import Datasource, Record, create_datasource
from dns_inventory.errors import (
    AttributeValidationError,
    ConfigurationError,
    EmptyInventoryError,
)
from dns_inventory.inventory.attributes import (
    AttributeParser,
    HostAttributes,
    attributes_from_dict,
    parse_variables,
)
from dns_inventory.inventory.expander import RecordFilter, expand
from dns_inventory.inventory.tree import Node

log = logging.getLogger(__name__)

HostMap = Dict[str, List[HostAttributes]]


class InventoryManager:
    """
    Builds the inventory from a datasource.

    Supports:
    - Parsing and validating host records (invalid records are skipped)
    - Expanding ROLE/SRV lists and filtering records
    - Building a sorted inventory tree
    - Host variables from the VARS attribute
    - Importing host records from a YAML file into the datasource
    """

    def __init__(self, config: Config, datasource: Optional[Datasource] = None):
        self.config = config
        self.parser = AttributeParser(config.txt)
        self.filter = RecordFilter.from_config(config.filter, config.txt.keys)
        self._datasource = datasource

    @property
    def datasource(self) -> Datasource:
        """Return the datasource, creating it on first use."""
        if self._datasource is None:
            self._datasource = create_datasource(self.config)
        return self._datasource

    def close(self) -> None:
        if self._datasource is not None:
            self._datasource.close()

    def __enter__(self) -> 'InventoryManager':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def parse_records(self, records: Iterable[Record]) -> HostMap:
        """
        Parse raw records into a map of hosts and their expanded attributes.

        Records that fail validation are logged and skipped.
        """
        hosts: HostMap = {}

        for record in records:
            try:
                attrs = self.parser.parse(record.attributes)
            except AttributeValidationError as e:
                log.warning("[%s] skipping host record: %s", record.hostname, e)
                continue

            for hostname, single in self.filter.apply(expand(record.hostname, attrs)):
                hosts.setdefault(hostname, []).append(single)

        return hosts

    def get_hosts(self) -> HostMap:
        """
        Load every host and its attributes from the datasource.

        Raises:
            EmptyInventoryError: No usable host records were found
        """
        records = self.datasource.get_all_records()
        log.info("loaded %d host records", len(records))

        hosts = self.parse_records(records)
        if not hosts:
            raise EmptyInventoryError(
                "empty host records list",
                details=f"{len(records)} records loaded, none usable",
            )

        return hosts

    def build(self, hosts: Optional[HostMap] = None) -> Node:
        """
        Build a fresh, sorted inventory tree.

        Args:
            hosts: Host map to import (default: load from the datasource)
        """
        if hosts is None:
            hosts = self.get_hosts()

        tree = Node.root()
        tree.import_hosts(hosts, self.config.txt.keys.separator)
        tree.sort_children()

        return tree

    def merge_variables(self, attr_list: Iterable[HostAttributes]) -> Dict[str, str]:
        """Merge the VARS attributes of several records; later records win."""
        variables: Dict[str, str] = {}
        for attrs in attr_list:
            variables.update(parse_variables(attrs.vars, self.config.txt.vars))
        return variables

    def get_host_variables(self, host: str) -> Dict[str, str]:
        """Return the variables of a single host, read from its own records."""
        if not self.config.txt.vars.enabled:
            return {}

        records = self.datasource.get_host_records(host)
        attr_list = []
        for record in records:
            try:
                attr_list.append(self.parser.parse(record.attributes))
            except AttributeValidationError as e:
                log.warning("[%s] skipping host record: %s", record.hostname, e)

        return self.merge_variables(attr_list)

    def host_variables(self, hosts: HostMap) -> Dict[str, Dict[str, str]]:
        """Return ``{host: variables}`` for every host in a host map."""
        if not self.config.txt.vars.enabled:
            return {}
        return {host: self.merge_variables(attr_list) for host, attr_list in sorted(hosts.items())}

    def load_import_file(self, path: Union[str, Path]) -> HostMap:
        """
        Read host records from a YAML file.

        The file maps hostnames to lists of attribute mappings keyed by the
        configured key names, the same shape ``--attrs --format yaml`` prints::

            app01.infra.local:
              - {OS: linux, ENV: dev, ROLE: app, SRV: tomcat, VARS: ""}

        Raises:
            ConfigurationError: The file is missing or has the wrong shape
        """
        source = Path(path)
        try:
            data = yaml.safe_load(source.read_text(encoding='utf-8')) or {}
        except OSError as e:
            raise ConfigurationError(f"failed to read import file: {e}", key=str(source))
        except yaml.YAMLError as e:
            raise ConfigurationError("failed to parse import file", key=str(source), details=str(e))

        if not isinstance(data, dict):
            raise ConfigurationError("import file must map hostnames to attribute lists", key=str(source))

        hosts: HostMap = {}
        for hostname, items in data.items():
            if isinstance(items, dict):
                items = [items]
            if not isinstance(items, list):
                raise ConfigurationError(f"attributes of {hostname} must be a list", key=str(source))
            for item in items:
                if not isinstance(item, dict):
                    raise ConfigurationError(f"attributes of {hostname} must be mappings", key=str(source))
                try:
                    attrs = attributes_from_dict(item, self.config.txt.keys)
                except AttributeValidationError as e:
                    log.warning("[%s] skipping host record: %s", hostname, e)
                    continue
                hosts.setdefault(str(hostname), []).append(attrs)

        return hosts

    def publish(self, hosts: HostMap) -> int:
        """
        Validate, render and publish host records.

        Invalid attribute sets are logged and skipped.

        Returns:
            Number of records published
        """
        records = []
        for hostname, attr_list in hosts.items():
            for attrs in attr_list:
                try:
                    records.append(Record(hostname, self.parser.render(attrs)))
                except AttributeValidationError as e:
                    log.warning("[%s] skipping host record: %s", hostname, e)

        if not records:
            raise EmptyInventoryError("no valid host records to import")

        self.datasource.publish_records(records)
        return len(records)
