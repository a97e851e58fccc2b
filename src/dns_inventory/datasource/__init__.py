"""
Host record datasources.

DNS TXT records (zone transfer or no-transfer mode) and etcd.
"""

from typing import Any

from dns_inventory.config import Config
from dns_inventory.datasource.base import Datasource, Record, find_zone
from dns_inventory.errors import ConfigurationError

DATASOURCE_TYPES = ('dns', 'etcd')


def create_datasource(config: Config, **kwargs: Any) -> Datasource:
    """
    Create the datasource selected by ``config.datasource``.

    Raises:
        ConfigurationError: Unknown datasource type
    """
    if config.datasource == 'dns':
        from dns_inventory.datasource.dnstxt import DNSDatasource
        return DNSDatasource(config, **kwargs)

    if config.datasource == 'etcd':
        from dns_inventory.datasource.etcd import EtcdDatasource
        return EtcdDatasource(config, **kwargs)

    raise ConfigurationError(
        f"unknown datasource type: {config.datasource} (expected one of: {', '.join(DATASOURCE_TYPES)})",
        key='datasource',
    )


__all__ = ['Datasource', 'Record', 'find_zone', 'create_datasource', 'DATASOURCE_TYPES']
