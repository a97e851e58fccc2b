"""
Datasource Base Class

Abstract base class for all host record datasources.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Tuple

from dns_inventory.config import Config
from dns_inventory.errors import ConfigurationError


@dataclass(frozen=True)
class Record:
    """A raw host record: a hostname and its attribute string."""

    hostname: str
    attributes: str


def find_zone(host: str, zones: List[str]) -> Optional[str]:
    """Return the first configured zone the host belongs to."""
    name = host.strip('.')
    for zone in zones:
        if name.endswith(zone.strip('.')):
            return zone
    return None


def split_host_port(address: str, default_port: int, key: str) -> Tuple[str, int]:
    """
    Split ``host[:port]`` into its parts.

    IPv6 addresses carry a port only in bracket form: ``[::1]:53``. A bare
    ``::1`` is an address without a port.

    Raises:
        ConfigurationError: The port is not a number
    """
    if address.startswith('['):
        host, _, rest = address[1:].partition(']')
        port = rest.lstrip(':')
    elif address.count(':') == 1:
        host, _, port = address.partition(':')
    else:
        host, port = address, ''

    if not port:
        return host, default_port

    try:
        return host, int(port)
    except ValueError:
        raise ConfigurationError(f"invalid port in address: {address!r}", key=key)


class Datasource(ABC):
    """
    Abstract base class for datasources.

    All datasource types (DNS, etcd) must implement this interface.
    """

    name = 'base'

    def __init__(self, config: Config):
        self.config = config

    @abstractmethod
    def get_all_records(self) -> List[Record]:
        """
        Return every host record.

        Zones that cannot be read are logged and skipped.
        """
        pass

    @abstractmethod
    def get_host_records(self, host: str) -> List[Record]:
        """
        Return all records of a single host.

        Raises:
            DatasourceError: The host's zone is unknown or the lookup failed
        """
        pass

    @abstractmethod
    def publish_records(self, records: List[Record]) -> None:
        """Write host records to the datasource."""
        pass

    def close(self) -> None:
        """Shut down clients and perform other housekeeping."""
        pass

    def __enter__(self) -> 'Datasource':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
