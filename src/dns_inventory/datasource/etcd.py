"""
etcd Datasource

Host records stored in an etcd cluster under::

    <prefix>/<zone>/<hostname>/<set number>  ->  <attribute string>

A host may own several attribute sets; each one is a separate record.
Requires the ``etcd3`` client (install the ``etcd`` extra).
"""

import logging
import os
import tempfile
from typing import Any, Dict, Iterable, List, Optional, Tuple

from dns_inventory.config import Config, PemConfig
from dns_inventory.datasource.base import Datasource, Record, find_zone, split_host_port
from dns_inventory.errors import ConfigurationError, DatasourceError

log = logging.getLogger(__name__)

DEFAULT_PORT = 2379


def split_endpoint(endpoint: str) -> Tuple[str, int]:
    """Split ``[scheme://]host[:port]`` (``[v6addr]:port`` for IPv6) into host and port."""
    _, _, rest = endpoint.rpartition('://')
    return split_host_port(rest.rstrip('/'), DEFAULT_PORT, 'etcd.endpoints')


def client_host(host: str) -> str:
    """Return a host as the etcd client expects it; IPv6 addresses go in brackets."""
    return f"[{host}]" if ':' in host else host


def _text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode('utf-8', errors='replace')
    return str(value)


class EtcdDatasource(Datasource):
    """Host records stored in etcd."""

    name = 'etcd'

    def __init__(self, config: Config, client: Any = None):
        """
        Initialize the datasource.

        Args:
            config: Inventory configuration
            client: A ready etcd3 client; connects to etcd.endpoints if omitted
        """
        super().__init__(config)
        self.etcd = config.etcd
        self.namespace = self.etcd.prefix + '/'
        self._temp_files: List[str] = []
        self.client = client if client is not None else self._connect()

    def _pem_file(self, material: PemConfig) -> Optional[str]:
        """Return a file path for PEM material, writing inline PEM to a temp file."""
        if material.pem:
            handle = tempfile.NamedTemporaryFile('w', suffix='.pem', delete=False)
            with handle:
                handle.write(material.pem)
            self._temp_files.append(handle.name)
            return handle.name
        return material.path or None

    def _client_options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {'timeout': self.etcd.timeout}

        if self.etcd.auth.username:
            options['user'] = self.etcd.auth.username
            options['password'] = self.etcd.auth.password

        tls = self.etcd.tls
        if tls.enabled:
            if tls.insecure:
                log.warning("etcd.tls.insecure is not supported by the etcd client, verifying server certificates")
            options['ca_cert'] = self._pem_file(tls.ca)
            options['cert_cert'] = self._pem_file(tls.certificate)
            options['cert_key'] = self._pem_file(tls.key)

        return options

    def _connect(self) -> Any:
        """Connect to the first etcd endpoint that answers."""
        try:
            import etcd3
        except ImportError as e:
            raise ConfigurationError(
                f"the etcd datasource needs the etcd3 package: {e}",
                key='datasource',
                details="install it with: pip install 'ansible-dns-inventory[etcd]'",
            )

        options = self._client_options()
        errors = []

        for endpoint in self.etcd.endpoints:
            host, port = split_endpoint(endpoint)
            try:
                client = etcd3.client(host=client_host(host), port=port, **options)
                client.status()
            except Exception as e:
                log.debug("[%s] etcd endpoint unavailable: %s", endpoint, e)
                errors.append(f"{endpoint}: {e}")
                continue
            log.info("[%s] connected to etcd", endpoint)
            return client

        self._remove_temp_files()
        raise DatasourceError(
            self.name,
            "could not connect to any etcd endpoint",
            details="; ".join(errors) or None,
        )

    def process_kvs(self, kvs: Iterable[Tuple[str, str]]) -> List[Record]:
        """
        Turn ``(key, value)`` pairs into host records.

        Keys are relative to the namespace: ``<zone>/<hostname>/<set>``.
        Later values for the same host and set overwrite earlier ones.
        """
        hosts: Dict[str, Dict[int, str]] = {}

        for key, value in kvs:
            parts = key.split('/')
            if len(parts) < 3:
                log.warning("[%s] skipping malformed key", key)
                continue

            hostname = parts[1]
            try:
                set_number = int(parts[2])
            except ValueError as e:
                log.warning("[%s] skipping host attributes set: %s", hostname, e)
                continue

            hosts.setdefault(hostname, {})[set_number] = value

        records = []
        for hostname, sets in hosts.items():
            for set_number in sorted(sets):
                records.append(Record(hostname, sets[set_number]))
        return records

    def get_prefix(self, prefix: str) -> List[Tuple[str, str]]:
        """Return ``(relative key, value)`` pairs for a key prefix."""
        try:
            result = self.client.get_prefix(self.namespace + prefix)
            kvs = []
            for value, metadata in result:
                key = _text(metadata.key)
                if key.startswith(self.namespace):
                    key = key[len(self.namespace):]
                kvs.append((key, _text(value)))
        except Exception as e:
            raise DatasourceError(self.name, f"etcd request failure: {e}", target=prefix)
        return kvs

    def get_all_records(self) -> List[Record]:
        records: List[Record] = []

        for zone in self.etcd.zones:
            try:
                kvs = self.get_prefix(zone + '/')
            except DatasourceError as e:
                log.warning("[%s] skipping zone: %s", zone, e)
                continue
            records.extend(self.process_kvs(kvs))

        return records

    def get_host_records(self, host: str) -> List[Record]:
        zone = find_zone(host, self.etcd.zones)
        if zone is None:
            raise DatasourceError(self.name, "failed to determine zone from hostname", target=host)

        return self.process_kvs(self.get_prefix(f"{zone}/{host}/"))

    def _key(self, record: Record, set_number: int) -> str:
        zone = find_zone(record.hostname, self.etcd.zones)
        if zone is None:
            raise DatasourceError(self.name, "failed to determine zone from hostname", target=record.hostname)
        return f"{self.namespace}{zone}/{record.hostname}/{set_number}"

    def publish_records(self, records: List[Record]) -> None:
        """
        Write host records, numbering each host's sets from 0.

        Existing records are removed first when etcd.import.clear is set.
        Writes are grouped into transactions of etcd.import.batch operations.
        """
        counts: Dict[str, int] = {}
        operations = []

        for record in records:
            set_number = counts.get(record.hostname, -1) + 1
            counts[record.hostname] = set_number
            operations.append((self._key(record, set_number), record.attributes))

        try:
            if self.etcd.import_.clear:
                log.info("clearing existing host records under %s", self.namespace)
                self.client.delete_prefix(self.namespace)

            batch = self.etcd.import_.batch
            for start in range(0, len(operations), batch):
                chunk = operations[start:start + batch]
                self.client.transaction(
                    compare=[],
                    success=[self.client.transactions.put(key, value) for key, value in chunk],
                    failure=[],
                )
                log.debug("published %d host records", len(chunk))
        except Exception as e:
            raise DatasourceError(self.name, f"failed to publish host records: {e}")

        log.info("published %d host records for %d hosts", len(operations), len(counts))

    def _remove_temp_files(self) -> None:
        for path in self._temp_files:
            try:
                os.unlink(path)
            except OSError:
                log.debug("could not remove %s", path)
        self._temp_files = []

    def close(self) -> None:
        try:
            close = getattr(self.client, 'close', None)
            if close is not None:
                close()
        finally:
            self._remove_temp_files()
