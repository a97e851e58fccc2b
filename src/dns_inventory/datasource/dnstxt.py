"""
DNS Datasource

Reads host records from DNS TXT records, either by transferring whole zones
(AXFR, optionally signed with TSIG) or, in no-transfer mode, by querying the
TXT records of a single inventory host per zone. Each TXT value of that host
looks like ``<hostname><separator><attributes>``.
"""

import logging
from typing import List, Tuple

import dns.exception
import dns.query
import dns.rdatatype as rdtype
import dns.resolver
import dns.tsig

from dns_inventory.config import Config
from dns_inventory.datasource.base import Datasource, Record, find_zone, split_host_port
from dns_inventory.errors import DatasourceError

log = logging.getLogger(__name__)

DEFAULT_PORT = 53

# (owner name, TXT value)
TxtRecord = Tuple[str, str]


def fqdn(name: str) -> str:
    """Return ``name`` with a trailing dot."""
    return name if name.endswith('.') else name + '.'


def make_fqdn(host: str, zone: str) -> str:
    """
    Produce a fully qualified name for use in DNS requests.

    Leading dots are ignored: ``make_fqdn('test', '.rnd.local')`` and
    ``make_fqdn('test.rnd.local.', '')`` both give ``test.rnd.local.``.
    """
    name = host.lstrip('.')
    domain = zone.lstrip('.')

    if not domain:
        return fqdn(name)

    return fqdn(name + '.' + domain).lstrip('.')


def split_server(server: str, default_port: int = DEFAULT_PORT) -> Tuple[str, int]:
    """Split ``address[:port]`` (``[v6addr]:port`` for IPv6) into its parts."""
    return split_host_port(server, default_port, 'dns.server')


def txt_value(rdata) -> str:
    """Join the character strings of a TXT rdata into one value."""
    return b''.join(rdata.strings).decode('utf-8', errors='replace')


class DNSDatasource(Datasource):
    """Host records stored in DNS TXT records."""

    name = 'dns'

    def __init__(self, config: Config):
        super().__init__(config)
        self.dns = config.dns
        self.address, self.port = split_server(self.dns.server)

        self.resolver = dns.resolver.Resolver(configure=False)
        self.resolver.nameservers = [self.address]
        self.resolver.port = self.port
        self.resolver.lifetime = self.dns.timeout
        self.resolver.timeout = self.dns.timeout

    def _tsig_key(self):
        tsig = self.dns.tsig
        return dns.tsig.Key(tsig.key, tsig.secret, tsig.algo)

    def transfer_zone(self, zone: str) -> List[TxtRecord]:
        """
        Transfer a zone and return its TXT records.

        The no-transfer inventory host is left out.
        """
        origin = make_fqdn('', zone)
        inventory_host = make_fqdn(self.dns.notransfer.host, zone).lower()

        kwargs = {}
        if self.dns.tsig.enabled:
            kwargs['keyring'] = self._tsig_key()
            kwargs['keyname'] = self.dns.tsig.key
            kwargs['keyalgorithm'] = self.dns.tsig.algo

        records: List[TxtRecord] = []
        try:
            for message in dns.query.xfr(
                self.address,
                origin,
                port=self.port,
                timeout=self.dns.timeout,
                lifetime=self.dns.timeout,
                relativize=False,
                **kwargs,
            ):
                for rrset in message.answer:
                    if rrset.rdtype != rdtype.TXT:
                        continue
                    owner = rrset.name.to_text()
                    if owner.lower() == inventory_host:
                        continue
                    records.extend((owner, txt_value(rdata)) for rdata in rrset)
        except (dns.exception.DNSException, OSError, EOFError) as e:
            raise DatasourceError(self.name, f"zone transfer failed: {e}", target=zone)

        return records

    def query_txt(self, name: str) -> List[TxtRecord]:
        """Query the TXT records of a single name."""
        try:
            answer = self.resolver.resolve(name, rdtype.TXT, raise_on_no_answer=False)
        except dns.resolver.NXDOMAIN:
            return []
        except dns.exception.DNSException as e:
            raise DatasourceError(self.name, f"dns request failed: {e}", target=name)

        if answer.rrset is None:
            return []

        owner = answer.rrset.name.to_text()
        return [(owner, txt_value(rdata)) for rdata in answer.rrset]

    def process_record(self, owner: str, value: str) -> Record:
        """Turn a TXT record into a host record."""
        if self.dns.notransfer.enabled:
            hostname, sep, attributes = value.partition(self.dns.notransfer.separator)
            if not sep:
                raise DatasourceError(
                    self.name,
                    f"no hostname separator {self.dns.notransfer.separator!r} in record: {value!r}",
                    target=owner,
                )
            return Record(hostname.rstrip('.'), attributes)

        return Record(owner.rstrip('.'), value)

    def process_records(self, txt_records: List[TxtRecord]) -> List[Record]:
        records = []
        for owner, value in txt_records:
            try:
                records.append(self.process_record(owner, value))
            except DatasourceError as e:
                log.warning("[%s] skipping record: %s", owner, e)
        return records

    def get_all_records(self) -> List[Record]:
        records: List[Record] = []

        for zone in self.dns.zones:
            try:
                if self.dns.notransfer.enabled:
                    txt_records = self.query_txt(make_fqdn(self.dns.notransfer.host, zone))
                else:
                    txt_records = self.transfer_zone(zone)
            except DatasourceError as e:
                log.warning("[%s] skipping zone: %s", zone, e)
                continue

            log.debug("[%s] %d TXT records", zone, len(txt_records))
            records.extend(self.process_records(txt_records))

        return records

    def get_host_records(self, host: str) -> List[Record]:
        if not self.dns.notransfer.enabled:
            return self.process_records(self.query_txt(make_fqdn(host, '')))

        zone = find_zone(host, self.dns.zones)
        if zone is None:
            raise DatasourceError(self.name, "no matching zones found in config file", target=host)

        records = self.process_records(self.query_txt(make_fqdn(self.dns.notransfer.host, zone)))
        return [record for record in records if record.hostname == host]

    def publish_records(self, records: List[Record]) -> None:
        log.warning("Publishing records has not been implemented for the DNS datasource yet.")
