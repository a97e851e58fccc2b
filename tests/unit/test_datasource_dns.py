"""
Unit tests for the DNS datasource.

No network: zone transfers and queries are patched.
"""

from unittest.mock import MagicMock, patch

import dns.exception
import dns.name
import dns.rdatatype
import dns.resolver
import pytest

from dns_inventory.config import Config
from dns_inventory.datasource import Record, create_datasource, find_zone
from dns_inventory.datasource.dnstxt import DNSDatasource, make_fqdn, split_server, txt_value
from dns_inventory.errors import ConfigurationError, DatasourceError, ExitCode


def txt_rdata(*strings: str) -> MagicMock:
    rdata = MagicMock()
    rdata.strings = [s.encode() for s in strings]
    return rdata


def txt_rrset(owner: str, *values: str) -> MagicMock:
    rrset = MagicMock()
    rrset.rdtype = dns.rdatatype.TXT
    rrset.name = dns.name.from_text(owner)
    rrset.__iter__.return_value = iter([txt_rdata(v) for v in values])
    return rrset


def xfr_message(*rrsets) -> MagicMock:
    message = MagicMock()
    message.answer = list(rrsets)
    return message


@pytest.fixture
def notransfer_config(config: Config) -> Config:
    config.dns.notransfer.enabled = True
    config.dns.zones = ["infra.local.", "dev.local."]
    return config


class TestHelpers:
    """Test name and address helpers."""

    @pytest.mark.parametrize("host,zone,expected", [
        ("", "", "."),
        ("test", ".rnd.local.", "test.rnd.local."),
        ("", "rnd.local.", "rnd.local."),
        ("test.rnd.local.", "", "test.rnd.local."),
        ("test", "rnd.local", "test.rnd.local."),
        (".test", "rnd.local.", "test.rnd.local."),
    ])
    def test_make_fqdn(self, host, zone, expected):
        assert make_fqdn(host, zone) == expected

    @pytest.mark.parametrize("server,expected", [
        ("127.0.0.1", ("127.0.0.1", 53)),
        ("127.0.0.1:5353", ("127.0.0.1", 5353)),
        ("[::1]:5353", ("::1", 5353)),
        ("[::1]", ("::1", 53)),
        ("::1", ("::1", 53)),
    ])
    def test_split_server(self, server, expected):
        assert split_server(server) == expected

    def test_split_server_bad_port(self):
        with pytest.raises(ConfigurationError) as exc_info:
            split_server("127.0.0.1:dns")
        assert exc_info.value.key == "dns.server"

    def test_txt_value_joins_strings(self):
        assert txt_value(txt_rdata("OS=linux;ENV=dev;", "ROLE=app")) == "OS=linux;ENV=dev;ROLE=app"

    @pytest.mark.parametrize("host,expected", [
        ("app01.infra.local", "infra.local."),
        ("app01.dev.local.", "dev.local."),
        ("app01.example.com", None),
    ])
    def test_find_zone(self, host, expected):
        assert find_zone(host, ["infra.local.", "dev.local."]) == expected


class TestCreateDatasource:
    """Test datasource selection."""

    def test_dns(self, config: Config):
        assert isinstance(create_datasource(config), DNSDatasource)

    def test_unknown(self, config: Config):
        config.datasource = "ldap"
        with pytest.raises(ConfigurationError) as exc_info:
            create_datasource(config)
        assert exc_info.value.key == "datasource"

    def test_resolver_settings(self, config: Config):
        config.dns.server = "10.0.0.53:5353"
        config.dns.timeout = 5.0
        datasource = DNSDatasource(config)

        assert (datasource.address, datasource.port) == ("10.0.0.53", 5353)
        assert datasource.resolver.port == 5353
        assert datasource.resolver.lifetime == 5.0


class TestZoneTransfer:
    """Test reading records with zone transfers."""

    def test_transfer_zone(self, config: Config):
        other = MagicMock()
        other.rdtype = dns.rdatatype.A
        messages = [
            xfr_message(
                txt_rrset("app01.server.local.", "OS=linux;ENV=dev;ROLE=app"),
                other,
            ),
            xfr_message(
                txt_rrset("ansible-dns-inventory.server.local.", "ignored:OS=x;ENV=y;ROLE=z"),
                txt_rrset("db01.server.local.", "OS=bsd;ENV=prod;ROLE=db", "OS=bsd;ENV=prod;ROLE=backup"),
            ),
        ]

        datasource = DNSDatasource(config)
        with patch("dns.query.xfr", return_value=iter(messages)) as xfr:
            records = datasource.get_all_records()

        assert records == [
            Record("app01.server.local", "OS=linux;ENV=dev;ROLE=app"),
            Record("db01.server.local", "OS=bsd;ENV=prod;ROLE=db"),
            Record("db01.server.local", "OS=bsd;ENV=prod;ROLE=backup"),
        ]
        args, kwargs = xfr.call_args
        assert args == ("127.0.0.1", "server.local.")
        assert kwargs["port"] == 53
        assert "keyring" not in kwargs

    def test_tsig(self, config: Config):
        config.dns.tsig.enabled = True
        datasource = DNSDatasource(config)

        with patch("dns.query.xfr", return_value=iter([])) as xfr:
            datasource.transfer_zone("server.local.")

        kwargs = xfr.call_args[1]
        assert kwargs["keyname"] == "axfr."
        assert kwargs["keyalgorithm"] == "hmac-sha256"
        assert kwargs["keyring"] is not None

    def test_failed_zone_is_skipped(self, config: Config):
        config.dns.zones = ["broken.local.", "server.local."]
        datasource = DNSDatasource(config)

        def fake_xfr(address, zone, **kwargs):
            if zone == "broken.local.":
                raise dns.exception.FormError("refused")
            return iter([xfr_message(txt_rrset("app01.server.local.", "OS=linux;ENV=dev;ROLE=app"))])

        with patch("dns.query.xfr", side_effect=fake_xfr):
            records = datasource.get_all_records()

        assert [r.hostname for r in records] == ["app01.server.local"]

    def test_transfer_error(self, config: Config):
        datasource = DNSDatasource(config)
        with patch("dns.query.xfr", side_effect=ConnectionRefusedError("refused")):
            with pytest.raises(DatasourceError) as exc_info:
                datasource.transfer_zone("server.local.")
        assert exc_info.value.exit_code == ExitCode.DATASOURCE_ERROR

    def test_host_records(self, config: Config):
        datasource = DNSDatasource(config)
        with patch.object(datasource, "query_txt", return_value=[
            ("app01.server.local.", "OS=linux;ENV=dev;ROLE=app;VARS=a=1"),
        ]) as query:
            records = datasource.get_host_records("app01.server.local")

        query.assert_called_once_with("app01.server.local.")
        assert records == [Record("app01.server.local", "OS=linux;ENV=dev;ROLE=app;VARS=a=1")]


class TestNoTransfer:
    """Test reading records from the inventory host."""

    def test_all_records(self, notransfer_config: Config):
        datasource = DNSDatasource(notransfer_config)
        answers = {
            "ansible-dns-inventory.infra.local.": [
                ("ansible-dns-inventory.infra.local.", "gw01.infra.local:OS=linux;ENV=prod;ROLE=gw"),
                ("ansible-dns-inventory.infra.local.", "garbage"),
            ],
            "ansible-dns-inventory.dev.local.": [
                ("ansible-dns-inventory.dev.local.", "app01.dev.local:OS=linux;ENV=dev;ROLE=app"),
            ],
        }

        with patch.object(datasource, "query_txt", side_effect=lambda name: answers[name]):
            records = datasource.get_all_records()

        assert records == [
            Record("gw01.infra.local", "OS=linux;ENV=prod;ROLE=gw"),
            Record("app01.dev.local", "OS=linux;ENV=dev;ROLE=app"),
        ]

    def test_host_records(self, notransfer_config: Config):
        datasource = DNSDatasource(notransfer_config)
        answer = [
            ("ansible-dns-inventory.dev.local.", "app01.dev.local:OS=linux;ENV=dev;ROLE=app"),
            ("ansible-dns-inventory.dev.local.", "app02.dev.local:OS=linux;ENV=dev;ROLE=db"),
        ]

        with patch.object(datasource, "query_txt", return_value=answer) as query:
            records = datasource.get_host_records("app02.dev.local")

        query.assert_called_once_with("ansible-dns-inventory.dev.local.")
        assert records == [Record("app02.dev.local", "OS=linux;ENV=dev;ROLE=db")]

    def test_host_outside_zones(self, notransfer_config: Config):
        datasource = DNSDatasource(notransfer_config)
        with pytest.raises(DatasourceError):
            datasource.get_host_records("app01.example.com")

    def test_attributes_may_contain_separator(self, notransfer_config: Config):
        datasource = DNSDatasource(notransfer_config)
        record = datasource.process_record("owner.", "app01.dev.local:OS=linux;ENV=dev;ROLE=app;VARS=url=http://x")
        assert record == Record("app01.dev.local", "OS=linux;ENV=dev;ROLE=app;VARS=url=http://x")


class TestQuery:
    """Test TXT queries."""

    def test_nxdomain(self, config: Config):
        datasource = DNSDatasource(config)
        with patch.object(datasource.resolver, "resolve", side_effect=dns.resolver.NXDOMAIN()):
            assert datasource.query_txt("missing.server.local.") == []

    def test_no_answer(self, config: Config):
        datasource = DNSDatasource(config)
        answer = MagicMock()
        answer.rrset = None
        with patch.object(datasource.resolver, "resolve", return_value=answer):
            assert datasource.query_txt("app01.server.local.") == []

    def test_timeout(self, config: Config):
        datasource = DNSDatasource(config)
        with patch.object(datasource.resolver, "resolve", side_effect=dns.exception.Timeout()):
            with pytest.raises(DatasourceError):
                datasource.query_txt("app01.server.local.")

    def test_answer(self, config: Config):
        datasource = DNSDatasource(config)
        answer = MagicMock()
        answer.rrset = txt_rrset("app01.server.local.", "OS=linux;ENV=dev;ROLE=app")
        with patch.object(datasource.resolver, "resolve", return_value=answer):
            assert datasource.query_txt("app01.server.local.") == [
                ("app01.server.local.", "OS=linux;ENV=dev;ROLE=app"),
            ]


class TestPublish:
    """Test publishing to DNS."""

    def test_not_implemented(self, config: Config, caplog):
        datasource = DNSDatasource(config)
        datasource.publish_records([Record("app01.server.local", "OS=linux;ENV=dev;ROLE=app")])
        assert "not been implemented" in caplog.text
