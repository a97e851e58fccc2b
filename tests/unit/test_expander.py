"""
Unit tests for record expansion and filtering.
"""

import pytest

from dns_inventory.config import FilterConfig, FilterSpec, KeysConfig
from dns_inventory.errors import ConfigurationError
from dns_inventory.inventory.attributes import HostAttributes
from dns_inventory.inventory.expander import RecordFilter, expand


class TestExpand:
    """Test ROLE/SRV list expansion."""

    def test_single_values(self):
        attrs = HostAttributes("linux", "dev", "app", "tomcat")
        assert list(expand("app01", attrs)) == [("app01", attrs)]

    def test_role_and_service_product(self):
        """Every role is combined with every service, in record order."""
        attrs = HostAttributes("linux", "dev", "app,storage", "nginx,redis", "k=v")
        result = [(host, a.role, a.srv) for host, a in expand("app01", attrs)]

        assert result == [
            ("app01", "app", "nginx"),
            ("app01", "app", "redis"),
            ("app01", "storage", "nginx"),
            ("app01", "storage", "redis"),
        ]

    def test_other_fields_kept(self):
        attrs = HostAttributes("linux", "dev", "app,storage", "", "k=v")
        for _, single in expand("app01", attrs):
            assert single.os == "linux"
            assert single.env == "dev"
            assert single.vars == "k=v"

    def test_empty_service(self):
        """An empty SRV yields one entry per role with an empty service."""
        attrs = HostAttributes("linux", "dev", "app", "")
        assert [a.srv for _, a in expand("app01", attrs)] == [""]


class TestRecordFilter:
    """Test host record filters."""

    RECORDS = [
        ("app01.dev.local", HostAttributes("linux", "dev", "app", "tomcat")),
        ("db01.dev.local", HostAttributes("linux", "dev", "db", "postgres")),
        ("win01.prod.local", HostAttributes("windows", "prod", "app", "iis")),
    ]

    def _hosts(self, record_filter: RecordFilter):
        return [host for host, _ in record_filter.apply(self.RECORDS)]

    def test_no_filters_pass_everything(self):
        record_filter = RecordFilter([], KeysConfig())
        assert len(record_filter) == 0
        assert self._hosts(record_filter) == [host for host, _ in self.RECORDS]

    def test_in_and_notin(self):
        record_filter = RecordFilter([
            FilterSpec("ENV", "in", ["dev", "prod"]),
            FilterSpec("ROLE", "notin", ["db"]),
        ], KeysConfig())
        assert self._hosts(record_filter) == ["app01.dev.local", "win01.prod.local"]

    def test_regex_on_hostname(self):
        record_filter = RecordFilter([FilterSpec("host", "regex", [r"\.dev\."])], KeysConfig())
        assert self._hosts(record_filter) == ["app01.dev.local", "db01.dev.local"]

    def test_notregex(self):
        record_filter = RecordFilter([FilterSpec("OS", "notregex", ["^win", "^bsd"])], KeysConfig())
        assert self._hosts(record_filter) == ["app01.dev.local", "db01.dev.local"]

    def test_disabled_config_passes_everything(self):
        config = FilterConfig(enabled=False, filters=[FilterSpec("ENV", "in", ["none"])])
        record_filter = RecordFilter.from_config(config, KeysConfig())
        assert len(record_filter) == 0

    def test_enabled_config(self):
        config = FilterConfig(enabled=True, filters=[FilterSpec("ENV", "in", ["prod"])])
        record_filter = RecordFilter.from_config(config, KeysConfig())
        assert self._hosts(record_filter) == ["win01.prod.local"]

    @pytest.mark.parametrize("spec", [
        FilterSpec("COLOR", "in", ["red"]),
        FilterSpec("VARS", "in", ["a=b"]),
        FilterSpec("ENV", "like", ["dev"]),
        FilterSpec("ENV", "regex", ["("]),
    ])
    def test_invalid_filters(self, spec):
        """Unknown keys or operators and bad expressions fail at construction."""
        with pytest.raises(ConfigurationError) as exc_info:
            RecordFilter([spec], KeysConfig())
        assert exc_info.value.key == "filter.filters"
