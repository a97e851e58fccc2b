"""
Shared fixtures for dns-inventory unit tests.
"""

import logging
from typing import List

import pytest

from dns_inventory.config import Config
from dns_inventory.datasource.base import Datasource, Record
from dns_inventory.inventory.attributes import AttributeParser


class FakeDatasource(Datasource):
    """In-memory datasource."""

    name = 'fake'

    def __init__(self, config: Config, records: List[Record] = None):
        super().__init__(config)
        self.records = list(records or [])
        self.published: List[Record] = []
        self.closed = False

    def get_all_records(self) -> List[Record]:
        return list(self.records)

    def get_host_records(self, host: str) -> List[Record]:
        return [record for record in self.records if record.hostname == host]

    def publish_records(self, records: List[Record]) -> None:
        self.published.extend(records)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def config() -> Config:
    """Default configuration."""
    return Config()


@pytest.fixture
def parser(config: Config) -> AttributeParser:
    """Attribute parser bound to the default configuration."""
    return AttributeParser(config.txt)


@pytest.fixture
def make_datasource(config: Config):
    """Factory for in-memory datasources holding (hostname, attributes) pairs."""
    def factory(*records, cfg: Config = None) -> FakeDatasource:
        return FakeDatasource(cfg or config, [Record(host, attrs) for host, attrs in records])
    return factory


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo CLI logging setup so caplog sees package records."""
    yield
    logger = logging.getLogger("dns_inventory")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
