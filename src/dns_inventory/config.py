"""
Inventory Configuration

Settings for datasources, host record parsing and filtering.

Values are layered: built-in defaults, then a YAML configuration file, then
ADI_* environment variables (``dns.notransfer.enabled`` is overridden by
``ADI_DNS_NOTRANSFER_ENABLED``).
"""

import os
import re
from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any, List, Mapping, Optional, Union

import yaml

from dns_inventory.errors import ConfigurationError


ENV_PREFIX = 'ADI'
CONFIG_FILE_ENV = 'ADI_CONFIG_FILE'
CONFIG_NAME = 'ansible-dns-inventory'

TSIG_ALGORITHMS = ('hmac-sha1', 'hmac-sha224', 'hmac-sha256', 'hmac-sha384', 'hmac-sha512')
DEFAULT_TSIG_ALGORITHM = 'hmac-sha256'

DURATION_PATTERN = re.compile(r'^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h)?\s*$')
_DURATION_UNITS = {None: 1.0, 'ms': 0.001, 's': 1.0, 'm': 60.0, 'h': 3600.0}

_TRUE = ('1', 'true', 'yes', 'on')
_FALSE = ('0', 'false', 'no', 'off', '')


@dataclass
class NoTransferConfig:
    """
    No-transfer mode: read inventory data from the TXT records of one host.

    Attributes:
        enabled: Query ``<host>.<zone>`` instead of transferring the zone
        host: Name of the host carrying the inventory records
        separator: Separator between hostname and attributes in a TXT value
    """

    enabled: bool = False
    host: str = 'ansible-dns-inventory'
    separator: str = ':'


@dataclass
class TsigConfig:
    """TSIG parameters, used with zone transfer requests only."""

    enabled: bool = False
    key: str = 'axfr.'
    secret: str = 'c2VjcmV0Cg=='  # base64
    algo: str = DEFAULT_TSIG_ALGORITHM


@dataclass
class DNSConfig:
    """DNS datasource configuration."""

    server: str = '127.0.0.1:53'
    timeout: float = 30.0  # seconds
    zones: List[str] = field(default_factory=lambda: ['server.local.'])
    notransfer: NoTransferConfig = field(default_factory=NoTransferConfig)
    tsig: TsigConfig = field(default_factory=TsigConfig)


@dataclass
class EtcdAuthConfig:
    username: str = ''
    password: str = ''


@dataclass
class PemConfig:
    """PEM material given either inline or as a file path. Inline wins."""

    path: str = ''
    pem: str = ''


@dataclass
class EtcdTLSConfig:
    enabled: bool = False
    insecure: bool = False
    ca: PemConfig = field(default_factory=PemConfig)
    certificate: PemConfig = field(default_factory=PemConfig)
    key: PemConfig = field(default_factory=PemConfig)


@dataclass
class EtcdImportConfig:
    """
    Record import settings.

    Attributes:
        clear: Delete all existing host records before importing
        batch: Operations per etcd transaction (keep below max-txn-ops)
    """

    clear: bool = True
    batch: int = 128


@dataclass
class EtcdConfig:
    """etcd datasource configuration."""

    endpoints: List[str] = field(default_factory=lambda: ['127.0.0.1:2379'])
    timeout: float = 30.0  # seconds
    prefix: str = 'ANSIBLE_INVENTORY'
    zones: List[str] = field(default_factory=lambda: ['server.local.'])
    auth: EtcdAuthConfig = field(default_factory=EtcdAuthConfig)
    tls: EtcdTLSConfig = field(default_factory=EtcdTLSConfig)
    import_: EtcdImportConfig = field(default_factory=EtcdImportConfig)


@dataclass
class KvConfig:
    """Separators of the k/v pairs in a host record."""

    separator: str = ';'
    equalsign: str = '='


@dataclass
class VarsConfig:
    """Host variables found in the VARS attribute."""

    enabled: bool = False
    separator: str = ','
    equalsign: str = '='


@dataclass
class KeysConfig:
    """
    Host attribute key names.

    Attributes:
        separator: Separator between elements of a group name
        os: Key of the operating system attribute
        env: Key of the environment attribute
        role: Key of the role attribute
        srv: Key of the service attribute
        vars: Key of the host variables attribute
    """

    separator: str = '_'
    os: str = 'OS'
    env: str = 'ENV'
    role: str = 'ROLE'
    srv: str = 'SRV'
    vars: str = 'VARS'


@dataclass
class TxtConfig:
    """Host record parsing configuration."""

    kv: KvConfig = field(default_factory=KvConfig)
    vars: VarsConfig = field(default_factory=VarsConfig)
    keys: KeysConfig = field(default_factory=KeysConfig)


@dataclass
class FilterSpec:
    """A single host record filter: ``key operator values``."""

    key: str
    operator: str
    values: List[str] = field(default_factory=list)


@dataclass
class FilterConfig:
    """Host record filtering. A record must pass every filter."""

    enabled: bool = False
    filters: List[FilterSpec] = field(default_factory=list)


@dataclass
class Config:
    """Complete inventory configuration."""

    datasource: str = 'dns'
    dns: DNSConfig = field(default_factory=DNSConfig)
    etcd: EtcdConfig = field(default_factory=EtcdConfig)
    txt: TxtConfig = field(default_factory=TxtConfig)
    filter: FilterConfig = field(default_factory=FilterConfig)


def parse_duration(value: Union[str, int, float]) -> float:
    """
    Parse a duration into seconds.

    Accepts plain numbers (seconds) and strings such as ``30s``, ``500ms``,
    ``1m`` or ``1h``.
    """
    if isinstance(value, bool):
        raise ConfigurationError(f"invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)

    match = DURATION_PATTERN.match(str(value))
    if not match:
        raise ConfigurationError(f"invalid duration: {value!r}")

    return float(match.group(1)) * _DURATION_UNITS[match.group(2)]


def tsig_algorithm(algo: str) -> str:
    """Return a supported TSIG algorithm name, falling back to hmac-sha256."""
    name = algo.strip().lower().rstrip('.')
    if name in TSIG_ALGORITHMS:
        return name
    return DEFAULT_TSIG_ALGORITHM


def _field_key(name: str) -> str:
    # import_ -> import
    return name.rstrip('_')


def _to_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigurationError(f"invalid boolean value: {value!r}", key=key)


def _coerce(value: Any, default: Any, key: str) -> Any:
    """Convert a raw YAML/env value to the type of the field default."""
    if isinstance(default, bool):
        return _to_bool(value, key)
    if isinstance(default, float):
        try:
            return parse_duration(value)
        except ConfigurationError:
            raise ConfigurationError(f"invalid duration: {value!r}", key=key)
    if isinstance(default, int):
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ConfigurationError(f"invalid integer value: {value!r}", key=key)
    if isinstance(default, list):
        if isinstance(value, str):
            return [item.strip() for item in value.split(',') if item.strip()]
        if isinstance(value, (list, tuple)):
            return [str(item) for item in value]
        raise ConfigurationError(f"expected a list, got {value!r}", key=key)
    if value is None:
        return ''
    return str(value)


def _parse_filters(data: Any) -> List[FilterSpec]:
    if data is None:
        return []
    if not isinstance(data, list):
        raise ConfigurationError("expected a list of filters", key='filter.filters')

    filters = []
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            raise ConfigurationError(f"filter #{index} is not a mapping", key='filter.filters')
        values = item.get('values') or []
        if isinstance(values, str):
            values = [values]
        filters.append(FilterSpec(
            key=str(item.get('key', '')),
            operator=str(item.get('operator', '')),
            values=[str(v) for v in values],
        ))
    return filters


def _update_from_mapping(obj: Any, data: Mapping[str, Any], path: str = '') -> None:
    """Recursively copy values from a YAML mapping onto a config dataclass."""
    for f in fields(obj):
        key = _field_key(f.name)
        if key not in data:
            continue

        dotted = f"{path}{key}"
        value = data[key]
        current = getattr(obj, f.name)

        if is_dataclass(current):
            if value is None:
                continue
            if not isinstance(value, dict):
                raise ConfigurationError("expected a mapping", key=dotted)
            _update_from_mapping(current, value, f"{dotted}.")
        elif dotted == 'filter.filters':
            setattr(obj, f.name, _parse_filters(value))
        else:
            setattr(obj, f.name, _coerce(value, current, dotted))


def _update_from_environment(obj: Any, environ: Mapping[str, str], path: str = '') -> None:
    """Apply ADI_* environment variables onto a config dataclass."""
    for f in fields(obj):
        dotted = f"{path}{_field_key(f.name)}"
        current = getattr(obj, f.name)

        if is_dataclass(current):
            _update_from_environment(current, environ, f"{dotted}.")
            continue
        if dotted == 'filter.filters':
            continue

        env_name = f"{ENV_PREFIX}_{dotted.upper().replace('.', '_')}"
        if env_name in environ:
            setattr(obj, f.name, _coerce(environ[env_name], current, dotted))


def find_config_file(environ: Optional[Mapping[str, str]] = None) -> Optional[Path]:
    """
    Locate the YAML configuration file.

    ADI_CONFIG_FILE wins; otherwise ``ansible-dns-inventory.yaml`` (or
    ``.yml``) is looked up in the current directory, ``~/.ansible`` and
    ``/etc/ansible``.
    """
    environ = os.environ if environ is None else environ

    explicit = environ.get(CONFIG_FILE_ENV)
    if explicit:
        path = Path(explicit)
        if not path.is_file():
            raise ConfigurationError(f"config file does not exist: {path}", key=CONFIG_FILE_ENV)
        return path

    search_dirs = [Path('.'), Path.home() / '.ansible', Path('/etc/ansible')]
    for directory in search_dirs:
        for suffix in ('.yaml', '.yml'):
            candidate = directory / f"{CONFIG_NAME}{suffix}"
            if candidate.is_file():
                return candidate

    return None


def validate_config(config: Config) -> Config:
    """Check values the rest of the package relies on."""
    required = {
        'txt.kv.separator': config.txt.kv.separator,
        'txt.kv.equalsign': config.txt.kv.equalsign,
        'txt.keys.separator': config.txt.keys.separator,
        'txt.vars.separator': config.txt.vars.separator,
        'txt.vars.equalsign': config.txt.vars.equalsign,
    }
    for key, value in required.items():
        if not value:
            raise ConfigurationError("value must not be empty", key=key)

    if config.etcd.import_.batch < 1:
        raise ConfigurationError("batch size must be positive", key='etcd.import.batch')

    config.dns.tsig.algo = tsig_algorithm(config.dns.tsig.algo)
    return config


def load_config(
    path: Optional[Union[str, Path]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Config:
    """
    Load the inventory configuration.

    Args:
        path: Explicit config file path (default: search standard locations)
        environ: Environment mapping (default: os.environ)

    Returns:
        A validated Config
    """
    environ = os.environ if environ is None else environ
    config = Config()

    config_path = Path(path) if path else find_config_file(environ)
    if config_path is not None:
        try:
            data = yaml.safe_load(config_path.read_text(encoding='utf-8')) or {}
        except OSError as e:
            raise ConfigurationError(f"failed to read config file: {e}", key=str(config_path))
        except yaml.YAMLError as e:
            raise ConfigurationError("failed to parse config file", key=str(config_path), details=str(e))
        if not isinstance(data, dict):
            raise ConfigurationError("config file must contain a mapping", key=str(config_path))
        _update_from_mapping(config, data)

    _update_from_environment(config, environ)

    return validate_config(config)
