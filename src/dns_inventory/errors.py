# Copyright (c) 2024 ansible-dns-inventory Contributors
# MIT License

"""
ansible-dns-inventory Error Classes.

All custom exceptions for clear error handling and exit codes.
"""

from __future__ import annotations

import enum


class ExitCode(enum.IntEnum):
    """Exit codes of the dns-inventory command."""

    SUCCESS = 0
    GENERIC_ERROR = 1
    DATASOURCE_ERROR = 2
    CONFIGURATION_ERROR = 3
    EMPTY_INVENTORY = 4
    FORMAT_ERROR = 5
    KEYBOARD_INTERRUPT = 130


class DnsInventoryError(Exception):
    """Base exception for all inventory errors."""

    exit_code: int = ExitCode.GENERIC_ERROR

    def __init__(self, message: str, details: str | None = None) -> None:
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}\n  Details: {self.details}"
        return self.message


class AttributeValidationError(DnsInventoryError):
    """A host attribute string is malformed or carries an unsafe value.

    Raised per record; callers log it and skip the record.
    """

    def __init__(
        self,
        field: str,
        value: str,
        pattern: str | None = None,
        reason: str | None = None,
    ) -> None:
        self.field = field
        self.value = value
        self.pattern = pattern
        if reason is None:
            reason = f"string '{value}' is not a valid host attribute value (expr: {pattern})"
        super().__init__(f"attribute validation error: {field}: {reason}")


class ConfigurationError(DnsInventoryError):
    """Invalid configuration: unknown datasource, filter key or operator, bad values."""

    exit_code: int = ExitCode.CONFIGURATION_ERROR

    def __init__(self, message: str, key: str | None = None, details: str | None = None) -> None:
        self.key = key
        location = f" ({key})" if key else ""
        super().__init__(f"Configuration error{location}: {message}", details)


class EmptyInventoryError(DnsInventoryError):
    """No usable host records were found."""

    exit_code: int = ExitCode.EMPTY_INVENTORY

    def __init__(self, message: str = "empty host records list", details: str | None = None) -> None:
        super().__init__(message, details)


class DatasourceError(DnsInventoryError):
    """Error talking to a DNS server or an etcd cluster."""

    exit_code: int = ExitCode.DATASOURCE_ERROR

    def __init__(
        self,
        datasource: str,
        message: str,
        target: str | None = None,
        details: str | None = None,
    ) -> None:
        self.datasource = datasource
        self.target = target
        target_info = f" [{target}]" if target else ""
        super().__init__(f"{datasource} datasource{target_info}: {message}", details)


class FormatError(DnsInventoryError):
    """Requested output format is not supported for the export mode."""

    exit_code: int = ExitCode.FORMAT_ERROR

    def __init__(self, format_name: str, mode: str | None = None) -> None:
        self.format_name = format_name
        self.mode = mode
        mode_info = f" for {mode}" if mode else ""
        super().__init__(f"unsupported format{mode_info}: {format_name}")
