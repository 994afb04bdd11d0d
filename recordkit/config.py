"""
RecordConfig for recordkit - per-type configuration.

Example:
    from recordkit import Record, RecordConfig, SnakeCaseStrategy

    class Invoice(Record):
        record_config = RecordConfig(
            frozen=True,
            naming_strategy=SnakeCaseStrategy(),
        )
        invoiceNumber: str
        totalAmount: float
"""

from typing import Any, Optional

from typing_extensions import TypedDict


class RecordConfig(TypedDict, total=False):
    """Configuration dictionary for a record type."""

    frozen: bool
    """If True, instances are immutable after construction. Default: False."""

    naming_strategy: Any
    """NamingStrategy used when the call Context does not provide one. Default: None."""

    title: Optional[str]
    """Title for schema export. Default: class name."""

    description: Optional[str]
    """Description for schema export. Default: None."""


# Default configuration values
CONFIG_DEFAULTS: RecordConfig = {
    'frozen': False,
    'naming_strategy': None,
    'title': None,
    'description': None,
}


def get_config_value(config: Optional[RecordConfig], key: str, default: Any = None) -> Any:
    """Get a configuration value with fallback to defaults."""
    if config is None:
        value = CONFIG_DEFAULTS.get(key)
    else:
        value = config.get(key, CONFIG_DEFAULTS.get(key))
    return default if value is None else value


__all__ = ["RecordConfig", "CONFIG_DEFAULTS", "get_config_value"]
