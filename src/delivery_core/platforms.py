"""Delivery platforms supported by the core.

The three marketplaces are modelled as a tagged enum instead of free-form
strings. Behaviour that differs per platform (row building, resolution,
metric reducers) is looked up in :mod:`delivery_core.strategies`; this module
only carries the static facts about each platform.

Examples:
    >>> from delivery_core.platforms import Platform
    >>> Platform.parse("Uber Eats")
    <Platform.UBER_EATS: 'ubereats'>
    >>> Platform.DOORDASH.alias_field
    'doordash_name'
"""

from __future__ import annotations

import re
from enum import Enum

from delivery_core.exceptions import ConfigError


class Platform(str, Enum):
    UBER_EATS = "ubereats"
    DOORDASH = "doordash"
    GRUBHUB = "grubhub"

    @classmethod
    def parse(cls, value: str | Platform) -> Platform:
        """Parse a platform from its value or a loose display spelling.

        Args:
            value: "ubereats", "Uber Eats", "uber_eats", "DoorDash", ...

        Returns:
            Matching Platform member.

        Raises:
            ConfigError: If the value names no known platform.
        """
        if isinstance(value, Platform):
            return value
        key = re.sub(r"[^a-z]", "", str(value).lower())
        for member in cls:
            if member.value == key:
                return member
        raise ConfigError(
            f"Unknown platform '{value}'. Must be one of: "
            + ", ".join(m.value for m in cls)
        )

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @property
    def alias_field(self) -> str:
        """Location attribute holding this platform's free-text store name."""
        return _ALIAS_FIELDS[self]

    @property
    def key_field(self) -> str:
        """Location attribute holding this platform's matching key."""
        return _KEY_FIELDS[self]


_DISPLAY_NAMES = {
    Platform.UBER_EATS: "Uber Eats",
    Platform.DOORDASH: "DoorDash",
    Platform.GRUBHUB: "Grubhub",
}

_ALIAS_FIELDS = {
    Platform.UBER_EATS: "uber_eats_name",
    Platform.DOORDASH: "doordash_name",
    Platform.GRUBHUB: "grubhub_name",
}

_KEY_FIELDS = {
    Platform.UBER_EATS: "uber_eats_store_label",
    Platform.DOORDASH: "doordash_store_key",
    Platform.GRUBHUB: "grubhub_address",
}
