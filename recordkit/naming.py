"""
Naming strategies for recordkit.

A naming strategy converts a record's internal field name into the key used
by external data. The engine only ever converts in the TO_SOURCE direction;
TO_PROPERTY exists so strategies can document their inverse.

Example:
    from recordkit import SnakeCaseStrategy, Direction

    SnakeCaseStrategy().convert("firstName", Direction.TO_SOURCE)   # "first_name"
    SnakeCaseStrategy().convert("first_name", Direction.TO_PROPERTY)  # "firstName"
"""

import re
from enum import Enum


class Direction(str, Enum):
    TO_SOURCE = "to_source"
    TO_PROPERTY = "to_property"


class NamingStrategy:
    """Base class for key-casing conversions."""

    def convert(self, name: str, direction: Direction = Direction.TO_SOURCE) -> str:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class IdentityStrategy(NamingStrategy):
    def convert(self, name: str, direction: Direction = Direction.TO_SOURCE) -> str:
        return name


_LOWER_UPPER = re.compile(r'([a-z])([A-Z])')
_ACRONYM = re.compile(r'([A-Z]+)([A-Z][a-z])')
_DIGIT_UPPER = re.compile(r'([0-9])([A-Z])')


def to_snake_case(name: str) -> str:
    """camelCase / PascalCase / HTMLParser -> snake_case."""
    result = _LOWER_UPPER.sub(r'\1_\2', name)
    result = _ACRONYM.sub(r'\1_\2', result)
    result = _DIGIT_UPPER.sub(r'\1_\2', result)
    return result.lower()


def to_camel_case(name: str) -> str:
    """snake_case / kebab-case -> camelCase."""
    for separator in ('_', '-'):
        if separator in name:
            first, *rest = name.split(separator)
            return first.lower() + ''.join(word[:1].upper() + word[1:].lower() for word in rest)
    return name[:1].lower() + name[1:]


class SnakeCaseStrategy(NamingStrategy):
    """Internal camelCase names read from / written to snake_case keys."""

    def convert(self, name: str, direction: Direction = Direction.TO_SOURCE) -> str:
        if direction == Direction.TO_SOURCE:
            return to_snake_case(name)
        if direction == Direction.TO_PROPERTY:
            return to_camel_case(name)
        return name


class CamelCaseStrategy(NamingStrategy):
    """Internal snake_case names read from / written to camelCase keys."""

    def convert(self, name: str, direction: Direction = Direction.TO_SOURCE) -> str:
        if direction == Direction.TO_SOURCE:
            return to_camel_case(name)
        if direction == Direction.TO_PROPERTY:
            return to_snake_case(name)
        return name


__all__ = [
    "Direction",
    "NamingStrategy",
    "IdentityStrategy",
    "SnakeCaseStrategy",
    "CamelCaseStrategy",
    "to_snake_case",
    "to_camel_case",
]
