"""
Lifecycle capabilities a record type can opt into.

The engine checks ``issubclass``/``isinstance`` against these classes; a
record that does not implement one simply skips that step.

Example:
    from recordkit import Record, PreHydrate, PostHydrate

    class Account(Record, PreHydrate, PostHydrate):
        email: str

        @classmethod
        def transform_input(cls, data):
            return {**data, "email": data.get("email", "").lower()}

        def after_hydration(self):
            audit_log.append(self.email)
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping


class PreHydrate(ABC):
    """Rewrites the plain input mapping before it is mapped."""

    @classmethod
    @abstractmethod
    def transform_input(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        ...


class PostHydrate(ABC):
    """Called on the new instance once hydration has completed."""

    @abstractmethod
    def after_hydration(self) -> None:
        ...


class PreSerialize(ABC):
    """Called on the instance before it is normalized."""

    @abstractmethod
    def before_serialization(self) -> None:
        ...


class ComputesLazy(ABC):
    """Derived output values, merged after the declared fields on request.

    Values may be zero-argument callables; they are only called when the
    name is selected with ``SerializationOptions(include_lazy=...)``. Lazy
    names must not collide with declared fields.
    """

    @abstractmethod
    def compute_lazy(self) -> Mapping[str, Any]:
        ...


__all__ = ["PreHydrate", "PostHydrate", "PreSerialize", "ComputesLazy"]
