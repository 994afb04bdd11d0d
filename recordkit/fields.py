"""
Field declarations for recordkit.

Field() attaches per-field metadata (defaults, source-key renames, hidden
flag, explicit casters/transformers) to a record attribute. It can be used
inside typing.Annotated or assigned as the class attribute default.

Example:
    from typing import Annotated, List
    from recordkit import Record, Field

    class User(Record):
        email: Annotated[str, Field(map_from="user_email")]
        password: Annotated[str, Field(hidden=True)]
        tags: List[str] = Field(default_factory=list)
"""

from typing import Any, Callable, List, Optional

_MISSING = object()  # Sentinel for unset defaults


class FieldInfo:
    """Stores field-level metadata.

    This is the object returned by Field() and can be used in Annotated types.
    """
    __slots__ = (
        'default', 'default_factory', 'map_from', 'hidden', 'cast_with',
        'transform_with', 'frozen', 'title', 'description', 'examples',
    )

    def __init__(
        self,
        default: Any = _MISSING,
        *,
        default_factory: Optional[Callable[[], Any]] = None,
        map_from: Optional[str] = None,
        hidden: bool = False,
        cast_with: Any = None,
        transform_with: Any = None,
        frozen: bool = False,
        title: Optional[str] = None,
        description: Optional[str] = None,
        examples: Optional[List[Any]] = None,
    ):
        if default is not _MISSING and default_factory is not None:
            raise ValueError("cannot specify both default and default_factory")
        self.default = default
        self.default_factory = default_factory
        self.map_from = map_from
        self.hidden = hidden
        self.cast_with = cast_with
        self.transform_with = transform_with
        self.frozen = frozen
        self.title = title
        self.description = description
        self.examples = examples

    @property
    def has_default(self) -> bool:
        return self.default is not _MISSING or self.default_factory is not None

    def __repr__(self) -> str:
        parts = []
        if self.default is not _MISSING:
            parts.append(f"default={self.default!r}")
        if self.default_factory is not None:
            parts.append(f"default_factory={self.default_factory!r}")
        if self.map_from is not None:
            parts.append(f"map_from={self.map_from!r}")
        if self.hidden:
            parts.append("hidden=True")
        if self.cast_with is not None:
            parts.append(f"cast_with={self.cast_with!r}")
        if self.transform_with is not None:
            parts.append(f"transform_with={self.transform_with!r}")
        if self.frozen:
            parts.append("frozen=True")
        return f"FieldInfo({', '.join(parts)})"


def Field(
    default: Any = _MISSING,
    *,
    default_factory: Optional[Callable[[], Any]] = None,
    map_from: Optional[str] = None,
    hidden: bool = False,
    cast_with: Any = None,
    transform_with: Any = None,
    frozen: bool = False,
    title: Optional[str] = None,
    description: Optional[str] = None,
    examples: Optional[List[Any]] = None,
) -> Any:
    """Create a FieldInfo carrying field metadata.

    ``cast_with`` and ``transform_with`` take a Caster or Transformer
    instance (or class, instantiated with no arguments) that is used for
    this field instead of the registry lookup.

    Example:
        from typing import Annotated
        from recordkit import Field

        # Read from a differently named source key
        email: Annotated[str, Field(map_from="user_email")]

        # Never written to normalized output
        token: Annotated[str, Field(hidden=True)]

        # With default
        score: float = Field(default=0.0)
    """
    return FieldInfo(
        default=default,
        default_factory=default_factory,
        map_from=map_from,
        hidden=hidden,
        cast_with=cast_with,
        transform_with=transform_with,
        frozen=frozen,
        title=title,
        description=description,
        examples=examples,
    )


__all__ = ["Field", "FieldInfo"]
