"""
Shared engine used by the Record convenience methods.

The shared engine is created lazily on first use. Applications that need
custom registries install their own with set_default_engine(); tests call
reset_default_engine() to drop cached metadata between cases.

Example:
    from recordkit import EngineFactory, set_default_engine

    set_default_engine(EngineFactory().with_caster_registry(my_casters).create())
"""

import logging
import threading
from typing import Optional

from .engine import Engine, EngineFactory

logger = logging.getLogger(__name__)

_engine: Optional[Engine] = None
_lock = threading.Lock()


def get_default_engine() -> Engine:
    global _engine
    if _engine is None:
        with _lock:
            if _engine is None:
                _engine = EngineFactory().create()
                logger.debug("Created default engine")
    return _engine


def set_default_engine(engine: Engine) -> None:
    global _engine
    with _lock:
        _engine = engine


def reset_default_engine() -> None:
    """Discard the shared engine (and its metadata cache)."""
    global _engine
    with _lock:
        _engine = None
    logger.debug("Reset default engine")


__all__ = ["get_default_engine", "set_default_engine", "reset_default_engine"]
