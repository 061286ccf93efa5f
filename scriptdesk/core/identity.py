"""Identifier and clock providers.

Services take these as constructor arguments so tests can pin ids and
timestamps. The defaults are what the application wires in at startup.
"""

import uuid
from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]
IdFactory = Callable[[], str]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Collision-free identifier for projects, scripts and folders."""
    return uuid.uuid4().hex
