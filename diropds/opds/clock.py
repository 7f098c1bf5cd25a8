from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]


def frozen_clock(instant: Optional[datetime] = None) -> Clock:
    """Return a time source that always reports the same instant.

    The instant is captured once, when the clock is created, so every
    ``updated``/``published`` field emitted by a process agrees.
    """

    frozen = instant or datetime.now(timezone.utc).replace(microsecond=0)
    if frozen.tzinfo is None:
        frozen = frozen.replace(tzinfo=timezone.utc)

    def _now() -> datetime:
        return frozen

    return _now


def format_timestamp(value: datetime) -> str:
    return value.isoformat(timespec="seconds")
