"""General helper utilities."""

import asyncio
import time
from datetime import datetime, timezone


def _utcnow_iso() -> str:
    return (
        datetime.now(timezone.utc)
        .isoformat(timespec="seconds")
        .replace("+00:00", "Z")
    )


def _epoch_millis() -> int:
    return time.time_ns() // 1_000_000


def _sleep_ms(millis: float) -> None:
    """Block the calling thread for ``millis`` milliseconds (simulated I/O)."""
    if millis > 0:
        time.sleep(millis / 1000)


async def _asleep_ms(millis: float) -> None:
    """Suspend the current task for ``millis`` milliseconds (simulated I/O)."""
    await asyncio.sleep(max(millis, 0) / 1000)
