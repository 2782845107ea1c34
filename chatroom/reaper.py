from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import List, Optional

from .core.schemas import LEAVE_TEXT
from .service import Clock, epoch_ms, status_message
from .store.collections import Storage


logger = logging.getLogger("chatroom.reaper")


class PresenceReaper:
    """Evicts participants whose last status ping is older than ``timeout``.

    Each sweep takes one cutoff snapshot and uses it for both the query and
    the delete. A participant that refreshes between those two steps is still
    evicted; this race is accepted.
    """

    def __init__(
        self,
        storage: Storage,
        *,
        interval: float = 15.0,
        timeout: float = 10.0,
        now: Optional[Clock] = None,
    ) -> None:
        self.storage = storage
        self.interval = interval
        self.timeout = timeout
        self.now: Clock = now or datetime.now

    async def sweep(self) -> List[str]:
        moment = self.now()
        cutoff = epoch_ms(moment - timedelta(seconds=self.timeout))
        stale = {"lastStatus": {"$lte": cutoff}}

        inactive = await self.storage.participants.find(stale)
        if not inactive:
            return []

        names = [p["name"] for p in inactive]
        departures = [status_message(name, LEAVE_TEXT, moment) for name in names]
        await self.storage.participants.delete_many(stale)
        await self.storage.messages.insert_many(departures)
        logger.info("Removed %d inactive participant(s): %s", len(names), ", ".join(names))
        return names

    async def run(self) -> None:
        """Sweep every ``interval`` seconds until cancelled; failures are logged."""
        logger.info("Reaper started (interval=%ss timeout=%ss)", self.interval, self.timeout)
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.sweep()
            except Exception:
                logger.exception("Failed to remove inactive participants")
