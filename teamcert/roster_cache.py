"""Time-based in-memory cache of the participant roster."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

from teamcert.errors import DataSourceError
from teamcert.roster_handler import RosterRecord

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 5 * 60


@dataclass(frozen=True)
class RosterSnapshot:
    records: Tuple[RosterRecord, ...]
    loaded_at: float

    def __len__(self) -> int:
        return len(self.records)


class RosterCache:
    """Serve a roster snapshot, reloading it lazily once it is older than ``ttl``.

    Concurrent callers that observe a stale snapshot share a single reload.
    When a reload fails the previous snapshot is kept but, unless
    ``serve_stale_on_error`` is set, the error is raised to every waiter.
    """

    def __init__(
        self,
        loader: Callable[[], Sequence[RosterRecord]],
        ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        serve_stale_on_error: bool = False,
    ):
        self._loader = loader
        self.ttl = ttl
        self._clock = clock
        self.serve_stale_on_error = serve_stale_on_error
        self._snapshot: Optional[RosterSnapshot] = None
        self._pending: Optional[asyncio.Future] = None

    @property
    def snapshot(self) -> Optional[RosterSnapshot]:
        return self._snapshot

    def is_fresh(self, snapshot: Optional[RosterSnapshot]) -> bool:
        return snapshot is not None and (self._clock() - snapshot.loaded_at) < self.ttl

    async def get(self) -> RosterSnapshot:
        snapshot = self._snapshot
        if self.is_fresh(snapshot):
            logger.debug("Using cached roster (%d records)", len(snapshot))
            return snapshot

        if self._pending is None:
            self._pending = asyncio.ensure_future(self._reload())
            self._pending.add_done_callback(self._clear_pending)
        return await asyncio.shield(self._pending)

    def _clear_pending(self, _future: asyncio.Future) -> None:
        self._pending = None

    async def _reload(self) -> RosterSnapshot:
        logger.info("Reloading roster")
        try:
            records = await asyncio.to_thread(self._load)
        except DataSourceError:
            if self.serve_stale_on_error and self._snapshot is not None:
                logger.warning("Roster reload failed; serving snapshot loaded at %s", self._snapshot.loaded_at)
                return self._snapshot
            raise

        snapshot = RosterSnapshot(records=records, loaded_at=self._clock())
        self._snapshot = snapshot
        return snapshot

    def _load(self) -> Tuple[RosterRecord, ...]:
        try:
            return tuple(self._loader())
        except DataSourceError:
            raise
        except Exception as e:
            raise DataSourceError(f"Roster loader failed: {e}") from e
