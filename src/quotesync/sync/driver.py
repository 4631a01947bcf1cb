"""Sync driver: fetch the remote snapshot and run one reconciliation pass.

Manual and scheduled triggers share :meth:`SyncDriver.run_once`.  Passes
never interleave: a trigger that arrives while a pass is still running is
dropped and reported as ``busy``.  A failed or empty fetch ends the pass
before the store is touched, so it has no side effects and the next
scheduled tick simply tries again.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

from quotesync.core.config import merged_config, validate_config
from quotesync.core.ids import utc_now
from quotesync.core.merge import MergeOutcome
from quotesync.storage.hooks import execute_sync_hooks
from quotesync.storage.locks import LockTimeout
from quotesync.storage.operations import apply_remote_snapshot, read_config
from quotesync.sync import bus
from quotesync.sync.remote import HttpRemoteSource, RemoteFetchError

logger = logging.getLogger(__name__)

Fetcher = Callable[[], Awaitable[object]]

STATUS_OK = "ok"
STATUS_FAILED = "failed"
STATUS_BUSY = "busy"


@dataclass
class SyncResult:
    """What one trigger of the driver did."""

    status: str
    trigger: str
    started_at: str
    finished_at: str
    outcome: MergeOutcome | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "trigger": self.trigger,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "outcome": self.outcome.to_dict() if self.outcome is not None else None,
            "error": self.error,
        }


class SyncDriver:
    """Run reconciliation passes against a remote source, one at a time.

    Parameters
    ----------
    data_dir : Path
        The ``.quotesync`` directory.
    fetch : callable, optional
        ``async () -> list`` returning the remote snapshot.  Defaults to an
        :class:`HttpRemoteSource` built from the config.
    config : dict, optional
        Merged config; read from ``data_dir`` when omitted.  A config that
        fails ``validate_config`` (or is not valid JSON) raises ``ValueError``.
    """

    def __init__(
        self,
        data_dir: Path,
        *,
        fetch: Fetcher | None = None,
        config: dict | None = None,
    ) -> None:
        self.data_dir = data_dir
        self.config = merged_config(config) if config is not None else read_config(data_dir)
        problems = validate_config(self.config)
        if problems:
            raise ValueError("; ".join(problems))
        if fetch is None:
            fetch = HttpRemoteSource.from_config(self.config).fetch
        self._fetch = fetch
        # Upper bound on a whole fetch: connect + read, each bounded by the transport timeout.
        self._fetch_deadline = float(self.config["remote"]["timeout_seconds"]) * 2
        self._retention = self.config["sync"]["conflict_retention"]
        self._pass_lock = asyncio.Lock()
        self._task: asyncio.Task | None = None
        self.last_result: SyncResult | None = None

    @property
    def busy(self) -> bool:
        """True while a pass is in progress."""
        return self._pass_lock.locked()

    async def run_once(self, trigger: str = "manual") -> SyncResult:
        """Fetch, reconcile, record conflicts, and report.

        Fetch and lock failures do not raise; they come back as a ``failed``
        result.
        """
        started_at = utc_now()
        if self._pass_lock.locked():
            logger.info("Sync pass already in progress; dropping %s trigger", trigger)
            result = SyncResult(STATUS_BUSY, trigger, started_at, utc_now())
            await self._report(result)
            return result

        async with self._pass_lock:
            result = await self._run_pass(trigger, started_at)
            self.last_result = result
        await self._report(result)
        return result

    async def _run_pass(self, trigger: str, started_at: str) -> SyncResult:
        try:
            remote = await asyncio.wait_for(self._fetch(), timeout=self._fetch_deadline)
        except asyncio.TimeoutError:
            return self._failed(trigger, started_at, "Remote fetch timed out")
        except (RemoteFetchError, OSError) as exc:
            return self._failed(trigger, started_at, str(exc))

        if not isinstance(remote, list):
            return self._failed(trigger, started_at, "Remote returned an invalid payload")
        if not remote:
            return self._failed(trigger, started_at, "Remote returned an empty snapshot")

        try:
            outcome = await asyncio.to_thread(
                apply_remote_snapshot, self.data_dir, remote, retention=self._retention
            )
        except LockTimeout as exc:
            return self._failed(trigger, started_at, str(exc))

        return SyncResult(STATUS_OK, trigger, started_at, utc_now(), outcome=outcome)

    def _failed(self, trigger: str, started_at: str, error: str) -> SyncResult:
        logger.warning("Sync pass (%s) failed: %s", trigger, error)
        return SyncResult(STATUS_FAILED, trigger, started_at, utc_now(), error=error)

    async def _report(self, result: SyncResult) -> None:
        data = result.to_dict()
        bus.notify(data)
        await asyncio.to_thread(execute_sync_hooks, self.config, self.data_dir, data)

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def schedule(self, interval_seconds: float | None = None) -> asyncio.Task:
        """Start periodic passes on the running loop.  Returns the task.

        The first pass runs immediately; later ones every *interval_seconds*
        (config ``sync.interval_seconds`` when omitted), independent of any
        manual :meth:`run_once` calls.
        """
        if self._task is not None and not self._task.done():
            raise RuntimeError("Sync schedule is already running")
        interval = (
            interval_seconds
            if interval_seconds is not None
            else float(self.config["sync"]["interval_seconds"])
        )
        self._task = asyncio.get_running_loop().create_task(self.run_forever(interval))
        return self._task

    async def run_forever(self, interval_seconds: float) -> None:
        """Trigger a scheduled pass every *interval_seconds* until cancelled."""
        logger.info("Scheduling sync every %ss", interval_seconds)
        while True:
            try:
                await self.run_once("scheduled")
            except Exception:
                logger.exception("Scheduled sync pass crashed; retrying next tick")
            await asyncio.sleep(interval_seconds)

    async def stop(self) -> None:
        """Cancel the schedule started by :meth:`schedule`, if any."""
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
