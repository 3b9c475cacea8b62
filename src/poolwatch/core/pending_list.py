"""Pending snipe list: base mints that bypass the symbol filter."""

import asyncio
from pathlib import Path

import structlog

from poolwatch.core.exceptions import ConfigurationError

logger = structlog.get_logger(__name__)


class PendingList:
    """Ordered allow-list of base mints.

    Seeded from configuration and optionally reloaded from a file that holds
    one mint per line (blank lines and ``#`` comments are ignored). A reload
    replaces the file-sourced part of the list; seed mints always stay.
    """

    def __init__(
        self,
        mints: list[str] | None = None,
        file_path: str | Path | None = None,
        refresh_seconds: float = 30,
    ) -> None:
        self._seed: list[str] = _dedupe(mints or [])
        self._from_file: list[str] = []
        self.file_path = Path(file_path) if file_path else None
        self.refresh_seconds = refresh_seconds
        self._members: frozenset[str] = frozenset(self._seed)
        self._refresh_task: asyncio.Task[None] | None = None

    def __contains__(self, mint: object) -> bool:
        return mint in self._members

    def __len__(self) -> int:
        return len(self._members)

    @property
    def mints(self) -> list[str]:
        """All mints in order: seed first, then file entries."""
        return _dedupe(self._seed + self._from_file)

    def load_file(self) -> int:
        """Reload mints from ``file_path``.

        Returns:
            Number of mints read from the file.

        Raises:
            ConfigurationError: If the file cannot be read.
        """
        if self.file_path is None:
            return 0

        try:
            text = self.file_path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(
                f"Snipe list file not readable: {self.file_path}"
            ) from e

        mints = []
        for raw in text.splitlines():
            line = raw.split("#", 1)[0].strip()
            if line:
                mints.append(line)

        previous = self._members
        self._from_file = _dedupe(mints)
        self._members = frozenset(self._seed + self._from_file)

        if self._members != previous:
            logger.info(
                "pending_list_reloaded",
                path=str(self.file_path),
                count=len(self._members),
            )
        return len(self._from_file)

    async def _refresh_loop(self) -> None:
        while True:
            await asyncio.sleep(self.refresh_seconds)
            try:
                self.load_file()
            except ConfigurationError as e:
                # Keep the last good list
                logger.warning("pending_list_reload_failed", error=str(e))

    def start_monitoring(self) -> None:
        """Load the file now and keep reloading it in the background."""
        if self.file_path is None or self._refresh_task is not None:
            return
        self.load_file()
        self._refresh_task = asyncio.create_task(self._refresh_loop())
        logger.info(
            "pending_list_monitoring_started",
            path=str(self.file_path),
            refresh_seconds=self.refresh_seconds,
        )

    async def stop_monitoring(self) -> None:
        """Stop the background reload task."""
        if self._refresh_task is None:
            return
        self._refresh_task.cancel()
        try:
            await self._refresh_task
        except asyncio.CancelledError:
            pass
        self._refresh_task = None


def _dedupe(mints: list[str]) -> list[str]:
    return list(dict.fromkeys(mints))
