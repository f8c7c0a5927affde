"""
Snapshot store for the latest playlist and merged guide.

Writers replace whole snapshots; readers get the stored immutable values and
never observe a half-updated guide.
"""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from types import MappingProxyType
import logging
import threading

from guidematch.services.guide_types import GuideDocument, PlaylistChannel


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class GuideSnapshot:
    guide: GuideDocument
    channel_map: Mapping[str, str]


class GuideStore:
    """Thread-safe holder of the most recent playlist and guide snapshots."""

    def __init__(self):
        self._lock = threading.Lock()
        self._playlist: tuple[PlaylistChannel, ...] | None = None
        self._guide: GuideSnapshot | None = None
        self._last_sync: datetime | None = None

    def set_playlist(self, channels: Sequence[PlaylistChannel]) -> None:
        snapshot = tuple(channels)
        with self._lock:
            self._playlist = snapshot
            self._last_sync = datetime.now(timezone.utc)

    def get_playlist(self) -> tuple[PlaylistChannel, ...] | None:
        with self._lock:
            return self._playlist

    def set_guide(self, guide: GuideDocument, channel_map: Mapping[str, str]) -> None:
        snapshot = GuideSnapshot(guide=guide, channel_map=MappingProxyType(dict(channel_map)))
        with self._lock:
            self._guide = snapshot
            self._last_sync = datetime.now(timezone.utc)
        logger.debug(
            "Stored guide snapshot: %s channels, %s programs",
            len(guide.channels),
            len(guide.programs),
        )

    def get_guide(self) -> GuideSnapshot | None:
        with self._lock:
            return self._guide

    def last_sync(self) -> datetime | None:
        with self._lock:
            return self._last_sync

    def has_data(self) -> bool:
        """True once both a playlist and a guide snapshot are available."""
        with self._lock:
            return self._playlist is not None and self._guide is not None

    def get_groups(self) -> list[str]:
        """Distinct non-empty group labels of the playlist, sorted alphabetically."""
        playlist = self.get_playlist() or ()
        return sorted({channel.group for channel in playlist if channel.group})

    def get_channels_by_group(self, group: str) -> list[PlaylistChannel] | None:
        """
        Playlist channels of one group; an empty group returns every channel.

        Returns None while no playlist has been stored yet.
        """
        playlist = self.get_playlist()
        if playlist is None:
            return None
        if not group:
            return list(playlist)
        return [channel for channel in playlist if channel.group == group]
