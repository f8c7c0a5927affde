"""
Shared dataclasses used across the matching and merge pipeline.
"""
from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class PlaylistChannel:
    """One stream entry from an M3U playlist."""
    name: str
    url: str
    tvg_id: str = ""
    tvg_name: str = ""
    tvg_logo: str = ""
    group: str = ""
    original: str = ""


@dataclass(frozen=True, slots=True)
class GuideChannel:
    """XMLTV channel; the id may be empty until the matcher assigns one."""
    id: str
    display_name: str
    icon: str = ""


@dataclass(frozen=True, slots=True)
class GuideProgram:
    """XMLTV programme. Start/stop are opaque, comparable strings."""
    channel: str
    start: str
    stop: str
    title: str
    description: str = ""
    category: str = ""


@dataclass(frozen=True, slots=True)
class GuideDocument:
    channels: tuple[GuideChannel, ...] = ()
    programs: tuple[GuideProgram, ...] = ()


@dataclass(frozen=True, slots=True)
class MatchResult:
    """Guide channels that survived matching and the id -> playlist name map."""
    channels: tuple[GuideChannel, ...]
    channel_map: dict[str, str]
    # original id -> ids rewritten as "<id>-N" in the same run
    suffixed_ids: dict[str, tuple[str, ...]] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class SourceResult:
    """One guide source filtered against the playlist, ready for merging."""
    guide: GuideDocument
    channel_map: dict[str, str]


@dataclass(frozen=True, slots=True)
class MergedResult:
    channels: tuple[GuideChannel, ...]
    programs: tuple[GuideProgram, ...]
    channel_map: dict[str, str]


__all__ = [
    "PlaylistChannel",
    "GuideChannel",
    "GuideProgram",
    "GuideDocument",
    "MatchResult",
    "SourceResult",
    "MergedResult",
]
