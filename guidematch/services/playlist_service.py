"""
M3U Playlist Service

Parses M3U playlists into PlaylistChannel entries and rewrites them with the
guide identifiers resolved by the matcher.
"""
from __future__ import annotations

from collections.abc import Mapping, Sequence
import logging
import re

from guidematch.exceptions import PlaylistParseError
from guidematch.services.guide_types import PlaylistChannel

logger = logging.getLogger(__name__)

ATTRIBUTE_PATTERNS = {
    attr: re.compile(rf'{re.escape(attr)}="([^"]*)"')
    for attr in ("tvg-id", "tvg-name", "tvg-logo", "group-title")
}


def parse_playlist(data: bytes | str) -> list[PlaylistChannel]:
    """
    Parse M3U playlist content

    Args:
        data: Raw playlist bytes (or text)

    Returns:
        Channels in playlist order

    Raises:
        PlaylistParseError: If an #EXTINF line has no URL before the next
            #EXTINF or the end of the file
    """
    if isinstance(data, bytes):
        data = data.decode("utf-8", errors="replace")

    channels: list[PlaylistChannel] = []
    current: dict | None = None

    for line_no, raw_line in enumerate(data.splitlines(), start=1):
        line = raw_line.strip()

        if not line or line.startswith("#EXTM3U"):
            continue

        if line.startswith("#EXTINF:"):
            if current is not None:
                raise PlaylistParseError(
                    f"found #EXTINF without URL for previous channel (line {line_no})"
                )
            current = _parse_extinf(line)
        elif not line.startswith("#") and current is not None:
            channels.append(PlaylistChannel(url=line, **current))
            current = None

    if current is not None:
        raise PlaylistParseError("found #EXTINF without URL at end of file")

    logger.info("Parsed %s playlist channels", len(channels))

    return channels


def _parse_extinf(line: str) -> dict:
    """Extract attributes and display name from an #EXTINF line"""
    _, sep, name = line.partition(",")
    return {
        "name": name.strip() if sep else "",
        "tvg_id": _extract_attribute(line, "tvg-id"),
        "tvg_name": _extract_attribute(line, "tvg-name"),
        "tvg_logo": _extract_attribute(line, "tvg-logo"),
        "group": _extract_attribute(line, "group-title"),
        "original": line,
    }


def _extract_attribute(line: str, attr: str) -> str:
    match = ATTRIBUTE_PATTERNS[attr].search(line)
    return match.group(1) if match else ""


def rewrite_playlist(channels: Sequence[PlaylistChannel], channel_map: Mapping[str, str]) -> str:
    """
    Render an M3U playlist with resolved guide identifiers

    Args:
        channels: Playlist channels in output order
        channel_map: Guide ID -> playlist name; the first ID per name is used,
            suffixes included, so the tvg-id matches the served guide exactly

    Returns:
        M3U text; channels without a resolved ID keep their original tvg-id
    """
    name_to_id: dict[str, str] = {}
    for guide_id, playlist_name in channel_map.items():
        name_to_id.setdefault(playlist_name, guide_id)

    entries = []
    for channel in channels:
        tvg_id = name_to_id.get(channel.name, channel.tvg_id)
        entries.append(
            f'#EXTINF:-1 tvg-id="{tvg_id}" tvg-name="{channel.tvg_name}" '
            f'tvg-logo="{channel.tvg_logo}" group-title="{channel.group}",{channel.name}\n'
            f'{channel.url}\n'
        )

    return "#EXTM3U\n" + "\n".join(entries)
