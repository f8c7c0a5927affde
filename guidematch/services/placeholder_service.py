"""
Placeholder Guide Data

Covers playlist channels that have no real guide data: a synthesized channel
for every never-matched playlist name and one full-day placeholder programme
for every channel that owns no programmes.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
import logging

from guidematch.services.channel_matcher import build_category_map
from guidematch.services.guide_types import GuideChannel, GuideDocument, GuideProgram, PlaylistChannel
from guidematch.services.id_allocator import generate_channel_id


logger = logging.getLogger(__name__)


def synthesize_channels(
    playlist: Sequence[PlaylistChannel],
    channel_map: Mapping[str, str],
    existing_ids: Iterable[str] = ()
) -> list[GuideChannel]:
    """
    Create guide channels for playlist entries that were never matched

    Args:
        playlist: Parsed playlist channels
        channel_map: Guide ID -> playlist name map of all matches
        existing_ids: IDs already present in the guide

    Returns:
        One channel per distinct unmatched, non-empty playlist name. The ID is
        the name's hash, suffixed "-N" only if a guide channel already uses it
    """
    matched_names = set(channel_map.values())
    taken_ids = set(channel_map) | set(existing_ids)
    created: dict[str, GuideChannel] = {}

    for entry in playlist:
        if not entry.name or entry.name in matched_names or entry.name in created:
            continue

        channel_id = _unused_id(generate_channel_id(entry.name), taken_ids)
        taken_ids.add(channel_id)

        created[entry.name] = GuideChannel(
            id=channel_id,
            display_name=entry.name,
            icon=entry.tvg_logo,
        )

    if created:
        logger.info("Created guide channel entries for %s unmatched playlist channels (no guide data)", len(created))

    return list(created.values())


def _unused_id(base_id: str, taken_ids: set[str]) -> str:
    if base_id not in taken_ids:
        return base_id

    count = 2
    while f"{base_id}-{count}" in taken_ids:
        count += 1

    logger.debug("Synthesized channel ID %s already in use, using %s-%s", base_id, base_id, count)
    return f"{base_id}-{count}"


def synthesize_programs(
    channels: Sequence[GuideChannel],
    programs: Sequence[GuideProgram],
    channel_map: Mapping[str, str],
    category_map: Mapping[str, str],
    *,
    start: str,
    stop: str,
    description: str
) -> list[GuideProgram]:
    """One placeholder programme per channel that owns no programmes."""
    channels_with_programs = {program.channel for program in programs}
    placeholders: list[GuideProgram] = []

    for channel in channels:
        if channel.id in channels_with_programs:
            continue

        title = channel_map.get(channel.id, channel.display_name)
        placeholders.append(GuideProgram(
            channel=channel.id,
            start=start,
            stop=stop,
            title=title,
            description=description,
            category=category_map.get(title, ""),
        ))
        # Guards against a channel listed twice under the same ID
        channels_with_programs.add(channel.id)

    if placeholders:
        logger.debug("Generated %s placeholder programmes", len(placeholders))

    return placeholders


def add_placeholders(
    guide: GuideDocument,
    playlist: Sequence[PlaylistChannel],
    channel_map: Mapping[str, str],
    *,
    start: str,
    stop: str,
    description: str
) -> tuple[GuideDocument, dict[str, str]]:
    """
    Complete a matched or merged guide with placeholder data

    Args:
        guide: Matched (single source) or merged guide document
        playlist: Parsed playlist channels
        channel_map: Guide ID -> playlist name map for the guide
        start: Placeholder programme start timestamp
        stop: Placeholder programme stop timestamp
        description: Placeholder programme description

    Returns:
        Tuple of (completed guide, channel map including synthesized channels)
    """
    synthesized = synthesize_channels(playlist, channel_map, (channel.id for channel in guide.channels))

    full_map = dict(channel_map)
    for channel in synthesized:
        full_map.setdefault(channel.id, channel.display_name)

    channels = guide.channels + tuple(synthesized)
    placeholders = synthesize_programs(
        channels,
        guide.programs,
        full_map,
        build_category_map(playlist),
        start=start,
        stop=stop,
        description=description,
    )

    return GuideDocument(channels=channels, programs=guide.programs + tuple(placeholders)), full_map
