"""
Guide merging

This module combines per-source match results into one guide, and assembles
the single-source guide (match + placeholders).
"""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
import logging

from guidematch.config import EngineSettings
from guidematch.services.channel_matcher import filter_for_merge
from guidematch.services.guide_types import (
    GuideChannel,
    GuideDocument,
    GuideProgram,
    MergedResult,
    PlaylistChannel,
    SourceResult,
)
from guidematch.services.name_normalizer import NameNormalizer
from guidematch.services.placeholder_service import add_placeholders
from guidematch.utils.logging_helpers import log_merge_summary

logger = logging.getLogger(__name__)


def merge_sources(results: Sequence[SourceResult | None]) -> MergedResult:
    """
    Merge filtered guide sources with program-level deduplication

    Earlier sources have higher priority: the first source to match a playlist
    name owns that channel's metadata and identifier. Programs from every
    source are remapped onto the owning identifier; a program whose start
    timestamp already exists on that identifier is dropped.

    Args:
        results: Filtered sources in priority order; None entries are skipped

    Returns:
        MergedResult with first-claim channel map
    """
    channels: list[GuideChannel] = []
    programs: list[GuideProgram] = []
    channel_map: dict[str, str] = {}

    # playlist name -> primary guide ID (first source to match owns the channel)
    primary_ids: dict[str, str] = {}
    seen_starts: dict[str, set[str]] = {}

    for result in results:
        if result is None:
            continue

        channels_by_id: dict[str, GuideChannel] = {}
        for channel in result.guide.channels:
            channels_by_id.setdefault(channel.id, channel)

        programs_by_channel: dict[str, list[GuideProgram]] = {}
        for program in result.guide.programs:
            programs_by_channel.setdefault(program.channel, []).append(program)

        for guide_id, playlist_name in result.channel_map.items():
            if playlist_name not in primary_ids:
                if guide_id in channel_map:
                    # Another source already owns this ID under a different name
                    logger.warning(
                        "Guide ID %s already owned by '%s', not claiming it for '%s'",
                        guide_id,
                        channel_map[guide_id],
                        playlist_name,
                    )
                    continue

                primary_ids[playlist_name] = guide_id
                channel_map[guide_id] = playlist_name

                channel = channels_by_id.get(guide_id)
                if channel is not None:
                    # Guide display name always equals the playlist's own label
                    channels.append(replace(channel, display_name=playlist_name))

            primary_id = primary_ids[playlist_name]
            starts = seen_starts.setdefault(primary_id, set())

            for program in programs_by_channel.get(guide_id, ()):
                if program.start in starts:
                    logger.debug(
                        "Skipping duplicate program: %s on %s at %s",
                        program.title,
                        primary_id,
                        program.start,
                    )
                    continue

                starts.add(program.start)
                programs.append(program if program.channel == primary_id else replace(program, channel=primary_id))

    log_merge_summary(logger, len(channels), len(programs))

    return MergedResult(
        channels=tuple(channels),
        programs=tuple(programs),
        channel_map=channel_map,
    )


def filter_guide(
    guide: GuideDocument,
    playlist: Sequence[PlaylistChannel],
    normalizer: NameNormalizer,
    settings: EngineSettings
) -> tuple[GuideDocument, dict[str, str]]:
    """
    Single-source use: match one guide to the playlist and fill the gaps with placeholders

    Returns:
        Tuple of (guide document, guide ID -> playlist name map)
    """
    result = filter_for_merge(guide, playlist, normalizer)
    return add_placeholders(
        result.guide,
        playlist,
        result.channel_map,
        start=settings.placeholder_start,
        stop=settings.placeholder_stop,
        description=settings.placeholder_description,
    )


def complete_merged_guide(
    merged: MergedResult,
    playlist: Sequence[PlaylistChannel],
    settings: EngineSettings
) -> tuple[GuideDocument, dict[str, str]]:
    """Multi-source use: add placeholders once, after all sources were merged."""
    return add_placeholders(
        GuideDocument(channels=merged.channels, programs=merged.programs),
        playlist,
        merged.channel_map,
        start=settings.placeholder_start,
        stop=settings.placeholder_stop,
        description=settings.placeholder_description,
    )
