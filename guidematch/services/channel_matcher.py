"""
Channel Matching Service

Decides which guide channel corresponds to which playlist channel. Three passes
run in order, each only over what is still unmatched:

1. guide ID == playlist tvg-id hint
2. guide display name == playlist display name
3. normalized names equal, ties broken by region agreement
"""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace
import logging

from guidematch.services.guide_types import (
    GuideChannel,
    GuideDocument,
    GuideProgram,
    MatchResult,
    PlaylistChannel,
    SourceResult,
)
from guidematch.services.id_allocator import IdAllocator
from guidematch.services.name_normalizer import NameNormalizer


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class NormalizedPlaylistName:
    """Normalized form of one playlist entry, used by the normalized-name pass."""
    original_name: str
    normalized_name: str
    region: str


def build_tvg_id_entries(playlist: Sequence[PlaylistChannel]) -> list[tuple[str, str]]:
    """(tvg-id, playlist name) pairs in playlist order, skipping unnamed entries."""
    return [
        (channel.tvg_id, channel.name)
        for channel in playlist
        if channel.tvg_id and channel.name
    ]


def build_display_name_set(playlist: Sequence[PlaylistChannel]) -> set[str]:
    """Names eligible for exact display-name matching (entries without a tvg-id hint)."""
    return {channel.name for channel in playlist if channel.name and not channel.tvg_id}


def build_category_map(playlist: Sequence[PlaylistChannel]) -> dict[str, str]:
    """Playlist name -> group label; a repeated name keeps its last non-empty group."""
    return {
        channel.name: channel.group
        for channel in playlist
        if channel.name and channel.group
    }


def build_normalized_name_map(
    playlist: Sequence[PlaylistChannel],
    normalizer: NameNormalizer
) -> dict[str, NormalizedPlaylistName]:
    """
    Map normalized playlist names to the entry that represents them

    Entries carrying a tvg-id are left to the identifier pass, and so are
    hint-less entries whose raw name also appears on an entry with a tvg-id.
    The first entry for a normalized name wins.

    Args:
        playlist: Parsed playlist channels
        normalizer: Name normalizer built from configuration

    Returns:
        Insertion-ordered dict of normalized name -> NormalizedPlaylistName
    """
    names_with_tvg_id = {channel.name for channel in playlist if channel.tvg_id and channel.name}

    normalized_map: dict[str, NormalizedPlaylistName] = {}
    for channel in playlist:
        if channel.tvg_id or not channel.name:
            continue
        if channel.name in names_with_tvg_id:
            continue

        normalized = normalizer.normalize(channel.name)
        if normalized not in normalized_map:
            normalized_map[normalized] = NormalizedPlaylistName(
                original_name=channel.name,
                normalized_name=normalized,
                region=normalizer.extract_region(channel.name),
            )

    return normalized_map


def score_region_match(playlist_region: str, guide_region: str) -> int:
    """2 = same explicit region, 1 = guide has no region, 0 = conflicting regions."""
    if playlist_region and guide_region == playlist_region:
        return 2
    if not guide_region:
        return 1
    return 0


class MatcherState:
    """Mutable bookkeeping for a single matching run; discarded afterwards."""

    def __init__(self, guide_channels: Sequence[GuideChannel], normalizer: NameNormalizer):
        self.guide_channels = list(guide_channels)
        self.normalizer = normalizer
        self.allocator = IdAllocator(channel.id for channel in self.guide_channels if channel.id)
        self.matched_channels: list[GuideChannel] = []
        self.channel_map: dict[str, str] = {}
        self.matched_playlist: set[str] = set()
        self.matched_guide: set[int] = set()
        self.id_candidates: dict[str, list[int]] = {}

        for idx, channel in enumerate(self.guide_channels):
            if channel.id:
                self.id_candidates.setdefault(channel.id, []).append(idx)

    def add_match(self, guide_idx: int, playlist_name: str, method: str) -> None:
        self.matched_guide.add(guide_idx)
        self.matched_playlist.add(playlist_name)

        channel = self.allocator.ensure_id(self.guide_channels[guide_idx])
        original_id = channel.id
        channel = replace(channel, id=self.allocator.dedupe(original_id))

        self.matched_channels.append(channel)
        self.channel_map[channel.id] = playlist_name

        logger.debug("Matched channel by %s: '%s' -> %s", method, playlist_name, original_id)

    def match_by_tvg_id(self, tvg_id_entries: Sequence[tuple[str, str]]) -> None:
        for tvg_id, playlist_name in tvg_id_entries:
            if playlist_name in self.matched_playlist:
                continue

            best_idx = self._find_best_tvg_id_candidate(self.id_candidates.get(tvg_id, []), playlist_name)
            if best_idx is not None:
                self.add_match(best_idx, playlist_name, "tvg-id")

    def _find_best_tvg_id_candidate(self, candidates: Sequence[int], playlist_name: str) -> int | None:
        best_idx = None
        for idx in candidates:
            if idx in self.matched_guide:
                continue
            if self.guide_channels[idx].display_name == playlist_name:
                return idx
            if best_idx is None:
                best_idx = idx
        return best_idx

    def match_by_display_name(self, display_names: set[str]) -> None:
        for idx, channel in enumerate(self.guide_channels):
            if idx in self.matched_guide:
                continue
            if channel.display_name not in display_names or channel.display_name in self.matched_playlist:
                continue

            self.add_match(idx, channel.display_name, "display-name")

    def match_by_normalized_name(self, normalized_map: dict[str, NormalizedPlaylistName]) -> None:
        guide_names = [
            (self.normalizer.normalize(channel.display_name), self.normalizer.extract_region(channel.display_name))
            for channel in self.guide_channels
        ]

        for info in normalized_map.values():
            if info.original_name in self.matched_playlist:
                continue

            best_idx = None
            best_score = -1
            for idx, (normalized, region) in enumerate(guide_names):
                if idx in self.matched_guide or normalized != info.normalized_name:
                    continue

                score = score_region_match(info.region, region)
                if score > best_score:
                    best_score = score
                    best_idx = idx

            if best_idx is not None:
                logger.debug(
                    "Normalized match '%s' -> '%s' (region: %s)",
                    info.original_name,
                    self.guide_channels[best_idx].display_name,
                    info.region or "none",
                )
                self.add_match(best_idx, info.original_name, "normalized name")

    def log_unmatched(self, playlist: Sequence[PlaylistChannel]) -> None:
        unmatched: list[str] = []
        seen: set[str] = set()
        for channel in playlist:
            if channel.name and channel.name not in self.matched_playlist and channel.name not in seen:
                seen.add(channel.name)
                unmatched.append(channel.name)

        if unmatched:
            logger.warning("%s playlist channels have no guide match", len(unmatched))
            for name in unmatched:
                logger.debug("Unmatched playlist channel: %s", name)

        logger.info("Matched %s channels between playlist and guide", len(self.matched_channels))

    def result(self) -> MatchResult:
        return MatchResult(
            channels=tuple(self.matched_channels),
            channel_map=dict(self.channel_map),
            suffixed_ids=self.allocator.suffixed_ids(),
        )


def match_channels(
    guide_channels: Sequence[GuideChannel],
    playlist: Sequence[PlaylistChannel],
    normalizer: NameNormalizer
) -> MatchResult:
    """
    Run the three matching passes for one guide source

    Args:
        guide_channels: Channels of one guide document, in document order
        playlist: Parsed playlist channels
        normalizer: Name normalizer built from configuration

    Returns:
        MatchResult with collision-free IDs and the ID -> playlist name map
    """
    state = MatcherState(guide_channels, normalizer)

    state.match_by_tvg_id(build_tvg_id_entries(playlist))
    state.match_by_display_name(build_display_name_set(playlist))
    state.match_by_normalized_name(build_normalized_name_map(playlist, normalizer))
    state.log_unmatched(playlist)

    return state.result()


def filter_programs(
    programs: Sequence[GuideProgram],
    match: MatchResult,
    category_map: dict[str, str]
) -> list[GuideProgram]:
    """
    Keep programs of matched channels, tagged with the playlist group

    Programs of an ID that was suffixed during matching are copied onto each
    suffixed ID as well.
    """
    def with_category(program: GuideProgram, channel_id: str) -> GuideProgram:
        category = category_map.get(match.channel_map.get(channel_id, ""))
        if channel_id == program.channel and not category:
            return program
        return replace(program, channel=channel_id, category=category or program.category)

    filtered: list[GuideProgram] = []
    for program in programs:
        if program.channel in match.channel_map:
            filtered.append(with_category(program, program.channel))

        for suffixed_id in match.suffixed_ids.get(program.channel, ()):
            filtered.append(with_category(program, suffixed_id))

    return filtered


def filter_for_merge(
    guide: GuideDocument,
    playlist: Sequence[PlaylistChannel],
    normalizer: NameNormalizer
) -> SourceResult:
    """
    Filter one guide source down to the playlist, without placeholders

    Used when merging multiple sources; placeholders are added once after the merge.
    """
    match = match_channels(guide.channels, playlist, normalizer)
    programs = filter_programs(guide.programs, match, build_category_map(playlist))

    return SourceResult(
        guide=GuideDocument(channels=match.channels, programs=tuple(programs)),
        channel_map=match.channel_map,
    )
