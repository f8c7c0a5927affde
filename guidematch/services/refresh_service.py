"""
Guide Refresh Service

Runs one engine cycle over already-retrieved playlist and guide documents:
parse, match every source, merge by priority, add placeholders and publish
the result to the store in one step.
"""
from __future__ import annotations

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Literal, Mapping, Sequence

from guidematch.config import EngineSettings, get_settings
from guidematch.exceptions import AllSourcesFailedError, GuideMatchError
from guidematch.services.channel_matcher import filter_for_merge
from guidematch.services.guide_store import GuideStore
from guidematch.services.guide_types import PlaylistChannel, SourceResult
from guidematch.services.merge_service import complete_merged_guide, merge_sources
from guidematch.services.name_normalizer import NameNormalizer
from guidematch.services.playlist_service import parse_playlist
from guidematch.services.xmltv_service import parse_guide_async
from guidematch.utils.logging_helpers import (
    log_group_summary,
    log_refresh_end,
    log_refresh_start,
    log_source_processing,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class GuideSource:
    """A guide document as handed over by the retrieval layer."""
    url: str
    data: bytes | None
    error: str | None = None  # retrieval failure reported by the fetch layer


@dataclass(slots=True)
class SourceSummary:
    index: int
    source_url: str
    sanitized_url: str
    started_at: datetime
    completed_at: datetime
    status: Literal["success", "failed"]
    channels_parsed: int = 0
    programs_parsed: int = 0
    channels_matched: int = 0
    programs_kept: int = 0
    error: str | None = None

    @property
    def duration_seconds(self) -> float:
        return max(0.0, (self.completed_at - self.started_at).total_seconds())

    def to_dict(self) -> dict:
        payload = {
            "source_index": self.index,
            "sanitized_url": self.sanitized_url,
            "status": self.status,
            "channels_parsed": self.channels_parsed,
            "programs_parsed": self.programs_parsed,
            "channels_matched": self.channels_matched,
            "programs_kept": self.programs_kept,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat(),
            "duration_seconds": self.duration_seconds,
        }
        if self.error:
            payload["error"] = self.error
        return payload


class GuideRefreshPipeline:
    """Coordinates parse, match, merge and publish stages for a refresh cycle."""

    def __init__(
        self,
        store: GuideStore,
        settings: EngineSettings | None = None,
        *,
        max_concurrency: int = 4
    ) -> None:
        self.store = store
        self.settings = settings or get_settings()
        self.normalizer = NameNormalizer(self.settings.normalization_tables())
        self._semaphore = asyncio.Semaphore(max(1, max_concurrency))

    async def run(self, playlist_data: bytes | str, sources: Sequence[GuideSource]) -> dict:
        """
        Run one refresh cycle

        Args:
            playlist_data: Raw M3U playlist
            sources: Guide documents in priority order (first = highest)

        Returns:
            Dictionary with refresh statistics

        Raises:
            PlaylistParseError: If the playlist cannot be parsed
            AllSourcesFailedError: If no guide source could be used; the
                previous guide snapshot stays in place
        """
        started_at = datetime.now(timezone.utc)
        log_refresh_start(logger)

        playlist = parse_playlist(playlist_data)
        self.store.set_playlist(playlist)
        log_group_summary(logger, Counter(channel.group or "(no group)" for channel in playlist))

        outcomes = await asyncio.gather(*[
            self._process_source(index, source, playlist, len(sources))
            for index, source in enumerate(sources, start=1)
        ])
        summaries = [summary for summary, _ in outcomes]
        results = [result for _, result in outcomes if result is not None]

        if not results:
            logger.error("All %s guide sources failed, keeping previous guide snapshot", len(sources))
            raise AllSourcesFailedError("all EPG sources failed")

        merged = merge_sources(results)
        guide, channel_map = complete_merged_guide(merged, playlist, self.settings)
        self.store.set_guide(guide, channel_map)

        logger.info(
            "Merged guide data from %s sources: %s channels, %s programmes",
            len(results),
            len(guide.channels),
            len(guide.programs),
        )
        log_refresh_end(logger)

        return {
            "status": "success",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "started_at": started_at.isoformat(),
            "playlist_channels": len(playlist),
            "sources_processed": len(sources),
            "sources_succeeded": len(results),
            "sources_failed": len(sources) - len(results),
            "channels": len(guide.channels),
            "programs": len(guide.programs),
            "matched_channels": len(merged.channel_map),
            "source_details": [summary.to_dict() for summary in summaries],
        }

    def configured_sources(self, documents: Mapping[str, bytes | None]) -> list[GuideSource]:
        """
        Pair retrieved documents with the configured EPG sources

        Args:
            documents: Source URL -> retrieved document (None if retrieval failed)

        Returns:
            One GuideSource per configured URL, in configured priority order.
            Documents for URLs that are not configured are ignored.
        """
        configured = self.settings.epg_sources or []

        for url in documents:
            if url not in configured:
                logger.warning("Ignoring document from unconfigured source: %s", _sanitize_url_for_logging(url))

        return [
            GuideSource(
                url=url,
                data=documents.get(url),
                error=None if documents.get(url) is not None else "no data retrieved",
            )
            for url in configured
        ]

    async def run_configured(self, playlist_data: bytes | str, documents: Mapping[str, bytes | None]) -> dict:
        """Run a refresh cycle over documents retrieved for the configured EPG sources."""
        return await self.run(playlist_data, self.configured_sources(documents))

    async def _process_source(
        self,
        index: int,
        source: GuideSource,
        playlist: Sequence[PlaylistChannel],
        total: int
    ) -> tuple[SourceSummary, SourceResult | None]:
        sanitized_url = _sanitize_url_for_logging(source.url)
        started_at = datetime.now(timezone.utc)

        def failed(error: str) -> tuple[SourceSummary, None]:
            return SourceSummary(
                index=index,
                source_url=source.url,
                sanitized_url=sanitized_url,
                started_at=started_at,
                completed_at=datetime.now(timezone.utc),
                status="failed",
                error=error,
            ), None

        if source.data is None:
            logger.warning("[Source %s] Skipping %s: %s", index, sanitized_url, source.error or "no data retrieved")
            return failed(source.error or "no data retrieved")

        async with self._semaphore:
            log_source_processing(logger, index, total, sanitized_url)
            try:
                guide = await parse_guide_async(
                    source.data,
                    parse_timeout_seconds=self.settings.epg_parse_timeout_sec,
                )
            except GuideMatchError as exc:
                logger.warning("[Source %s] Failed to parse %s: %s", index, sanitized_url, exc)
                return failed(str(exc))

        result = filter_for_merge(guide, playlist, self.normalizer)
        logger.info(
            "[Source %s/%s] Filtered %s: %s channels matched, %s programmes kept",
            index,
            total,
            sanitized_url,
            len(result.channel_map),
            len(result.guide.programs),
        )

        return SourceSummary(
            index=index,
            source_url=source.url,
            sanitized_url=sanitized_url,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc),
            status="success",
            channels_parsed=len(guide.channels),
            programs_parsed=len(guide.programs),
            channels_matched=len(result.channel_map),
            programs_kept=len(result.guide.programs),
        ), result


class RefreshCoordinator:
    """
    Serializes refresh cycles.

    A cycle requested while another one is running is skipped rather than queued.
    """

    def __init__(self):
        self._refresh_lock = asyncio.Lock()

    async def execute(self, pipeline: GuideRefreshPipeline, playlist_data: bytes | str, sources: Sequence[GuideSource]) -> dict:
        """
        Run a refresh cycle unless one is already in progress.

        Returns:
            Refresh statistics, a skip notice, or {"error": ...} when the cycle failed
        """
        if self._refresh_lock.locked():
            logger.warning("Guide refresh already in progress, skipping this request")
            return {
                "status": "skipped",
                "message": "Guide refresh already in progress",
            }

        async with self._refresh_lock:
            try:
                return await pipeline.run(playlist_data, sources)
            except GuideMatchError as exc:
                logger.error("Guide refresh failed: %s", exc)
                return {"error": str(exc)}

    def is_refreshing(self) -> bool:
        return self._refresh_lock.locked()


def _sanitize_url_for_logging(url: str) -> str:
    """Remove credentials from URL for safe logging."""
    if "://" not in url:
        return url
    protocol, rest = url.split("://", 1)
    if "@" in rest.split("/", 1)[0]:
        rest = rest.split("@", 1)[1]
        return f"{protocol}://***:***@{rest}"
    return url
