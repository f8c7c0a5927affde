"""
Structured logging helpers for consistent log formatting.

Provides utilities for the summary lines written once per refresh cycle.
"""
import logging
from datetime import datetime, timezone


def log_source_processing(logger: logging.Logger, idx: int, total: int, url: str) -> None:
    """
    Log source processing header.

    Args:
        logger: Logger instance
        idx: Current source index (1-based, also its merge priority)
        total: Total number of sources
        url: Source URL being processed (already sanitized)
    """
    logger.info(f"Processing guide source {idx}/{total}: {url}")


def log_refresh_start(logger: logging.Logger) -> None:
    """Log refresh cycle start."""
    logger.info(f"Guide refresh started at {datetime.now(timezone.utc).isoformat()}")


def log_refresh_end(logger: logging.Logger) -> None:
    """Log refresh cycle end."""
    logger.info(f"Guide refresh completed at {datetime.now(timezone.utc).isoformat()}")


def log_merge_summary(
    logger: logging.Logger,
    channels_count: int,
    programs_count: int
) -> None:
    """
    Log merge operation summary.

    Args:
        logger: Logger instance
        channels_count: Number of merged channels
        programs_count: Number of merged programs
    """
    logger.info(f"Merge summary - Channels: {channels_count}, Programs: {programs_count}")


def log_group_summary(logger: logging.Logger, group_counts: dict[str, int]) -> None:
    """
    Log the number of playlist channels per group.

    Args:
        logger: Logger instance
        group_counts: Group label -> channel count
    """
    logger.info(f"Channel groups summary: {len(group_counts)} groups")
    for group, count in group_counts.items():
        logger.debug(f"  Group '{group}': {count} channels")
