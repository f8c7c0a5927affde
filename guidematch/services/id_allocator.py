"""
Channel identifier allocation

Derives deterministic identifiers for unidentified channels and keeps the
identifiers emitted by one matching run unique.
"""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
import hashlib
import logging

from guidematch.services.guide_types import GuideChannel


logger = logging.getLogger(__name__)


def generate_channel_id(display_name: str) -> str:
    """
    Derive a channel ID from its display name

    Args:
        display_name: Channel display name

    Returns:
        32-character hex MD5 digest; identical names always yield identical IDs
    """
    return hashlib.md5(display_name.encode("utf-8")).hexdigest()


class IdAllocator:
    """
    Per-run identifier bookkeeping.

    The first use of an identifier is kept as-is, the Nth use becomes "<id>-N".
    Counts are keyed by the original (pre-suffix) identifier. A suffixed
    candidate already taken, by an emitted identifier or by one of the
    reserved guide identifiers, is skipped in favour of the next N.
    """

    def __init__(self, reserved: Iterable[str] = ()):
        self._reserved = frozenset(reserved)
        self._emitted: set[str] = set()
        self._usage: dict[str, int] = {}
        self._suffixed: dict[str, list[str]] = {}

    def ensure_id(self, channel: GuideChannel) -> GuideChannel:
        """Return the channel with a generated ID when its ID is empty."""
        if channel.id:
            return channel

        channel_id = generate_channel_id(channel.display_name)
        logger.debug("Generated ID %s for guide channel '%s' with empty ID", channel_id, channel.display_name)
        return replace(channel, id=channel_id)

    def dedupe(self, original_id: str) -> str:
        """Claim original_id and return the collision-free identifier to emit."""
        count = self._usage.get(original_id, 0) + 1
        new_id = original_id if count == 1 else f"{original_id}-{count}"

        while new_id in self._emitted or (new_id != original_id and new_id in self._reserved):
            count += 1
            new_id = f"{original_id}-{count}"

        self._usage[original_id] = count
        self._emitted.add(new_id)

        if new_id != original_id:
            self._suffixed.setdefault(original_id, []).append(new_id)
            logger.debug("Appended suffix to duplicate channel ID: %s -> %s", original_id, new_id)

        return new_id

    def suffixed_ids(self) -> dict[str, tuple[str, ...]]:
        """Original ID -> suffixed IDs produced so far."""
        return {original: tuple(ids) for original, ids in self._suffixed.items()}
