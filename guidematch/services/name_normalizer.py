"""
Channel name normalization

Strips region prefixes and quality/variant suffixes from display names so that
"US: ESPN", "USA  ESPN (HD)" and "ESPN" compare equal, and extracts the region
code carried by a name's prefix.
"""
from __future__ import annotations

from dataclasses import dataclass
import re


@dataclass(frozen=True, slots=True)
class NormalizationTables:
    """Immutable lookup tables, built once from configuration."""
    country_prefixes: tuple[str, ...]
    quality_suffixes: tuple[str, ...]
    region_prefixes: tuple[tuple[str, str], ...]


class NameNormalizer:
    """Normalizes channel display names for loose equality comparison."""

    def __init__(self, tables: NormalizationTables):
        self.tables = tables
        # Matched on the original string so offsets stay valid for any casing
        self._prefixes = tuple(_compile(prefix) for prefix in tables.country_prefixes)
        self._suffixes = tuple(_compile(suffix) for suffix in tables.quality_suffixes)
        self._regions = tuple((_compile(prefix), region) for prefix, region in tables.region_prefixes)

    def normalize(self, name: str) -> str:
        """
        Normalize a channel display name

        Args:
            name: Raw display name (e.g., 'USA  ESPN (HD)')

        Returns:
            Lowercased, whitespace-collapsed name without prefix/suffix decoration (e.g., 'espn')
        """
        normalized = name

        # One pass over the ordered prefix list, each tested against the remainder
        for pattern in self._prefixes:
            match = pattern.match(normalized)
            if match:
                normalized = normalized[match.end():]

        for pattern in self._suffixes:
            normalized = _remove_all(normalized, pattern)

        return " ".join(normalized.split()).lower()

    def extract_region(self, name: str) -> str:
        """Return the region code of the name's prefix, or '' if there is none."""
        for pattern, region in self._regions:
            if pattern.match(name):
                return region
        return ""


def _compile(token: str) -> re.Pattern[str]:
    return re.compile(re.escape(token), re.IGNORECASE)


def _remove_all(value: str, pattern: re.Pattern[str]) -> str:
    """Remove every occurrence of pattern, including ones formed by earlier removals"""
    while True:
        stripped = pattern.sub("", value)
        if stripped == value:
            return value
        value = stripped
