from functools import lru_cache
import logging
from typing import Annotated, TYPE_CHECKING

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

if TYPE_CHECKING:
    from guidematch.services.name_normalizer import NormalizationTables


logger = logging.getLogger(__name__)


DEFAULT_COUNTRY_PREFIXES = [
    # Double-space variants first (more specific)
    "USA  ", "World  ", "AUS  ",
    # Colon variants
    "US:", "AU:", "AUS:", "UK:", "PH:", "BR:", "CA:", "NZ:", "MX:", "ID:",
    # Space variants
    "USA ", "UK ", "PH ", "BR ", "ID ", "MY ", "MX ", "AUS ",
    # Multi-word prefixes
    "Carib ", "World ", "Latin ", "US ",
]

DEFAULT_QUALITY_SUFFIXES = [
    "(HD)", "(FHD)", "(SD)", "(4K)", "(UHD)",
    "(S)", "(A)", "(H)", "(D)", "(C)", "(P)", "(FL)", "(F)", "(E)", "(R)",
    "(North America)", "(EMEA)", "(PRIME)", "(TUBI)",
    " FHD", " HD",
]

# Longest prefixes first so region lookup never depends on table order ambiguity
DEFAULT_REGION_PREFIXES = [
    ["World  ", "world"], ["Carib ", "carib"], ["Latin ", "latin"],
    ["World ", "world"], ["USA  ", "us"], ["AUS  ", "au"],
    ["USA ", "us"], ["AUS:", "au"], ["AUS ", "au"],
    ["US:", "us"], ["US ", "us"],
    ["AU:", "au"],
    ["UK:", "uk"], ["UK ", "uk"],
    ["PH:", "ph"], ["PH ", "ph"],
    ["BR:", "br"], ["BR ", "br"],
    ["CA:", "ca"],
    ["NZ:", "nz"],
    ["MX:", "mx"], ["MX ", "mx"],
    ["ID:", "id"], ["ID ", "id"],
    ["MY ", "my"],
]


class EngineSettings(BaseSettings):
    """Engine settings loaded from environment variables.

    Validates configuration at startup to catch misconfiguration early.
    """

    log_level: str = "INFO"
    epg_sources: Annotated[list[str] | None, NoDecode] = None
    epg_parse_timeout_sec: int = 600  # XML parsing timeout, 0 disables timeout

    placeholder_start: str = "20260101000000 +0000"
    placeholder_stop: str = "20260101235959 +0000"
    placeholder_description: str = "No programme information available"

    country_prefixes: list[str] = DEFAULT_COUNTRY_PREFIXES
    quality_suffixes: list[str] = DEFAULT_QUALITY_SUFFIXES
    region_prefixes: list[tuple[str, str]] = [tuple(pair) for pair in DEFAULT_REGION_PREFIXES]

    model_config = SettingsConfigDict(
        env_prefix="GUIDEMATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate log level name."""
        normalized = value.upper()
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if normalized not in allowed:
            raise ValueError(f"log_level must be one of {sorted(allowed)}")
        return normalized

    @field_validator("epg_sources", mode="before")
    @classmethod
    def parse_epg_sources(cls, value):
        """Parse comma-separated URLs or list."""
        if value is None:
            return []
        if isinstance(value, str):
            if not value.strip():
                return []
            return [url.strip() for url in value.split(",") if url.strip()]
        if isinstance(value, list):
            return value
        return []

    @field_validator("epg_sources", mode="after")
    @classmethod
    def validate_epg_sources(cls, value):
        """Validate EPG source URLs are HTTP/HTTPS."""
        if not value:
            return value

        for url in value:
            if not url.lower().startswith(("http://", "https://")):
                raise ValueError(f"EPG source URL must be HTTP/HTTPS: {url}")
        return value

    @field_validator("epg_parse_timeout_sec")
    @classmethod
    def validate_parse_timeout(cls, value: int) -> int:
        """Validate XML parsing timeout (seconds)."""
        if value < 0:
            raise ValueError("epg_parse_timeout_sec must be >= 0")
        return value

    @field_validator("placeholder_start", "placeholder_stop")
    @classmethod
    def validate_placeholder_times(cls, value: str, info) -> str:
        """Placeholder timestamps are opaque but must not be blank."""
        if not value.strip():
            raise ValueError(f"{info.field_name} must not be empty")
        return value

    @field_validator("country_prefixes", "quality_suffixes")
    @classmethod
    def validate_affixes(cls, value: list[str], info) -> list[str]:
        """Reject empty prefix/suffix entries, they would match every name."""
        if any(not entry for entry in value):
            raise ValueError(f"{info.field_name} must not contain empty entries")
        return value

    @field_validator("region_prefixes")
    @classmethod
    def validate_region_prefixes(cls, value: list[tuple[str, str]]) -> list[tuple[str, str]]:
        """Each region entry needs both a prefix and a region code."""
        for prefix, region in value:
            if not prefix or not region:
                raise ValueError("region_prefixes entries need a non-empty prefix and region")
        return value

    @model_validator(mode="after")
    def validate_placeholder_window(self):
        """Validate cross-field configuration."""
        if self.placeholder_start >= self.placeholder_stop:
            raise ValueError(
                "placeholder_start must sort before placeholder_stop"
            )

        if not self.epg_sources:
            logger.debug("No EPG sources configured")

        return self

    def normalization_tables(self) -> "NormalizationTables":
        """Build the immutable lookup tables handed to the name normalizer."""
        from guidematch.services.name_normalizer import NormalizationTables

        return NormalizationTables(
            country_prefixes=tuple(self.country_prefixes),
            quality_suffixes=tuple(self.quality_suffixes),
            region_prefixes=tuple((prefix, region) for prefix, region in self.region_prefixes),
        )


@lru_cache
def get_settings() -> EngineSettings:
    """Get cached settings instance."""
    settings = EngineSettings()

    logger.info("Configuration loaded:")
    logger.info("  EPG Sources: %s configured", len(settings.epg_sources or []))
    logger.info(
        "  Parse Timeout: %s seconds",
        settings.epg_parse_timeout_sec or "disabled",
    )
    logger.info(
        "  Placeholder Window: %s -> %s",
        settings.placeholder_start,
        settings.placeholder_stop,
    )
    logger.info(
        "  Normalization Tables: %s prefixes, %s suffixes, %s regions",
        len(settings.country_prefixes),
        len(settings.quality_suffixes),
        len(settings.region_prefixes),
    )

    return settings


def setup_logging(settings: EngineSettings | None = None) -> None:
    """Configure application logging for the host process running refresh cycles."""
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
