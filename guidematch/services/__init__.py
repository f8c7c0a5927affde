"""
Services package for guidematch

This package contains the matching engine, the parser layer and the refresh pipeline.
"""
from guidematch.services.channel_matcher import filter_for_merge, match_channels
from guidematch.services.guide_store import GuideStore
from guidematch.services.merge_service import complete_merged_guide, filter_guide, merge_sources
from guidematch.services.name_normalizer import NameNormalizer, NormalizationTables
from guidematch.services.placeholder_service import add_placeholders
from guidematch.services.playlist_service import parse_playlist, rewrite_playlist
from guidematch.services.refresh_service import GuideRefreshPipeline, GuideSource, RefreshCoordinator
from guidematch.services.xmltv_service import parse_guide, parse_guide_async, serialize_guide

__all__ = [
    'match_channels',
    'filter_for_merge',
    'filter_guide',
    'merge_sources',
    'complete_merged_guide',
    'add_placeholders',
    'NameNormalizer',
    'NormalizationTables',
    'GuideStore',
    'parse_playlist',
    'rewrite_playlist',
    'parse_guide',
    'parse_guide_async',
    'serialize_guide',
    'GuideRefreshPipeline',
    'GuideSource',
    'RefreshCoordinator',
]
