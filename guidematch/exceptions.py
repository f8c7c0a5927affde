"""
Exception types raised by the parser layer and the refresh pipeline.

The matching engine itself raises nothing on well-formed input.
"""


class GuideMatchError(Exception):
    """Base class for all guidematch errors"""
    pass


class PlaylistParseError(GuideMatchError):
    """Raised when an M3U playlist is structurally broken"""
    pass


class GuideParseError(GuideMatchError):
    """Raised when an XMLTV document cannot be parsed"""
    pass


class AllSourcesFailedError(GuideMatchError):
    """Raised when no guide source survived a refresh cycle"""
    pass
