"""
Pytest configuration and fixtures for guidematch tests.
"""
import pytest

from guidematch.config import EngineSettings
from guidematch.services.guide_types import GuideChannel, GuideDocument, GuideProgram, PlaylistChannel
from guidematch.services.name_normalizer import NameNormalizer


@pytest.fixture
def settings():
    """Settings built from defaults only, ignoring the environment's .env file."""
    return EngineSettings(_env_file=None)


@pytest.fixture
def normalizer(settings):
    return NameNormalizer(settings.normalization_tables())


@pytest.fixture
def make_playlist():
    """Build playlist channels from (name, tvg_id) pairs or keyword dicts."""
    def _make(*entries):
        channels = []
        for idx, entry in enumerate(entries, start=1):
            if isinstance(entry, dict):
                channels.append(PlaylistChannel(url=f"http://stream.example.com/{idx}", **entry))
            else:
                name, tvg_id = entry
                channels.append(PlaylistChannel(name=name, url=f"http://stream.example.com/{idx}", tvg_id=tvg_id))
        return channels
    return _make


@pytest.fixture
def make_guide():
    """Build a guide document from (id, display_name) pairs and (channel, start, title) triples."""
    def _make(channels=(), programs=()):
        return GuideDocument(
            channels=tuple(GuideChannel(id=cid, display_name=name) for cid, name in channels),
            programs=tuple(
                GuideProgram(channel=channel, start=start, stop=f"{start}-end", title=title)
                for channel, start, title in programs
            ),
        )
    return _make


@pytest.fixture
def sample_m3u_content():
    """Sample M3U content for testing."""
    return """#EXTM3U
#EXTINF:-1 tvg-id="espn.us" tvg-name="ESPN" tvg-logo="http://logo.example.com/espn.png" group-title="Sports",ESPN
http://stream.example.com/espn.m3u8
#EXTINF:-1 tvg-id="" tvg-name="" tvg-logo="http://logo.example.com/cnn.png" group-title="News",USA  CNN
http://stream.example.com/cnn.m3u8

#EXTINF:-1 group-title="Movies",HBO
#EXTVLCOPT:http-user-agent=Mozilla
http://stream.example.com/hbo.m3u8
"""


@pytest.fixture
def sample_epg_xml():
    """Sample XMLTV EPG content for testing."""
    return b"""<?xml version="1.0" encoding="UTF-8"?>
<tv generator-info-name="test">
    <channel id="espn.us">
        <display-name>ESPN</display-name>
        <icon src="http://logo.example.com/espn.png"/>
    </channel>
    <channel id="">
        <display-name>US: CNN (HD)</display-name>
    </channel>
    <channel id="hbo.us">
        <display-name>HBO</display-name>
    </channel>
    <programme start="20260104120000 +0000" stop="20260104130000 +0000" channel="espn.us">
        <title>SportsCenter</title>
        <desc>Highlights</desc>
    </programme>
    <programme start="20260104130000 +0000" stop="20260104140000 +0000" channel="espn.us">
        <title>NFL Live</title>
        <category>Football</category>
    </programme>
    <programme start="20260104120000 +0000" stop="20260104130000 +0000" channel="unknown.ch">
        <title>Unknown Show</title>
    </programme>
</tv>
"""
