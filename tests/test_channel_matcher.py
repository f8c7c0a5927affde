"""
Tests for the three-pass channel matcher and per-source filtering.
"""
from guidematch.services.channel_matcher import (
    NormalizedPlaylistName,
    build_category_map,
    build_normalized_name_map,
    filter_for_merge,
    match_channels,
    score_region_match,
)
from guidematch.services.guide_types import GuideChannel
from guidematch.services.id_allocator import generate_channel_id


def _ids(result):
    return [channel.id for channel in result.channels]


class TestIdentifierPass:
    """Matching by playlist tvg-id hint."""

    def test_matches_by_tvg_id_then_display_name(self, normalizer, make_playlist, make_guide):
        playlist = make_playlist(("US: ESPN", "espn.us"), ("US: CNN", "cnn.us"), ("Local News", ""))
        guide = make_guide(channels=[("espn.us", "ESPN"), ("cnn.us", "CNN"), ("local.news", "Local News")])

        result = match_channels(guide.channels, playlist, normalizer)

        assert len(result.channels) == 3
        assert result.channel_map == {
            "espn.us": "US: ESPN",
            "cnn.us": "US: CNN",
            "local.news": "Local News",
        }

    def test_tvg_id_wins_over_differing_display_name(self, normalizer, make_playlist, make_guide):
        playlist = make_playlist(("US: ESPN HD", "espn.us"))
        guide = make_guide(channels=[("espn.us", "ESPN")])

        result = match_channels(guide.channels, playlist, normalizer)

        assert result.channel_map == {"espn.us": "US: ESPN HD"}
        # Metadata is the guide's own; only the identifier is finalized
        assert result.channels[0].display_name == "ESPN"

    def test_prefers_candidate_with_identical_display_name(self, normalizer, make_playlist, make_guide):
        playlist = make_playlist(("ESPN 2", "espn.us"))
        guide = make_guide(channels=[("espn.us", "ESPN"), ("espn.us", "ESPN 2")])

        result = match_channels(guide.channels, playlist, normalizer)

        assert result.channels == (GuideChannel(id="espn.us", display_name="ESPN 2"),)

    def test_failed_hint_is_not_retried(self, normalizer, make_playlist, make_guide):
        playlist = make_playlist(("ESPN", "missing.id"))
        guide = make_guide(channels=[("espn.us", "ESPN")])

        result = match_channels(guide.channels, playlist, normalizer)

        assert result.channels == ()
        assert result.channel_map == {}

    def test_hint_match_never_claimed_by_normalized_pass(self, normalizer, make_playlist, make_guide):
        playlist = make_playlist(("US: ESPN", "espn.us"), ("USA  ESPN", ""))
        guide = make_guide(channels=[("espn.us", "ESPN"), ("espn.alt", "UK: ESPN")])

        result = match_channels(guide.channels, playlist, normalizer)

        assert result.channel_map["espn.us"] == "US: ESPN"
        assert result.channel_map["espn.alt"] == "USA  ESPN"
        assert list(result.channel_map.values()).count("US: ESPN") == 1

    def test_duplicate_source_ids_matched_by_hint(self, normalizer, make_playlist, make_guide):
        playlist = make_playlist(("Channel A", "same.id"), ("Channel B", "same.id"))
        guide = make_guide(channels=[("same.id", "Channel A"), ("same.id", "Channel B")])

        result = match_channels(guide.channels, playlist, normalizer)

        assert _ids(result) == ["same.id", "same.id-2"]
        assert result.channel_map == {"same.id": "Channel A", "same.id-2": "Channel B"}


class TestDisplayNamePass:
    """Exact display-name matching."""

    def test_duplicate_channel_ids_are_suffixed(self, normalizer, make_playlist, make_guide):
        playlist = make_playlist(("Channel A", ""), ("Channel B", ""))
        guide = make_guide(channels=[("same.id", "Channel A"), ("same.id", "Channel B")])

        result = match_channels(guide.channels, playlist, normalizer)

        assert _ids(result) == ["same.id", "same.id-2"]
        assert len(result.channel_map) == 2
        assert result.suffixed_ids == {"same.id": ("same.id-2",)}

    def test_suffix_avoids_existing_guide_id(self, normalizer, make_playlist, make_guide):
        playlist = make_playlist(("A", ""), ("B", ""), ("C", ""))
        guide = make_guide(
            channels=[("foo", "A"), ("foo", "B"), ("foo-2", "C")],
            programs=[("foo", "T1", "Foo Show"), ("foo-2", "T1", "C Show")],
        )

        result = filter_for_merge(guide, playlist, normalizer)

        ids = [channel.id for channel in result.guide.channels]
        assert ids == ["foo", "foo-3", "foo-2"]
        assert len(set(ids)) == len(ids)
        assert result.channel_map == {"foo": "A", "foo-3": "B", "foo-2": "C"}
        assert [(p.channel, p.title) for p in result.guide.programs] == [
            ("foo", "Foo Show"),
            ("foo-3", "Foo Show"),
            ("foo-2", "C Show"),
        ]

    def test_duplicate_guide_display_names_match_once(self, normalizer, make_playlist, make_guide):
        playlist = make_playlist(("ESPN", ""))
        guide = make_guide(channels=[("espn.1", "ESPN"), ("espn.2", "ESPN")])

        result = match_channels(guide.channels, playlist, normalizer)

        assert _ids(result) == ["espn.1"]
        assert result.channel_map == {"espn.1": "ESPN"}

    def test_empty_guide_id_gets_generated_id(self, normalizer, make_playlist, make_guide):
        playlist = make_playlist(("ESPN", ""))
        guide = make_guide(channels=[("", "ESPN")])

        result = match_channels(guide.channels, playlist, normalizer)

        assert _ids(result) == [generate_channel_id("ESPN")]

    def test_unidentified_channels_sharing_a_name_stay_unique(self, normalizer, make_playlist, make_guide):
        playlist = make_playlist(("US: FOX", ""), ("FOX", ""))
        guide = make_guide(channels=[("", "FOX"), ("", "FOX")])

        result = match_channels(guide.channels, playlist, normalizer)

        generated = generate_channel_id("FOX")
        assert _ids(result) == [generated, f"{generated}-2"]
        assert result.channel_map == {generated: "FOX", f"{generated}-2": "US: FOX"}

    def test_unmatched_guide_channels_dropped(self, normalizer, make_playlist, make_guide):
        playlist = make_playlist(("ESPN", ""), ("HBO", ""))
        guide = make_guide(channels=[("espn.us", "ESPN"), ("hbo.us", "HBO"), ("cnn.us", "CNN")])

        result = match_channels(guide.channels, playlist, normalizer)

        assert result.channel_map == {"espn.us": "ESPN", "hbo.us": "HBO"}


class TestNormalizedNamePass:
    """Normalized matching with region-aware tie-breaks."""

    def test_matches_through_prefix_and_suffix_noise(self, normalizer, make_playlist, make_guide):
        playlist = make_playlist(("US: ESPN", "espn.us"), ("USA  CNN", ""), ("Carib FOX", ""))
        guide = make_guide(channels=[("espn.us", "ESPN"), ("", "ID CNN (D)"), ("", "UK: FOX")])

        result = match_channels(guide.channels, playlist, normalizer)

        assert result.channel_map == {
            "espn.us": "US: ESPN",
            generate_channel_id("ID CNN (D)"): "USA  CNN",
            generate_channel_id("UK: FOX"): "Carib FOX",
        }

    def test_region_tie_break_prefers_same_region(self, normalizer, make_playlist, make_guide):
        playlist = make_playlist(("USA  FOX", ""))
        guide = make_guide(channels=[("fox.uk", "UK: FOX"), ("fox.us", "US: FOX")])

        result = match_channels(guide.channels, playlist, normalizer)

        assert result.channel_map == {"fox.us": "USA  FOX"}

    def test_region_less_candidate_beats_conflicting_region(self, normalizer, make_playlist, make_guide):
        playlist = make_playlist(("USA  FOX", ""))
        guide = make_guide(channels=[("fox.uk", "UK: FOX"), ("fox", "FOX (HD)")])

        result = match_channels(guide.channels, playlist, normalizer)

        assert result.channel_map == {"fox": "USA  FOX"}

    def test_ties_keep_guide_order(self, normalizer, make_playlist, make_guide):
        playlist = make_playlist(("USA  ESPN", ""))
        guide = make_guide(channels=[("espn.hd", "ESPN (HD)"), ("espn.sd", "ESPN (SD)")])

        result = match_channels(guide.channels, playlist, normalizer)

        assert result.channel_map == {"espn.hd": "USA  ESPN"}

    def test_no_fuzzy_matching(self, normalizer, make_playlist, make_guide):
        playlist = make_playlist(("ESPN2", ""))
        guide = make_guide(channels=[("espn.us", "ESPN 2")])

        result = match_channels(guide.channels, playlist, normalizer)

        assert result.channel_map == {}


def test_score_region_match():
    assert score_region_match("us", "us") == 2
    assert score_region_match("us", "") == 1
    assert score_region_match("", "") == 1
    assert score_region_match("us", "uk") == 0
    assert score_region_match("", "uk") == 0


class TestBuildNormalizedNameMap:

    def test_empty(self, normalizer):
        assert build_normalized_name_map([], normalizer) == {}

    def test_channels_without_tvg_id(self, normalizer, make_playlist):
        result = build_normalized_name_map(make_playlist(("USA  ESPN", ""), ("USA  CNN", "")), normalizer)

        assert result == {
            "espn": NormalizedPlaylistName("USA  ESPN", "espn", "us"),
            "cnn": NormalizedPlaylistName("USA  CNN", "cnn", "us"),
        }

    def test_skips_channels_with_tvg_id_and_their_name_twins(self, normalizer, make_playlist):
        playlist = make_playlist(("US: ESPN", "espn.us"), ("US: ESPN", ""), ("USA  ESPN", ""))

        result = build_normalized_name_map(playlist, normalizer)

        assert result == {"espn": NormalizedPlaylistName("USA  ESPN", "espn", "us")}

    def test_first_occurrence_wins(self, normalizer, make_playlist):
        playlist = make_playlist(("USA  ESPN", ""), ("US: ESPN (HD)", ""))

        result = build_normalized_name_map(playlist, normalizer)

        assert result["espn"].original_name == "USA  ESPN"


def test_build_category_map(make_playlist):
    playlist = make_playlist(
        {"name": "ESPN", "group": "Sports"},
        {"name": "CNN"},
        {"name": "", "group": "Ignored"},
    )

    assert build_category_map(playlist) == {"ESPN": "Sports"}


class TestFilterForMerge:
    """Program filtering for one source."""

    def test_end_to_end_single_match(self, normalizer, make_playlist, make_guide):
        playlist = make_playlist(("ESPN", "espn.us"))
        guide = make_guide(channels=[("espn.us", "ESPN")], programs=[("espn.us", "T1", "Show")])

        result = filter_for_merge(guide, playlist, normalizer)

        assert [channel.id for channel in result.guide.channels] == ["espn.us"]
        assert result.channel_map == {"espn.us": "ESPN"}
        assert [program.title for program in result.guide.programs] == ["Show"]

    def test_drops_programs_of_unmatched_channels(self, normalizer, make_playlist, make_guide):
        playlist = make_playlist(("ESPN", ""))
        guide = make_guide(
            channels=[("espn.us", "ESPN"), ("cnn.us", "CNN")],
            programs=[("espn.us", "T1", "ESPN Show"), ("cnn.us", "T1", "CNN Show"), ("unknown", "T1", "Unknown Show")],
        )

        result = filter_for_merge(guide, playlist, normalizer)

        assert [program.title for program in result.guide.programs] == ["ESPN Show"]
        # No placeholders when filtering for a merge
        assert len(result.guide.channels) == 1

    def test_programs_copied_to_suffixed_ids(self, normalizer, make_playlist, make_guide):
        playlist = make_playlist(("Channel A", ""), ("Channel B", ""))
        guide = make_guide(
            channels=[("same.id", "Channel A"), ("same.id", "Channel B")],
            programs=[("same.id", "T1", "Shared Show")],
        )

        result = filter_for_merge(guide, playlist, normalizer)

        assert [(p.channel, p.title) for p in result.guide.programs] == [
            ("same.id", "Shared Show"),
            ("same.id-2", "Shared Show"),
        ]

    def test_programs_tagged_with_playlist_group(self, normalizer, make_playlist, make_guide):
        playlist = make_playlist({"name": "ESPN", "group": "Sports"}, {"name": "HBO"})
        guide = make_guide(
            channels=[("espn.us", "ESPN"), ("hbo.us", "HBO")],
            programs=[("espn.us", "T1", "SportsCenter"), ("hbo.us", "T1", "Movie")],
        )

        result = filter_for_merge(guide, playlist, normalizer)

        categories = {program.channel: program.category for program in result.guide.programs}
        assert categories == {"espn.us": "Sports", "hbo.us": ""}

    def test_empty_playlist(self, normalizer, make_guide):
        guide = make_guide(channels=[("espn.us", "ESPN")], programs=[("espn.us", "T1", "Show")])

        result = filter_for_merge(guide, [], normalizer)

        assert result.guide.channels == ()
        assert result.guide.programs == ()
        assert result.channel_map == {}
