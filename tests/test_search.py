"""Unit tests for place ranking and profile filtering."""
from types import SimpleNamespace

from app.utils.search import filter_profiles, rank_places, score_place


def _saved(name, address="", tags=None, types=None):
    return {
        "place": {"name": name, "address": address},
        "tags": tags or [],
        "enrichment": {"types": types or []},
    }


# ======================================================================
# score_place
# ======================================================================


class TestScorePlace:
    def test_exact_name(self) -> None:
        assert score_place(_saved("Lucali"), "lucali") == 100

    def test_name_prefix(self) -> None:
        assert score_place(_saved("Lucali Brooklyn"), "luc") == 50

    def test_name_contains(self) -> None:
        assert score_place(_saved("Via Carota"), "carota") == 25

    def test_address_and_category_add_up(self) -> None:
        item = _saved("Lucali", address="575 Henry St, Brooklyn", tags=["brooklyn-pizza"])
        assert score_place(item, "brooklyn") == 10 + 5

    def test_directory_type_counts_as_category(self) -> None:
        item = _saved("Dante", types=["cafe"])
        assert score_place(item, "cafe") == 5

    def test_multi_word_bonus_applies_with_single_token_scores(self) -> None:
        item = _saved("Uptown Joe's Pizza", address="Joe's corner, pizza row")
        # contains (25) + all words in name (20) + all words in address (15)
        assert score_place(item, "joe's pizza") == 25 + 20 + 15

    def test_one_query_word_in_name_is_a_partial_match(self) -> None:
        assert score_place(_saved("Joe's Pizzeria Uptown"), "Joe's Pizza") == 25

    def test_multi_word_bonus_needs_every_word(self) -> None:
        item = _saved("Pizza Place")
        # "pizza" alone is a partial match; "palace" is missing so no bonus
        assert score_place(item, "pizza palace") == 25

    def test_no_query_word_in_name(self) -> None:
        assert score_place(_saved("Lucali"), "joe's pizza") == 0

    def test_case_insensitive(self) -> None:
        assert score_place(_saved("LUCALI"), "Lucali") == 100

    def test_accepts_objects(self) -> None:
        place = SimpleNamespace(name="Lucali", address=None)
        item = SimpleNamespace(place=place, tags=None, enrichment=None)
        assert score_place(item, "lucali") == 100


# ======================================================================
# rank_places
# ======================================================================


class TestRankPlaces:
    def test_exact_match_sorts_before_partial_match(self) -> None:
        items = [_saved("Joe's Pizzeria Uptown"), _saved("Joe's Pizza")]

        ranked = rank_places(items, "Joe's Pizza")

        assert [i["place"]["name"] for i in ranked] == ["Joe's Pizza", "Joe's Pizzeria Uptown"]
        assert score_place(ranked[0], "Joe's Pizza") == 100 + 20
        assert score_place(ranked[1], "Joe's Pizza") == 25

    def test_substring_match_scores_25_and_sorts_after_exact(self) -> None:
        items = [_saved("The Pizza Spot"), _saved("Pizza")]

        ranked = rank_places(items, "pizza")

        assert [i["place"]["name"] for i in ranked] == ["Pizza", "The Pizza Spot"]
        assert score_place(items[0], "pizza") == 25
        assert score_place(items[1], "pizza") == 100

    def test_zero_scores_are_dropped(self) -> None:
        items = [_saved("Lucali"), _saved("Via Carota"), _saved("Lucky Dumpling")]

        ranked = rank_places(items, "luc")

        assert [i["place"]["name"] for i in ranked] == ["Lucali", "Lucky Dumpling"]
        assert all(score_place(i, "luc") > 0 for i in ranked)

    def test_ties_keep_original_order(self) -> None:
        items = [_saved("Pizza B"), _saved("Pizza A"), _saved("Pizza C")]

        ranked = rank_places(items, "pizza")

        assert [i["place"]["name"] for i in ranked] == ["Pizza B", "Pizza A", "Pizza C"]

    def test_sorted_by_descending_score(self) -> None:
        items = [
            _saved("Sushi Nakazawa", address="23 Commerce St"),
            _saved("Commerce"),
            _saved("Commerce Inn"),
            _saved("Blue Ribbon", tags=["commerce"]),
        ]

        ranked = rank_places(items, "commerce")
        scores = [score_place(i, "commerce") for i in ranked]

        assert scores == sorted(scores, reverse=True)
        assert ranked[0]["place"]["name"] == "Commerce"

    def test_blank_query_matches_nothing(self) -> None:
        items = [_saved("B"), _saved("A")]
        assert rank_places(items, "   ") == []
        assert rank_places(items, "") == []


# ======================================================================
# filter_profiles
# ======================================================================


class TestFilterProfiles:
    def test_matches_username_case_insensitively(self) -> None:
        profiles = [
            {"id": "u1", "username": "madisoncorly", "display_name": "Madison"},
            {"id": "u2", "username": "bentbianchi", "display_name": "Ben"},
        ]

        result = filter_profiles(profiles, "MAD", self_id="viewer")

        assert [p["username"] for p in result] == ["madisoncorly"]

    def test_excludes_self_even_when_matching(self) -> None:
        profiles = [
            {"id": "viewer", "username": "madeline", "display_name": None},
            {"id": "u1", "username": "madisoncorly", "display_name": None},
            {"id": "u2", "username": "bentbianchi", "display_name": None},
        ]

        result = filter_profiles(profiles, "mad", self_id="viewer")

        assert [p["id"] for p in result] == ["u1"]

    def test_matches_display_name_and_keeps_order(self) -> None:
        profiles = [
            {"id": "u1", "username": "zed", "display_name": "Anna Park"},
            {"id": "u2", "username": "annab", "display_name": None},
            {"id": "u3", "username": "bob", "display_name": "Bob"},
        ]

        result = filter_profiles(profiles, "ann")

        assert [p["id"] for p in result] == ["u1", "u2"]
