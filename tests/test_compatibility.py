import asyncio

import pytest

from groupmatch.models import GroupProfile
from groupmatch.services.compatibility_service import (
    PairScoreCache,
    activity_score,
    build_qualitative_prompt,
    calculate_compatibility,
    emoji_score,
    find_best_match,
    find_matches_for_group,
    matching_stats,
    music_genre,
    music_score,
    parse_qualitative_output,
    qualitative_score,
    quantitative_score,
    size_match_percentage,
    size_score,
)
from groupmatch.services.llm import LLMError
from groupmatch.services.profile_service import create_profile


def _answers(group_name="Alpha Squad", **overrides):
    answers = {
        "group_name": group_name,
        "group_size": "3",
        "ideal_day": "hiking and camping",
        "fiction_group": "The Scooby Gang",
        "music_taste": "indie rock",
        "disliked_celebrity": "Nickelback",
        "origin_story": "Met during a fire drill",
        "emoji": "🔥",
        "roman_empire": "Pigeons",
        "side_quest": "Drove to Canada for poutine",
    }
    answers.update(overrides)
    return answers


def _profile(group_name="Alpha Squad", extra_data=None, **overrides):
    return GroupProfile(group_name=group_name, answers=_answers(group_name, **overrides), extra_data=extra_data or {})


def _store(db, group_name, **overrides):
    result = create_profile(db, _answers(group_name, **overrides), chat_id=f"chat-{group_name}")
    assert result.ok
    return result.value


class TestFactorScores:
    @pytest.mark.parametrize(
        "size1,size2,expected",
        [(3, 3, 1.0), (3, 4, 0.9), (3, 5, 0.7), (3, 6, 0.5), (3, 7, 0.4), (3, 8, 0.3), (1, 50, 0.1)],
    )
    def test_size_score(self, size1, size2, expected):
        assert size_score(size1, size2) == pytest.approx(expected)

    def test_music_identical(self):
        assert music_score("Indie Rock", "indie rock") == 1.0

    def test_music_same_bucket(self):
        assert music_score("punk", "classic rock") == 0.8

    def test_music_last_matching_bucket_wins(self):
        assert music_genre("indie rock") == "indie"
        assert music_genre("alternative") == "indie"
        assert music_score("indie rock", "punk") == 0.3
        assert music_score("indie rock", "alternative") == 0.8

    def test_music_cross_bucket(self):
        assert music_score("pop", "techno") == 0.3

    def test_music_word_overlap(self):
        assert music_score("jazz standards", "smooth jazz") == pytest.approx(0.5)

    def test_music_no_overlap(self):
        assert music_score("polka", "classical") == 0.2

    def test_activity_shared_category(self):
        assert activity_score("hiking and camping", "beach and nature walks") == pytest.approx(0.8)

    def test_activity_two_shared_categories(self):
        assert activity_score("cooking then a party", "restaurant hopping with friends") == pytest.approx(0.9)

    def test_activity_common_words(self):
        assert activity_score("reading novels quietly", "reading comics") == pytest.approx(0.2)

    def test_activity_capped(self):
        day1 = "beach food party art netflix travel"
        day2 = "hiking cooking friends creative chill trip"
        assert activity_score(day1, day2) == 1.0

    def test_emoji(self):
        assert emoji_score("🔥", "🔥") == 0.8
        assert emoji_score("🔥", "😎") == 0.3


class TestQuantitative:
    def test_identical_size_and_music(self):
        a = _profile("A", ideal_day="hiking and camping", emoji="🔥")
        b = _profile("B", ideal_day="beach and nature walks", emoji="😎")
        expected = 1.0 * 0.4 + 1.0 * 0.25 + 0.8 * 0.25 + 0.3 * 0.1
        assert quantitative_score(a, b) == pytest.approx(expected)

    def test_symmetric(self):
        a = _profile("A", group_size="2", music_taste="pop", ideal_day="netflix")
        b = _profile("B", group_size="6", music_taste="house music", ideal_day="party with friends")
        assert quantitative_score(a, b) == pytest.approx(quantitative_score(b, a))

    def test_missing_factors_renormalized(self):
        a = _profile("A", group_size="", music_taste="", ideal_day="")
        b = _profile("B", group_size="lots", music_taste="", ideal_day="")
        assert quantitative_score(a, b) == pytest.approx(0.8)

    def test_no_factors_is_neutral(self):
        a = GroupProfile(group_name="A", answers={})
        b = GroupProfile(group_name="B", answers={})
        assert quantitative_score(a, b) == 0.5

    def test_size_match_percentage(self):
        assert size_match_percentage(_profile("A"), _profile("B", group_size="8 of us")) == 30
        assert size_match_percentage(_profile("A"), _profile("B", group_size="a bunch")) == 0


class TestQualitative:
    def test_parses_score(self, fake_llm):
        fake_llm.responder = lambda messages: "85"
        assert asyncio.run(qualitative_score(_profile("A"), _profile("B"))) == pytest.approx(0.85)

    @pytest.mark.parametrize("raw", ["150", "-5", "great match", ""])
    def test_unusable_output_is_neutral(self, raw):
        assert parse_qualitative_output(raw) == 0.5

    def test_error_is_neutral(self, fake_llm):
        def boom(messages):
            raise LLMError("down")

        fake_llm.responder = boom
        assert asyncio.run(qualitative_score(_profile("A"), _profile("B"))) == 0.5

    def test_prompt_includes_answers_and_preference_data(self):
        prompt = build_qualitative_prompt(
            _profile("A", extra_data={"favorite_cuisine": "thai"}),
            _profile("B", group_size="1"),
        )
        assert "- Name: A" in prompt
        assert "- Group Size: 1 person" in prompt
        assert "favorite_cuisine" in prompt
        assert "ONLY a number" in prompt


class TestCalculateCompatibility:
    def test_blends_scores(self, fake_llm):
        fake_llm.responder = lambda messages: "80"
        a = _profile("A")
        b = _profile("B", group_size="4")
        compatibility = asyncio.run(calculate_compatibility(a, b))

        quantitative = quantitative_score(a, b)
        assert compatibility.score == pytest.approx(0.4 * quantitative + 0.6 * 0.8)
        assert compatibility.percentage == round(compatibility.score * 100)
        assert compatibility.breakdown == {
            "quantitative": round(quantitative * 100),
            "qualitative": 80,
            "sizeMatch": 90,
        }

    def test_cache_scores_pair_once(self, fake_llm):
        fake_llm.responder = lambda messages: "70"
        cache = PairScoreCache()
        a, b = _profile("A"), _profile("B")
        first = asyncio.run(calculate_compatibility(a, b, cache=cache))
        second = asyncio.run(calculate_compatibility(b, a, cache=cache))
        assert first is second
        assert len(fake_llm.calls) == 1


class TestStoreBackedMatching:
    def test_matches_exclude_self_and_respect_limit(self, db, fake_llm):
        fake_llm.responder = lambda messages: "60"
        _store(db, "Alpha Squad")
        _store(db, "Beta Crew", group_size="3")
        _store(db, "Gamma Gang", group_size="9")
        _store(db, "Delta Pod", group_size="4")

        matches = asyncio.run(find_matches_for_group(db, "alpha squad", limit=2))
        names = [m.group.group_name for m in matches]
        assert names == ["Beta Crew", "Delta Pod"]
        assert matches[0].score >= matches[1].score

    def test_unknown_group_has_no_matches(self, db):
        assert asyncio.run(find_matches_for_group(db, "Nobody")) == []

    def test_best_match_needs_two_profiles(self, db):
        _store(db, "Alpha Squad")
        assert asyncio.run(find_best_match(db)) is None

    def test_best_match_tie_keeps_first_pair(self, db, fake_llm):
        fake_llm.responder = lambda messages: "50"
        _store(db, "Alpha Squad")
        _store(db, "Beta Crew")
        _store(db, "Gamma Gang")

        best = asyncio.run(find_best_match(db))
        assert (best.group1.group_name, best.group2.group_name) == ("Alpha Squad", "Beta Crew")

    def test_best_match_picks_highest(self, db, fake_llm):
        fake_llm.responder = lambda messages: "50"
        _store(db, "Alpha Squad", group_size="2")
        _store(db, "Beta Crew", group_size="9")
        _store(db, "Gamma Gang", group_size="2")

        best = asyncio.run(find_best_match(db))
        assert {best.group1.group_name, best.group2.group_name} == {"Alpha Squad", "Gamma Gang"}

    def test_matching_stats(self, db):
        assert matching_stats(db) == {"total_groups": 0, "total_possible_pairs": 0, "can_match": False}
        for name in ["A", "B", "C", "D"]:
            _store(db, name)
        assert matching_stats(db) == {"total_groups": 4, "total_possible_pairs": 6, "can_match": True}
