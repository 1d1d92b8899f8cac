from groupmatch.models import InterviewState, MatchRecord
from groupmatch.models.match import make_pair_key
from groupmatch.services import match_service
from groupmatch.services.compatibility_service import Compatibility
from groupmatch.services.profile_service import (
    count_profiles,
    create_profile,
    get_profile_by_chat_id,
    get_profile_by_name,
    group_name_exists,
    list_profiles,
    update_enrichment,
)

ANSWERS = {
    "group_name": "Alpha Squad",
    "group_size": "3",
    "ideal_day": "Beach",
    "fiction_group": "The Scooby Gang",
    "music_taste": "Indie",
    "disliked_celebrity": "Nobody",
    "origin_story": "Fire drill",
    "emoji": "🔥",
    "roman_empire": "Pigeons",
    "side_quest": "Poutine run",
}


def _answers(name):
    return {**ANSWERS, "group_name": name}


def _compat(score=0.75):
    return Compatibility(
        score=score,
        percentage=round(score * 100),
        breakdown={"quantitative": 80, "qualitative": 70, "sizeMatch": 100},
    )


class TestProfileStore:
    def test_create_and_lookup(self, db):
        result = create_profile(db, _answers("Alpha Squad"), chat_id="chat-1")
        assert result.ok
        assert get_profile_by_name(db, "  ALPHA   squad ").id == result.value.id
        assert get_profile_by_chat_id(db, "chat-1").group_name == "Alpha Squad"
        assert result.value.completed_at is not None

    def test_name_exists_is_case_insensitive(self, db):
        create_profile(db, _answers("Alpha Squad"))
        assert group_name_exists(db, "alpha squad") is True
        assert group_name_exists(db, "Beta Crew") is False
        assert group_name_exists(db, "") is False

    def test_duplicate_name_rejected(self, db):
        assert create_profile(db, _answers("Alpha Squad")).ok
        db.commit()
        duplicate = create_profile(db, _answers("ALPHA SQUAD"))
        assert duplicate.ok is False
        assert duplicate.error_code == "duplicate_group_name"
        assert count_profiles(db) == 1

    def test_duplicate_name_keeps_pending_changes(self, db):
        assert create_profile(db, _answers("Alpha Squad")).ok
        db.commit()
        db.add(InterviewState(chat_id="chat-2", question_number=4, answers={"group_name": "Beta"}))
        assert create_profile(db, _answers("Beta Crew"), chat_id="chat-3").ok

        duplicate = create_profile(db, _answers("alpha squad"), chat_id="chat-2")
        db.commit()

        assert duplicate.error_code == "duplicate_group_name"
        assert db.get(InterviewState, "chat-2").question_number == 4
        assert get_profile_by_name(db, "Beta Crew").chat_id == "chat-3"
        assert count_profiles(db) == 2

    def test_incomplete_answers_rejected(self, db):
        answers = _answers("Alpha Squad")
        answers["emoji"] = "  "
        del answers["side_quest"]
        result = create_profile(db, answers)
        assert result.ok is False
        assert result.error_code == "incomplete_answers"
        assert "emoji" in result.error
        assert "side_quest" in result.error

    def test_answers_are_trimmed(self, db):
        result = create_profile(db, {**_answers("  Alpha Squad "), "emoji": " 🔥 "})
        assert result.value.group_name == "Alpha Squad"
        assert result.value.answers["emoji"] == "🔥"

    def test_list_profiles_keeps_insertion_order(self, db):
        for name in ["Zeta", "Alpha", "Mu"]:
            create_profile(db, _answers(name))
        assert [p.group_name for p in list_profiles(db)] == ["Zeta", "Alpha", "Mu"]

    def test_enrichment_leaves_answers(self, db):
        create_profile(db, _answers("Alpha Squad"))
        result = update_enrichment(db, "alpha squad", {"favorite_cuisine": "thai"})
        assert result.ok
        assert result.value.extra_data == {"favorite_cuisine": "thai"}
        assert result.value.answers["group_name"] == "Alpha Squad"

    def test_enrichment_unknown_group(self, db):
        assert update_enrichment(db, "Nobody", {}).error_code == "not_found"


class TestMatchStore:
    def _pair(self, db):
        a = create_profile(db, _answers("Alpha Squad")).value
        b = create_profile(db, _answers("Beta Crew")).value
        return a, b

    def test_pair_key_is_order_independent(self):
        assert make_pair_key("Alpha", "beta") == make_pair_key("BETA", "alpha")

    def test_save_is_upsert_by_unordered_pair(self, db):
        a, b = self._pair(db)
        match_service.save_match(db, a, b, _compat(0.6))
        match_service.save_match(db, b, a, _compat(0.9))

        records = db.query(MatchRecord).all()
        assert len(records) == 1
        assert records[0].score == 0.9
        assert records[0].percentage == 90
        assert records[0].size_match == 100

    def test_self_match_rejected(self, db):
        a, _ = self._pair(db)
        result = match_service.save_match(db, a, a, _compat())
        assert result.ok is False
        assert result.error_code == "self_match"

    def test_best_flag_survives_upsert(self, db):
        a, b = self._pair(db)
        match_service.save_match(db, a, b, _compat(), is_best_match=True)
        match_service.save_match(db, b, a, _compat())
        assert db.query(MatchRecord).one().is_best_match is True

    def test_matches_for_group_either_side(self, db):
        a, b = self._pair(db)
        c = create_profile(db, _answers("Gamma Gang")).value
        match_service.save_match(db, a, b, _compat(0.5))
        match_service.save_match(db, c, a, _compat(0.8))
        match_service.save_match(db, b, c, _compat(0.7))

        records = match_service.get_matches_for_group(db, "ALPHA SQUAD")
        assert [(r.group1_name, r.group2_name) for r in records] == [
            ("Gamma Gang", "Alpha Squad"),
            ("Alpha Squad", "Beta Crew"),
        ]

    def test_clear_and_count(self, db):
        a, b = self._pair(db)
        match_service.save_match(db, a, b, _compat())
        assert match_service.count_matches(db) == 1
        assert match_service.clear_matches(db) == 1
        assert match_service.list_matches(db) == []
