import pytest

from assessment_engine.core.exceptions import ValidationError
from assessment_engine.services.leaderboard_service import ranking_key

PERIOD = "2025-W10"


@pytest.fixture
def players(store):
    """Three profiles with owners, keyed by first name"""
    ids = {}
    for first, last in [("Ada", "Lovelace"), ("Alan", "Turing"), ("Grace", "Hopper")]:
        user_id = store.add_user(first, last)
        ids[first] = store.add_profile(user_id, photo=f"{first.lower()}.png")
    return ids


def test_ranked_by_score_then_time(leaderboard_service, players):
    leaderboard_service.append(PERIOD, "SCHEDULED", players["Grace"], 8, 50)
    leaderboard_service.append(PERIOD, "SCHEDULED", players["Alan"], 10, 30)
    leaderboard_service.append(PERIOD, "SCHEDULED", players["Ada"], 10, 20)

    board = leaderboard_service.query(PERIOD, "SCHEDULED")

    assert [(r["rank"], r["first_name"], r["score"], r["time_taken"]) for r in board["entries"]] == [
        (1, "Ada", 10, 20),
        (2, "Alan", 10, 30),
        (3, "Grace", 8, 50),
    ]
    assert (board["total"], board["total_pages"], board["current_page"]) == (3, 1, 1)


def test_display_fields_are_joined(leaderboard_service, store, players):
    leaderboard_service.append(PERIOD, "GLOBAL", players["Ada"], 4, 12)

    row = leaderboard_service.query(PERIOD, "GLOBAL")["entries"][0]

    assert row["profile_id"] == str(players["Ada"])
    assert row["user_id"] == str(store.profiles[players["Ada"]]["userId"])
    assert (row["first_name"], row["last_name"], row["photo"]) == ("Ada", "Lovelace", "ada.png")


def test_pagination_keeps_global_ranks(leaderboard_service, players):
    for name, score in [("Ada", 5), ("Alan", 4), ("Grace", 3)]:
        leaderboard_service.append(PERIOD, "SCHEDULED", players[name], score, 60)

    second = leaderboard_service.query(PERIOD, "SCHEDULED", page=2, page_size=2)

    assert [(r["rank"], r["first_name"]) for r in second["entries"]] == [(3, "Grace")]
    assert (second["total"], second["total_pages"], second["current_page"]) == (3, 2, 2)

    beyond = leaderboard_service.query(PERIOD, "SCHEDULED", page=5, page_size=2)
    assert beyond["entries"] == []
    assert beyond["total"] == 3


def test_missing_bucket_is_empty_not_an_error(leaderboard_service):
    assert leaderboard_service.query("2030-W01", "GLOBAL", page=3) == {
        "entries": [], "total": 0, "total_pages": 0, "current_page": 3
    }


def test_buckets_are_separated_by_kind_and_period(leaderboard_service, store, players):
    leaderboard_service.append(PERIOD, "SCHEDULED", players["Ada"], 5, 10)
    leaderboard_service.append(PERIOD, "GLOBAL", players["Ada"], 3, 10)
    leaderboard_service.append("2025-W11", "SCHEDULED", players["Ada"], 1, 10)

    assert set(store.leaderboards) == {(PERIOD, "SCHEDULED"), (PERIOD, "GLOBAL"), ("2025-W11", "SCHEDULED")}
    assert leaderboard_service.query(PERIOD, "scheduled")["total"] == 1


def test_unknown_subject_still_listed(leaderboard_service):
    leaderboard_service.append(PERIOD, "SCHEDULED", None, 2, 10)

    row = leaderboard_service.query(PERIOD, "SCHEDULED")["entries"][0]

    assert row["profile_id"] is None
    assert row["first_name"] is None


def test_untimed_and_tied_entries():
    entries = [
        {"subject_ref": "a", "score": 7, "time_taken": None},
        {"subject_ref": "b", "score": 7, "time_taken": 40},
        {"subject_ref": "c", "score": 7, "time_taken": 40},
        {"subject_ref": "d", "score": 9, "time_taken": 90},
    ]
    assert [e["subject_ref"] for e in sorted(entries, key=ranking_key)] == ["d", "b", "c", "a"]


@pytest.mark.parametrize("kwargs", [
    {"page": 0},
    {"page_size": 0},
    {"page_size": 500},
])
def test_invalid_pagination(leaderboard_service, kwargs):
    with pytest.raises(ValidationError):
        leaderboard_service.query(PERIOD, "SCHEDULED", **kwargs)


def test_invalid_kind_or_period(leaderboard_service):
    with pytest.raises(ValidationError):
        leaderboard_service.query(PERIOD, "WEEKLY")
    with pytest.raises(ValidationError):
        leaderboard_service.query("last week", "GLOBAL")
