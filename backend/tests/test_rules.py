"""Allowed-value checks and result validation."""
import dataclasses

import pytest

from app.models.match import MatchResult
from app.services.errors import InvalidMatchResultError, ValidationError
from app.services.rules import DEFAULT_RULES, sorted_rounds
from tests.factories import make_match, make_tournament


@pytest.mark.parametrize("sport", ["volleyball", "table_tennis", "soccer"])
def test_known_sports_are_valid(sport):
    assert DEFAULT_RULES.is_valid_sport(sport)


@pytest.mark.parametrize("sport", ["", "basketball", "Volleyball", None])
def test_unknown_sports_are_invalid(sport):
    assert not DEFAULT_RULES.is_valid_sport(sport)


def test_enum_membership():
    assert DEFAULT_RULES.is_valid_tournament_status("registration")
    assert DEFAULT_RULES.is_valid_tournament_status("cancelled")
    assert not DEFAULT_RULES.is_valid_tournament_status("paused")

    assert DEFAULT_RULES.is_valid_tournament_format("sunny")
    assert not DEFAULT_RULES.is_valid_tournament_format("snowy")

    assert DEFAULT_RULES.is_valid_round("loser_bracket")
    assert not DEFAULT_RULES.is_valid_round("other")
    assert not DEFAULT_RULES.is_valid_round("round_of_64")

    assert DEFAULT_RULES.is_valid_match_status("in_progress")
    assert not DEFAULT_RULES.is_valid_match_status("postponed")


def test_weather_formats_only_for_table_tennis():
    assert DEFAULT_RULES.is_valid_format_for_sport("table_tennis", "rainy")
    assert DEFAULT_RULES.is_valid_format_for_sport("table_tennis", "sunny")
    assert not DEFAULT_RULES.is_valid_format_for_sport("volleyball", "rainy")
    assert not DEFAULT_RULES.is_valid_format_for_sport("soccer", "sunny")
    assert DEFAULT_RULES.is_valid_format_for_sport("soccer", "standard")


def test_validate_tournament_rejects_format_of_other_sport():
    with pytest.raises(ValidationError, match="invalid format"):
        DEFAULT_RULES.validate_tournament(make_tournament("volleyball", "rainy"))


def test_validate_tournament_rejects_bad_status():
    with pytest.raises(ValidationError, match="status"):
        DEFAULT_RULES.validate_tournament(make_tournament(status="paused"))


def test_validate_tournament_accepts_rainy_table_tennis():
    DEFAULT_RULES.validate_tournament(make_tournament("table_tennis", "rainy"))


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"tournament_id": 0}, "tournament_id"),
        ({"round_name": "round_of_64"}, "invalid round"),
        ({"team1": "  "}, "team1"),
        ({"team2": ""}, "team2"),
        ({"team1": "X" * 101}, "100"),
        ({"team1": "Same", "team2": "Same"}, "itself"),
        ({"status": "postponed"}, "match status"),
        ({"scheduled_at": None}, "scheduled_at"),
    ],
)
def test_validate_match_rejects(overrides, message):
    kwargs = {"tournament_id": 1, **overrides}
    tournament_id = kwargs.pop("tournament_id")
    match = make_match(tournament_id, **kwargs)
    with pytest.raises(ValidationError, match=message):
        DEFAULT_RULES.validate_match(match)


def test_validate_match_accepts_well_formed_match():
    DEFAULT_RULES.validate_match(make_match(1, status="pending"))


@pytest.mark.parametrize("score", [0, 1, 3, 25])
@pytest.mark.parametrize("winner", ["A", "B", "anyone"])
def test_draws_always_rejected(score, winner):
    with pytest.raises(InvalidMatchResultError, match="draw"):
        DEFAULT_RULES.validate_match_result(MatchResult(score1=score, score2=score, winner=winner))


def test_negative_score_rejected():
    with pytest.raises(InvalidMatchResultError, match="non-negative"):
        DEFAULT_RULES.validate_match_result(MatchResult(score1=-1, score2=2, winner="B"))


def test_empty_winner_rejected():
    with pytest.raises(InvalidMatchResultError, match="winner"):
        DEFAULT_RULES.validate_match_result(MatchResult(score1=3, score2=1, winner=" "))


def test_winner_on_losing_side_rejected():
    with pytest.raises(InvalidMatchResultError, match="higher score"):
        DEFAULT_RULES.validate_match_result(MatchResult(score1=1, score2=3, winner="A"), "A", "B")


def test_winner_not_in_match_rejected():
    with pytest.raises(InvalidMatchResultError, match="not playing"):
        DEFAULT_RULES.validate_match_result(MatchResult(score1=3, score2=1, winner="C"), "A", "B")


def test_consistent_result_accepted():
    DEFAULT_RULES.validate_match_result(MatchResult(score1=3, score2=1, winner="A"), "A", "B")
    DEFAULT_RULES.validate_match_result(MatchResult(score1=0, score2=2, winner="B"), "A", "B")


def test_invalid_result_is_a_validation_error():
    assert issubclass(InvalidMatchResultError, ValidationError)


def test_match_status_transitions():
    assert DEFAULT_RULES.can_transition_match("pending", "in_progress")
    assert DEFAULT_RULES.can_transition_match("pending", "cancelled")
    assert DEFAULT_RULES.can_transition_match("in_progress", "cancelled")
    assert not DEFAULT_RULES.can_transition_match("in_progress", "pending")
    assert not DEFAULT_RULES.can_transition_match("completed", "pending")
    assert not DEFAULT_RULES.can_transition_match("cancelled", "in_progress")


def test_sorted_rounds_uses_canonical_order():
    assert sorted_rounds(["final", "bogus", "1st_round", "semifinal", "final"]) == [
        "1st_round",
        "semifinal",
        "final",
        "bogus",
    ]


def test_rule_set_can_be_substituted():
    beach_rules = dataclasses.replace(DEFAULT_RULES, sports=frozenset({"beach_volleyball"}))
    assert beach_rules.is_valid_sport("beach_volleyball")
    assert not beach_rules.is_valid_sport("volleyball")
    assert DEFAULT_RULES.is_valid_sport("volleyball")
