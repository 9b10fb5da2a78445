"""Services wired to in-memory stores: store substitution and concurrent-write races."""
import pytest

from app.models.match import Match, MatchResult
from app.services.errors import ConstraintError, MatchAlreadyCompletedError, NotFoundError, ValidationError
from app.services.match_service import MatchService
from app.services.tournament_service import TournamentService
from tests.factories import make_match, make_tournament
from tests.memory_stores import MemoryMatchStore


class StaleReadMatchStore(MemoryMatchStore):
    """Hands out a snapshot taken before `before_write` runs, like a reader that lost a race."""

    def __init__(self, tournaments, before_write=None):
        super().__init__(tournaments)
        self.before_write = before_write

    def get(self, match_id):
        row = super().get(match_id)
        return Match(**row.model_dump()) if row is not None else None

    def update_fields(self, match_id, values, expected_statuses=None):
        if self.before_write is not None:
            hook, self.before_write = self.before_write, None
            hook(self, match_id)
        return super().update_fields(match_id, values, expected_statuses)


def _services(tournaments, matches):
    return TournamentService(tournaments, matches), MatchService(matches)


def test_services_run_on_memory_stores(memory_stores):
    tournaments, matches = memory_stores
    tournament_service, match_service = _services(tournaments, matches)

    tournament = tournament_service.create(make_tournament("table_tennis", "rainy"))
    match = match_service.create(make_match(tournament.id, "loser_bracket", "E", "F"))
    match_service.update_result(match.id, MatchResult(score1=3, score2=2, winner="E"))

    bracket = tournament_service.get_tournament_bracket("table_tennis")
    assert bracket.round_names[-1] == "loser_bracket"
    assert bracket.get_round("loser_bracket").matches[0].winner == "E"
    assert tournament_service.get_progress("table_tennis").completion_rate == 100.0


def test_memory_store_enforces_tournament_reference(memory_stores):
    _, matches = memory_stores

    with pytest.raises(ConstraintError):
        MatchService(matches).create(make_match(5))


def test_memory_delete_cascades(memory_stores):
    tournaments, matches = memory_stores
    tournament_service, match_service = _services(tournaments, matches)
    tournament = tournament_service.create(make_tournament())
    match = match_service.create(make_match(tournament.id))

    tournament_service.delete(tournament.id)

    with pytest.raises(NotFoundError):
        match_service.get_by_id(match.id)


def test_lost_result_race_reports_already_completed(memory_stores):
    tournaments, _ = memory_stores

    def rival_submits(store, match_id):
        store.rows[match_id].status = "completed"
        store.rows[match_id].winner = "A"
        store.rows[match_id].score1, store.rows[match_id].score2 = 3, 0

    matches = StaleReadMatchStore(tournaments)
    tournament_service, match_service = _services(tournaments, matches)
    tournament = tournament_service.create(make_tournament())
    match = match_service.create(make_match(tournament.id))
    matches.before_write = rival_submits

    with pytest.raises(MatchAlreadyCompletedError):
        match_service.update_result(match.id, MatchResult(score1=0, score2=3, winner="B"))

    stored = matches.rows[match.id]
    assert (stored.score1, stored.score2, stored.winner) == (3, 0, "A")


def test_match_deleted_before_result_write(memory_stores):
    tournaments, _ = memory_stores

    def rival_deletes(store, match_id):
        del store.rows[match_id]

    matches = StaleReadMatchStore(tournaments)
    tournament_service, match_service = _services(tournaments, matches)
    tournament = tournament_service.create(make_tournament())
    match = match_service.create(make_match(tournament.id))
    matches.before_write = rival_deletes

    with pytest.raises(NotFoundError):
        match_service.update_result(match.id, MatchResult(score1=3, score2=0, winner="A"))


def test_status_change_loses_to_concurrent_cancel(memory_stores):
    tournaments, _ = memory_stores

    def rival_cancels(store, match_id):
        store.rows[match_id].status = "cancelled"

    matches = StaleReadMatchStore(tournaments)
    tournament_service, match_service = _services(tournaments, matches)
    tournament = tournament_service.create(make_tournament())
    match = match_service.create(make_match(tournament.id))
    matches.before_write = rival_cancels

    with pytest.raises(ValidationError, match="changed concurrently"):
        match_service.update_status(match.id, "in_progress")
    assert matches.rows[match.id].status == "cancelled"


def test_statistics_on_memory_stores(memory_stores):
    tournaments, matches = memory_stores
    tournament_service, match_service = _services(tournaments, matches)
    tournament = tournament_service.create(make_tournament("table_tennis", "rainy"))
    consolation = match_service.create(make_match(tournament.id, "loser_bracket", "E", "F"))
    final = match_service.create(make_match(tournament.id, "final", "A", "B"))
    match_service.update_result(consolation.id, MatchResult(score1=3, score2=1, winner="E"))

    stats = match_service.get_match_statistics(tournament.id)

    assert list(stats.matches_by_round.items()) == [("final", 1), ("loser_bracket", 1)]
    assert (stats.total_matches, stats.completed_matches, stats.pending_matches) == (2, 1, 1)
    assert stats.completion_rate == 50.0
    assert [m.id for m in match_service.get_next_matches(tournament.id)] == [final.id]
