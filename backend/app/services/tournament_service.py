"""
Tournament operations: create/read/update/delete, status and format
changes, and the derived bracket and progress views.
"""

import logging
from typing import Any, Dict, List, Optional

from app.models.bracket import Bracket, TournamentProgress
from app.models.tournament import Tournament
from app.services.bracket_builder import build_bracket
from app.services.errors import NotFoundError, ValidationError
from app.services.rules import DEFAULT_RULES, MATCH_COMPLETED, MATCH_PENDING, TOURNAMENT_ACTIVE, RuleSet
from app.services.stores import MatchStore, TournamentStore
from app.utils.timestamps import utcnow

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("sport", "format", "status")


def _require_id(tournament_id: int) -> None:
    if tournament_id is None or tournament_id <= 0:
        raise ValidationError(f"invalid tournament id: {tournament_id}")


class TournamentService:
    def __init__(self, store: TournamentStore, matches: MatchStore, rules: RuleSet = DEFAULT_RULES):
        self.store = store
        self.matches = matches
        self.rules = rules

    # =========================================================================
    # CRUD
    # =========================================================================

    def create(self, tournament: Tournament) -> Tournament:
        if not tournament.status:
            tournament.status = TOURNAMENT_ACTIVE
        self.rules.validate_tournament(tournament)

        tournament.id = None
        now = utcnow()
        tournament.created_at = now
        tournament.updated_at = now

        stored = self.store.add(tournament)
        logger.info("Created tournament %s: sport=%s format=%s", stored.id, stored.sport, stored.format)
        return stored

    def get_by_id(self, tournament_id: int) -> Tournament:
        _require_id(tournament_id)
        tournament = self.store.get(tournament_id)
        if tournament is None:
            raise NotFoundError(f"tournament {tournament_id} not found")
        return tournament

    def get_by_sport(self, sport: str) -> Tournament:
        """Most recently created tournament for a sport."""
        if not self.rules.is_valid_sport(sport):
            raise ValidationError(f"invalid sport: {sport}")
        tournament = self.store.latest_by_sport(sport)
        if tournament is None:
            raise NotFoundError(f"no tournament for sport {sport}")
        return tournament

    def get_all(self) -> List[Tournament]:
        return self.store.list_all()

    def get_by_status(self, status: str) -> List[Tournament]:
        if not self.rules.is_valid_tournament_status(status):
            raise ValidationError(f"invalid tournament status: {status}")
        return self.store.list_by_status(status)

    def get_active_by_format(self, fmt: str) -> List[Tournament]:
        if not self.rules.is_valid_tournament_format(fmt):
            raise ValidationError(f"invalid tournament format: {fmt}")
        return self.store.list_by_format_and_status(fmt, TOURNAMENT_ACTIVE)

    def update(self, tournament_id: int, changes: Dict[str, Any]) -> Tournament:
        """Partial update of format and/or status. Sport never changes once set."""
        current = self.get_by_id(tournament_id)
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(f"fields cannot be updated: {', '.join(sorted(unknown))}")
        if "sport" in changes and changes["sport"] != current.sport:
            raise ValidationError("sport cannot be changed once a tournament is created")

        values = {k: v for k, v in changes.items() if k != "sport"}
        candidate = Tournament(sport=current.sport, format=current.format, status=current.status)
        for field, value in values.items():
            setattr(candidate, field, value)
        self.rules.validate_tournament(candidate)
        if not values:
            return current

        self._write(tournament_id, values)
        logger.info("Updated tournament %s: %s", tournament_id, values)
        return self.get_by_id(tournament_id)

    def delete(self, tournament_id: int) -> None:
        """Administrative delete; the tournament's matches are removed with it."""
        _require_id(tournament_id)
        if self.store.delete(tournament_id) == 0:
            raise NotFoundError(f"tournament {tournament_id} not found")
        logger.info("Deleted tournament %s and its matches", tournament_id)

    def update_status(self, tournament_id: int, status: str) -> Tournament:
        _require_id(tournament_id)
        if not self.rules.is_valid_tournament_status(status):
            raise ValidationError(f"invalid tournament status: {status}")
        self._write(tournament_id, {"status": status})
        logger.info("Tournament %s status -> %s", tournament_id, status)
        return self.get_by_id(tournament_id)

    def update_format(self, tournament_id: int, fmt: str) -> Tournament:
        _require_id(tournament_id)
        if not self.rules.is_valid_tournament_format(fmt):
            raise ValidationError(f"invalid tournament format: {fmt}")
        tournament = self.get_by_id(tournament_id)
        if not self.rules.is_valid_format_for_sport(tournament.sport, fmt):
            raise ValidationError(f"format '{fmt}' is not available for {tournament.sport}")
        self._write(tournament_id, {"format": fmt})
        logger.info("Tournament %s format -> %s", tournament_id, fmt)
        return self.get_by_id(tournament_id)

    def _write(self, tournament_id: int, values: Dict[str, Any]) -> None:
        if self.store.update_fields(tournament_id, values) == 0:
            raise NotFoundError(f"tournament {tournament_id} not found")

    # =========================================================================
    # Derived views
    # =========================================================================

    def get_tournament_bracket(self, sport: str) -> Bracket:
        tournament = self.get_by_sport(sport)
        return self._bracket_for(tournament)

    def get_tournament_bracket_by_id(self, tournament_id: int) -> Bracket:
        tournament = self.get_by_id(tournament_id)
        return self._bracket_for(tournament)

    def _bracket_for(self, tournament: Tournament) -> Bracket:
        matches = self.matches.list_by_tournament(tournament.id)
        return build_bracket(tournament, matches, self.rules)

    def get_progress(self, sport: str) -> TournamentProgress:
        """Completion statistics for the current tournament of a sport."""
        tournament = self.get_by_sport(sport)
        matches = sorted(
            self.matches.list_by_tournament(tournament.id),
            key=lambda m: (self.rules.round_rank(m.round), m.scheduled_at, m.id or 0),
        )

        total = len(matches)
        completed = sum(1 for m in matches if m.status == MATCH_COMPLETED)
        current_round: Optional[str] = next((m.round for m in matches if m.status == MATCH_PENDING), None)
        rate = (completed / total * 100) if total else 0.0

        return TournamentProgress(
            tournament_id=tournament.id,
            sport=tournament.sport,
            format=tournament.format,
            status=tournament.status,
            total_matches=total,
            completed_matches=completed,
            pending_matches=total - completed,
            completion_rate=rate,
            current_round=current_round,
        )
