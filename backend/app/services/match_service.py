"""
Match lifecycle and result engine.

State machine:
    pending -> in_progress -> completed
    pending | in_progress -> cancelled
completed and cancelled are terminal. completed is reached only through
update_result(); update_status() cannot set it.

Result submission is race-safe without locks: the write is conditioned on
the match still being open (status pending/in_progress). If a concurrent
submitter got there first the UPDATE touches zero rows and the caller gets
MatchAlreadyCompletedError instead of a silent overwrite.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List

from app.models.bracket import MatchStatistics
from app.models.match import Match, MatchResult
from app.services.errors import MatchAlreadyCompletedError, NotFoundError, ValidationError
from app.services.rules import (
    DEFAULT_RULES,
    MATCH_COMPLETED,
    MATCH_OPEN_STATUSES,
    MATCH_PENDING,
    RuleSet,
)
from app.services.stores import MatchStore
from app.utils.timestamps import as_utc, utcnow

logger = logging.getLogger(__name__)

# Fields a caller may change through update(); result fields go through update_result().
UPDATABLE_FIELDS = ("round", "team1", "team2", "scheduled_at")


def _require_id(value: int, label: str = "match") -> None:
    if value is None or value <= 0:
        raise ValidationError(f"invalid {label} id: {value}")


class MatchService:
    def __init__(self, store: MatchStore, rules: RuleSet = DEFAULT_RULES):
        self.store = store
        self.rules = rules

    # =========================================================================
    # CRUD
    # =========================================================================

    def create(self, match: Match) -> Match:
        """Validate and persist a new match. New matches always start pending with no result."""
        if not match.status:
            match.status = MATCH_PENDING
        self.rules.validate_match(match)
        if match.status != MATCH_PENDING:
            raise ValidationError("new matches must start as pending")

        match.id = None
        match.score1 = None
        match.score2 = None
        match.winner = None
        match.completed_at = None
        match.scheduled_at = as_utc(match.scheduled_at)
        now = utcnow()
        match.created_at = now
        match.updated_at = now

        stored = self.store.add(match)
        logger.info(
            "Created match %s: tournament=%s round=%s %s vs %s",
            stored.id,
            stored.tournament_id,
            stored.round,
            stored.team1,
            stored.team2,
        )
        return stored

    def get_by_id(self, match_id: int) -> Match:
        _require_id(match_id)
        match = self.store.get(match_id)
        if match is None:
            raise NotFoundError(f"match {match_id} not found")
        return match

    def update(self, match_id: int, changes: Dict[str, Any]) -> Match:
        """Change schedule data (round, teams, scheduled_at) of an open match."""
        current = self.get_by_id(match_id)
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(f"fields cannot be updated here: {', '.join(sorted(unknown))}")
        if not current.can_update_result:
            raise ValidationError(f"match {match_id} is {current.status}; it can no longer be edited")

        changes = dict(changes)
        if "scheduled_at" in changes:
            changes["scheduled_at"] = as_utc(changes["scheduled_at"])
        candidate = Match(**{**current.model_dump(), **changes})
        self.rules.validate_match(candidate)
        if not changes:
            return current

        affected = self.store.update_fields(match_id, changes, expected_statuses=MATCH_OPEN_STATUSES)
        self._check_conditional_write(match_id, affected)
        logger.info("Updated match %s: %s", match_id, sorted(changes))
        return self.get_by_id(match_id)

    def delete(self, match_id: int) -> None:
        match = self.get_by_id(match_id)
        if not match.can_delete:
            raise ValidationError(f"match {match_id} is completed and cannot be deleted")
        affected = self.store.delete(
            match_id, expected_statuses=[s for s in self.rules.match_statuses if s != MATCH_COMPLETED]
        )
        if affected == 0:
            if self.store.get(match_id) is None:
                raise NotFoundError(f"match {match_id} not found")
            raise ValidationError(f"match {match_id} is completed and cannot be deleted")
        logger.info("Deleted match %s", match_id)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def update_result(self, match_id: int, result: MatchResult) -> Match:
        """
        Record the final score of a match and mark it completed.

        Raises:
            ValidationError: bad id, inconsistent result, or cancelled match
            NotFoundError: match does not exist (or vanished before the write)
            MatchAlreadyCompletedError: a result was already recorded
        """
        _require_id(match_id)
        self.rules.validate_match_result(result)

        match = self.store.get(match_id)
        if match is None:
            raise NotFoundError(f"match {match_id} not found")
        if match.is_completed:
            logger.warning("Rejected result for completed match %s", match_id)
            raise MatchAlreadyCompletedError(f"match {match_id} is already completed")
        if match.is_cancelled:
            raise ValidationError(f"match {match_id} is cancelled")
        self.rules.validate_match_result(result, match.team1, match.team2)

        affected = self.store.update_fields(
            match_id,
            {
                "score1": result.score1,
                "score2": result.score2,
                "winner": result.winner,
                "status": MATCH_COMPLETED,
                "completed_at": utcnow(),
            },
            expected_statuses=MATCH_OPEN_STATUSES,
        )
        self._check_conditional_write(match_id, affected)

        logger.info(
            "Recorded result for match %s: winner=%s score=%d-%d",
            match_id,
            result.winner,
            result.score1,
            result.score2,
        )
        return self.get_by_id(match_id)

    def update_status(self, match_id: int, status: str) -> Match:
        """Move a match along the state machine (start it or cancel it)."""
        _require_id(match_id)
        if not self.rules.is_valid_match_status(status):
            raise ValidationError(f"invalid match status: {status}")
        if status == MATCH_COMPLETED:
            raise ValidationError("a match is completed by submitting its result")

        match = self.store.get(match_id)
        if match is None:
            raise NotFoundError(f"match {match_id} not found")
        if match.is_completed:
            raise MatchAlreadyCompletedError(f"match {match_id} is already completed")
        if not self.rules.can_transition_match(match.status, status):
            raise ValidationError(f"cannot change match status from {match.status} to {status}")

        previous = match.status
        affected = self.store.update_fields(match_id, {"status": status}, expected_statuses=[previous])
        self._check_conditional_write(match_id, affected)
        logger.info("Match %s status: %s -> %s", match_id, previous, status)
        return self.get_by_id(match_id)

    def _check_conditional_write(self, match_id: int, affected: int) -> None:
        if affected:
            return
        latest = self.store.get(match_id)
        if latest is None:
            raise NotFoundError(f"match {match_id} not found")
        if latest.is_completed:
            logger.warning("Lost update race on match %s: already completed", match_id)
            raise MatchAlreadyCompletedError(f"match {match_id} is already completed")
        raise ValidationError(f"match {match_id} changed concurrently (now {latest.status})")

    # =========================================================================
    # Queries
    # =========================================================================

    def get_by_sport(self, sport: str) -> List[Match]:
        if not self.rules.is_valid_sport(sport):
            raise ValidationError(f"invalid sport: {sport}")
        return self.store.list_by_sport(sport)

    def get_by_tournament(self, tournament_id: int) -> List[Match]:
        _require_id(tournament_id, "tournament")
        return self.store.list_by_tournament(tournament_id)

    def get_by_tournament_and_round(self, tournament_id: int, round_name: str) -> List[Match]:
        _require_id(tournament_id, "tournament")
        if not self.rules.is_valid_round(round_name):
            raise ValidationError(f"invalid round: {round_name}")
        return self.store.list_by_tournament_and_round(tournament_id, round_name)

    def get_by_status(self, status: str) -> List[Match]:
        if not self.rules.is_valid_match_status(status):
            raise ValidationError(f"invalid match status: {status}")
        return self.store.list_by_status(status)

    def get_pending_matches(self) -> List[Match]:
        return self.get_by_status(MATCH_PENDING)

    def get_completed_matches(self) -> List[Match]:
        return self.get_by_status(MATCH_COMPLETED)

    def get_matches_by_date_range(self, start: datetime, end: datetime) -> List[Match]:
        if start is None or end is None:
            raise ValidationError("start and end are required")
        start, end = as_utc(start), as_utc(end)
        if start > end:
            raise ValidationError("start must be <= end")
        return self.store.list_by_date_range(start, end)

    def get_next_matches(self, tournament_id: int) -> List[Match]:
        """Pending matches of a tournament, in bracket order."""
        return [m for m in self.get_by_tournament(tournament_id) if m.is_pending]

    def get_match_statistics(self, tournament_id: int) -> MatchStatistics:
        matches = self.get_by_tournament(tournament_id)

        by_round: Dict[str, int] = {}
        for match in matches:
            by_round[match.round] = by_round.get(match.round, 0) + 1

        total = len(matches)
        completed = sum(1 for m in matches if m.is_completed)
        return MatchStatistics(
            tournament_id=tournament_id,
            total_matches=total,
            completed_matches=completed,
            pending_matches=total - completed,
            matches_by_round=by_round,
            completion_rate=(completed / total * 100) if total else 0.0,
        )

    def count_by_tournament(self, tournament_id: int) -> int:
        _require_id(tournament_id, "tournament")
        return self.store.count_by_tournament(tournament_id)

    def count_by_status(self, status: str) -> int:
        if not self.rules.is_valid_match_status(status):
            raise ValidationError(f"invalid match status: {status}")
        return self.store.count_by_status(status)
