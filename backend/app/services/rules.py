"""
Tournament Rules: allowed values and validators (single source of truth).

Every enum-like column (sport, format, status, round) is validated against a
RuleSet. The RuleSet is an immutable value passed into the services, so tests
can substitute an alternate table without touching module state.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, FrozenSet, List, Optional, Tuple

from app.services.errors import InvalidMatchResultError, ValidationError

if TYPE_CHECKING:
    from app.models.match import Match, MatchResult
    from app.models.tournament import Tournament

# =============================================================================
# Enum members
# =============================================================================

SPORT_VOLLEYBALL = "volleyball"
SPORT_TABLE_TENNIS = "table_tennis"
SPORT_SOCCER = "soccer"

FORMAT_STANDARD = "standard"
FORMAT_SUNNY = "sunny"
FORMAT_RAINY = "rainy"

TOURNAMENT_REGISTRATION = "registration"
TOURNAMENT_ACTIVE = "active"
TOURNAMENT_COMPLETED = "completed"
TOURNAMENT_CANCELLED = "cancelled"

MATCH_PENDING = "pending"
MATCH_IN_PROGRESS = "in_progress"
MATCH_COMPLETED = "completed"
MATCH_CANCELLED = "cancelled"

ROUND_FIRST = "1st_round"
ROUND_QUARTERFINAL = "quarterfinal"
ROUND_SEMIFINAL = "semifinal"
ROUND_THIRD_PLACE = "third_place"
ROUND_FINAL = "final"
ROUND_LOSER_BRACKET = "loser_bracket"
ROUND_OTHER = "other"

TEAM_NAME_MAX_LENGTH = 100

# Canonical precedence (ascending). Anything not listed ranks as "other".
ROUND_PRECEDENCE: Dict[str, int] = {
    ROUND_FIRST: 1,
    ROUND_QUARTERFINAL: 2,
    ROUND_SEMIFINAL: 3,
    ROUND_THIRD_PLACE: 4,
    ROUND_FINAL: 5,
    ROUND_LOSER_BRACKET: 6,
    ROUND_OTHER: 7,
}

_ELIMINATION_ROUNDS: Tuple[str, ...] = (
    ROUND_FIRST,
    ROUND_QUARTERFINAL,
    ROUND_SEMIFINAL,
    ROUND_THIRD_PLACE,
    ROUND_FINAL,
)

# Match status machine. completed/cancelled are terminal; completed is only
# reachable through a result submission.
MATCH_STATUS_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    MATCH_PENDING: frozenset({MATCH_PENDING, MATCH_IN_PROGRESS, MATCH_CANCELLED}),
    MATCH_IN_PROGRESS: frozenset({MATCH_IN_PROGRESS, MATCH_CANCELLED}),
    MATCH_COMPLETED: frozenset(),
    MATCH_CANCELLED: frozenset(),
}

MATCH_OPEN_STATUSES: FrozenSet[str] = frozenset({MATCH_PENDING, MATCH_IN_PROGRESS})


@dataclass(frozen=True)
class RuleSet:
    """Allowed members per category plus the per-sport bracket tables."""

    sports: FrozenSet[str]
    tournament_statuses: FrozenSet[str]
    match_statuses: FrozenSet[str]
    rounds: FrozenSet[str]
    formats_by_sport: Dict[str, FrozenSet[str]]
    rounds_by_sport: Dict[str, Tuple[str, ...]]
    round_precedence: Dict[str, int] = field(default_factory=lambda: dict(ROUND_PRECEDENCE))

    @property
    def formats(self) -> FrozenSet[str]:
        return frozenset().union(*self.formats_by_sport.values())

    # -------------------------------------------------------------------------
    # Membership checks
    # -------------------------------------------------------------------------

    def is_valid_sport(self, sport: Optional[str]) -> bool:
        return sport in self.sports

    def is_valid_tournament_status(self, status: Optional[str]) -> bool:
        return status in self.tournament_statuses

    def is_valid_tournament_format(self, fmt: Optional[str]) -> bool:
        return fmt in self.formats

    def is_valid_format_for_sport(self, sport: Optional[str], fmt: Optional[str]) -> bool:
        return fmt in self.formats_by_sport.get(sport, frozenset())

    def is_valid_round(self, round_name: Optional[str]) -> bool:
        return round_name in self.rounds

    def is_valid_match_status(self, status: Optional[str]) -> bool:
        return status in self.match_statuses

    def round_rank(self, round_name: str) -> int:
        """Position of a round in canonical order; unknown rounds rank as "other"."""
        return self.round_precedence.get(round_name, self.round_precedence[ROUND_OTHER])

    def can_transition_match(self, current: str, new: str) -> bool:
        return new in MATCH_STATUS_TRANSITIONS.get(current, frozenset())

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------

    def validate_tournament(self, tournament: "Tournament") -> None:
        if not tournament.sport or not tournament.sport.strip():
            raise ValidationError("sport is required")
        if not self.is_valid_sport(tournament.sport):
            raise ValidationError(f"invalid sport: {tournament.sport}")
        if not tournament.format or not tournament.format.strip():
            raise ValidationError("format is required")
        if not self.is_valid_format_for_sport(tournament.sport, tournament.format):
            raise ValidationError(f"invalid format '{tournament.format}' for sport '{tournament.sport}'")
        if not tournament.status or not tournament.status.strip():
            raise ValidationError("status is required")
        if not self.is_valid_tournament_status(tournament.status):
            raise ValidationError(f"invalid tournament status: {tournament.status}")

    def validate_match(self, match: "Match") -> None:
        if match.tournament_id is None or match.tournament_id <= 0:
            raise ValidationError("tournament_id is required")
        if not match.round or not match.round.strip():
            raise ValidationError("round is required")
        if not self.is_valid_round(match.round):
            raise ValidationError(f"invalid round: {match.round}")
        for label, name in (("team1", match.team1), ("team2", match.team2)):
            if not name or not name.strip():
                raise ValidationError(f"{label} is required")
            if len(name) > TEAM_NAME_MAX_LENGTH:
                raise ValidationError(f"{label} must be at most {TEAM_NAME_MAX_LENGTH} characters")
        if match.team1 == match.team2:
            raise ValidationError("a team cannot play against itself")
        if not match.status or not match.status.strip():
            raise ValidationError("status is required")
        if not self.is_valid_match_status(match.status):
            raise ValidationError(f"invalid match status: {match.status}")
        if match.scheduled_at is None:
            raise ValidationError("scheduled_at is required")

    def validate_match_result(
        self,
        result: "MatchResult",
        team1: Optional[str] = None,
        team2: Optional[str] = None,
    ) -> None:
        """
        Check a submitted result.

        Without teams only the result itself is checked (non-negative scores,
        no draw, winner present). With teams the winner must be one of them
        and must be the side with the strictly higher score.
        """
        if result.score1 < 0 or result.score2 < 0:
            raise InvalidMatchResultError("scores must be non-negative")
        if result.score1 == result.score2:
            raise InvalidMatchResultError("draws are not allowed")
        if not result.winner or not result.winner.strip():
            raise InvalidMatchResultError("winner is required")

        if team1 is None or team2 is None:
            return
        if result.winner not in (team1, team2):
            raise InvalidMatchResultError(f"winner '{result.winner}' is not playing in this match")
        expected = team1 if result.score1 > result.score2 else team2
        if result.winner != expected:
            raise InvalidMatchResultError("winner does not match the higher score")


def _default_rules() -> RuleSet:
    return RuleSet(
        sports=frozenset({SPORT_VOLLEYBALL, SPORT_TABLE_TENNIS, SPORT_SOCCER}),
        tournament_statuses=frozenset(
            {TOURNAMENT_REGISTRATION, TOURNAMENT_ACTIVE, TOURNAMENT_COMPLETED, TOURNAMENT_CANCELLED}
        ),
        match_statuses=frozenset({MATCH_PENDING, MATCH_IN_PROGRESS, MATCH_COMPLETED, MATCH_CANCELLED}),
        rounds=frozenset(_ELIMINATION_ROUNDS + (ROUND_LOSER_BRACKET,)),
        formats_by_sport={
            SPORT_VOLLEYBALL: frozenset({FORMAT_STANDARD}),
            SPORT_TABLE_TENNIS: frozenset({FORMAT_STANDARD, FORMAT_SUNNY, FORMAT_RAINY}),
            SPORT_SOCCER: frozenset({FORMAT_STANDARD}),
        },
        rounds_by_sport={
            SPORT_VOLLEYBALL: _ELIMINATION_ROUNDS,
            SPORT_TABLE_TENNIS: _ELIMINATION_ROUNDS,
            SPORT_SOCCER: _ELIMINATION_ROUNDS,
        },
    )


DEFAULT_RULES: RuleSet = _default_rules()


def sorted_rounds(rounds: List[str], rules: RuleSet = DEFAULT_RULES) -> List[str]:
    """Return rounds in canonical order, duplicates removed."""
    return sorted(set(rounds), key=lambda r: (rules.round_rank(r), r))
