"""
Derived, read-only views built from stored tournaments and matches.
Nothing here is persisted.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from app.models.match import Match


@dataclass
class BracketRound:
    name: str
    matches: List[Match] = field(default_factory=list)


@dataclass
class Bracket:
    tournament_id: int
    sport: str
    format: str
    rounds: List[BracketRound] = field(default_factory=list)

    @property
    def round_names(self) -> List[str]:
        return [r.name for r in self.rounds]

    @property
    def total_matches(self) -> int:
        return sum(len(r.matches) for r in self.rounds)

    @property
    def completed_matches(self) -> int:
        return sum(1 for r in self.rounds for m in r.matches if m.is_completed)

    @property
    def is_completed(self) -> bool:
        """True once every match in the bracket is completed (an empty bracket never is)."""
        total = self.total_matches
        return total > 0 and self.completed_matches == total

    def get_round(self, name: str) -> Optional[BracketRound]:
        for r in self.rounds:
            if r.name == name:
                return r
        return None


@dataclass
class TournamentProgress:
    tournament_id: int
    sport: str
    format: str
    status: str
    total_matches: int
    completed_matches: int
    pending_matches: int
    completion_rate: float  # percent, 0..100
    current_round: Optional[str] = None


@dataclass
class MatchStatistics:
    tournament_id: int
    total_matches: int
    completed_matches: int
    pending_matches: int
    matches_by_round: Dict[str, int] = field(default_factory=dict)
    completion_rate: float = 0.0  # percent, 0..100
