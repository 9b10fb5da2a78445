from app.models.bracket import Bracket, BracketRound, MatchStatistics, TournamentProgress
from app.models.match import Match, MatchResult
from app.models.tournament import Tournament

__all__ = [
    "Tournament",
    "Match",
    "MatchResult",
    "Bracket",
    "BracketRound",
    "TournamentProgress",
    "MatchStatistics",
]
