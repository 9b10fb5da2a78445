"""
Bracket Builder

Reshapes a tournament's flat list of matches into the round-by-round
Bracket view. Every round that is valid for the tournament's
(sport, format) pair appears exactly once, in canonical order, even when no
match has been scheduled for it yet.

Rain contingency: a table tennis tournament switched to the "rainy" format
gains a loser_bracket (consolation) round after the final.

Matches whose round is not part of the (sport, format) round set stay in
storage but are left out of the view; each one is logged at WARNING.
"""

import logging
from collections import defaultdict
from typing import Dict, Iterable, List

from app.models.bracket import Bracket, BracketRound
from app.models.match import Match
from app.models.tournament import Tournament
from app.services.rules import (
    DEFAULT_RULES,
    FORMAT_RAINY,
    ROUND_LOSER_BRACKET,
    SPORT_TABLE_TENNIS,
    RuleSet,
    sorted_rounds,
)

logger = logging.getLogger(__name__)


def get_valid_rounds_for_sport(sport: str, rules: RuleSet = DEFAULT_RULES) -> List[str]:
    """Base rounds for a sport in canonical order. Unknown sport -> []."""
    return sorted_rounds(list(rules.rounds_by_sport.get(sport, ())), rules)


def get_rounds_for_format(sport: str, fmt: str, rules: RuleSet = DEFAULT_RULES) -> List[str]:
    """Rounds a bracket must show for a (sport, format) pair."""
    rounds = get_valid_rounds_for_sport(sport, rules)
    if sport == SPORT_TABLE_TENNIS and fmt == FORMAT_RAINY and ROUND_LOSER_BRACKET not in rounds:
        rounds.append(ROUND_LOSER_BRACKET)
    return rounds


def group_matches_by_round(matches: Iterable[Match]) -> Dict[str, List[Match]]:
    """Partition matches by round, keeping input order inside each round."""
    grouped: Dict[str, List[Match]] = defaultdict(list)
    for match in matches:
        grouped[match.round].append(match)
    return grouped


def build_bracket(tournament: Tournament, matches: Iterable[Match], rules: RuleSet = DEFAULT_RULES) -> Bracket:
    """
    Build the Bracket view for a tournament.

    Args:
        tournament: owning tournament (id, sport and format are used)
        matches: every match whose tournament_id is the tournament's id, any order
        rules: rule tables (round sets and precedence)

    Returns:
        Bracket with one BracketRound per canonical round
    """
    rounds = get_rounds_for_format(tournament.sport, tournament.format, rules)
    grouped = group_matches_by_round(matches)

    for round_name in sorted_rounds(list(set(grouped) - set(rounds)), rules):
        for match in grouped[round_name]:
            logger.warning(
                "Match %s (round=%s) is outside the %s/%s bracket; excluded from view",
                match.id,
                round_name,
                tournament.sport,
                tournament.format,
            )

    return Bracket(
        tournament_id=tournament.id,
        sport=tournament.sport,
        format=tournament.format,
        rounds=[BracketRound(name=name, matches=list(grouped.get(name, []))) for name in rounds],
    )


def excluded_matches(tournament: Tournament, matches: Iterable[Match], rules: RuleSet = DEFAULT_RULES) -> List[Match]:
    """Matches that build_bracket() leaves out for this tournament's (sport, format)."""
    rounds = set(get_rounds_for_format(tournament.sport, tournament.format, rules))
    return [m for m in matches if m.round not in rounds]
