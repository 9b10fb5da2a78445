from fastapi import Depends
from sqlmodel import Session

from app.database import get_session
from app.services.match_service import MatchService
from app.services.stores import SqlMatchStore, SqlTournamentStore
from app.services.tournament_service import TournamentService


def get_tournament_service(session: Session = Depends(get_session)) -> TournamentService:
    return TournamentService(SqlTournamentStore(session), SqlMatchStore(session))


def get_match_service(session: Session = Depends(get_session)) -> MatchService:
    return MatchService(SqlMatchStore(session))
