from dataclasses import asdict
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator

from app.dependencies import get_tournament_service
from app.models.bracket import Bracket
from app.models.tournament import Tournament
from app.responses import envelope
from app.routes.matches import MatchResponse
from app.services.tournament_service import TournamentService

router = APIRouter()


class TournamentCreate(BaseModel):
    sport: str
    format: str = "standard"
    status: Optional[str] = None

    @field_validator("sport")
    @classmethod
    def validate_sport(cls, v):
        if not v or not v.strip():
            raise ValueError("sport is required")
        return v.strip()


class TournamentUpdate(BaseModel):
    sport: Optional[str] = None
    format: Optional[str] = None
    status: Optional[str] = None


class TournamentStatusUpdate(BaseModel):
    status: str


class TournamentFormatUpdate(BaseModel):
    format: str


class TournamentResponse(BaseModel):
    id: int
    sport: str
    format: str
    status: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class BracketRoundResponse(BaseModel):
    name: str
    matches: List[MatchResponse]


class BracketResponse(BaseModel):
    tournament_id: int
    sport: str
    format: str
    rounds: List[BracketRoundResponse]
    total_matches: int
    completed_matches: int
    is_completed: bool


def _dump(tournament: Tournament) -> dict:
    return TournamentResponse.model_validate(tournament).model_dump()


def _dump_bracket(bracket: Bracket) -> dict:
    return BracketResponse(
        tournament_id=bracket.tournament_id,
        sport=bracket.sport,
        format=bracket.format,
        rounds=[
            BracketRoundResponse(
                name=r.name,
                matches=[MatchResponse.model_validate(m) for m in r.matches],
            )
            for r in bracket.rounds
        ],
        total_matches=bracket.total_matches,
        completed_matches=bracket.completed_matches,
        is_completed=bracket.is_completed,
    ).model_dump()


@router.get("/tournaments")
def list_tournaments(
    status: Optional[str] = None,
    format: Optional[str] = None,
    service: TournamentService = Depends(get_tournament_service),
):
    """List tournaments, newest first. ?status= filters by status; ?format= lists active tournaments of a format"""
    if format is not None:
        tournaments = service.get_active_by_format(format)
    elif status is not None:
        tournaments = service.get_by_status(status)
    else:
        tournaments = service.get_all()
    return envelope([_dump(t) for t in tournaments])


@router.post("/tournaments", status_code=201)
def create_tournament(payload: TournamentCreate, service: TournamentService = Depends(get_tournament_service)):
    tournament = service.create(Tournament(**payload.model_dump(exclude_none=True)))
    return envelope(_dump(tournament), "tournament created", 201)


@router.get("/tournaments/sport/{sport}")
def get_tournament_by_sport(sport: str, service: TournamentService = Depends(get_tournament_service)):
    return envelope(_dump(service.get_by_sport(sport)))


@router.get("/tournaments/sport/{sport}/bracket")
def get_bracket_by_sport(sport: str, service: TournamentService = Depends(get_tournament_service)):
    return envelope(_dump_bracket(service.get_tournament_bracket(sport)))


@router.get("/tournaments/sport/{sport}/progress")
def get_progress_by_sport(sport: str, service: TournamentService = Depends(get_tournament_service)):
    return envelope(asdict(service.get_progress(sport)))


@router.get("/tournaments/{tournament_id}")
def get_tournament(tournament_id: int, service: TournamentService = Depends(get_tournament_service)):
    """Get a tournament by ID"""
    return envelope(_dump(service.get_by_id(tournament_id)))


@router.get("/tournaments/{tournament_id}/bracket")
def get_bracket(tournament_id: int, service: TournamentService = Depends(get_tournament_service)):
    return envelope(_dump_bracket(service.get_tournament_bracket_by_id(tournament_id)))


@router.put("/tournaments/{tournament_id}")
def update_tournament(
    tournament_id: int, payload: TournamentUpdate, service: TournamentService = Depends(get_tournament_service)
):
    tournament = service.update(tournament_id, payload.model_dump(exclude_unset=True))
    return envelope(_dump(tournament), "tournament updated")


@router.patch("/tournaments/{tournament_id}/status")
def update_tournament_status(
    tournament_id: int,
    payload: TournamentStatusUpdate,
    service: TournamentService = Depends(get_tournament_service),
):
    tournament = service.update_status(tournament_id, payload.status)
    return envelope(_dump(tournament), "tournament status updated")


@router.patch("/tournaments/{tournament_id}/format")
def update_tournament_format(
    tournament_id: int,
    payload: TournamentFormatUpdate,
    service: TournamentService = Depends(get_tournament_service),
):
    tournament = service.update_format(tournament_id, payload.format)
    return envelope(_dump(tournament), "tournament format updated")


@router.delete("/tournaments/{tournament_id}")
def delete_tournament(tournament_id: int, service: TournamentService = Depends(get_tournament_service)):
    """Delete a tournament and all its matches"""
    service.delete(tournament_id)
    return envelope(None, "tournament deleted")
