from dataclasses import asdict
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator

from app.dependencies import get_match_service
from app.models.match import Match, MatchResult
from app.responses import envelope
from app.services.match_service import MatchService

router = APIRouter()


class MatchCreate(BaseModel):
    tournament_id: int
    round: str
    team1: str
    team2: str
    scheduled_at: datetime

    @field_validator("team1", "team2")
    @classmethod
    def strip_team(cls, v):
        return v.strip()


class MatchUpdate(BaseModel):
    round: Optional[str] = None
    team1: Optional[str] = None
    team2: Optional[str] = None
    scheduled_at: Optional[datetime] = None


class MatchResultSubmit(BaseModel):
    score1: int
    score2: int
    winner: str


class MatchStatusUpdate(BaseModel):
    status: str


class MatchResponse(BaseModel):
    id: int
    tournament_id: int
    round: str
    team1: str
    team2: str
    score1: Optional[int] = None
    score2: Optional[int] = None
    winner: Optional[str] = None
    status: str
    scheduled_at: datetime
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


def _dump(match: Match) -> dict:
    return MatchResponse.model_validate(match).model_dump()


def _dump_all(matches: List[Match]) -> List[dict]:
    return [_dump(m) for m in matches]


@router.post("/matches", status_code=201)
def create_match(payload: MatchCreate, service: MatchService = Depends(get_match_service)):
    """Schedule a new match (starts pending)"""
    match = service.create(Match(**payload.model_dump()))
    return envelope(_dump(match), "match created", 201)


@router.get("/matches/sport/{sport}")
def list_matches_by_sport(sport: str, service: MatchService = Depends(get_match_service)):
    return envelope(_dump_all(service.get_by_sport(sport)))


@router.get("/matches/tournament/{tournament_id}")
def list_matches_by_tournament(
    tournament_id: int,
    round: Optional[str] = None,
    service: MatchService = Depends(get_match_service),
):
    """Matches of a tournament in bracket order, optionally filtered to one round"""
    if round is not None:
        matches = service.get_by_tournament_and_round(tournament_id, round)
    else:
        matches = service.get_by_tournament(tournament_id)
    return envelope(_dump_all(matches))


@router.get("/matches/tournament/{tournament_id}/next")
def list_next_matches(tournament_id: int, service: MatchService = Depends(get_match_service)):
    """Pending matches of a tournament, in bracket order"""
    return envelope(_dump_all(service.get_next_matches(tournament_id)))


@router.get("/matches/tournament/{tournament_id}/statistics")
def get_match_statistics(tournament_id: int, service: MatchService = Depends(get_match_service)):
    return envelope(asdict(service.get_match_statistics(tournament_id)))


@router.get("/matches/{match_id}")
def get_match(match_id: int, service: MatchService = Depends(get_match_service)):
    return envelope(_dump(service.get_by_id(match_id)))


@router.put("/matches/{match_id}")
def update_match(match_id: int, payload: MatchUpdate, service: MatchService = Depends(get_match_service)):
    """Reschedule or correct an open match"""
    match = service.update(match_id, payload.model_dump(exclude_unset=True))
    return envelope(_dump(match), "match updated")


@router.delete("/matches/{match_id}")
def delete_match(match_id: int, service: MatchService = Depends(get_match_service)):
    service.delete(match_id)
    return envelope(None, "match deleted")


@router.put("/matches/{match_id}/result")
def submit_match_result(
    match_id: int, payload: MatchResultSubmit, service: MatchService = Depends(get_match_service)
):
    """Record the final score; rejected once the match is completed"""
    match = service.update_result(match_id, MatchResult(**payload.model_dump()))
    return envelope(_dump(match), "match result recorded")


@router.patch("/matches/{match_id}/status")
def update_match_status(
    match_id: int, payload: MatchStatusUpdate, service: MatchService = Depends(get_match_service)
):
    match = service.update_status(match_id, payload.status)
    return envelope(_dump(match), "match status updated")
