from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint
from sqlmodel import Field, Relationship, SQLModel

from app.services.rules import (
    MATCH_CANCELLED,
    MATCH_COMPLETED,
    MATCH_IN_PROGRESS,
    MATCH_OPEN_STATUSES,
    MATCH_PENDING,
)
from app.utils.sql import UTCDateTime
from app.utils.timestamps import utcnow

if TYPE_CHECKING:
    from app.models.tournament import Tournament


class Match(SQLModel, table=True):
    __table_args__ = (
        CheckConstraint("score1 IS NULL OR score1 >= 0", name="chk_match_score1_non_negative"),
        CheckConstraint("score2 IS NULL OR score2 >= 0", name="chk_match_score2_non_negative"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    round: str = Field(index=True)  # "1st_round" | "quarterfinal" | ... | "loser_bracket"
    team1: str = Field(max_length=100)
    team2: str = Field(max_length=100)

    # Result (null until the match is completed)
    score1: Optional[int] = Field(default=None)
    score2: Optional[int] = Field(default=None)
    winner: Optional[str] = Field(default=None, max_length=100)

    status: str = Field(default=MATCH_PENDING, index=True)  # "pending" | "in_progress" | "completed" | "cancelled"
    scheduled_at: datetime = Field(index=True, sa_type=UTCDateTime)
    completed_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime, sa_column_kwargs={"onupdate": utcnow})

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="matches")

    @property
    def is_pending(self) -> bool:
        return self.status == MATCH_PENDING

    @property
    def is_in_progress(self) -> bool:
        return self.status == MATCH_IN_PROGRESS

    @property
    def is_completed(self) -> bool:
        return self.status == MATCH_COMPLETED

    @property
    def is_cancelled(self) -> bool:
        return self.status == MATCH_CANCELLED

    @property
    def has_result(self) -> bool:
        return self.score1 is not None and self.score2 is not None and self.winner is not None

    @property
    def can_update_result(self) -> bool:
        return self.status in MATCH_OPEN_STATUSES

    @property
    def can_delete(self) -> bool:
        return not self.is_completed


class MatchResult(SQLModel):
    """Score pair and winner submitted to close out a match (not persisted on its own)."""

    score1: int
    score2: int
    winner: str
