from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlmodel import Field, Relationship, SQLModel

from app.services.rules import TOURNAMENT_ACTIVE, TOURNAMENT_COMPLETED
from app.utils.sql import UTCDateTime
from app.utils.timestamps import utcnow

if TYPE_CHECKING:
    from app.models.match import Match


class Tournament(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    sport: str = Field(index=True)  # "volleyball" | "table_tennis" | "soccer"
    format: str = Field(default="standard")  # "standard" | "sunny" | "rainy" (sunny/rainy: table_tennis only)
    status: str = Field(default=TOURNAMENT_ACTIVE, index=True)  # "registration" | "active" | "completed" | "cancelled"
    created_at: datetime = Field(default_factory=utcnow, index=True, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime, sa_column_kwargs={"onupdate": utcnow})

    # Relationships
    matches: List["Match"] = Relationship(back_populates="tournament")

    @property
    def is_active(self) -> bool:
        return self.status == TOURNAMENT_ACTIVE

    @property
    def is_completed(self) -> bool:
        return self.status == TOURNAMENT_COMPLETED
