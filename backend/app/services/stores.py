"""
Persistence collaborators for the tournament and match services.

TournamentStore / MatchStore are the narrow capabilities the services need.
SqlTournamentStore / SqlMatchStore implement them on a SQLModel session;
tests may substitute any object with the same methods.

Every SQLAlchemy failure is translated into the error taxonomy here, so the
services above only ever see TournamentError subclasses. Each write is its
own transaction: committed on success, rolled back on failure.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterable, Iterator, List, Optional, Protocol

from sqlalchemy import case, delete, update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, func, select

from app.models.match import Match
from app.models.tournament import Tournament
from app.services.errors import translate_db_error
from app.services.rules import DEFAULT_RULES, ROUND_OTHER, RuleSet
from app.utils.sql import affected_rows, scalar_int
from app.utils.timestamps import utcnow

logger = logging.getLogger(__name__)


class TournamentStore(Protocol):
    def add(self, tournament: Tournament) -> Tournament: ...

    def get(self, tournament_id: int) -> Optional[Tournament]: ...

    def latest_by_sport(self, sport: str) -> Optional[Tournament]: ...

    def list_all(self) -> List[Tournament]: ...

    def list_by_status(self, status: str) -> List[Tournament]: ...

    def list_by_format_and_status(self, fmt: str, status: str) -> List[Tournament]: ...

    def update_fields(self, tournament_id: int, values: Dict[str, Any]) -> int: ...

    def delete(self, tournament_id: int) -> int: ...


class MatchStore(Protocol):
    def add(self, match: Match) -> Match: ...

    def get(self, match_id: int) -> Optional[Match]: ...

    def update_fields(
        self, match_id: int, values: Dict[str, Any], expected_statuses: Optional[Iterable[str]] = None
    ) -> int: ...

    def delete(self, match_id: int, expected_statuses: Optional[Iterable[str]] = None) -> int: ...

    def list_by_sport(self, sport: str) -> List[Match]: ...

    def list_by_tournament(self, tournament_id: int) -> List[Match]: ...

    def list_by_tournament_and_round(self, tournament_id: int, round_name: str) -> List[Match]: ...

    def list_by_status(self, status: str) -> List[Match]: ...

    def list_by_date_range(self, start: datetime, end: datetime) -> List[Match]: ...

    def count_by_tournament(self, tournament_id: int) -> int: ...

    def count_by_status(self, status: str) -> int: ...


class _SqlStore:
    def __init__(self, session: Session):
        self.session = session

    @contextmanager
    def _reading(self, operation: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            logger.error("%s failed: %s", operation, exc)
            raise translate_db_error(exc, operation) from exc

    @contextmanager
    def _writing(self, operation: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.error("%s failed: %s", operation, exc)
            raise translate_db_error(exc, operation) from exc
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.error("%s commit failed: %s", operation, exc)
            raise translate_db_error(exc, operation, during_commit=True) from exc


class SqlTournamentStore(_SqlStore):
    def add(self, tournament: Tournament) -> Tournament:
        with self._writing("create tournament"):
            self.session.add(tournament)
            self.session.flush()
        with self._reading("reload tournament"):
            self.session.refresh(tournament)
        return tournament

    def get(self, tournament_id: int) -> Optional[Tournament]:
        with self._reading("get tournament"):
            return self.session.get(Tournament, tournament_id)

    def latest_by_sport(self, sport: str) -> Optional[Tournament]:
        with self._reading("get tournament by sport"):
            return self.session.exec(
                select(Tournament)
                .where(Tournament.sport == sport)
                .order_by(Tournament.created_at.desc(), Tournament.id.desc())
            ).first()

    def list_all(self) -> List[Tournament]:
        with self._reading("list tournaments"):
            return list(
                self.session.exec(select(Tournament).order_by(Tournament.created_at.desc(), Tournament.id.desc())).all()
            )

    def list_by_status(self, status: str) -> List[Tournament]:
        with self._reading("list tournaments by status"):
            return list(
                self.session.exec(
                    select(Tournament)
                    .where(Tournament.status == status)
                    .order_by(Tournament.created_at.desc(), Tournament.id.desc())
                ).all()
            )

    def list_by_format_and_status(self, fmt: str, status: str) -> List[Tournament]:
        with self._reading("list tournaments by format"):
            return list(
                self.session.exec(
                    select(Tournament)
                    .where(Tournament.format == fmt, Tournament.status == status)
                    .order_by(Tournament.created_at.desc(), Tournament.id.desc())
                ).all()
            )

    def update_fields(self, tournament_id: int, values: Dict[str, Any]) -> int:
        values = {**values, "updated_at": utcnow()}
        with self._writing("update tournament"):
            result = self.session.execute(
                update(Tournament).where(Tournament.id == tournament_id).values(**values)
            )
            affected = affected_rows(result)
        self.session.expire_all()
        return affected

    def delete(self, tournament_id: int) -> int:
        """Delete a tournament together with its matches (children first)."""
        with self._writing("delete tournament"):
            self.session.execute(delete(Match).where(Match.tournament_id == tournament_id))
            result = self.session.execute(delete(Tournament).where(Tournament.id == tournament_id))
            affected = affected_rows(result)
        self.session.expire_all()
        return affected


class SqlMatchStore(_SqlStore):
    def __init__(self, session: Session, rules: RuleSet = DEFAULT_RULES):
        super().__init__(session)
        self.rules = rules

    def _round_order(self):
        ranks = {name: rank for name, rank in self.rules.round_precedence.items() if name != ROUND_OTHER}
        return case(ranks, value=Match.round, else_=self.rules.round_precedence[ROUND_OTHER])

    def add(self, match: Match) -> Match:
        with self._writing("create match"):
            self.session.add(match)
            self.session.flush()
        with self._reading("reload match"):
            self.session.refresh(match)
        return match

    def get(self, match_id: int) -> Optional[Match]:
        with self._reading("get match"):
            return self.session.get(Match, match_id)

    def update_fields(
        self, match_id: int, values: Dict[str, Any], expected_statuses: Optional[Iterable[str]] = None
    ) -> int:
        """
        Conditional UPDATE. With expected_statuses the row is only written while
        its status is still one of them; the caller checks the returned row count.
        """
        values = {**values, "updated_at": utcnow()}
        stmt = update(Match).where(Match.id == match_id)
        if expected_statuses is not None:
            stmt = stmt.where(Match.status.in_(list(expected_statuses)))
        with self._writing("update match"):
            result = self.session.execute(stmt.values(**values).execution_options(synchronize_session=False))
            affected = affected_rows(result)
        self.session.expire_all()
        return affected

    def delete(self, match_id: int, expected_statuses: Optional[Iterable[str]] = None) -> int:
        stmt = delete(Match).where(Match.id == match_id)
        if expected_statuses is not None:
            stmt = stmt.where(Match.status.in_(list(expected_statuses)))
        with self._writing("delete match"):
            result = self.session.execute(stmt.execution_options(synchronize_session=False))
            affected = affected_rows(result)
        self.session.expire_all()
        return affected

    def list_by_sport(self, sport: str) -> List[Match]:
        with self._reading("list matches by sport"):
            return list(
                self.session.exec(
                    select(Match)
                    .join(Tournament, Match.tournament_id == Tournament.id)
                    .where(Tournament.sport == sport)
                    .order_by(Match.scheduled_at, Match.id)
                ).all()
            )

    def list_by_tournament(self, tournament_id: int) -> List[Match]:
        with self._reading("list matches by tournament"):
            return list(
                self.session.exec(
                    select(Match)
                    .where(Match.tournament_id == tournament_id)
                    .order_by(self._round_order(), Match.scheduled_at, Match.id)
                ).all()
            )

    def list_by_tournament_and_round(self, tournament_id: int, round_name: str) -> List[Match]:
        with self._reading("list matches by round"):
            return list(
                self.session.exec(
                    select(Match)
                    .where(Match.tournament_id == tournament_id, Match.round == round_name)
                    .order_by(Match.scheduled_at, Match.id)
                ).all()
            )

    def list_by_status(self, status: str) -> List[Match]:
        with self._reading("list matches by status"):
            return list(
                self.session.exec(
                    select(Match).where(Match.status == status).order_by(Match.scheduled_at, Match.id)
                ).all()
            )

    def list_by_date_range(self, start: datetime, end: datetime) -> List[Match]:
        with self._reading("list matches by date range"):
            return list(
                self.session.exec(
                    select(Match)
                    .where(Match.scheduled_at >= start, Match.scheduled_at <= end)
                    .order_by(Match.scheduled_at, Match.id)
                ).all()
            )

    def count_by_tournament(self, tournament_id: int) -> int:
        with self._reading("count matches by tournament"):
            return scalar_int(
                self.session.exec(select(func.count(Match.id)).where(Match.tournament_id == tournament_id)).one()
            )

    def count_by_status(self, status: str) -> int:
        with self._reading("count matches by status"):
            return scalar_int(self.session.exec(select(func.count(Match.id)).where(Match.status == status)).one())
