"""
Relational store for users, subscriptions and generated content.

``RelationalStore`` is the protocol the request policy depends on;
``SqlStore`` implements it with SQLAlchemy Core over an explicitly
constructed engine. All methods are blocking and are meant to be called
through ``run_with_deadline``.
"""

from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple, Type
from uuid import uuid4
import logging

from sqlalchemy import Table, delete, insert, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from studyforge.core.database import (
    notes,
    practice_papers,
    subscriptions,
    text_summaries,
    users,
)
from studyforge.models.generation import ContentKind
from studyforge.models.principal import Entitlement
from studyforge.models.records import (
    NoteRecord,
    PracticePaperRecord,
    SubscriptionView,
    SummaryRecord,
    UserRecord,
    WireModel,
)

logger = logging.getLogger("studyforge")

DEFAULT_PLAN = "FREE"
DEFAULT_QUOTA_LIMIT = 10
DEFAULT_PLAN_DAYS = 30

# kind -> (table, record model, list ordering column)
_KIND_TABLES: Dict[ContentKind, Tuple[Table, Type[WireModel], str]] = {
    ContentKind.NOTE: (notes, NoteRecord, "updated_at"),
    ContentKind.PRACTICE: (practice_papers, PracticePaperRecord, "created_at"),
    ContentKind.SUMMARY: (text_summaries, SummaryRecord, "created_at"),
}


class DeleteOutcome(str, Enum):
    DELETED = "deleted"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"


class RelationalStore(Protocol):
    def probe(self) -> None:
        """Trivial read-only round trip; raises when the store is unusable."""
        ...

    def get_entitlement(self, user_id: str) -> Optional[Entitlement]:
        ...

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        ...

    def create_user(self, user_id: str, email: str, name: str) -> UserRecord:
        ...

    def create_record(self, kind: ContentKind, fields: Mapping[str, Any]) -> WireModel:
        ...

    def find_record(self, kind: ContentKind, record_id: str, owner_id: str) -> Optional[WireModel]:
        ...

    def list_records(self, kind: ContentKind, owner_id: str) -> List[WireModel]:
        ...

    def delete_record(self, kind: ContentKind, record_id: str, owner_id: str) -> DeleteOutcome:
        ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SqlStore:
    """SQLAlchemy-backed ``RelationalStore``."""

    def __init__(self, engine: Engine):
        self.engine = engine
        self._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    @contextmanager
    def _session(self):
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def probe(self) -> None:
        with self.engine.connect() as conn:
            conn.exec_driver_sql("SELECT 1")

    def get_entitlement(self, user_id: str) -> Optional[Entitlement]:
        with self._session() as session:
            row = session.execute(
                select(subscriptions).where(subscriptions.c.user_id == user_id)
            ).first()
            if not row:
                return None
            return Entitlement(
                plan_type=row.plan_type,
                quota_limit=row.quota_limit,
                quota_used=row.quota_used,
                valid_until=row.valid_until,
            )

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        with self._session() as session:
            row = session.execute(select(users).where(users.c.id == user_id)).first()
            if not row:
                return None
            sub = session.execute(
                select(subscriptions).where(subscriptions.c.user_id == user_id)
            ).first()
            return _user_record(row, sub)

    def create_user(self, user_id: str, email: str, name: str) -> UserRecord:
        now = _utcnow()
        with self._session() as session:
            session.execute(
                insert(users).values(
                    id=user_id,
                    email=email,
                    name=name,
                    created_at=now,
                    updated_at=now,
                )
            )
            session.execute(
                insert(subscriptions).values(
                    user_id=user_id,
                    plan_type=DEFAULT_PLAN,
                    quota_limit=DEFAULT_QUOTA_LIMIT,
                    quota_used=0,
                    valid_until=now + timedelta(days=DEFAULT_PLAN_DAYS),
                    created_at=now,
                    updated_at=now,
                )
            )
        return UserRecord(
            id=user_id,
            email=email,
            name=name,
            created_at=now,
            updated_at=now,
            subscription=SubscriptionView(
                plan=DEFAULT_PLAN,
                quota_limit=DEFAULT_QUOTA_LIMIT,
                quota_used=0,
                valid_until=now + timedelta(days=DEFAULT_PLAN_DAYS),
            ),
        )

    def create_record(self, kind: ContentKind, fields: Mapping[str, Any]) -> WireModel:
        table, model, _ = _KIND_TABLES[kind]
        now = _utcnow()
        values = dict(fields)
        values.setdefault("id", str(uuid4()))
        values["created_at"] = now
        values["updated_at"] = now
        with self._session() as session:
            session.execute(insert(table).values(**values))
        return model.model_validate(values)

    def find_record(self, kind: ContentKind, record_id: str, owner_id: str) -> Optional[WireModel]:
        table, model, _ = _KIND_TABLES[kind]
        with self._session() as session:
            row = session.execute(
                select(table).where(table.c.id == record_id).where(table.c.user_id == owner_id)
            ).first()
            return model.model_validate(dict(row._mapping)) if row else None

    def list_records(self, kind: ContentKind, owner_id: str) -> List[WireModel]:
        table, model, order_column = _KIND_TABLES[kind]
        with self._session() as session:
            rows = session.execute(
                select(table)
                .where(table.c.user_id == owner_id)
                .order_by(table.c[order_column].desc())
            ).all()
            return [model.model_validate(dict(row._mapping)) for row in rows]

    def delete_record(self, kind: ContentKind, record_id: str, owner_id: str) -> DeleteOutcome:
        table, _, _ = _KIND_TABLES[kind]
        with self._session() as session:
            row = session.execute(select(table.c.user_id).where(table.c.id == record_id)).first()
            if not row:
                return DeleteOutcome.NOT_FOUND
            if row.user_id != owner_id:
                return DeleteOutcome.FORBIDDEN
            session.execute(delete(table).where(table.c.id == record_id))
        return DeleteOutcome.DELETED


def _user_record(row, sub) -> UserRecord:
    subscription = None
    if sub is not None:
        subscription = SubscriptionView(
            plan=sub.plan_type,
            quota_limit=sub.quota_limit,
            quota_used=sub.quota_used,
            valid_until=sub.valid_until,
        )
    return UserRecord(
        id=row.id,
        email=row.email,
        name=row.name,
        created_at=row.created_at,
        updated_at=row.updated_at,
        subscription=subscription,
    )
