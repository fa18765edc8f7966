# casedesk/services/entity_store.py
"""
Entity Store - table-scoped access to the case database
- select / get / insert / update by exact column match
- every call returns a StoreResponse (data or error), nothing raises
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from casedesk.database import SessionLocal
from casedesk.errors import StoreError
from casedesk.models import Case, CaseParty, Deadline, Document, Mortgage, Party, Property

logger = logging.getLogger("casedesk.store")

TABLES = {
    "properties": Property,
    "mortgages": Mortgage,
    "cases": Case,
    "parties": Party,
    "case_parties": CaseParty,
    "deadlines": Deadline,
    "documents": Document,
}

Row = Dict[str, Any]


@dataclass
class StoreResponse:
    """Result-or-error pair returned by every store call"""
    data: Any = None
    error: Optional[StoreError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def row_to_dict(obj: Any) -> Row:
    """Column values of an ORM object, enums flattened to their stored strings"""
    row: Row = {}
    for column in obj.__table__.columns:
        value = getattr(obj, column.key)
        if isinstance(value, Enum):
            value = value.value
        row[column.key] = value
    return row


class EntityStore:
    """
    Thin CRUD client over the entity tables.

    Each call runs in its own session and commits or rolls back before
    returning, so callers never hold a session across awaits.
    """

    def __init__(self, session_factory: sessionmaker = SessionLocal) -> None:
        self._session_factory = session_factory

    def _model(self, table: str):
        try:
            return TABLES[table]
        except KeyError:
            raise StoreError(f"Unknown table: {table}", code="unknown_table") from None

    def _fail(self, action: str, table: str, exc: Exception) -> StoreResponse:
        if isinstance(exc, StoreError):
            error = exc
        else:
            error = StoreError(f"{action} on {table} failed: {exc}", code="db_error")
        logger.error(f"{action} on {table} failed: {error.message}")
        return StoreResponse(error=error)

    def select(
        self,
        table: str,
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
        **match: Any,
    ) -> StoreResponse:
        """Rows matching every ``column=value`` pair, optionally ordered"""
        session: Session = self._session_factory()
        try:
            model = self._model(table)
            query = session.query(model).filter_by(**match)
            if order_by:
                column = getattr(model, order_by, None)
                if column is None:
                    raise StoreError(f"Unknown column {table}.{order_by}", code="unknown_column")
                query = query.order_by(column.desc() if descending else column.asc())
            return StoreResponse(data=[row_to_dict(obj) for obj in query.all()])
        except (SQLAlchemyError, StoreError) as exc:
            return self._fail("select", table, exc)
        finally:
            session.close()

    def get(self, table: str, record_id: str) -> StoreResponse:
        """Single row by primary key; data is None when missing"""
        session: Session = self._session_factory()
        try:
            obj = session.get(self._model(table), record_id)
            return StoreResponse(data=row_to_dict(obj) if obj is not None else None)
        except (SQLAlchemyError, StoreError) as exc:
            return self._fail("get", table, exc)
        finally:
            session.close()

    def insert(self, table: str, rows: Union[Row, Iterable[Row]]) -> StoreResponse:
        """Insert one row or many; data is the list of stored rows with generated ids"""
        if isinstance(rows, dict):
            rows = [rows]
        session: Session = self._session_factory()
        try:
            model = self._model(table)
            objects = []
            for values in rows:
                obj = model()
                self._assign(model, table, obj, values)
                session.add(obj)
                objects.append(obj)
            session.commit()
            return StoreResponse(data=[row_to_dict(obj) for obj in objects])
        except (SQLAlchemyError, StoreError) as exc:
            session.rollback()
            return self._fail("insert", table, exc)
        finally:
            session.close()

    def update(self, table: str, values: Row, **match: Any) -> StoreResponse:
        """
        Set ``values`` on every row matching ``match``.

        Matching nothing is not an error; data is then an empty list.
        """
        if not match:
            return self._fail("update", table, StoreError("update requires a filter", code="missing_filter"))
        session: Session = self._session_factory()
        try:
            model = self._model(table)
            objects = session.query(model).filter_by(**match).all()
            for obj in objects:
                self._assign(model, table, obj, values)
            session.commit()
            return StoreResponse(data=[row_to_dict(obj) for obj in objects])
        except (SQLAlchemyError, StoreError) as exc:
            session.rollback()
            return self._fail("update", table, exc)
        finally:
            session.close()

    def _assign(self, model, table: str, obj: Any, values: Row) -> None:
        columns = model.__table__.columns
        for key, value in values.items():
            if key not in columns:
                raise StoreError(f"Unknown column {table}.{key}", code="unknown_column")
            setattr(obj, key, value)

    def load_case_graph(self, case_id: str) -> StoreResponse:
        """
        A case with its property, mortgage and parties in one read.

        data is None when the case does not exist, otherwise the case row with
        ``property``, ``mortgage`` and ``parties`` keys added.
        """
        session: Session = self._session_factory()
        try:
            case = session.get(Case, case_id)
            if case is None:
                return StoreResponse(data=None)
            graph = row_to_dict(case)
            graph["property"] = row_to_dict(case.property_record) if case.property_record else None
            graph["mortgage"] = row_to_dict(case.mortgage) if case.mortgage else None
            graph["parties"] = [row_to_dict(link.party) for link in case.case_parties if link.party]
            return StoreResponse(data=graph)
        except SQLAlchemyError as exc:
            return self._fail("select", "cases", exc)
        finally:
            session.close()
