# Overview: Relational record store; one Flask-SQLAlchemy table per entity kind.

from __future__ import annotations

from typing import Any, Iterable, Mapping

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from .base import INVOICE_ITEMS, SETTINGS, RecordStore, StoreError, check_kind, new_id
from .mapping import ENTITY_MAPS, SETTING_KEYS, predicate_to_columns, record_to_columns, row_to_record


class SqlRecordStore(RecordStore):
    """
    Networked/relational persistence through the Flask-SQLAlchemy session.

    Must be used inside an application context. Each public call commits on
    its own; a failed call rolls the session back and raises StoreError, so
    nothing spans more than one call.
    """

    name = "remote"
    remote = True
    supports_batch = True

    def _fail(self, exc: Exception, kind: str, operation: str) -> StoreError:
        db.session.rollback()
        error = StoreError(f"{operation} on {kind} failed: {exc.__class__.__name__}: {exc}", kind=kind, operation=operation)
        error.__cause__ = exc
        return error

    def _key_value(self, kind: str, record_id: str) -> str:
        if kind == SETTINGS:
            return SETTING_KEYS.get(record_id, record_id)
        return record_id

    def _query(self, kind: str):
        return db.session.query(ENTITY_MAPS[kind].model)

    def _prepare(self, kind: str, record: Mapping[str, Any]) -> tuple[Any, dict]:
        mapping = ENTITY_MAPS[kind]
        # None falls back to the column default
        columns = {k: v for k, v in record_to_columns(kind, dict(record)).items() if v is not None}
        if not columns.get(mapping.key_column):
            columns[mapping.key_column] = new_id()
        return mapping.model(**columns), columns

    def load_all(self, kind: str) -> list[dict]:
        check_kind(kind)
        model = ENTITY_MAPS[kind].model
        try:
            query = self._query(kind)
            if kind == INVOICE_ITEMS:
                query = query.order_by(model.invoice_id.asc(), model.position.asc())
            elif kind == SETTINGS:
                query = query.order_by(model.key.asc())
            else:
                query = query.order_by(model.created_at.asc(), model.id.asc())
            return [row_to_record(kind, row) for row in query.all()]
        except SQLAlchemyError as exc:
            raise self._fail(exc, kind, "load_all")

    def insert(self, kind: str, record: Mapping[str, Any]) -> dict:
        return self.insert_many(kind, [record])[0]

    def insert_many(self, kind: str, records: Iterable[Mapping[str, Any]]) -> list[dict]:
        check_kind(kind)
        try:
            rows = [self._prepare(kind, record)[0] for record in records]
            db.session.add_all(rows)
            db.session.commit()
            return [row_to_record(kind, row) for row in rows]
        except SQLAlchemyError as exc:
            raise self._fail(exc, kind, "insert")
        except (TypeError, ValueError, ArithmeticError) as exc:
            raise self._fail(exc, kind, "insert")

    def update(self, kind: str, record_id: str, fields: Mapping[str, Any]) -> None:
        check_kind(kind)
        mapping = ENTITY_MAPS[kind]
        try:
            columns = record_to_columns(kind, dict(fields))
            columns.pop(mapping.key_column, None)
            row = self._query(kind).filter_by(**{mapping.key_column: self._key_value(kind, record_id)}).first()
            if row is None:
                raise StoreError(f"{kind} record {record_id} not found", kind=kind, operation="update")
            for column, value in columns.items():
                setattr(row, column, value)
            db.session.commit()
        except SQLAlchemyError as exc:
            raise self._fail(exc, kind, "update")
        except (TypeError, ValueError, ArithmeticError) as exc:
            raise self._fail(exc, kind, "update")

    def delete_by_id(self, kind: str, record_id: str) -> None:
        check_kind(kind)
        mapping = ENTITY_MAPS[kind]
        try:
            self._query(kind).filter_by(**{mapping.key_column: self._key_value(kind, record_id)}).delete(synchronize_session=False)
            db.session.commit()
        except SQLAlchemyError as exc:
            raise self._fail(exc, kind, "delete")

    def delete_where(self, kind: str, predicate: Mapping[str, Any]) -> int:
        check_kind(kind)
        try:
            columns = predicate_to_columns(kind, dict(predicate))
        except KeyError as exc:
            raise StoreError(f"Unknown {kind} field in predicate: {exc.args[0]}", kind=kind, operation="delete_where")
        try:
            deleted = self._query(kind).filter_by(**columns).delete(synchronize_session=False)
            db.session.commit()
            return int(deleted or 0)
        except SQLAlchemyError as exc:
            raise self._fail(exc, kind, "delete_where")

    def upsert(self, kind: str, record: Mapping[str, Any], *, key: str = "id") -> None:
        check_kind(kind)
        mapping = ENTITY_MAPS[kind]
        column = mapping.column_for(key) or key
        try:
            columns = record_to_columns(kind, dict(record))
            row = self._query(kind).filter_by(**{column: columns.get(column)}).first()
            if row is None:
                row, _ = self._prepare(kind, record)
                db.session.add(row)
            else:
                for name, value in columns.items():
                    setattr(row, name, value)
            db.session.commit()
        except SQLAlchemyError as exc:
            raise self._fail(exc, kind, "upsert")
        except (TypeError, ValueError, ArithmeticError) as exc:
            raise self._fail(exc, kind, "upsert")
