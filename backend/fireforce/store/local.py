# Overview: Synchronous key/value record store; one JSON blob per entity kind.

from __future__ import annotations

import copy
import json
import os
import threading
from pathlib import Path
from typing import Any, Iterable, Mapping

from .base import RecordStore, StoreError, check_kind, matches, new_id


KEY_PREFIX = "fireforce_"


class LocalRecordStore(RecordStore):
    """
    Browser-storage style persistence.

    Every value lives under a string key: entity collections under
    "fireforce_<kind>" as a JSON list, and opaque entries (backup scheduler
    state) under their own keys. With a directory, each key is one
    "<key>.json" file; without one, values are kept in memory only.
    """

    name = "local"
    remote = False
    supports_batch = True

    def __init__(self, directory: str | os.PathLike | None = None):
        self.directory = Path(directory) if directory else None
        self._memory: dict[str, str] = {}
        self._lock = threading.RLock()
        if self.directory is not None:
            try:
                self.directory.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise StoreError(f"Cannot create local store directory {self.directory}") from exc

    # ------------------------------------------------------------------
    # key/value surface
    # ------------------------------------------------------------------

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get_item(self, key: str) -> Any:
        with self._lock:
            if self.directory is None:
                raw = self._memory.get(key)
            else:
                path = self._path(key)
                if not path.exists():
                    return None
                try:
                    raw = path.read_text(encoding="utf-8")
                except OSError as exc:
                    raise StoreError(f"Cannot read local key {key}", operation="get_item") from exc
            if raw is None:
                return None
            try:
                return json.loads(raw)
            except json.JSONDecodeError as exc:
                raise StoreError(f"Local key {key} holds invalid JSON", operation="get_item") from exc

    def set_item(self, key: str, value: Any) -> None:
        raw = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
        with self._lock:
            if self.directory is None:
                self._memory[key] = raw
                return
            path = self._path(key)
            tmp = path.with_suffix(".json.tmp")
            try:
                tmp.write_text(raw, encoding="utf-8")
                os.replace(tmp, path)
            except OSError as exc:
                raise StoreError(f"Cannot write local key {key}", operation="set_item") from exc

    def remove_item(self, key: str) -> None:
        with self._lock:
            if self.directory is None:
                self._memory.pop(key, None)
                return
            try:
                self._path(key).unlink(missing_ok=True)
            except OSError as exc:
                raise StoreError(f"Cannot remove local key {key}", operation="remove_item") from exc

    def keys(self) -> list[str]:
        with self._lock:
            if self.directory is None:
                return sorted(self._memory)
            return sorted(p.stem for p in self.directory.glob("*.json"))

    # ------------------------------------------------------------------
    # record store surface
    # ------------------------------------------------------------------

    def _read(self, kind: str) -> list[dict]:
        check_kind(kind)
        rows = self.get_item(KEY_PREFIX + kind)
        if rows is None:
            return []
        if not isinstance(rows, list):
            raise StoreError(f"Local {kind} blob is not a list", kind=kind, operation="load_all")
        return rows

    def _write(self, kind: str, rows: list[dict]) -> None:
        self.set_item(KEY_PREFIX + kind, rows)

    def load_all(self, kind: str) -> list[dict]:
        with self._lock:
            return copy.deepcopy(self._read(kind))

    def insert(self, kind: str, record: Mapping[str, Any]) -> dict:
        return self.insert_many(kind, [record])[0]

    def insert_many(self, kind: str, records: Iterable[Mapping[str, Any]]) -> list[dict]:
        with self._lock:
            rows = self._read(kind)
            taken = {row.get("id") for row in rows}
            created = []
            for record in records:
                row = copy.deepcopy(dict(record))
                if not row.get("id"):
                    row["id"] = row.get("key") or new_id()
                # Same contract as a primary key: the whole batch is rejected
                if row["id"] in taken:
                    raise StoreError(f"{kind} record {row['id']} already exists", kind=kind, operation="insert")
                taken.add(row["id"])
                created.append(row)
            rows.extend(created)
            self._write(kind, rows)
            return copy.deepcopy(created)

    def update(self, kind: str, record_id: str, fields: Mapping[str, Any]) -> None:
        with self._lock:
            rows = self._read(kind)
            for row in rows:
                if row.get("id") == record_id:
                    row.update(copy.deepcopy(dict(fields)))
                    row["id"] = record_id
                    self._write(kind, rows)
                    return
            raise StoreError(f"{kind} record {record_id} not found", kind=kind, operation="update")

    def delete_by_id(self, kind: str, record_id: str) -> None:
        with self._lock:
            rows = self._read(kind)
            kept = [row for row in rows if row.get("id") != record_id]
            if len(kept) != len(rows):
                self._write(kind, kept)

    def delete_where(self, kind: str, predicate: Mapping[str, Any]) -> int:
        with self._lock:
            rows = self._read(kind)
            kept = [row for row in rows if not matches(row, predicate)]
            self._write(kind, kept)
            return len(rows) - len(kept)

    def upsert(self, kind: str, record: Mapping[str, Any], *, key: str = "id") -> None:
        with self._lock:
            rows = self._read(kind)
            value = record.get(key)
            for row in rows:
                if row.get(key) == value:
                    row.update(copy.deepcopy(dict(record)))
                    self._write(kind, rows)
                    return
            row = copy.deepcopy(dict(record))
            row.setdefault("id", value if key != "id" and value else new_id())
            rows.append(row)
            self._write(kind, rows)
