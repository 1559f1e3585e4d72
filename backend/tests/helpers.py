"""Shared test doubles: a settable clock and stores that fail on demand."""

from datetime import datetime, timedelta

from fireforce.store import LocalRecordStore, RecordStore, StoreError


OFFICE_INFO = {
    "companyName": "Fire Force",
    "address": "P.O. Box 552, Columbiana Ohio 44408",
    "phone": "330-482-9300",
    "emergencyPhone": "724-586-6577",
    "email": "Lizfireforce@yahoo.com",
    "serviceEmail": "fireforcebutler@gmail.com",
    "username": "ffoffice1",
}


class FakeClock:
    def __init__(self, now: datetime = datetime(2026, 10, 19, 12, 0, 0)):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class UnreachableStore(RecordStore):
    """Remote store whose every call fails."""

    name = "remote"
    remote = True

    def _fail(self, *args, **kwargs):
        raise StoreError("connection refused", operation="test")

    load_all = insert = update = delete_by_id = delete_where = upsert = _fail


class FlakyLocalStore(LocalRecordStore):
    """Local store that fails writes for the kinds listed in `fail_inserts`."""

    def __init__(self, *args, fail_inserts=(), **kwargs):
        super().__init__(*args, **kwargs)
        self.fail_inserts = set(fail_inserts)

    def insert_many(self, kind, records):
        if kind in self.fail_inserts:
            raise StoreError(f"insert into {kind} rejected", kind=kind, operation="insert")
        return super().insert_many(kind, records)


def hash_for_tests(password: str) -> str:
    return "hashed:" + password
