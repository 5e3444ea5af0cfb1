from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import update
from sqlalchemy.exc import OperationalError
from sqlmodel import Session, select

from app.errors import ConflictError, UpstreamUnavailableError
from app.models.kv_record import KVRecord


class RecordStore:
    """Key-prefix scoped record store on top of the ``kv_record`` table.

    Writes are staged on the session; callers decide when to ``commit``
    so a whole operation lands together or not at all.
    """

    def __init__(self, session: Session):
        self.session = session

    def get(self, key: str) -> Optional[dict]:
        value, _ = self.get_versioned(key)
        return value

    def get_versioned(self, key: str) -> Tuple[Optional[dict], int]:
        try:
            record = self.session.get(KVRecord, key)
        except OperationalError as exc:
            raise UpstreamUnavailableError("Record store unavailable") from exc
        if record is None:
            return None, 0
        return dict(record.value), record.version

    def set(self, key: str, value: dict, expected_version: Optional[int] = None) -> int:
        """Write ``value`` under ``key`` and return the new version.

        With ``expected_version`` the write only happens if the stored
        version still matches; otherwise ``ConflictError`` is raised.
        """
        now = datetime.now(timezone.utc)
        try:
            if expected_version is not None:
                result = self.session.execute(
                    update(KVRecord)
                    .where(KVRecord.key == key)
                    .where(KVRecord.version == expected_version)
                    .values(value=value, version=expected_version + 1, updated_at=now)
                )
                if result.rowcount != 1:
                    raise ConflictError(f"Record {key} was modified concurrently")
                return expected_version + 1

            record = self.session.get(KVRecord, key)
            if record is None:
                record = KVRecord(key=key, value=value, version=1, updated_at=now)
            else:
                record.value = value
                record.version += 1
                record.updated_at = now
            self.session.add(record)
            self.session.flush()
            return record.version
        except OperationalError as exc:
            raise UpstreamUnavailableError("Record store unavailable") from exc

    def delete(self, key: str) -> None:
        try:
            record = self.session.get(KVRecord, key)
            if record is not None:
                self.session.delete(record)
                self.session.flush()
        except OperationalError as exc:
            raise UpstreamUnavailableError("Record store unavailable") from exc

    def scan_by_prefix(self, prefix: str) -> List[dict]:
        try:
            records = self.session.exec(
                select(KVRecord)
                .where(KVRecord.key.startswith(prefix, autoescape=True))
                .order_by(KVRecord.key)
            ).all()
        except OperationalError as exc:
            raise UpstreamUnavailableError("Record store unavailable") from exc
        return [dict(r.value) for r in records]

    def commit(self) -> None:
        try:
            self.session.commit()
        except OperationalError as exc:
            self.session.rollback()
            raise UpstreamUnavailableError("Record store unavailable") from exc

    def rollback(self) -> None:
        self.session.rollback()
