"""
verifications/store.py -- SQLAlchemy-backed log of validation attempts.

Uses SQLAlchemy Core (not ORM) so the dataclass in verifications/models.py
remains the authoritative domain representation.

Pattern: Repository + Data Mapper. VerificationStore is the repository;
_row_to_log is the mapper. Records are append-only: there is no update or
delete path.

Usage:
    store = VerificationStore("sqlite:///verifier.db")
    log_id = store.log(VerificationLog(username="alice", postcode="2000", ...))
    recent = store.fetch_recent(50)
    store.close()
"""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, Float, Integer, MetaData, String, Table, Text
from sqlalchemy.engine import Engine

from core.db import make_engine
from verifications.models import VerificationLog

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_verifications = Table(
    "verifications",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(50), nullable=False, index=True),
    Column("postcode", String(10), nullable=False),
    Column("suburb", String(255), nullable=False),
    Column("state", String(10), nullable=False),
    Column("success", Boolean, nullable=False),
    Column("message", Text),
    Column("error", Text),
    Column("lat", Float),
    Column("lng", Float),
    # Nullable: rows imported from elsewhere may lack a timestamp; they sort last.
    Column("created_at", String(32), index=True),
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class VerificationStore:
    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        metadata.create_all(self.engine)

    def log(self, entry: VerificationLog) -> int:
        """Insert one attempt with a server-assigned timestamp. Returns its ID.

        Raises sqlalchemy.exc.SQLAlchemyError if the write fails. Callers on
        the validation path go through record_verification(), which absorbs it.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _verifications.insert().values(
                    username=entry.username,
                    postcode=entry.postcode,
                    suburb=entry.suburb,
                    state=entry.state,
                    success=entry.success,
                    message=entry.message,
                    error=entry.error,
                    lat=entry.lat,
                    lng=entry.lng,
                    created_at=_now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def fetch_recent(self, limit: int = 50) -> list[VerificationLog]:
        """Return the newest `limit` attempts, newest first, undated rows last.

        ISO 8601 UTC timestamps sort lexicographically in time order. The
        is_(None) key comes first so NULL timestamps land after every dated
        row on any backend; id breaks ties between same-instant writes.
        """
        query = (
            _verifications.select()
            .order_by(
                _verifications.c.created_at.is_(None),
                _verifications.c.created_at.desc(),
                _verifications.c.id.desc(),
            )
            .limit(limit)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_log(r) for r in rows]

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_log(row) -> VerificationLog:
    return VerificationLog(
        id=row.id,
        username=row.username,
        postcode=row.postcode,
        suburb=row.suburb,
        state=row.state,
        success=bool(row.success),
        message=row.message,
        error=row.error,
        lat=row.lat,
        lng=row.lng,
        created_at=row.created_at,
    )
