"""
QloudSound API - SQLite Database

Async persistence for song requests and the track catalog, built on aiosqlite.

Tables are created lazily: every operation first calls :func:`ensure_table`
for the table it touches.  Table creation (and the one-time seeding of the
published catalog) is memoized per database file with a single-flight
pattern, so concurrent first callers share one ``CREATE TABLE IF NOT EXISTS``
round-trip and a failed attempt is retried on the next call.
"""

import asyncio
import functools
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple

import aiosqlite
from loguru import logger

from qloudsound.config import REQUESTS_DB_PATH
from qloudsound.models import CatalogEntry, Submission
from qloudsound.seed import PUBLISHED_TRACKS

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------
SUBMISSIONS = "submissions"
CATALOG = "catalog"

TABLE_SQL = {
    SUBMISSIONS: """
    CREATE TABLE IF NOT EXISTS requests (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        email TEXT NOT NULL,
        style TEXT NOT NULL,
        description TEXT,
        filename TEXT,
        created_at TEXT NOT NULL,
        status TEXT NOT NULL
    )
    """,
    CATALOG: """
    CREATE TABLE IF NOT EXISTS catalog (
        id TEXT PRIMARY KEY,
        title TEXT NOT NULL,
        status TEXT NOT NULL,
        isrc TEXT,
        upc TEXT,
        submitted_at TEXT NOT NULL
    )
    """,
}

_UPSERT_SUBMISSION_SQL = """
INSERT OR REPLACE INTO requests
    (id, name, email, style, description, filename, created_at, status)
VALUES (?, ?, ?, ?, ?, ?, ?, ?)
"""

_UPSERT_CATALOG_SQL = """
INSERT OR REPLACE INTO catalog (id, title, status, isrc, upc, submitted_at)
VALUES (?, ?, ?, ?, ?, ?)
"""

_SEED_CATALOG_SQL = """
INSERT OR IGNORE INTO catalog (id, title, status, isrc, upc, submitted_at)
VALUES (?, ?, ?, ?, ?, ?)
"""


class StorageUnavailable(RuntimeError):
    """Raised when the service runs without a configured SQLite file."""


def _require_db_path() -> Path:
    if REQUESTS_DB_PATH is None:
        raise StorageUnavailable("REQUESTS_DB_PATH is not configured")
    return REQUESTS_DB_PATH


# ---------------------------------------------------------------------------
# Async context manager (for use in FastAPI routes)
# ---------------------------------------------------------------------------
@asynccontextmanager
async def get_async_connection(db_path: Optional[Path] = None):
    """Async context manager for an aiosqlite connection with row factory."""
    path = db_path or _require_db_path()
    db = await aiosqlite.connect(str(path))
    db.row_factory = aiosqlite.Row
    try:
        yield db
    finally:
        await db.close()


def row_to_dict(row) -> Dict[str, Any]:
    """Convert a database row to a plain dictionary."""
    if row is None:
        return {}
    return dict(row)


# ---------------------------------------------------------------------------
# Single-flight initialization
# ---------------------------------------------------------------------------
_InitKey = Tuple[str, str]

_ready: Set[_InitKey] = set()
_inflight: Dict[_InitKey, "asyncio.Future[None]"] = {}


def _on_init_done(key: _InitKey, task: "asyncio.Future[None]") -> None:
    """Record the outcome of a finished attempt, even if nobody is still waiting."""
    if _inflight.get(key) is task:
        del _inflight[key]
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("❌ Initialization of {} failed: {}", key[1], exc)
        return
    _ready.add(key)


async def _run_once(key: _InitKey, factory: Callable[[], Awaitable[None]]) -> None:
    """
    Run ``factory()`` at most once successfully per *key*.

    Callers arriving while an attempt is in flight await that same attempt.
    A failed attempt is forgotten so the next caller starts a fresh one.
    The shared task is shielded: cancelling one waiter does not cancel the
    work the other waiters depend on.
    """
    if key in _ready:
        return

    task = _inflight.get(key)
    if task is None:
        task = asyncio.ensure_future(factory())
        _inflight[key] = task
        # Registered before any waiter, so it runs before they resume.
        task.add_done_callback(functools.partial(_on_init_done, key))

    await asyncio.shield(task)


def reset_schema_cache() -> None:
    """Forget which tables were created (used by tests and after swapping stores)."""
    _ready.clear()
    _inflight.clear()


async def _create_table(db_path: Path, kind: str) -> None:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    async with get_async_connection(db_path) as db:
        await db.execute(TABLE_SQL[kind])
        await db.commit()
    logger.success("✅ Table '{}' ready in {}", kind, db_path)


async def ensure_table(kind: str) -> None:
    """
    Make sure the table for *kind* (``submissions`` or ``catalog``) exists.

    Safe to call concurrently and repeatedly; after the first success it is
    a no-op for the lifetime of the process.

    Raises:
        StorageUnavailable: no SQLite file is configured.
        ValueError: *kind* is not a known table.
    """
    if kind not in TABLE_SQL:
        raise ValueError(f"Unknown table kind: {kind!r}")
    db_path = _require_db_path()
    await _run_once((str(db_path), kind), lambda: _create_table(db_path, kind))


# ---------------------------------------------------------------------------
# Row writers (shared by the single and the combined operations)
# ---------------------------------------------------------------------------
async def _write_submission(db: aiosqlite.Connection, submission: Submission) -> None:
    await db.execute(
        _UPSERT_SUBMISSION_SQL,
        (
            submission.id,
            submission.name,
            submission.email,
            submission.style,
            submission.description,
            submission.filename,
            submission.created_at,
            submission.status,
        ),
    )


async def _write_catalog_entry(db: aiosqlite.Connection, entry: CatalogEntry) -> None:
    await db.execute(
        _UPSERT_CATALOG_SQL,
        (
            entry.id,
            entry.title,
            entry.status,
            entry.isrc,
            entry.upc,
            entry.submitted_at,
        ),
    )


# ---------------------------------------------------------------------------
# Submissions
# ---------------------------------------------------------------------------
async def save_submission(submission: Submission) -> None:
    """Insert or replace a submission, keyed by its id."""
    await ensure_table(SUBMISSIONS)
    async with get_async_connection() as db:
        await _write_submission(db, submission)
        await db.commit()
    logger.debug("💾 Submission saved (id={})", submission.id)


async def get_submission(submission_id: str) -> Optional[Submission]:
    """Fetch a single submission by its id."""
    await ensure_table(SUBMISSIONS)
    async with get_async_connection() as db:
        cursor = await db.execute("SELECT * FROM requests WHERE id = ?", (submission_id,))
        row = await cursor.fetchone()
    return Submission.from_row(row_to_dict(row)) if row else None


async def list_submissions() -> List[Submission]:
    """Return every stored submission, newest first."""
    await ensure_table(SUBMISSIONS)
    async with get_async_connection() as db:
        cursor = await db.execute("SELECT * FROM requests ORDER BY created_at DESC")
        rows = await cursor.fetchall()
    return [Submission.from_row(row_to_dict(r)) for r in rows]


async def record_submission(submission: Submission, entry: CatalogEntry) -> None:
    """
    Persist a new submission together with its catalog row.

    Both rows are written on one connection and committed once, so either
    both land or neither does.
    """
    await ensure_table(SUBMISSIONS)
    await ensure_table(CATALOG)
    async with get_async_connection() as db:
        try:
            await _write_submission(db, submission)
            await _write_catalog_entry(db, entry)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
    logger.success("✅ Request stored (id={}): {}", submission.id, entry.title)


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------
async def add_catalog_entry(entry: CatalogEntry) -> None:
    """Insert or replace a catalog entry, keyed by its id."""
    await ensure_table(CATALOG)
    async with get_async_connection() as db:
        await _write_catalog_entry(db, entry)
        await db.commit()
    logger.debug("💾 Catalog entry saved (id={})", entry.id)


async def _insert_published_tracks(db_path: Path) -> None:
    rows = [
        (t.id, t.title, t.status, t.isrc, t.upc, t.submitted_at)
        for t in PUBLISHED_TRACKS
    ]
    async with get_async_connection(db_path) as db:
        cursor = await db.executemany(_SEED_CATALOG_SQL, rows)
        inserted = cursor.rowcount
        await db.commit()
    logger.info("🌱 Published catalog seeded ({} new of {})", inserted, len(rows))


async def seed_catalog_defaults() -> None:
    """Insert the published tracks once; existing ids are left untouched."""
    db_path = _require_db_path()
    await ensure_table(CATALOG)
    await _run_once(
        (str(db_path), "catalog_seed"), lambda: _insert_published_tracks(db_path)
    )


async def list_catalog_entries(status: Optional[str] = None) -> List[CatalogEntry]:
    """
    Return catalog entries, newest ``submitted_at`` first.

    Timestamps are stored as uniform ISO-8601 strings, so ordering them as
    text is chronological.  The published tracks are seeded before the
    first read.
    """
    await ensure_table(CATALOG)
    await seed_catalog_defaults()
    async with get_async_connection() as db:
        if status:
            cursor = await db.execute(
                "SELECT * FROM catalog WHERE status = ? ORDER BY submitted_at DESC",
                (status,),
            )
        else:
            cursor = await db.execute("SELECT * FROM catalog ORDER BY submitted_at DESC")
        rows = await cursor.fetchall()
    return [CatalogEntry.from_row(row_to_dict(r)) for r in rows]
