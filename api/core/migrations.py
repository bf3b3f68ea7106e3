"""
Versioned SQL schema migrations.

Scripts live in one directory and are named `V<version>__<description>.sql`,
for example `V1_0__create_city_table.sql` (version `1.0`). Each script is
applied once, in ascending version order, inside its own transaction, and
recorded in `schema_history` together with the SHA-256 of its content.

Startup calls `migrate()` before serving traffic. Any `MigrationError`
(failed script, edited script, out-of-order script) aborts startup.
"""

from __future__ import annotations

import hashlib
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import asyncpg

from . import db, settings
from .errors import MigrationError

logger = logging.getLogger(__name__)

HISTORY_TABLE = "schema_history"

# Arbitrary constant shared by every app process migrating the same database.
ADVISORY_LOCK_KEY = 725_101_001

_FILENAME_RE = re.compile(r"^V(?P<version>\d+(?:[._]\d+)*)__(?P<description>\w+)\.sql$")


@dataclass(frozen=True)
class MigrationScript:
    version: str
    description: str
    checksum: str
    sql: str
    path: Path | None = None

    @property
    def version_key(self) -> tuple[int, ...]:
        return version_key(self.version)


@dataclass(frozen=True)
class MigrationRecord:
    version: str
    description: str
    checksum: str
    applied_at: Any = None


@dataclass(frozen=True)
class MigrationResult:
    applied: list[str]
    current: str | None


def version_key(version: str) -> tuple[int, ...]:
    return tuple(int(part) for part in version.split("."))


def checksum(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


def parse_script(path: Path) -> MigrationScript:
    match = _FILENAME_RE.match(path.name)
    if match is None:
        raise MigrationError(
            f"Invalid migration file name {path.name!r}; expected V<version>__<description>.sql."
        )
    raw = path.read_bytes()
    return MigrationScript(
        version=match.group("version").replace("_", "."),
        description=match.group("description").replace("_", " ").strip(),
        checksum=checksum(raw),
        sql=raw.decode("utf-8"),
        path=path,
    )


def discover(directory: Path) -> list[MigrationScript]:
    """
    Load every `*.sql` script in `directory`, sorted by version.
    """
    if not directory.is_dir():
        raise MigrationError(f"Migrations directory not found: {directory}")

    scripts = [parse_script(p) for p in sorted(directory.glob("*.sql"))]
    scripts.sort(key=lambda s: s.version_key)

    seen: dict[tuple[int, ...], MigrationScript] = {}
    for script in scripts:
        other = seen.get(script.version_key)
        if other is not None:
            raise MigrationError(
                f"Duplicate migration version {script.version}: "
                f"{other.path.name if other.path else other.description} and "
                f"{script.path.name if script.path else script.description}."
            )
        seen[script.version_key] = script
    return scripts


def pending(scripts: list[MigrationScript], applied: list[MigrationRecord]) -> list[MigrationScript]:
    """
    Validate history against local scripts and return the ones still to run.

    Raises MigrationError when an applied script changed on disk or when a
    new script sorts before the latest applied version.
    """
    by_version = {version_key(r.version): r for r in applied}
    local = {s.version_key for s in scripts}

    for script in scripts:
        record = by_version.get(script.version_key)
        if record is not None and record.checksum != script.checksum:
            logger.error(
                "migration_checksum_mismatch version=%s recorded=%s local=%s",
                script.version,
                record.checksum,
                script.checksum,
            )
            raise MigrationError(
                f"Checksum mismatch for migration {script.version} ({script.description}): "
                "the script was changed after it was applied."
            )

    for key, record in sorted(by_version.items()):
        if key not in local:
            logger.warning("migration_missing_locally version=%s description=%s", record.version, record.description)

    latest = max(by_version, default=None)
    todo = [s for s in scripts if s.version_key not in by_version]
    for script in todo:
        if latest is not None and script.version_key < latest:
            raise MigrationError(
                f"Migration {script.version} is older than the latest applied version "
                f"{by_version[latest].version}; migrations must be applied in order."
            )
    return todo


async def _ensure_history_table(conn: asyncpg.Connection) -> None:
    await conn.execute(
        f"""
        CREATE TABLE IF NOT EXISTS {HISTORY_TABLE} (
            version text PRIMARY KEY,
            description text NOT NULL,
            checksum text NOT NULL,
            applied_at timestamptz NOT NULL DEFAULT now()
        )
        """
    )


async def applied_records(conn: asyncpg.Connection) -> list[MigrationRecord]:
    rows = await conn.fetch(
        f"""
        SELECT version, description, checksum, applied_at
        FROM {HISTORY_TABLE}
        """
    )
    records = [
        MigrationRecord(
            version=str(r["version"]),
            description=str(r["description"]),
            checksum=str(r["checksum"]),
            applied_at=r["applied_at"],
        )
        for r in rows
    ]
    records.sort(key=lambda r: version_key(r.version))
    return records


async def _apply(conn: asyncpg.Connection, script: MigrationScript) -> None:
    try:
        async with conn.transaction():
            await conn.execute(script.sql)
            await conn.execute(
                f"""
                INSERT INTO {HISTORY_TABLE} (version, description, checksum)
                VALUES ($1, $2, $3)
                """,
                script.version,
                script.description,
                script.checksum,
            )
    except asyncpg.PostgresError as exc:
        logger.error("migration_failed version=%s description=%s error=%s", script.version, script.description, exc)
        raise MigrationError(f"Migration {script.version} ({script.description}) failed: {exc}") from exc


async def run(conn: asyncpg.Connection, scripts: list[MigrationScript]) -> MigrationResult:
    """
    Apply pending `scripts` on `conn` while holding the migration lock.
    """
    await conn.execute("SELECT pg_advisory_lock($1)", ADVISORY_LOCK_KEY)
    try:
        await _ensure_history_table(conn)
        records = await applied_records(conn)
        todo = pending(scripts, records)
        if not todo:
            logger.info("migrations_up_to_date count=%s", len(records))

        applied: list[str] = []
        for script in todo:
            await _apply(conn, script)
            applied.append(script.version)
            logger.info("migration_applied version=%s description=%s", script.version, script.description)
    finally:
        await conn.execute("SELECT pg_advisory_unlock($1)", ADVISORY_LOCK_KEY)

    versions = [r.version for r in records] + applied
    current = max(versions, key=version_key) if versions else None
    return MigrationResult(applied=applied, current=current)


async def migrate(directory: Path | None = None) -> MigrationResult:
    """
    Discover scripts and bring the pooled database up to date.
    """
    scripts = discover(directory or settings.migrations_dir())
    async with db.connection() as conn:
        result = await run(conn, scripts)
    logger.info("migrations_complete applied=%s current=%s", len(result.applied), result.current)
    return result
