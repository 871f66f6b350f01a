"""Sanity checks for Alembic migration ordering and coverage.

The revisions under ``karbarg/migrations/versions`` must form a single
linear upgrade path, and the upgraded schema must contain every table the
ORM models declare.
"""
from __future__ import annotations

from pathlib import Path

import pytest
from alembic.config import Config as AlembicConfig
from alembic.script import ScriptDirectory
from sqlalchemy import inspect

from karbarg.database import Base
import karbarg.models  # noqa: F401  registers every table on Base.metadata


BASE_DIR = Path(__file__).resolve().parents[1]


def _script_directory() -> ScriptDirectory:
    return ScriptDirectory.from_config(AlembicConfig(str(BASE_DIR / "alembic.ini")))


def test_migrations_have_single_head() -> None:
    script = _script_directory()

    heads = script.get_heads()
    assert len(heads) == 1, f"Multiple migration heads detected: {heads}"


def test_migration_chain_reaches_base() -> None:
    script = _script_directory()

    chain = list(script.walk_revisions())
    assert chain, "No migrations found"
    assert chain[-1].down_revision is None
    for revision in chain:
        if revision.down_revision is not None:
            assert script.get_revision(revision.down_revision) is not None


@pytest.mark.asyncio
async def test_upgraded_schema_matches_models(test_engine) -> None:
    async with test_engine.connect() as conn:
        tables = await conn.run_sync(lambda sync_conn: set(inspect(sync_conn).get_table_names()))

    missing = set(Base.metadata.tables) - tables
    assert not missing, f"Tables declared on models but not created by migrations: {sorted(missing)}"
