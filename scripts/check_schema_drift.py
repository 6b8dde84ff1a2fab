"""Check that the live database matches the models and keeps its race guards.

Exit codes: 0 when the schema is in sync, 1 when autogenerate finds
differences, 2 when a uniqueness guard the game depends on is missing, and
3 when the database cannot be inspected.
"""

from __future__ import annotations

import sys

from alembic.autogenerate import api as ag_api
from alembic.runtime.migration import MigrationContext
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

from tetlixi.db.engine import make_engine
from tetlixi.models import Base

# (table, columns, constraint name) that allocation and play tracking rely on.
# A prize is only ever bound to one claim because of ``uq_claims_prize_id``.
REQUIRED_UNIQUE_CONSTRAINTS = (
    ("claims", ("prize_id",), "uq_claims_prize_id"),
    ("prizes", ("code",), "uq_prizes_code"),
    ("device_play_allowances", ("device_id",), "uq_device_play_allowances_device_id"),
)


def model_differences(connection) -> list:
    """Return the autogenerate operations needed to bring the DB up to the models."""

    context = MigrationContext.configure(
        connection=connection,
        opts={
            "compare_type": True,
            "render_as_batch": connection.dialect.name == "sqlite",
        },
    )
    upgrade_ops = ag_api.produce_migrations(context, Base.metadata).upgrade_ops
    if upgrade_ops is None or upgrade_ops.is_empty():
        return []
    return list(upgrade_ops.ops)


def missing_unique_constraints(connection) -> list[str]:
    """Return a description of every required uniqueness guard not present."""

    inspector = inspect(connection)
    tables = set(inspector.get_table_names())
    missing = []
    for table, columns, name in REQUIRED_UNIQUE_CONSTRAINTS:
        if table not in tables:
            missing.append(f"{name} (table {table} does not exist)")
            continue
        unique_columns = {
            tuple(constraint["column_names"])
            for constraint in inspector.get_unique_constraints(table)
        }
        # A unique index enforces the same guarantee as a constraint.
        unique_columns.update(
            tuple(index["column_names"])
            for index in inspector.get_indexes(table)
            if index.get("unique")
        )
        if columns not in unique_columns:
            missing.append(f"{name} on {table}({', '.join(columns)})")
    return missing


def _print_ops(ops, indent: int = 0) -> None:
    prefix = "  " * indent
    for op in ops:
        print(f"{prefix}- {op}")
        if getattr(op, "ops", None):
            _print_ops(op.ops, indent + 1)


def main() -> int:
    engine = make_engine()
    url_display = engine.url.render_as_string(hide_password=True)
    try:
        with engine.connect() as connection:
            missing = missing_unique_constraints(connection)
            differences = model_differences(connection)
    except SQLAlchemyError as exc:
        print(f"Schema check: cannot inspect {url_display}: {exc}", file=sys.stderr)
        return 3
    finally:
        engine.dispose()

    if missing:
        print(f"Schema check: FAILED for {url_display}. Missing uniqueness guards:")
        for item in missing:
            print(f"- {item}")
        return 2
    if differences:
        print(f"Schema check: FAILED for {url_display}. Models and database differ:")
        _print_ops(differences)
        return 1
    print(f"Schema check: OK for {url_display}.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
