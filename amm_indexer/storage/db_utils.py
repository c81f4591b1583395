from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session


def dialect_insert(session: Session, table):
    """Return an INSERT supporting ON CONFLICT for the session's dialect."""
    name = session.get_bind().dialect.name
    if name == "postgresql":
        return pg_insert(table)
    if name == "sqlite":
        return sqlite_insert(table)
    raise NotImplementedError(f"Upserts are not supported on dialect '{name}'")


def insert_if_absent(session: Session, table, values: dict, index_elements: list[str]) -> bool:
    """INSERT .. ON CONFLICT DO NOTHING.

    Returns True when this call inserted the row, False when a row with
    the same key already existed (including one committed by a concurrent
    creator after our own lookup).
    """
    stmt = (
        dialect_insert(session, table)
        .values(**values)
        .on_conflict_do_nothing(index_elements=index_elements)
    )
    result = session.execute(stmt)
    return result.rowcount == 1


def upsert(session: Session, table, values: dict, index_elements: list[str], update_columns: list[str], where=None):
    """INSERT .. ON CONFLICT DO UPDATE overwriting ``update_columns`` with the new values."""
    stmt = dialect_insert(session, table).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=index_elements,
        set_={col: stmt.excluded[col] for col in update_columns},
        where=where(table, stmt.excluded) if where is not None else None,
    )
    return session.execute(stmt)
