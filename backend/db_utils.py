from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Mapping, Optional, Sequence, Tuple, cast

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine, Result

SqlParams = Sequence[object] | Mapping[str, object] | None


def _prepare_statement(sql: str, params: SqlParams) -> Tuple[str, dict]:
    """Rewrite positional ``?`` placeholders into named SQLAlchemy binds."""
    if params is None:
        return sql, {}
    if isinstance(params, Mapping):
        return sql, dict(params)
    if not isinstance(params, Sequence) or isinstance(params, (str, bytes)):
        raise TypeError("Unsupported parameter type; expected sequence or mapping.")

    parts = sql.split("?")
    if len(parts) - 1 != len(params):
        raise ValueError(
            f"Parameter count mismatch: expected {len(parts) - 1}, got {len(params)}."
        )

    bound_params: dict[str, object] = {}
    rebuilt = [parts[0]]
    for index, value in enumerate(params):
        key = f"p{index}"
        bound_params[key] = value
        rebuilt.append(f":{key}{parts[index + 1]}")
    return "".join(rebuilt), bound_params


class ResultWrapper:
    def __init__(self, result: Result):
        self._result = result

    def fetchone(self) -> Optional[Mapping[str, object]]:
        row = self._result.fetchone()
        return None if row is None else cast(Mapping[str, object], row._mapping)

    def fetchall(self) -> list[Mapping[str, object]]:
        return [
            cast(Mapping[str, object], row._mapping) for row in self._result.fetchall()
        ]

    def scalar(self):
        return self._result.scalar()

    @property
    def rowcount(self) -> int:
        return int(getattr(self._result, "rowcount", None) or 0)


class SQLAlchemyConnectionWrapper:
    """Thin adapter so repositories can write plain ``?``-style SQL."""

    def __init__(self, connection: Connection):
        self._connection = connection

    def execute(self, sql: str, params: SqlParams = None) -> ResultWrapper:
        statement, bound_params = _prepare_statement(sql, params)
        return ResultWrapper(self._connection.execute(text(statement), bound_params))

    def close(self) -> None:
        self._connection.close()


@contextmanager
def transactional_connection(engine: Engine) -> Iterator[SQLAlchemyConnectionWrapper]:
    """Yield a wrapper bound to a fresh connection inside one transaction.

    The transaction commits when the block exits normally and rolls back on
    any exception, which is re-raised to the caller.
    """
    connection = engine.connect()
    transaction = connection.begin()
    try:
        yield SQLAlchemyConnectionWrapper(connection)
    except Exception:
        transaction.rollback()
        raise
    else:
        transaction.commit()
    finally:
        connection.close()


def connection(engine: Engine) -> SQLAlchemyConnectionWrapper:
    return SQLAlchemyConnectionWrapper(engine.connect())
