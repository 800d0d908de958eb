"""Driver collaborators turning live handles into result and statement objects."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterator, Protocol, Sequence, runtime_checkable

from .handle import RowSet, SessionHandle

if TYPE_CHECKING:
    from .executor import QueryExecutor


@runtime_checkable
class Driver(Protocol):
    """Factory interface consumed by the query executor."""

    def create_result(self, resource: RowSet | SessionHandle) -> Any:
        """Wrap a row set, or a handle after a non-tabular statement."""

    def create_statement(self, sql: str) -> Any:
        """Return a statement object for ``sql``."""


@dataclass(slots=True)
class Result:
    """Normalized statement output."""

    columns: tuple[str, ...] = ()
    rows: tuple[tuple[object, ...], ...] = ()
    affected_rows: int | None = None
    status: str | None = None
    _position: int = field(default=0, repr=False, compare=False)

    @classmethod
    def from_resource(cls, resource: RowSet | SessionHandle) -> Result:
        if isinstance(resource, RowSet):
            return cls(
                columns=resource.columns,
                rows=resource.rows,
                affected_rows=len(resource.rows),
                status=resource.status,
            )
        return cls(affected_rows=resource.affected_rows, status=resource.status)

    @property
    def is_query_result(self) -> bool:
        """Whether the statement produced a row set."""

        return bool(self.columns)

    def fetch_row(self) -> tuple[object, ...] | None:
        """Return the next row, or ``None`` once exhausted."""

        if self._position >= len(self.rows):
            return None
        row = self.rows[self._position]
        self._position += 1
        return row

    def rewind(self) -> None:
        self._position = 0

    def as_dicts(self) -> list[dict[str, object]]:
        return [dict(zip(self.columns, row)) for row in self.rows]

    def __iter__(self) -> Iterator[tuple[object, ...]]:
        return iter(self.rows)

    def __len__(self) -> int:
        return len(self.rows)


class Statement:
    """SQL text prepared against a connection and run with bound parameters."""

    def __init__(self, sql: str, executor: QueryExecutor | None = None) -> None:
        self.sql = sql
        self._executor = executor

    def execute(self, *params: Any) -> Result:
        if self._executor is None:
            raise RuntimeError("Statement is not bound to a connection.")
        return self._executor.execute_prepared(self.sql, params)

    def __repr__(self) -> str:
        return f"Statement({self.sql!r})"


class AsyncpgDriver:
    """Default driver producing :class:`Result` and :class:`Statement` objects."""

    def __init__(self) -> None:
        self._executor: QueryExecutor | None = None

    def bind(self, executor: QueryExecutor) -> None:
        """Attach the executor statements run through."""

        self._executor = executor

    def create_result(self, resource: RowSet | SessionHandle) -> Result:
        return Result.from_resource(resource)

    def create_statement(self, sql: str) -> Statement:
        return Statement(sql, self._executor)


def rows_to_text(result: Result, *, limit: int | None = None) -> Sequence[str]:
    """Render a result as tab-separated lines for terminal output."""

    if not result.is_query_result:
        return [result.status or "OK"]
    lines = ["\t".join(result.columns)]
    rows = result.rows if limit is None else result.rows[:limit]
    for row in rows:
        lines.append("\t".join("NULL" if value is None else str(value) for value in row))
    return lines


__all__ = ["AsyncpgDriver", "Driver", "Result", "Statement", "rows_to_text"]
