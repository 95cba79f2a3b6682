"""In-memory stand-in for the supabase-py query builder.

Covers the subset the repositories use: select (with count="exact" and column
projection), insert, upsert(on_conflict), update, delete, the eq/neq/in_/gte/
gt/lt/lte filters, or_ with ilike terms, order, range, limit and execute.
Unique constraints raise postgrest's APIError with code 23505 like PostgREST
does. Setting max_rows caps select responses like PostgREST max-rows.
"""

from __future__ import annotations

import copy
import itertools
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List

from postgrest.exceptions import APIError

UNIQUE: Dict[str, List[tuple]] = {
    "follows": [("follower_id", "following_id")],
    "review_likes": [("user_id", "rating_id")],
    "user_content_status": [("user_id", "content_type", "content_id")],
    "pinned_items": [("user_id", "content_type", "content_id")],
    "reports": [("reporter_id", "anything_item_id")],
    "bookmarks": [("user_id", "content_type", "content_id")],
}

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _cmp(value: Any) -> Any:
    if isinstance(value, str) and len(value) >= 10 and value[4:5] == "-":
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return value


def unique_violation(table: str) -> APIError:
    return APIError(
        {
            "message": f'duplicate key value violates unique constraint "{table}_key"',
            "code": "23505",
            "hint": None,
            "details": None,
        }
    )


class FakeResponse:
    def __init__(self, data: List[Dict[str, Any]], count: int | None = None):
        self.data = data
        self.count = count


class FakeQuery:
    def __init__(self, db: "FakeSupabaseClient", table: str):
        self._db = db
        self._table = table
        self._op = "select"
        self._cols = "*"
        self._count: str | None = None
        self._payload: Any = None
        self._on_conflict = ""
        self._filters: List[Callable[[Dict[str, Any]], bool]] = []
        self._order: List[tuple[str, bool]] = []
        self._range: tuple[int, int] | None = None
        self._limit: int | None = None

    # ----- verbs -----
    def select(self, cols: str = "*", count: str | None = None, **_):
        if self._op == "select":
            self._cols = cols
        self._count = count
        return self

    def insert(self, rows, **_):
        self._op, self._payload = "insert", rows
        return self

    def upsert(self, rows, on_conflict: str = "", **_):
        self._op, self._payload, self._on_conflict = "upsert", rows, on_conflict
        return self

    def update(self, values, **_):
        self._op, self._payload = "update", values
        return self

    def delete(self, **_):
        self._op = "delete"
        return self

    # ----- filters -----
    def eq(self, col, value):
        self._filters.append(lambda r: r.get(col) == value)
        return self

    def neq(self, col, value):
        self._filters.append(lambda r: r.get(col) != value)
        return self

    def in_(self, col, values):
        allowed = list(values)
        self._filters.append(lambda r: r.get(col) in allowed)
        return self

    def or_(self, expr: str):
        terms = []
        for part in expr.split(","):
            col, op, pattern = part.split(".", 2)
            if op != "ilike":
                raise NotImplementedError(op)
            regex = "^" + ".*".join(re.escape(p) for p in pattern.split("%")) + "$"
            terms.append((col, re.compile(regex, re.IGNORECASE)))
        self._filters.append(
            lambda r: any(rx.match(str(r.get(c) or "")) for c, rx in terms)
        )
        return self

    def _compare(self, col, value, op):
        def _f(r):
            current = r.get(col)
            if current is None:
                return False
            return op(_cmp(current), _cmp(value))

        self._filters.append(_f)
        return self

    def gte(self, col, value):
        return self._compare(col, value, lambda a, b: a >= b)

    def gt(self, col, value):
        return self._compare(col, value, lambda a, b: a > b)

    def lte(self, col, value):
        return self._compare(col, value, lambda a, b: a <= b)

    def lt(self, col, value):
        return self._compare(col, value, lambda a, b: a < b)

    def order(self, col, desc: bool = False, **_):
        self._order.append((col, desc))
        return self

    def range(self, start: int, end: int):
        self._range = (start, end)
        return self

    def limit(self, n: int):
        self._limit = n
        return self

    # ----- execution -----
    def _matching(self) -> List[Dict[str, Any]]:
        return [r for r in self._db.rows(self._table) if all(f(r) for f in self._filters)]

    def _project(self, row: Dict[str, Any]) -> Dict[str, Any]:
        if self._cols.strip() == "*":
            return copy.deepcopy(row)
        cols = [c.strip() for c in self._cols.split(",") if c.strip()]
        return {c: copy.deepcopy(row.get(c)) for c in cols}

    def execute(self) -> FakeResponse:
        self._db.calls.append((self._table, self._op))
        if self._db.fail_with is not None:
            raise self._db.fail_with
        handler = getattr(self, f"_exec_{self._op}")
        return handler()

    def _exec_select(self) -> FakeResponse:
        rows = self._matching()
        for col, desc in reversed(self._order):
            present = [r for r in rows if r.get(col) is not None]
            missing = [r for r in rows if r.get(col) is None]
            present.sort(key=lambda r: _cmp(r[col]), reverse=desc)
            rows = present + missing
        total = len(rows)
        if self._range is not None:
            start, end = self._range
            rows = rows[start : end + 1]
        if self._limit is not None:
            rows = rows[: self._limit]
        if self._db.max_rows is not None:
            rows = rows[: self._db.max_rows]
        return FakeResponse([self._project(r) for r in rows], count=total if self._count else None)

    def _exec_insert(self) -> FakeResponse:
        rows = self._payload if isinstance(self._payload, list) else [self._payload]
        out = [self._db.insert_row(self._table, r) for r in rows]
        return FakeResponse(copy.deepcopy(out))

    def _exec_upsert(self) -> FakeResponse:
        rows = self._payload if isinstance(self._payload, list) else [self._payload]
        cols = [c.strip() for c in self._on_conflict.split(",") if c.strip()]
        out = []
        for row in rows:
            existing = None
            if cols:
                existing = next(
                    (
                        r
                        for r in self._db.rows(self._table)
                        if all(r.get(c) == row.get(c) for c in cols)
                    ),
                    None,
                )
            if existing is None:
                out.append(self._db.insert_row(self._table, row))
            else:
                existing.update(copy.deepcopy(row))
                existing["updated_at"] = self._db.next_timestamp()
                out.append(existing)
        return FakeResponse(copy.deepcopy(out))

    def _exec_update(self) -> FakeResponse:
        hit = self._matching()
        for r in hit:
            r.update(copy.deepcopy(self._payload))
        return FakeResponse(copy.deepcopy(hit))

    def _exec_delete(self) -> FakeResponse:
        hit = self._matching()
        ids = {id(r) for r in hit}
        self._db.tables[self._table] = [r for r in self._db.rows(self._table) if id(r) not in ids]
        return FakeResponse(copy.deepcopy(hit))


class FakeSupabaseClient:
    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.calls: List[tuple[str, str]] = []
        self.fail_with: Exception | None = None
        self.max_rows: int | None = None
        self._ids = itertools.count(1)
        self._ticks = itertools.count(1)

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return self.tables.setdefault(table, [])

    def next_timestamp(self) -> str:
        return (BASE_TIME + timedelta(seconds=next(self._ticks))).isoformat()

    def insert_row(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        new = copy.deepcopy(row)
        new.setdefault("id", f"{table}-{next(self._ids)}")
        new.setdefault("created_at", self.next_timestamp())
        for cols in UNIQUE.get(table, []):
            if any(all(r.get(c) == new.get(c) for c in cols) for r in self.rows(table)):
                raise unique_violation(table)
        self.rows(table).append(new)
        return new

    def seed(self, table: str, *rows: Dict[str, Any]) -> List[Dict[str, Any]]:
        return [copy.deepcopy(self.insert_row(table, r)) for r in rows]

    def count_calls(self, table: str, op: str = "select") -> int:
        return sum(1 for t, o in self.calls if t == table and o == op)
