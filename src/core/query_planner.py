"""Turn a Filter plus paging into the (count, fetch) query pair.

Both queries are built from the same ``Predicate`` so the count always
describes the row set the fetch pages through.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.filters import DEFAULT_LIMIT, Filter, clamp_limit, clamp_offset

CUSTOMER_TABLE = "rfm_customers"
ORDER_COLUMN = "CustomerID"

# (filter attribute, column, bind name) in the order clauses are ANDed
_FILTER_COLUMNS: tuple[tuple[str, str, str], ...] = (
    ("segment", "Segment", "segment"),
    ("customer_id", "CustomerID", "customer_id"),
)


@dataclass(frozen=True)
class Predicate:
    clauses: tuple[str, ...]
    params: tuple[tuple[str, str], ...]

    @property
    def where(self) -> str:
        return " AND ".join(("1=1",) + self.clauses)

    def bind(self) -> dict[str, object]:
        return dict(self.params)


@dataclass(frozen=True)
class CountQuery:
    predicate: Predicate
    table: str = CUSTOMER_TABLE

    @property
    def sql(self) -> str:
        return f"SELECT COUNT(*) AS total FROM {self.table} WHERE {self.predicate.where}"

    @property
    def params(self) -> dict[str, object]:
        return self.predicate.bind()


@dataclass(frozen=True)
class FetchQuery:
    predicate: Predicate
    limit: int
    offset: int
    table: str = CUSTOMER_TABLE

    @property
    def sql(self) -> str:
        return (
            f"SELECT * FROM {self.table} WHERE {self.predicate.where} "
            f"ORDER BY {ORDER_COLUMN} LIMIT :limit OFFSET :offset"
        )

    @property
    def params(self) -> dict[str, object]:
        return {**self.predicate.bind(), "limit": self.limit, "offset": self.offset}


def build_predicate(filter: Filter) -> Predicate:
    clauses: list[str] = []
    params: list[tuple[str, str]] = []
    for attr, column, bind_name in _FILTER_COLUMNS:
        if value := getattr(filter, attr):
            clauses.append(f"{column} = :{bind_name}")
            params.append((bind_name, value))
    return Predicate(clauses=tuple(clauses), params=tuple(params))


def plan(filter: Filter, limit: object = DEFAULT_LIMIT, offset: object = 0) -> tuple[CountQuery, FetchQuery]:
    # Re-clamped here as well: not every caller goes through PageRequest
    predicate = build_predicate(filter)
    return (
        CountQuery(predicate=predicate),
        FetchQuery(predicate=predicate, limit=clamp_limit(limit), offset=clamp_offset(offset)),
    )
