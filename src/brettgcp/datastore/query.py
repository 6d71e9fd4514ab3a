from typing import Any, Self

from .key import Key
from .entity import to_value

class Query():
    """
    https://cloud.google.com/datastore/docs/reference/data/rest/v1/projects/runQuery#Query
    Builder for a Datastore query.  All the methods return the query so they chain:
        query = Query().kind("Task").where("done", "=", False).order("priority", "desc").limit(10)
    Multiple where() calls are ANDed together.
    """
    _OPERATORS = {
        "=": "EQUAL",
        "==": "EQUAL",
        "eq": "EQUAL",
        "<": "LESS_THAN",
        "lt": "LESS_THAN",
        "<=": "LESS_THAN_OR_EQUAL",
        "lte": "LESS_THAN_OR_EQUAL",
        ">": "GREATER_THAN",
        "gt": "GREATER_THAN",
        ">=": "GREATER_THAN_OR_EQUAL",
        "gte": "GREATER_THAN_OR_EQUAL",
        "!=": "NOT_EQUAL",
        "in": "IN",
        "not_in": "NOT_IN",
        "not in": "NOT_IN",
        "ancestor": "HAS_ANCESTOR",
        "has_ancestor": "HAS_ANCESTOR"
    }
    _DIRECTIONS = {
        "asc": "ASCENDING",
        "ascending": "ASCENDING",
        "desc": "DESCENDING",
        "descending": "DESCENDING"
    }

    def __init__(self) -> None:
        self._kinds = []
        self._filters = []
        self._orders = []
        self._projection = []
        self._distinct_on = []
        self._limit = None
        self._offset = None
        self._start = None
        self._end = None

    def __str__(self) -> str:
        return str(self.to_base())

    def __repr__(self) -> str:
        return f"{self.__class__}:{str(self)}"

    @classmethod
    def operator(cls, op: str) -> str:
        return cls._OPERATORS.get(str(op).lower(), "")

    def kind(self, *kinds: str) -> Self:
        self._kinds.extend(str(k) for k in kinds)
        return self

    def where(self, name: str, op: str, value: Any) -> Self:
        """
        Add a property filter.  op is one of =, <, <=, >, >=, !=, in, not_in
        (or the API name such as GREATER_THAN).
        """
        o = self.operator(op) or (str(op) if str(op) in self._OPERATORS.values() else "")
        if not o:
            raise ValueError(f"Invalid Query::where() operator: {op}")
        self._filters.append((str(name), o, value))
        return self

    filter = where

    def ancestor(self, key: Key) -> Self:
        """Limit results to descendants of key"""
        return self.where("__key__", "HAS_ANCESTOR", key)

    def order(self, name: str, direction: str = "asc") -> Self:
        d = self._DIRECTIONS.get(str(direction).lower(), "")
        if not d:
            raise ValueError(f"Invalid Query::order() direction: {direction}")
        self._orders.append((str(name), d))
        return self

    def select(self, *names: str) -> Self:
        """Projection query, only return these properties"""
        self._projection.extend(str(n) for n in names)
        return self

    projection = select

    def distinct_on(self, *names: str) -> Self:
        self._distinct_on.extend(str(n) for n in names)
        return self

    def limit(self, num: int) -> Self:
        if num < 0:
            raise ValueError("Query::limit() must be >= 0")
        self._limit = int(num)
        return self

    def offset(self, num: int) -> Self:
        if num < 0:
            raise ValueError("Query::offset() must be >= 0")
        self._offset = int(num)
        return self

    def start(self, cursor: str) -> Self:
        """Start from a cursor returned by a previous run"""
        self._start = cursor
        return self

    cursor = start

    def end(self, cursor: str) -> Self:
        self._end = cursor
        return self

    def to_base(self) -> dict:
        b = {}
        if self._kinds:
            b["kind"] = [{"name": k} for k in self._kinds]
        filters = [{"propertyFilter": {"property": {"name": n}, "op": o, "value": to_value(v)}}
                   for n,o,v in self._filters]
        if len(filters) == 1:
            b["filter"] = filters[0]
        elif filters:
            b["filter"] = {"compositeFilter": {"op": "AND", "filters": filters}}
        if self._orders:
            b["order"] = [{"property": {"name": n}, "direction": d} for n,d in self._orders]
        if self._projection:
            b["projection"] = [{"property": {"name": n}} for n in self._projection]
        if self._distinct_on:
            b["distinctOn"] = [{"name": n} for n in self._distinct_on]
        if self._start:
            b["startCursor"] = self._start
        if self._end:
            b["endCursor"] = self._end
        if self._offset is not None:
            b["offset"] = self._offset
        if self._limit is not None:
            b["limit"] = self._limit
        return b
