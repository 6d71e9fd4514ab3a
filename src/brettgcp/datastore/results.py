from .entity import Entity
from .key import Key

class _EntityList():
    """Common list behaviour for the result types"""
    def __init__(self, entities: list[Entity]|None = None) -> None:
        self._entities = list(entities) if entities else []

    def __len__(self) -> int:
        return len(self._entities)

    def __iter__(self):
        return iter(self._entities)

    def __getitem__(self, index):
        return self._entities[index]

    def __bool__(self) -> bool:
        return bool(self._entities)

    def __eq__(self, other) -> bool:
        if isinstance(other, _EntityList):
            return self._entities == other._entities
        if isinstance(other, list):
            return self._entities == other
        return NotImplemented

    def __repr__(self) -> str:
        return f"{self.__class__}:{str(self)}"

    def first(self) -> Entity|None:
        return self._entities[0] if self._entities else None

    def to_list(self) -> list[Entity]:
        return list(self._entities)


class LookupResults(_EntityList):
    """
    The entities found by a lookup.
    deferred are the keys the service didnt get to in this call and need
    to be looked up again, missing are entities (key only) that dont exist.
    """
    def __init__(self, entities: list[Entity]|None = None,
                 deferred: list[Key]|None = None,
                 missing: list[Entity]|None = None) -> None:
        super().__init__(entities)
        self.deferred = list(deferred) if deferred else []
        self.missing = list(missing) if missing else []

    def __str__(self) -> str:
        return f"found: {len(self)}, deferred: {len(self.deferred)}, missing: {len(self.missing)}"


class QueryResults(_EntityList):
    """
    One batch of entities from running a query.
    cursor is where this batch ended, feed it to Query.start() to get the next batch.
    more_results is the QueryResultBatch.moreResults string.
    """
    NOT_FINISHED = "NOT_FINISHED"
    MORE_RESULTS_AFTER_LIMIT = "MORE_RESULTS_AFTER_LIMIT"
    MORE_RESULTS_AFTER_CURSOR = "MORE_RESULTS_AFTER_CURSOR"
    NO_MORE_RESULTS = "NO_MORE_RESULTS"

    def __init__(self, entities: list[Entity]|None = None,
                 cursor: str|None = None,
                 more_results: str = "",
                 skipped_results: int = 0) -> None:
        super().__init__(entities)
        self.cursor = cursor
        self.more_results = more_results
        self.skipped_results = skipped_results

    def __str__(self) -> str:
        return f"entities: {len(self)}, more_results: {self.more_results}"

    @property
    def is_not_finished(self) -> bool:
        return self.more_results == self.NOT_FINISHED

    @property
    def is_more_after_limit(self) -> bool:
        return self.more_results == self.MORE_RESULTS_AFTER_LIMIT

    @property
    def is_more_after_cursor(self) -> bool:
        return self.more_results == self.MORE_RESULTS_AFTER_CURSOR

    @property
    def is_no_more(self) -> bool:
        return self.more_results == self.NO_MORE_RESULTS
