from typing import Self
import logging

from ..exceptions import TransactionError
from . import ops
from .commit import Commit
from .entity import Entity
from .key import Key
from .query import Query
from .results import LookupResults, QueryResults

logger = logging.getLogger(__name__)

class Transaction():
    """
    A Datastore transaction.  Reads go through the transaction and
    save/delete are buffered until commit().
    Normally you'd get one from Dataset.transaction() and use it as a
    context manager:
        with dataset.transaction() as tx:
            if tx.find(user.key) is None:
                tx.save(user)
    which commits on a clean exit and rolls back if anything raises,
    re-raising as TransactionError.
    The transaction is started on first use.
    """
    def __init__(self, dataset) -> None:
        self._dataset = dataset
        self._id = None
        self._commit = Commit()

    def __enter__(self) -> Self:
        self.begin()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None:
            try:
                self.commit()
            except Exception as e:
                self._fail(e)
        elif issubclass(exc_type, Exception):
            self._fail(exc)
        return False

    def __str__(self) -> str:
        return f"{self._id if self._id else '<not started>'}"

    def __repr__(self) -> str:
        return f"{self.__class__}:{str(self)}"

    def _fail(self, error: Exception) -> None:
        try:
            self.rollback()
        except Exception as re:
            logger.warning("transaction %s failed to roll back: %s", self, re)
            raise TransactionError("Transaction failed to commit and rollback.",
                                   commit_error=error, rollback_error=re) from error
        raise TransactionError("Transaction failed to commit.", commit_error=error) from error

    @property
    def id(self) -> str|None:
        return self._id

    @property
    def started(self) -> bool:
        return bool(self._id)

    def begin(self) -> str:
        if not self._id:
            self._id = ops.begin_transaction(self._dataset.project)
        return self._id

    def find(self, key_or_kind: Key|str, id_or_name: int|str|None = None) -> Entity|None:
        key = key_or_kind if isinstance(key_or_kind, Key) else Key(key_or_kind, id_or_name)
        return self.find_all(key).first()

    get = find

    def find_all(self, *keys: Key) -> LookupResults:
        return self._dataset.find_all(*keys, transaction=self.begin())

    lookup = find_all

    def run(self, query: Query, namespace: str|None = None) -> QueryResults:
        return self._dataset.run(query, namespace=namespace, transaction=self.begin())

    run_query = run

    def save(self, *entities: Entity) -> Self:
        self._commit.save(*entities)
        return self

    def delete(self, *entities_or_keys: Entity|Key) -> Self:
        self._commit.delete(*entities_or_keys)
        return self

    def commit(self) -> list[Entity]:
        """
        Commit the buffered changes.  The transaction is finished after this.
        """
        entities = self._dataset.commit_changes(self._commit, transaction=self.begin())
        self._id = None
        self._commit = Commit()
        return entities

    def rollback(self) -> None:
        """Abandon the transaction, nothing buffered is sent"""
        if self._id:
            ops.rollback(self._dataset.project, self._id)
        self._id = None
        self._commit = Commit()
