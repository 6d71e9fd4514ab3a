from typing import Any

from ..access import gcp
from ..exceptions import DatastoreError
from . import ops
from .commit import Commit
from .entity import Entity
from .key import Key
from .query import Query
from .results import LookupResults, QueryResults
from .transaction import Transaction

class Dataset():
    """
    The data saved in a project's Datastore, analogous to a database.
    This is the main object for reading, writing and deleting entities:
        dataset = Dataset("my-todo-project")
        task = dataset.entity("Task", "sampleTask", done=False)
        dataset.save(task)
        tasks = dataset.run(dataset.query("Task").where("done", "=", False))
    Without an explicit project the access project is used, see gcp.project.
    """
    def __init__(self, project: str|None = None) -> None:
        p = str(project) if project else gcp.project
        if not p:
            raise ValueError("project is missing")
        self._project = p

    def __str__(self) -> str:
        return self._project

    def __repr__(self) -> str:
        return f"{self.__class__}:{str(self)}"

    @property
    def project(self) -> str:
        return self._project

    @staticmethod
    def default_project() -> str:
        """
        DATASTORE_DATASET, DATASTORE_PROJECT, GCLOUD_PROJECT, GOOGLE_CLOUD_PROJECT
        then the credentials or metadata server.
        """
        return gcp.default_project()

    def allocate_ids(self, incomplete_key: Key, count: int = 1) -> list[Key]:
        """
        Have the service allocate ids for count new keys like incomplete_key,
        before creating the entities.
        """
        if incomplete_key.is_complete:
            raise DatastoreError("An incomplete key must be provided.")
        keys = [incomplete_key.to_base() for _ in range(count)]
        response = ops.allocate_ids(self._project, keys)
        return [Key.from_base(k) for k in response.get("keys", [])]

    def save(self, *entities: Entity) -> list[Entity]:
        """Persist one or more entities"""
        return self.commit().save(*entities).execute()

    upsert = save

    def delete(self, *entities_or_keys: Entity|Key) -> bool:
        """Remove one or more entities, by entity or key"""
        self.commit().delete(*entities_or_keys).execute()
        return True

    def commit(self) -> Commit:
        """
        Start a set of changes that are sent together, see Commit.
        """
        return Commit(self)

    def commit_changes(self, commit: Commit, transaction: str|None = None) -> list[Entity]:
        """
        Send a Commit, returning the saved entities with their keys now persisted.
        """
        response = ops.commit(self._project, commit.mutations, transaction)
        return commit.apply(response)

    def find(self, key_or_kind: Key|str,
             id_or_name: int|str|None = None,
             consistency: str|None = None) -> Entity|None:
        """
        Retrieve an entity by key, or by kind and id/name.  None if it doesnt exist.
        consistency is 'eventual' or 'strong', the default depends on the lookup.
        """
        key = key_or_kind if isinstance(key_or_kind, Key) else Key(key_or_kind, id_or_name)
        return self.find_all(key, consistency=consistency).first()

    get = find

    def find_all(self, *keys: Key,
                 consistency: str|None = None,
                 transaction: str|None = None) -> LookupResults:
        """
        Retrieve the entities for the keys.
        """
        options = ops.read_options(consistency, transaction)
        response = ops.lookup(self._project, [k.to_base() for k in keys], options)
        return LookupResults([Entity.from_base(r["entity"]) for r in response.get("found", [])],
                             [Key.from_base(k) for k in response.get("deferred", [])],
                             [Entity.from_base(r["entity"]) for r in response.get("missing", [])])

    lookup = find_all

    def run(self, query: Query,
            namespace: str|None = None,
            consistency: str|None = None,
            transaction: str|None = None) -> QueryResults:
        """
        Run a query, optionally within a namespace.
        Returns one batch, use the results cursor to page.
        """
        options = ops.read_options(consistency, transaction)
        response = ops.run_query(self._project, query.to_base(), namespace, options)
        batch = response.get("batch", {})
        return QueryResults([Entity.from_base(r["entity"]) for r in batch.get("entityResults", [])],
                            batch.get("endCursor", None),
                            batch.get("moreResults", ""),
                            int(batch.get("skippedResults", 0)))

    run_query = run

    def transaction(self) -> Transaction:
        """
        Create a transaction.  Use it as a context manager to get commit on
        success and rollback on failure, or drive commit()/rollback() yourself.
        """
        return Transaction(self)

    def query(self, *kinds: str) -> Query:
        query = Query()
        if kinds:
            query.kind(*kinds)
        return query

    def key(self, kind: str|None = None, id_or_name: int|str|None = None) -> Key:
        return Key(kind, id_or_name)

    def entity(self, key_or_kind: Key|str|None = None,
               id_or_name: int|str|None = None,
               **properties: Any) -> Entity:
        """
        Convenience for a new entity with the key made from the kind and
        id/name (or a Key) and properties from the keyword arguments.
        """
        key = key_or_kind if isinstance(key_or_kind, Key) else Key(key_or_kind, id_or_name)
        return Entity(key, properties)
