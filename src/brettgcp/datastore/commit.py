from typing import Self

from .entity import Entity
from .key import Key

class Commit():
    """
    Utility class for building up a set of mutations to send in one commit.
    The idea is you would:
        entities = dataset.commit().save(task1, task2).delete(old_task).execute()
    or use it as a context manager, which sends it on a clean exit:
        with dataset.commit() as c:
            c.save(task1, task2)
            c.delete(old_task)
    Saves are upserts.  Entities with incomplete keys get the ids the
    service allocated written back after the commit.
    """
    def __init__(self, dataset=None) -> None:
        self._dataset = dataset
        self._mutations = []
        self.results = []

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None:
            self.results = self.execute()
        return False

    def __len__(self) -> int:
        return len(self._mutations)

    def save(self, *entities: Entity) -> Self:
        for e in entities:
            if not isinstance(e, Entity):
                raise ValueError(f"Commit::save() takes entities, not {type(e).__name__}")
            self._mutations.append(("upsert", e))
        return self

    upsert = save

    def delete(self, *entities_or_keys: Entity|Key) -> Self:
        for e in entities_or_keys:
            key = e.key if isinstance(e, Entity) else e
            if not isinstance(key, Key):
                raise ValueError(f"Commit::delete() takes entities or keys, not {type(e).__name__}")
            self._mutations.append(("delete", key))
        return self

    @property
    def mutations(self) -> list[dict]:
        """https://cloud.google.com/datastore/docs/reference/data/rest/v1/projects/commit#Mutation"""
        return [{op: target.to_base()} for op,target in self._mutations]

    @property
    def entities(self) -> list[Entity]:
        """The entities being saved"""
        return [target for op,target in self._mutations if op == "upsert"]

    def apply(self, response: dict) -> list[Entity]:
        """
        Update the saved entities from the commit response.  There is a
        mutationResult per mutation, in order, and it only has a key if
        the service allocated an id for it.
        """
        for (op,target), result in zip(self._mutations, response.get("mutationResults", [])):
            if op == "upsert" and "key" in result and not target.persisted:
                target.key = Key.from_base(result["key"])
        entities = self.entities
        for e in entities:
            if e.key is not None and not e.persisted:
                e.key.freeze()
        return entities

    def execute(self) -> list[Entity]:
        """Send the commit, returns the saved entities"""
        if self._dataset is None:
            raise RuntimeError("Commit::execute() needs a Dataset to commit to")
        return self._dataset.commit_changes(self)
