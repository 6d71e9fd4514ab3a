from typing import Self

from ..exceptions import DatastoreError

class Key():
    """
    https://cloud.google.com/datastore/docs/reference/data/rest/v1/Key
    A Datastore key, the kind plus either a numeric id or a string name,
    optionally under a parent key.  A key without id or name is incomplete and
    the service will allocate an id for it when saved.

    Once a key has been committed (or came back from a lookup/query) it is
    frozen and can no longer be modified, that is what marks an entity
    as persisted.
    """
    _MUTABLE = ("kind", "id", "name", "parent", "project", "namespace")

    def __init__(self, kind: str|None = None,
                 id_or_name: int|str|None = None,
                 parent: Self|None = None,
                 project: str|None = None,
                 namespace: str|None = None) -> None:
        object.__setattr__(self, "_frozen", False)
        self.kind = kind
        self.id = None
        self.name = None
        self.parent = parent
        self.project = project
        self.namespace = namespace
        self.id_or_name = id_or_name

    def __setattr__(self, name, value) -> None:
        if self._frozen and name in self._MUTABLE:
            raise DatastoreError(f"Key {self} has been persisted and cannot be modified")
        object.__setattr__(self, name, value)

    def __str__(self) -> str:
        return "/".join(f"{k}:{i}" if i is not None else str(k) for k,i in self.path)

    def __repr__(self) -> str:
        return f"{self.__class__}:{str(self)}"

    def __eq__(self, other) -> bool:
        if not isinstance(other, Key):
            return NotImplemented
        return (self.path == other.path and self.project == other.project
                and self.namespace == other.namespace)

    def __hash__(self) -> int:
        return hash((tuple(self.path), self.project, self.namespace))

    @property
    def id_or_name(self) -> int|str|None:
        return self.id if self.id is not None else self.name

    @id_or_name.setter
    def id_or_name(self, value: int|str|None) -> None:
        """
        An int is an id, a string is a name.  Setting one clears the other.
        """
        if value is None:
            self.id = None
            self.name = None
        elif isinstance(value, int) and not isinstance(value, bool):
            self.id = value
            self.name = None
        else:
            self.id = None
            self.name = str(value)

    @property
    def path(self) -> list[tuple[str|None, int|str|None]]:
        """
        (kind, id_or_name) pairs from the root ancestor down to this key.
        """
        p = self.parent.path if self.parent is not None else []
        return p + [(self.kind, self.id_or_name)]

    @property
    def is_incomplete(self) -> bool:
        return self.kind is None or (self.id is None and not self.name)

    @property
    def is_complete(self) -> bool:
        return not self.is_incomplete

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def persisted(self) -> bool:
        return self._frozen

    def freeze(self) -> Self:
        object.__setattr__(self, "_frozen", True)
        return self

    def to_base(self) -> dict:
        """REST representation, int64 ids travel as strings"""
        elements = []
        key = self
        while key is not None:
            e = {"kind": key.kind}
            if key.id is not None:
                e["id"] = str(key.id)
            elif key.name:
                e["name"] = key.name
            elements.insert(0, e)
            key = key.parent
        b = {"path": elements}
        partition = {}
        if self.project:
            partition["projectId"] = self.project
        if self.namespace:
            partition["namespaceId"] = self.namespace
        if partition:
            b["partitionId"] = partition
        return b

    @classmethod
    def from_base(cls, base: dict) -> Self:
        partition = base.get("partitionId", {})
        project = partition.get("projectId", None)
        namespace = partition.get("namespaceId", None)
        key = None
        for e in base.get("path", []):
            id_or_name = int(e["id"]) if "id" in e else e.get("name", None)
            key = cls(e.get("kind", None), id_or_name, parent=key,
                      project=project, namespace=namespace)
        if key is None:
            key = cls(project=project, namespace=namespace)
        return key
