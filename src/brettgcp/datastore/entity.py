"""
Datastore entities and the translation of their property values to and from the
REST Value representation.
https://cloud.google.com/datastore/docs/reference/data/rest/v1/Entity
https://cloud.google.com/datastore/docs/reference/data/rest/v1/projects/runQuery#Value
"""
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Self
import base64
import datetime

from ..resources import GoogleCloudResourceBase, rfc3339
from ..exceptions import DatastoreError
from .key import Key

@dataclass
class GeoPoint(GoogleCloudResourceBase):
    """https://cloud.google.com/datastore/docs/reference/data/rest/Shared.Types/LatLng"""
    latitude: float = field(default=0.0)
    longitude: float = field(default=0.0)


class Entity():
    """
    A Datastore record, a key plus a dict of named property values.
    Properties are accessed dict style:
        task = Entity(Key("Task", "sampleTask"))
        task["done"] = False
    """
    def __init__(self, key: Key|None = None,
                 properties: dict[str,Any]|None = None,
                 exclude_from_indexes: Iterable[str]|None = None) -> None:
        self._key = key
        self._properties = dict(properties) if properties else {}
        self.exclude_from_indexes = set(exclude_from_indexes) if exclude_from_indexes else set()

    def __getitem__(self, name: str) -> Any:
        return self._properties[name]

    def __setitem__(self, name: str, value: Any) -> None:
        self._properties[name] = value

    def __delitem__(self, name: str) -> None:
        del self._properties[name]

    def __contains__(self, name: str) -> bool:
        return name in self._properties

    def __len__(self) -> int:
        return len(self._properties)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Entity):
            return NotImplemented
        return self._key == other._key and self._properties == other._properties

    def __str__(self) -> str:
        return f"{self._key if self._key is not None else '<no key>'}{self._properties}"

    def __repr__(self) -> str:
        return f"{self.__class__}:{str(self)}"

    def get(self, name: str, default: Any = None) -> Any:
        return self._properties.get(name, default)

    @property
    def properties(self) -> dict[str,Any]:
        return self._properties

    @property
    def key(self) -> Key|None:
        return self._key

    @key.setter
    def key(self, value: Key|None) -> None:
        if self.persisted:
            raise DatastoreError("This entity's key is immutable once persisted")
        self._key = value

    @property
    def persisted(self) -> bool:
        """True once the entity has been saved or was read from the service"""
        return self._key is not None and self._key.frozen

    def exclude_from_index(self, name: str, exclude: bool = True) -> None:
        if exclude:
            self.exclude_from_indexes.add(name)
        else:
            self.exclude_from_indexes.discard(name)

    def to_base(self) -> dict:
        b = {"properties": {k: to_value(v, k in self.exclude_from_indexes)
                            for k,v in self._properties.items()}}
        if self._key is not None:
            b["key"] = self._key.to_base()
        return b

    @classmethod
    def from_base(cls, base: dict, freeze: bool = True) -> Self:
        """
        Entities coming back from the service are persisted, so the key
        is frozen unless this is an embedded entity.
        """
        key = None
        if "key" in base:
            key = Key.from_base(base["key"])
            if freeze:
                key.freeze()
        properties = {}
        excludes = []
        for k,v in base.get("properties", {}).items():
            properties[k] = from_value(v)
            if _excluded(v):
                excludes.append(k)
        return cls(key, properties, excludes)


def _excluded(value: dict) -> bool:
    # a list property carries the flag on each of its values
    if "arrayValue" in value:
        values = value["arrayValue"].get("values", [])
        return bool(values) and all(v.get("excludeFromIndexes", False) for v in values)
    return bool(value.get("excludeFromIndexes", False))

def to_value(value: Any, exclude_from_indexes: bool = False) -> dict:
    """
    Python value to a REST Value dict.  Order of the checks matters as bool is an int
    and datetime is a date.
    """
    if value is None:
        v = {"nullValue": "NULL_VALUE"}
    elif isinstance(value, bool):
        v = {"booleanValue": value}
    elif isinstance(value, int):
        v = {"integerValue": str(value)}
    elif isinstance(value, float):
        v = {"doubleValue": value}
    elif isinstance(value, str):
        v = {"stringValue": value}
    elif isinstance(value, (bytes, bytearray)):
        v = {"blobValue": base64.b64encode(bytes(value)).decode("ascii")}
    elif isinstance(value, datetime.datetime):
        v = {"timestampValue": rfc3339(value)}
    elif isinstance(value, Key):
        v = {"keyValue": value.to_base()}
    elif isinstance(value, GeoPoint):
        v = {"geoPointValue": value.to_base()}
    elif isinstance(value, Entity):
        v = {"entityValue": value.to_base()}
    elif isinstance(value, dict):
        v = {"entityValue": Entity(properties=value).to_base()}
    elif isinstance(value, (list, tuple)):
        # excludeFromIndexes goes on the array elements, not the array itself
        return {"arrayValue": {"values": [to_value(i, exclude_from_indexes) for i in value]}}
    else:
        raise ValueError(f"Unsupported Datastore property type: {type(value).__name__}")
    if exclude_from_indexes:
        v["excludeFromIndexes"] = True
    return v

def from_value(value: dict) -> Any:
    """REST Value dict to the Python value"""
    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "stringValue" in value:
        return value["stringValue"]
    if "blobValue" in value:
        return base64.b64decode(value["blobValue"])
    if "timestampValue" in value:
        return datetime.datetime.fromisoformat(value["timestampValue"])
    if "keyValue" in value:
        return Key.from_base(value["keyValue"])
    if "geoPointValue" in value:
        return GeoPoint.from_response(value["geoPointValue"])
    if "entityValue" in value:
        return Entity.from_base(value["entityValue"], freeze=False)
    if "arrayValue" in value:
        return [from_value(v) for v in value["arrayValue"].get("values", [])]
    raise ValueError(f"Unsupported Datastore value: {value}")
