"""
Table schemas and turning the tabledata/query row format into python values.
Rows come back as {"f": [{"v": value}, ...]} with every scalar as a string,
so the schema is needed to get anything useful out of them.
https://cloud.google.com/bigquery/docs/reference/rest/v2/tables#TableFieldSchema
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, ClassVar, List
import base64
import datetime

from ..resources import GoogleCloudResourceBase

@dataclass
class Field(GoogleCloudResourceBase):
    """https://cloud.google.com/bigquery/docs/reference/rest/v2/tables#TableFieldSchema"""
    name: str = field(default="")
    type: str = field(default="STRING")
    mode: str = field(default="NULLABLE")
    description: str|None = field(default=None)
    fields: List["Field"] = field(default_factory=list)

    valid_modes: ClassVar[list[str]] = ["NULLABLE", "REQUIRED", "REPEATED"]

    def __post_init__(self) -> None:
        self.fixup()

    def __bool__(self) -> bool:
        return bool(self.name)

    def __str__(self) -> str:
        return f"{self.name}:{self.type}({self.mode})"

    def fixup(self) -> None:
        self.type = str(self.type).upper()
        self.mode = str(self.mode or "NULLABLE").upper()
        if self.mode not in self.valid_modes:
            raise ValueError(f"Invalid field mode: {self.mode}")
        self.fields = [f if isinstance(f, Field) else Field.from_response(f) for f in self.fields]

    @property
    def repeated(self) -> bool:
        return self.mode == "REPEATED"

    @property
    def record(self) -> bool:
        return self.type in ["RECORD", "STRUCT"]

    def to_base(self) -> dict:
        self.fixup()
        b = {"name": self.name, "type": self.type, "mode": self.mode}
        if self.description:
            b["description"] = self.description
        if self.fields:
            b["fields"] = [f.to_base() for f in self.fields]
        return b

    def decode(self, cell: Any) -> Any:
        """A {"v": ...} cell value to python, following mode and type"""
        if cell is None:
            return [] if self.repeated else None
        if self.repeated:
            return [self._decode_scalar(c.get("v") if isinstance(c, dict) else c) for c in cell]
        return self._decode_scalar(cell)

    def _decode_scalar(self, v: Any) -> Any:
        if v is None:
            return None
        t = self.type
        if self.record:
            return {f.name: f.decode(c.get("v")) for f,c in zip(self.fields, v.get("f", []))}
        if t in ["INTEGER", "INT64"]:
            return int(v)
        if t in ["FLOAT", "FLOAT64"]:
            return float(v)
        if t in ["BOOLEAN", "BOOL"]:
            return str(v).lower() == "true"
        if t in ["NUMERIC", "BIGNUMERIC"]:
            return Decimal(str(v))
        if t == "TIMESTAMP":
            # seconds since the epoch, as a float in a string
            return datetime.datetime.fromtimestamp(float(v), datetime.timezone.utc)
        if t == "DATE":
            return datetime.date.fromisoformat(str(v))
        if t == "DATETIME":
            return datetime.datetime.fromisoformat(str(v))
        if t == "TIME":
            return datetime.time.fromisoformat(str(v))
        if t == "BYTES":
            return base64.b64decode(v)
        return v

class Schema():
    """
    Ordered list of fields, which is the order the cells of a row come back in.
    """
    def __init__(self, fields: list[Field|dict]|None = None) -> None:
        self.fields = [f if isinstance(f, Field) else Field.from_response(f) for f in (fields or [])]

    def __len__(self) -> int:
        return len(self.fields)

    def __iter__(self):
        return iter(self.fields)

    def __bool__(self) -> bool:
        return bool(self.fields)

    def __str__(self) -> str:
        return f"[{','.join(str(f) for f in self.fields)}]"

    def __repr__(self) -> str:
        return f"{self.__class__}:{str(self)}"

    def __eq__(self, other) -> bool:
        if not isinstance(other, Schema):
            return NotImplemented
        return self.fields == other.fields

    @property
    def names(self) -> list[str]:
        return [f.name for f in self.fields]

    def to_base(self) -> dict:
        return {"fields": [f.to_base() for f in self.fields]}

    @classmethod
    def from_base(cls, base: dict|None) -> "Schema":
        return cls((base or {}).get("fields", []))

    def decode_row(self, row: dict) -> dict[str,Any]:
        return {f.name: f.decode(c.get("v")) for f,c in zip(self.fields, row.get("f", []))}

    def decode_rows(self, rows: list[dict]|None) -> list[dict[str,Any]]:
        return [self.decode_row(r) for r in (rows or [])]

def encode_value(value: Any) -> Any:
    """
    Python value to what insertAll wants in its json rows.
    """
    if isinstance(value, (datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, dict):
        return {k: encode_value(v) for k,v in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_value(v) for v in value]
    return value
