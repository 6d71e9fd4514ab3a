from dataclasses import asdict,fields,is_dataclass
from typing import List
import datetime

class GoogleCloudResourceBase():
    """
    Mixed into the dataclasses that mirror a REST resource, it isnt a dataclass itself.
    Subclasses with nested resources call fixup() from __post_init__ so the raw
    dicts from a response become the nested dataclasses.
    """
    def to_base(self) -> dict:
        """
        The dict the API client wants for a request body.  Plain asdict() unless
        a subclass has formatting to do (timestamps, nested resources).
        """
        self.fixup()
        return asdict(self)

    def trim(self) -> dict|None:
        """
        to_base() without the top level fields that are None or an empty
        string/container, for requests that should only carry what is set.
        Numbers and bools are kept even when falsy as 0/False are real values.
        """
        b = self.to_base()
        if not b:
            return b
        return {k: v for k,v in b.items()
                if v is not None and (type(v) in [int,bool,float] or v)}

    def fixup(self) -> None:
        """Hook for subclasses to normalize their fields"""
        pass

    def update_fields(self, **kwargs) -> List[str]:
        """
        Set the fields present in kwargs, returning the names that were set.
        None values and keys that dont match a field are skipped, responses
        often carry more than we model.
        """
        if not is_dataclass(self):
            return []
        names = {f.name for f in fields(self)}
        updated_fields = [k for k,v in kwargs.items() if v is not None and k in names]
        for k in updated_fields:
            setattr(self, k, kwargs[k])
        self.fixup()
        return updated_fields

    @classmethod
    def from_response(cls, response: dict|None):
        """
        Build from a response dict, dropping any keys the dataclass doesnt model
        so a new field showing up in the API doesnt blow up the constructor.
        """
        if not response:
            return cls()
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k,v in dict(response).items() if k in names})

def rfc3339(value: datetime.datetime) -> str:
    """UTC with a Z suffix, the timestamp format in request bodies.  Naive datetimes are taken to be UTC"""
    if value.tzinfo is None:
        value = value.replace(tzinfo=datetime.timezone.utc)
    return value.astimezone(datetime.timezone.utc).isoformat().replace("+00:00", "Z")
