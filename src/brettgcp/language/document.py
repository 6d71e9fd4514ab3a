from dataclasses import dataclass, field

from ..resources import GoogleCloudResourceBase

class LanguageEnum():
    """
    An 'enum' in the API client is just a string so this is
    just to translate and validate input.
    """
    _VALID_DOCUMENT_TYPES = {
        "TEXT": "PLAIN_TEXT",
        "PLAIN_TEXT": "PLAIN_TEXT",
        "HTML": "HTML"
    }
    _VALID_ENCODING_TYPES = {
        "NONE": "NONE",
        "UTF8": "UTF8",
        "UTF-8": "UTF8",
        "UTF16": "UTF16",
        "UTF-16": "UTF16",
        "UTF32": "UTF32",
        "UTF-32": "UTF32"
    }

    @classmethod
    def documentType(cls, option: str) -> str:
        """https://cloud.google.com/natural-language/docs/reference/rest/v1/documents#type"""
        return cls._VALID_DOCUMENT_TYPES.get(str(option).upper(), "")

    @classmethod
    def encodingType(cls, option: str) -> str:
        """https://cloud.google.com/natural-language/docs/reference/rest/v1/EncodingType"""
        return cls._VALID_ENCODING_TYPES.get(str(option).upper(), "")

@dataclass
class Document(GoogleCloudResourceBase):
    """
    https://cloud.google.com/natural-language/docs/reference/rest/v1/documents#Document
    The input to analysis.  Either inline content or a Cloud Storage URI
    of the form gs://bucket/object, not both.
    Language is optional, the API will detect it if not given.
    """
    content: str|None = field(default=None)
    gcs_uri: str|None = field(default=None)
    type: str = field(default="PLAIN_TEXT")
    language: str|None = field(default=None)

    def __post_init__(self) -> None:
        self.fixup()

    def __bool__(self) -> bool:
        return bool(self.content) or bool(self.gcs_uri)

    def __str__(self) -> str:
        src = self.gcs_uri if self.gcs_uri else f"{len(self.content or '')} chars"
        return f"{self.type}<{src}>"

    def fixup(self) -> None:
        t = LanguageEnum.documentType(self.type)
        if not t:
            raise ValueError(f"Invalid document type: {self.type}")
        self.type = t
        if self.content is None and self.gcs_uri is None:
            raise ValueError("Document needs content or a gcs_uri")
        if self.content is not None and self.gcs_uri is not None:
            raise ValueError("Document takes either content or gcs_uri, not both")

    def to_base(self) -> dict:
        self.fixup()
        b = {"type": self.type}
        if self.gcs_uri:
            b["gcsContentUri"] = self.gcs_uri
        else:
            b["content"] = self.content or ""
        if self.language:
            b["language"] = self.language
        return b

    def annotate(self, sentiment: bool = False, entities: bool = False,
                 syntax: bool = False, encoding: str = "UTF8"):
        from . import ops
        return ops.annotate(self, sentiment, entities, syntax, encoding)

    def entities(self, encoding: str = "UTF8"):
        from . import ops
        return ops.entities(self, encoding)

    def sentiment(self, encoding: str = "UTF8"):
        from . import ops
        return ops.sentiment(self, encoding)

    def syntax(self, encoding: str = "UTF8"):
        from . import ops
        return ops.syntax(self, encoding)
