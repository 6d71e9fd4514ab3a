"""
Class implementations of the Natural Language analysis results.
https://cloud.google.com/natural-language/docs/reference/rest/v1/documents/annotateText#response-body
The response is kept as the raw dict and the pieces are converted on access,
most callers only look at one of sentences/tokens/entities/sentiment so there
is no point converting all of it up front.
Enum values (entity type, part of speech tag, etc) are left as the strings
the API returns.
"""
from dataclasses import dataclass, field
from functools import cached_property
from typing import List, Self

from ..resources import GoogleCloudResourceBase

@dataclass
class TextSpan(GoogleCloudResourceBase):
    """https://cloud.google.com/natural-language/docs/reference/rest/v1/TextSpan"""
    text: str = field(default="")
    offset: int = field(default=-1)

    @property
    def content(self) -> str:
        return self.text

    @property
    def begin_offset(self) -> int:
        return self.offset

    @classmethod
    def from_base(cls, base: dict|None) -> Self:
        b = base or {}
        return cls(b.get('content', ""), b.get('beginOffset', -1))

@dataclass
class PartOfSpeech(GoogleCloudResourceBase):
    """
    https://cloud.google.com/natural-language/docs/reference/rest/v1/Token#partofspeech
    Grammatical information about a token.  Only some of these will be
    applicable for any given part of speech, the rest come back as
    their *_UNKNOWN value.
    """
    tag: str = field(default="UNKNOWN")
    aspect: str = field(default="ASPECT_UNKNOWN")
    case: str = field(default="CASE_UNKNOWN")
    form: str = field(default="FORM_UNKNOWN")
    gender: str = field(default="GENDER_UNKNOWN")
    mood: str = field(default="MOOD_UNKNOWN")
    number: str = field(default="NUMBER_UNKNOWN")
    person: str = field(default="PERSON_UNKNOWN")
    proper: str = field(default="PROPER_UNKNOWN")
    reciprocity: str = field(default="RECIPROCITY_UNKNOWN")
    tense: str = field(default="TENSE_UNKNOWN")
    voice: str = field(default="VOICE_UNKNOWN")

    @classmethod
    def from_base(cls, base: dict|None) -> Self:
        return cls.from_response(base)

@dataclass
class SentenceSentiment(GoogleCloudResourceBase):
    """https://cloud.google.com/natural-language/docs/reference/rest/v1/Sentiment"""
    score: float = field(default=0.0)
    magnitude: float = field(default=0.0)

    @classmethod
    def from_base(cls, base: dict|None) -> Self|None:
        if base is None:
            return None
        return cls(base.get('score', 0.0), base.get('magnitude', 0.0))

@dataclass
class Sentence(GoogleCloudResourceBase):
    """https://cloud.google.com/natural-language/docs/reference/rest/v1/Sentence"""
    text_span: TextSpan = field(default_factory=TextSpan)
    sentiment: SentenceSentiment|None = field(default=None)

    @property
    def text(self) -> str:
        return self.text_span.text

    @property
    def content(self) -> str:
        return self.text_span.text

    @property
    def offset(self) -> int:
        return self.text_span.offset

    @property
    def begin_offset(self) -> int:
        return self.text_span.offset

    @property
    def has_sentiment(self) -> bool:
        """Only there if sentiment analysis was requested"""
        return self.sentiment is not None

    @property
    def score(self) -> float|None:
        return self.sentiment.score if self.has_sentiment else None

    @property
    def magnitude(self) -> float|None:
        """
        Absolute strength of the sentiment regardless of score, in [0, +inf)
        """
        return self.sentiment.magnitude if self.has_sentiment else None

    @classmethod
    def from_base(cls, base: dict) -> Self:
        return cls(TextSpan.from_base(base.get('text')),
                   SentenceSentiment.from_base(base.get('sentiment')))

@dataclass
class Token(GoogleCloudResourceBase):
    """
    https://cloud.google.com/natural-language/docs/reference/rest/v1/Token
    The smallest syntactic building block of the text.
    head_token_index indexes into the tokens of the same response.
    """
    text_span: TextSpan = field(default_factory=TextSpan)
    part_of_speech: PartOfSpeech = field(default_factory=PartOfSpeech)
    head_token_index: int = field(default=-1)
    label: str = field(default="UNKNOWN")
    lemma: str = field(default="")

    @property
    def text(self) -> str:
        return self.text_span.text

    @property
    def content(self) -> str:
        return self.text_span.text

    @property
    def offset(self) -> int:
        return self.text_span.offset

    @property
    def begin_offset(self) -> int:
        return self.text_span.offset

    @classmethod
    def from_base(cls, base: dict) -> Self:
        edge = base.get('dependencyEdge', {})
        return cls(TextSpan.from_base(base.get('text')),
                   PartOfSpeech.from_base(base.get('partOfSpeech')),
                   edge.get('headTokenIndex', -1),
                   edge.get('label', "UNKNOWN"),
                   base.get('lemma', ""))

@dataclass
class Syntax(GoogleCloudResourceBase):
    """Result of syntax analysis"""
    sentences: List[Sentence] = field(default_factory=list)
    tokens: List[Token] = field(default_factory=list)
    language: str = field(default="")

    @classmethod
    def from_base(cls, base: dict) -> Self:
        """From an AnnotateTextResponse or AnalyzeSyntaxResponse"""
        return cls([Sentence.from_base(s) for s in base.get('sentences', [])],
                   [Token.from_base(t) for t in base.get('tokens', [])],
                   base.get('language', ""))

@dataclass
class Mention(GoogleCloudResourceBase):
    """https://cloud.google.com/natural-language/docs/reference/rest/v1/Entity#entitymention"""
    text_span: TextSpan = field(default_factory=TextSpan)
    type: str = field(default="TYPE_UNKNOWN")

    @property
    def text(self) -> str:
        return self.text_span.text

    @property
    def content(self) -> str:
        return self.text_span.text

    @property
    def offset(self) -> int:
        return self.text_span.offset

    @property
    def begin_offset(self) -> int:
        return self.text_span.offset

    @property
    def is_proper(self) -> bool:
        return self.type == "PROPER"

    @property
    def is_common(self) -> bool:
        return self.type == "COMMON"

    @classmethod
    def from_base(cls, base: dict) -> Self:
        return cls(TextSpan.from_base(base.get('text')), base.get('type', "TYPE_UNKNOWN"))

@dataclass
class Entity(GoogleCloudResourceBase):
    """
    https://cloud.google.com/natural-language/docs/reference/rest/v1/Entity
    A phrase in the text that is a known entity, such as a person,
    an organization, or location.
    """
    name: str = field(default="")
    type: str = field(default="UNKNOWN")
    metadata: dict[str,str] = field(default_factory=dict)
    salience: float = field(default=0.0)
    mentions: List[Mention] = field(default_factory=list)

    def __str__(self) -> str:
        return f"{self.name}({self.type}:{self.salience})"

    @property
    def is_unknown(self) -> bool:
        return self.type == "UNKNOWN"

    @property
    def is_person(self) -> bool:
        return self.type == "PERSON"

    @property
    def is_location(self) -> bool:
        return self.type == "LOCATION"

    is_place = is_location

    @property
    def is_organization(self) -> bool:
        return self.type == "ORGANIZATION"

    @property
    def is_event(self) -> bool:
        return self.type == "EVENT"

    @property
    def is_artwork(self) -> bool:
        return self.type == "WORK_OF_ART"

    @property
    def is_good(self) -> bool:
        return self.type == "CONSUMER_GOOD"

    @property
    def is_other(self) -> bool:
        return self.type == "OTHER"

    @property
    def wikipedia_url(self) -> str|None:
        return self.metadata.get('wikipedia_url', None)

    @property
    def mid(self) -> str|None:
        """
        Machine-generated identifier of the entity's Knowledge Graph entry.
        These are the same across languages.
        """
        return self.metadata.get('mid', None)

    @classmethod
    def from_base(cls, base: dict) -> Self:
        return cls(base.get('name', ""), base.get('type', "UNKNOWN"),
                   dict(base.get('metadata', {})), base.get('salience', 0.0),
                   [Mention.from_base(m) for m in base.get('mentions', [])])

class Entities():
    """
    The entities returned by entity analysis.
    Behaves as a list of Entity with the document language attached and
    some filters by entity type.
    """
    def __init__(self, entities: list[Entity]|None = None, language: str = "") -> None:
        self._entities = list(entities) if entities else []
        self.language = language

    def __len__(self) -> int:
        return len(self._entities)

    def __iter__(self):
        return iter(self._entities)

    def __getitem__(self, index):
        return self._entities[index]

    def __bool__(self) -> bool:
        return bool(self._entities)

    def __eq__(self, other) -> bool:
        if isinstance(other, Entities):
            return self._entities == other._entities and self.language == other.language
        if isinstance(other, list):
            return self._entities == other
        return NotImplemented

    def __str__(self) -> str:
        return f"[{','.join(str(e) for e in self._entities)}]"

    def __repr__(self) -> str:
        return f"{self.__class__}:{str(self)}"

    def to_list(self) -> list[Entity]:
        return list(self._entities)

    def unknown(self) -> list[Entity]:
        return [e for e in self._entities if e.is_unknown]

    def people(self) -> list[Entity]:
        return [e for e in self._entities if e.is_person]

    def locations(self) -> list[Entity]:
        return [e for e in self._entities if e.is_location]

    places = locations

    def organizations(self) -> list[Entity]:
        return [e for e in self._entities if e.is_organization]

    def events(self) -> list[Entity]:
        return [e for e in self._entities if e.is_event]

    def artwork(self) -> list[Entity]:
        return [e for e in self._entities if e.is_artwork]

    def goods(self) -> list[Entity]:
        return [e for e in self._entities if e.is_good]

    def other(self) -> list[Entity]:
        return [e for e in self._entities if e.is_other]

    @classmethod
    def from_base(cls, base: dict) -> Self:
        """From an AnnotateTextResponse or AnalyzeEntitiesResponse"""
        return cls([Entity.from_base(e) for e in base.get('entities', [])],
                   base.get('language', ""))

@dataclass
class Sentiment(GoogleCloudResourceBase):
    """
    Result of sentiment analysis on the whole document.
    score is in [-1, 1], magnitude in [0, +inf)
    """
    score: float = field(default=0.0)
    magnitude: float = field(default=0.0)
    sentences: List[Sentence] = field(default_factory=list)
    language: str = field(default="")

    @classmethod
    def from_base(cls, base: dict) -> Self:
        """From an AnnotateTextResponse or AnalyzeSentimentResponse"""
        ds = base.get('documentSentiment', {}) or {}
        return cls(ds.get('score', 0.0), ds.get('magnitude', 0.0),
                   [Sentence.from_base(s) for s in base.get('sentences', [])],
                   base.get('language', ""))

class Annotation():
    """
    The results of all requested document analysis features.
    Wraps the raw AnnotateTextResponse dict.
    """
    def __init__(self, response: dict|None = None) -> None:
        self._response = dict(response) if response else {}

    def __str__(self) -> str:
        return (f"(sentences: {len(self.sentences)}, tokens: {len(self.tokens)}, "
                f"entities: {len(self.entities)}, sentiment: {self.sentiment is not None}, "
                f"language: {self.language!r})")

    def __repr__(self) -> str:
        return f"{self.__class__}:{str(self)}"

    @property
    def response(self) -> dict:
        return self._response

    @cached_property
    def sentences(self) -> list[Sentence]:
        return [Sentence.from_base(s) for s in self._response.get('sentences', [])]

    @cached_property
    def tokens(self) -> list[Token]:
        return [Token.from_base(t) for t in self._response.get('tokens', [])]

    @cached_property
    def syntax(self) -> Syntax|None:
        """None if syntax wasnt requested"""
        if 'tokens' not in self._response:
            return None
        return Syntax(self.sentences, self.tokens, self.language)

    @cached_property
    def entities(self) -> Entities:
        return Entities.from_base(self._response)

    @cached_property
    def sentiment(self) -> Sentiment|None:
        """None if sentiment wasnt requested"""
        if self._response.get('documentSentiment', None) is None:
            return None
        return Sentiment.from_base(self._response)

    @property
    def language(self) -> str:
        """Either what was specified in the request or what the API detected"""
        return self._response.get('language', "")
