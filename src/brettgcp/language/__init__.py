"""
Classes to facilitate working with the Natural Language API.

    doc = Document("Hello from Mountain View, said Sundar Pichai.")
    annotation = doc.annotate()
    annotation.sentiment.score
    annotation.entities.people()
"""
from .annotation import (TextSpan, PartOfSpeech, Sentence, SentenceSentiment, Token,
                         Syntax, Mention, Entity, Entities, Sentiment, Annotation)
from .document import Document, LanguageEnum
from .ops import annotate, entities, sentiment, syntax
