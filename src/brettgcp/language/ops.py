from functools import partial

from .annotation import Annotation, Entities, Sentiment, Syntax
from .document import Document, LanguageEnum

from ..access import gcp, execute


# do this as module level or a parent class instance?
# simpler at module level and achieves the same thing
_get_service = partial(gcp.get_service, "language", "v1")

def _document(document: Document|dict|str) -> dict:
    if isinstance(document, Document):
        return document.to_base()
    if isinstance(document, str):
        return Document(document).to_base()
    return dict(document)

def _encoding(encoding: str) -> str:
    enc = LanguageEnum.encodingType(encoding)
    if not enc:
        raise ValueError(f"Invalid encodingType value: {encoding}")
    return enc

def annotate(document: Document|dict|str,
             sentiment: bool = False,
             entities: bool = False,
             syntax: bool = False,
             encoding: str = "UTF8") -> Annotation:
    """
    Wrapper for calling the annotateText() documents method.
    See https://cloud.google.com/natural-language/docs/reference/rest/v1/documents/annotateText
    Runs all the requested analysis features in one call.  If none of the features
    are requested then all of them are.
    """
    if not (sentiment or entities or syntax):
        sentiment = entities = syntax = True
    body = {
        "document": _document(document),
        "features": {
            "extractSyntax": syntax,
            "extractEntities": entities,
            "extractDocumentSentiment": sentiment
        },
        "encodingType": _encoding(encoding)
    }
    response = execute(_get_service().documents().annotateText(body=body))
    return Annotation(response)

def entities(document: Document|dict|str, encoding: str = "UTF8") -> Entities:
    """
    Wrapper for calling the analyzeEntities() documents method.
    See https://cloud.google.com/natural-language/docs/reference/rest/v1/documents/analyzeEntities
    """
    body = {"document": _document(document), "encodingType": _encoding(encoding)}
    response = execute(_get_service().documents().analyzeEntities(body=body))
    return Entities.from_base(response)

def sentiment(document: Document|dict|str, encoding: str = "UTF8") -> Sentiment:
    """
    Wrapper for calling the analyzeSentiment() documents method.
    See https://cloud.google.com/natural-language/docs/reference/rest/v1/documents/analyzeSentiment
    """
    body = {"document": _document(document), "encodingType": _encoding(encoding)}
    response = execute(_get_service().documents().analyzeSentiment(body=body))
    return Sentiment.from_base(response)

def syntax(document: Document|dict|str, encoding: str = "UTF8") -> Syntax:
    """
    Wrapper for calling the analyzeSyntax() documents method.
    See https://cloud.google.com/natural-language/docs/reference/rest/v1/documents/analyzeSyntax
    """
    body = {"document": _document(document), "encodingType": _encoding(encoding)}
    response = execute(_get_service().documents().analyzeSyntax(body=body))
    return Syntax.from_base(response)
