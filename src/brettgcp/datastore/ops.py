from functools import partial
import logging

from ..access import gcp, execute

logger = logging.getLogger(__name__)

_get_service = partial(gcp.get_service, "datastore", "v1")

_CONSISTENCY = {
    "eventual": "EVENTUAL",
    "strong": "STRONG"
}

def read_options(consistency: str|None = None, transaction: str|None = None) -> dict|None:
    """
    https://cloud.google.com/datastore/docs/reference/data/rest/v1/ReadOptions
    consistency must be 'eventual', 'strong' or None for the service default.
    A transaction read doesnt take a consistency.
    """
    if consistency is not None and consistency not in _CONSISTENCY:
        raise ValueError(f"Consistency must be 'eventual' or 'strong', not {consistency!r}")
    if transaction:
        return {"transaction": transaction}
    if consistency:
        return {"readConsistency": _CONSISTENCY[consistency]}
    return None

def lookup(project: str, keys: list[dict], options: dict|None = None) -> dict:
    """
    Wrapper for calling the lookup() projects method.
    See https://cloud.google.com/datastore/docs/reference/data/rest/v1/projects/lookup
    """
    body = {"keys": keys}
    if options:
        body["readOptions"] = options
    logger.debug("lookup %d keys in %s", len(keys), project)
    return execute(_get_service().projects().lookup(projectId=project, body=body))

def run_query(project: str, query: dict,
              namespace: str|None = None,
              options: dict|None = None) -> dict:
    """
    Wrapper for calling the runQuery() projects method.
    See https://cloud.google.com/datastore/docs/reference/data/rest/v1/projects/runQuery
    """
    body = {"query": query}
    if namespace is not None:
        body["partitionId"] = {"projectId": project, "namespaceId": namespace}
    if options:
        body["readOptions"] = options
    return execute(_get_service().projects().runQuery(projectId=project, body=body))

def commit(project: str, mutations: list[dict], transaction: str|None = None) -> dict:
    """
    Wrapper for calling the commit() projects method.
    See https://cloud.google.com/datastore/docs/reference/data/rest/v1/projects/commit
    With a transaction the commit is TRANSACTIONAL, otherwise NON_TRANSACTIONAL.
    """
    body = {"mutations": mutations}
    if transaction:
        body["mode"] = "TRANSACTIONAL"
        body["transaction"] = transaction
    else:
        body["mode"] = "NON_TRANSACTIONAL"
    logger.debug("commit %d mutations to %s", len(mutations), project)
    return execute(_get_service().projects().commit(projectId=project, body=body))

def allocate_ids(project: str, keys: list[dict]) -> dict:
    """
    Wrapper for calling the allocateIds() projects method.
    See https://cloud.google.com/datastore/docs/reference/data/rest/v1/projects/allocateIds
    """
    return execute(_get_service().projects().allocateIds(projectId=project, body={"keys": keys}))

def begin_transaction(project: str) -> str:
    """
    Wrapper for calling the beginTransaction() projects method.
    See https://cloud.google.com/datastore/docs/reference/data/rest/v1/projects/beginTransaction
    Returns the transaction handle.
    """
    response = execute(_get_service().projects().beginTransaction(projectId=project, body={}))
    return response.get("transaction", "")

def rollback(project: str, transaction: str) -> dict:
    """
    Wrapper for calling the rollback() projects method.
    See https://cloud.google.com/datastore/docs/reference/data/rest/v1/projects/rollback
    """
    return execute(_get_service().projects().rollback(projectId=project,
                                                      body={"transaction": transaction}))
