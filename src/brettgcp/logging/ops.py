from collections.abc import Iterable
from functools import partial
from urllib.parse import quote
import logging

from .entry import LogEntry
from .resource import Resource

from ..access import gcp, execute

# module is brettgcp.logging.ops, this is the stdlib logger for it
logger = logging.getLogger(__name__)

_get_service = partial(gcp.get_service, "logging", "v2")

def log_path(log_name: str, project: str|None = None) -> str:
    """
    Full resource name of a log, projects/<project>/logs/<url-encoded log id>.
    A name that is already a full path is returned as is.
    """
    if log_name.startswith("projects/"):
        return log_name
    p = project or gcp.project
    return f"projects/{p}/logs/{quote(log_name, safe='')}"

def write_entries(entries: LogEntry|dict|Iterable[LogEntry|dict],
                  log_name: str|None = None,
                  resource: Resource|dict|None = None,
                  labels: dict[str,str]|None = None,
                  partial_success: bool = False) -> bool:
    """
    Wrapper for calling the write() entries method.
    See https://cloud.google.com/logging/docs/reference/v2/rest/v2/entries/write
    log_name, resource and labels are defaults for the entries that dont set their own.
    """
    elist = [entries] if isinstance(entries, (LogEntry, dict)) else list(entries)
    if not elist:
        return True
    body = {"entries": [e.trim() if isinstance(e, LogEntry) else dict(e) for e in elist]}
    if log_name:
        body["logName"] = log_path(log_name)
    if resource is not None:
        body["resource"] = resource.to_base() if isinstance(resource, Resource) else dict(resource)
    if labels:
        body["labels"] = dict(labels)
    if partial_success:
        body["partialSuccess"] = True
    execute(_get_service().entries().write(body=body))
    return True

def list_entries(filter: str = "",
                 order_by: str|None = None,
                 projects: list[str]|str|None = None,
                 page_size: int|None = None) -> list[LogEntry]:
    """
    Wrapper for calling the list() entries method.
    See https://cloud.google.com/logging/docs/reference/v2/rest/v2/entries/list
    filter is the Logging query language, order_by is 'timestamp asc' or 'timestamp desc'.
    Follows the pages through to the end.
    """
    if projects is None:
        projects = [gcp.project]
    elif isinstance(projects, str):
        projects = [projects]
    body = {"resourceNames": [p if p.startswith("projects/") else f"projects/{p}" for p in projects]}
    if filter:
        body["filter"] = filter
    if order_by:
        if order_by not in ["timestamp asc", "timestamp desc"]:
            raise ValueError(f"Invalid list_entries() order_by value: {order_by}")
        body["orderBy"] = order_by
    if page_size:
        body["pageSize"] = int(page_size)
    # cache the method locally rather than look up on each loop iteration
    method = _get_service().entries().list
    entries = []
    while True:
        response = execute(method(body=body))
        for e in response.get("entries", []):
            entries.append(LogEntry.from_response(e))
        page_token = response.get("nextPageToken", None)
        if not page_token:
            break
        body["pageToken"] = page_token
    logger.debug("listed %d entries", len(entries))
    return entries

def delete_log(log_name: str) -> bool:
    """
    Wrapper for calling the delete() logs method.
    See https://cloud.google.com/logging/docs/reference/v2/rest/v2/projects.logs/delete
    Deletes all the entries in the log.
    """
    execute(_get_service().logs().delete(logName=log_path(log_name)))
    return True
