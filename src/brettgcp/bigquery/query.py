from typing import Any
from functools import partial
import logging

from .schema import Schema

from ..access import gcp, execute

logger = logging.getLogger(__name__)

_get_service = partial(gcp.get_service, "bigquery", "v2")

class QueryData():
    """
    The rows of a finished query, decoded to dicts keyed by column name,
    plus the bits of the job that are worth keeping.
    Behaves like a read-only list of the rows.
    """
    def __init__(self, rows: list[dict[str,Any]], schema: Schema,
                 total_rows: int = 0,
                 job_id: str|None = None,
                 cache_hit: bool = False) -> None:
        self.rows = rows
        self.schema = schema
        self.total_rows = total_rows
        self.job_id = job_id
        self.cache_hit = cache_hit

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self):
        return iter(self.rows)

    def __getitem__(self, index):
        return self.rows[index]

    def __bool__(self) -> bool:
        return bool(self.rows)

    def __eq__(self, other) -> bool:
        if isinstance(other, QueryData):
            return self.rows == other.rows
        if isinstance(other, list):
            return self.rows == other
        return NotImplemented

    def __str__(self) -> str:
        return f"(rows: {len(self.rows)}, total_rows: {self.total_rows}, job: {self.job_id}, cache_hit: {self.cache_hit})"

    def __repr__(self) -> str:
        return f"{self.__class__}:{str(self)}"

    @property
    def headers(self) -> list[str]:
        return self.schema.names

    def to_list(self) -> list[dict[str,Any]]:
        return list(self.rows)

def query(sql: str,
          use_legacy_sql: bool = False,
          max_results: int|None = None,
          timeout_ms: int|None = None,
          use_query_cache: bool = True,
          dry_run: bool = False,
          project: str|None = None) -> QueryData:
    """
    https://cloud.google.com/bigquery/docs/reference/rest/v2/jobs/query
    Run the query and wait it out.  jobs.query only waits timeout_ms for the
    job, if it hasnt finished by then jobs.getQueryResults is polled until it
    has, and then the rest of the pages are read from getQueryResults as well.
    max_results caps the number of rows collected.
    """
    p = project or gcp.project
    if not p:
        raise ValueError("project is missing")
    body = {"query": sql, "useLegacySql": use_legacy_sql,
            "useQueryCache": use_query_cache, "dryRun": dry_run}
    if max_results is not None:
        body["maxResults"] = int(max_results)
    if timeout_ms is not None:
        body["timeoutMs"] = int(timeout_ms)
    jobs = _get_service().jobs()
    response = execute(jobs.query(projectId=p, body=body))

    job_ref = response.get("jobReference", {})
    job_id = job_ref.get("jobId", None)
    args = {"projectId": job_ref.get("projectId", p), "jobId": job_id}
    if job_ref.get("location"):
        args["location"] = job_ref["location"]
    if timeout_ms is not None:
        args["timeoutMs"] = int(timeout_ms)

    while not response.get("jobComplete", False) and not dry_run:
        logger.debug("waiting on query job %s", job_id)
        response = execute(jobs.getQueryResults(**args))

    schema = Schema.from_base(response.get("schema"))
    rows = schema.decode_rows(response.get("rows", []))
    cache_hit = bool(response.get("cacheHit", False))
    total_rows = int(response.get("totalRows", 0) or 0)
    page_token = response.get("pageToken", None)
    while page_token and (max_results is None or len(rows) < max_results):
        if max_results is not None:
            args["maxResults"] = max_results - len(rows)
        response = execute(jobs.getQueryResults(pageToken=page_token, **args))
        rows.extend(schema.decode_rows(response.get("rows", [])))
        page_token = response.get("pageToken", None)
    if max_results is not None:
        rows = rows[:max_results]
    return QueryData(rows, schema, total_rows=total_rows, job_id=job_id, cache_hit=cache_hit)
