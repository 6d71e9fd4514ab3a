from dataclasses import dataclass, field, asdict
from typing import Any, List, Self
from functools import partial
import datetime
import logging
import uuid

from ..resources import GoogleCloudResourceBase
from .schema import Schema, Field, encode_value

from ..access import gcp, execute

logger = logging.getLogger(__name__)

_get_service = partial(gcp.get_service, "bigquery", "v2")

def _project(project: str|None) -> str:
    p = project or gcp.project
    if not p:
        raise ValueError("project is missing")
    return p

def _millis(value: datetime.datetime|str|int|None) -> datetime.datetime|None:
    """BigQuery times are milliseconds since the epoch, in a string"""
    if value is None or isinstance(value, datetime.datetime):
        return value
    return datetime.datetime.fromtimestamp(int(value) / 1000, datetime.timezone.utc)

@dataclass
class Dataset(GoogleCloudResourceBase):
    """
    https://cloud.google.com/bigquery/docs/reference/rest/v2/datasets#resource:-dataset
    A dataset is the container for tables.  Start with ::list or ::get.
    Note that the API client will trim out any attribute with a value of None so use that
    as the empty/default
    """
    kind: str|None = field(default=None)
    etag: str|None = field(default=None)
    id: str|None = field(default=None)
    selfLink: str|None = field(default=None)
    datasetReference: dict|None = field(default=None)
    friendlyName: str|None = field(default=None)
    description: str|None = field(default=None)
    defaultTableExpirationMs: str|None = field(default=None)
    defaultPartitionExpirationMs: str|None = field(default=None)
    labels: dict[str,str]|None = field(default=None)
    access: List[dict]|None = field(default=None)
    creationTime: datetime.datetime|str|None = field(default=None)
    lastModifiedTime: datetime.datetime|str|None = field(default=None)
    location: str|None = field(default=None)
    type: str|None = field(default=None)

    def __post_init__(self) -> None:
        self.fixup()

    def __bool__(self) -> bool:
        return bool(self.dataset_id)

    def __str__(self) -> str:
        if self:
            return f"{self.project_id}:{self.dataset_id}"
        return "<empty>"

    def __repr__(self) -> str:
        return f"{str(self.__class__)}:{str(self)}"

    def fixup(self) -> None:
        self.creationTime = _millis(self.creationTime)
        self.lastModifiedTime = _millis(self.lastModifiedTime)

    def to_base(self) -> dict:
        self.fixup()
        b = asdict(self)
        for t in ['creationTime', 'lastModifiedTime']:
            if b[t] is not None:
                b[t] = str(int(b[t].timestamp() * 1000))
        return b

    @property
    def dataset_id(self) -> str:
        return (self.datasetReference or {}).get("datasetId", "")

    @property
    def project_id(self) -> str:
        return (self.datasetReference or {}).get("projectId", "")

    @staticmethod
    def list(all: bool = False, filter: str = "", project: str|None = None) -> List[Self]:
        """
        https://cloud.google.com/bigquery/docs/reference/rest/v2/datasets/list
        All the datasets in the project, including hidden ones if all is set.
        filter is on labels, e.g. 'labels.department:receiving'
        """
        args = {"projectId": _project(project), "all": all}
        if filter:
            args["filter"] = filter
        # cache the method locally rather than look up on each loop iteration
        method = _get_service().datasets().list
        page_token = None
        dlist = []
        while True:
            response = execute(method(pageToken=page_token, **args))
            for d in response.get('datasets', []):
                dlist.append(Dataset.from_response(d))
            page_token = response.get('nextPageToken', None)
            if not page_token:
                break
        return dlist

    @staticmethod
    def get(dataset_id: str, project: str|None = None) -> Self:
        """
        https://cloud.google.com/bigquery/docs/reference/rest/v2/datasets/get
        """
        response = execute(_get_service().datasets().get(projectId=_project(project),
                                                         datasetId=str(dataset_id)))
        return Dataset.from_response(response)

    @staticmethod
    def create(dataset_id: str,
               friendlyName: str|None = None,
               description: str|None = None,
               location: str|None = None,
               labels: dict[str,str]|None = None,
               defaultTableExpirationMs: int|None = None,
               project: str|None = None) -> Self:
        """
        https://cloud.google.com/bigquery/docs/reference/rest/v2/datasets/insert
        """
        p = _project(project)
        ds = Dataset(datasetReference={"projectId": p, "datasetId": str(dataset_id)},
                     friendlyName=friendlyName, description=description,
                     location=location, labels=labels,
                     defaultTableExpirationMs=str(defaultTableExpirationMs) if defaultTableExpirationMs else None)
        response = execute(_get_service().datasets().insert(projectId=p, body=ds.trim()))
        return Dataset.from_response(response)

    @staticmethod
    def delete(dataset_id: str|Self, delete_contents: bool = False, project: str|None = None) -> None:
        """
        https://cloud.google.com/bigquery/docs/reference/rest/v2/datasets/delete
        The dataset has to be empty unless delete_contents is set.
        """
        did = dataset_id.dataset_id if isinstance(dataset_id, Dataset) else str(dataset_id)
        execute(_get_service().datasets().delete(projectId=_project(project), datasetId=did,
                                                 deleteContents=delete_contents))

    def refresh(self) -> None:
        """
        Pull from upstream to update any fields that may have changed.
        """
        if self.dataset_id:
            response = execute(_get_service().datasets().get(projectId=self.project_id,
                                                             datasetId=self.dataset_id))
            self.update_fields(**response)

    def tables(self) -> List["Table"]:
        return Table.list(self.dataset_id, project=self.project_id)

    def table(self, table_id: str) -> "Table":
        return Table.get(self.dataset_id, table_id, project=self.project_id)


@dataclass
class InsertError(GoogleCloudResourceBase):
    """
    https://cloud.google.com/bigquery/docs/reference/rest/v2/tabledata/insertAll#response-body
    The errors for one of the rows passed to insert.
    """
    index: int = field(default=-1)
    errors: List[dict] = field(default_factory=list)
    row: dict|None = field(default=None)

    def __str__(self) -> str:
        return f"row {self.index}: {[e.get('message', '') for e in self.errors]}"


@dataclass
class Table(GoogleCloudResourceBase):
    """
    https://cloud.google.com/bigquery/docs/reference/rest/v2/tables#resource:-table
    """
    kind: str|None = field(default=None)
    etag: str|None = field(default=None)
    id: str|None = field(default=None)
    selfLink: str|None = field(default=None)
    tableReference: dict|None = field(default=None)
    friendlyName: str|None = field(default=None)
    description: str|None = field(default=None)
    labels: dict[str,str]|None = field(default=None)
    schema: Schema|dict|None = field(default=None)
    numBytes: str|None = field(default=None)
    numRows: str|None = field(default=None)
    creationTime: datetime.datetime|str|None = field(default=None)
    expirationTime: datetime.datetime|str|None = field(default=None)
    lastModifiedTime: datetime.datetime|str|None = field(default=None)
    type: str|None = field(default=None)
    location: str|None = field(default=None)
    view: dict|None = field(default=None)
    timePartitioning: dict|None = field(default=None)

    def __post_init__(self) -> None:
        self.fixup()

    def __bool__(self) -> bool:
        return bool(self.table_id)

    def __str__(self) -> str:
        if self:
            return f"{self.project_id}:{self.dataset_id}.{self.table_id}"
        return "<empty>"

    def __repr__(self) -> str:
        return f"{str(self.__class__)}:{str(self)}"

    def __len__(self) -> int:
        """Number of rows as of the last get"""
        return int(self.numRows) if self.numRows else 0

    def fixup(self) -> None:
        if self.schema is not None and not isinstance(self.schema, Schema):
            self.schema = Schema.from_base(dict(self.schema))
        self.creationTime = _millis(self.creationTime)
        self.expirationTime = _millis(self.expirationTime)
        self.lastModifiedTime = _millis(self.lastModifiedTime)

    def to_base(self) -> dict:
        self.fixup()
        b = asdict(self)
        b['schema'] = self.schema.to_base() if self.schema is not None else None
        for t in ['creationTime', 'expirationTime', 'lastModifiedTime']:
            if b[t] is not None:
                b[t] = str(int(b[t].timestamp() * 1000))
        return b

    @property
    def table_id(self) -> str:
        return (self.tableReference or {}).get("tableId", "")

    @property
    def dataset_id(self) -> str:
        return (self.tableReference or {}).get("datasetId", "")

    @property
    def project_id(self) -> str:
        return (self.tableReference or {}).get("projectId", "")

    def _ref(self) -> dict:
        return {"projectId": self.project_id, "datasetId": self.dataset_id, "tableId": self.table_id}

    @staticmethod
    def list(dataset_id: str|Dataset, project: str|None = None) -> List[Self]:
        """
        https://cloud.google.com/bigquery/docs/reference/rest/v2/tables/list
        The list doesnt include schemas, ::get each table for that.
        """
        did = dataset_id.dataset_id if isinstance(dataset_id, Dataset) else str(dataset_id)
        method = _get_service().tables().list
        page_token = None
        tlist = []
        while True:
            response = execute(method(projectId=_project(project), datasetId=did, pageToken=page_token))
            for t in response.get('tables', []):
                tlist.append(Table.from_response(t))
            page_token = response.get('nextPageToken', None)
            if not page_token:
                break
        return tlist

    @staticmethod
    def get(dataset_id: str|Dataset, table_id: str, project: str|None = None) -> Self:
        """
        https://cloud.google.com/bigquery/docs/reference/rest/v2/tables/get
        """
        did = dataset_id.dataset_id if isinstance(dataset_id, Dataset) else str(dataset_id)
        response = execute(_get_service().tables().get(projectId=_project(project), datasetId=did,
                                                       tableId=str(table_id)))
        return Table.from_response(response)

    @staticmethod
    def create(dataset_id: str|Dataset, table_id: str,
               schema: Schema|List[Field|dict]|None = None,
               friendlyName: str|None = None,
               description: str|None = None,
               labels: dict[str,str]|None = None,
               project: str|None = None) -> Self:
        """
        https://cloud.google.com/bigquery/docs/reference/rest/v2/tables/insert
        """
        p = _project(project)
        did = dataset_id.dataset_id if isinstance(dataset_id, Dataset) else str(dataset_id)
        s = schema if isinstance(schema, Schema) or schema is None else Schema(list(schema))
        t = Table(tableReference={"projectId": p, "datasetId": did, "tableId": str(table_id)},
                  friendlyName=friendlyName, description=description, labels=labels, schema=s)
        response = execute(_get_service().tables().insert(projectId=p, datasetId=did, body=t.trim()))
        return Table.from_response(response)

    @staticmethod
    def delete(dataset_id: str|Dataset, table_id: str|Self, project: str|None = None) -> None:
        """
        https://cloud.google.com/bigquery/docs/reference/rest/v2/tables/delete
        """
        did = dataset_id.dataset_id if isinstance(dataset_id, Dataset) else str(dataset_id)
        tid = table_id.table_id if isinstance(table_id, Table) else str(table_id)
        execute(_get_service().tables().delete(projectId=_project(project), datasetId=did, tableId=tid))

    def refresh(self) -> None:
        if self.table_id:
            response = execute(_get_service().tables().get(**self._ref()))
            self.update_fields(**response)

    def insert(self, rows: List[dict[str,Any]],
               skip_invalid: bool = False,
               ignore_unknown: bool = False,
               insert_ids: List[str]|None = None) -> List[InsertError]:
        """
        https://cloud.google.com/bigquery/docs/reference/rest/v2/tabledata/insertAll
        Streaming insert of rows (dicts of column name to value).  Each row gets an
        insertId for best-effort de-duplication, random unless given.
        Returns the errors for any rejected rows, so an empty list is success.
        """
        if not rows:
            return []
        ids = insert_ids if insert_ids is not None else [uuid.uuid4().hex for _ in rows]
        if len(ids) != len(rows):
            raise ValueError("Table::insert() needs one insert id per row")
        body = {"rows": [{"insertId": i, "json": encode_value(r)} for i,r in zip(ids, rows)],
                "skipInvalidRows": skip_invalid,
                "ignoreUnknownValues": ignore_unknown}
        response = execute(_get_service().tabledata().insertAll(body=body, **self._ref()))
        errors = []
        for e in response.get('insertErrors', []):
            err = InsertError.from_response(e)
            if 0 <= err.index < len(rows):
                err.row = rows[err.index]
            errors.append(err)
        if errors:
            logger.debug("%d rows rejected inserting into %s", len(errors), self)
        return errors

    def data(self, max_results: int|None = None) -> List[dict[str,Any]]:
        """
        https://cloud.google.com/bigquery/docs/reference/rest/v2/tabledata/list
        Read the rows, decoded with the table schema (which is fetched if we dont have it).
        max_results caps the total, otherwise all pages are read.
        """
        if not self.schema:
            self.refresh()
        if not self.schema:
            # no columns, so no rows either
            return []
        method = _get_service().tabledata().list
        args = self._ref()
        rows = []
        page_token = None
        while True:
            if max_results is not None:
                args["maxResults"] = max_results - len(rows)
            response = execute(method(pageToken=page_token, **args))
            rows.extend(self.schema.decode_rows(response.get('rows', [])))
            # tabledata.list names it pageToken, not nextPageToken
            page_token = response.get('pageToken', None)
            if not page_token or (max_results is not None and len(rows) >= max_results):
                break
        return rows


def cleanup(project: str|None = None) -> int:
    """
    Delete every dataset in the project, tables and all.  This is for tearing down
    after acceptance tests, dont point it at anything you care about.
    Returns the number of datasets deleted.
    """
    datasets = Dataset.list(all=True, project=project)
    for ds in datasets:
        logger.info("deleting dataset %s", ds)
        Dataset.delete(ds.dataset_id, delete_contents=True, project=ds.project_id or project)
    return len(datasets)
