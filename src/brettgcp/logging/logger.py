import datetime
import logging
import threading

from .entry import LogEntry, severity
from .resource import Resource, build_monitored_resource
from . import ops

from ..access import gcp

class Logger(logging.Handler):
    """
    A logging.Handler that sends records to Cloud Logging as entries in one log.
        handler = Logger("my-app")
        logging.getLogger().addHandler(handler)
    Each record is written as it is emitted, there is no batching.

    A request trace id can be associated with the current thread (the
    Middleware does this per request) and every entry emitted from that
    thread carries it in the trace field.
    """
    # records from the libraries that do the sending would loop straight back into emit
    EXCLUDED_LOGGERS = ("brettgcp", "googleapiclient", "google.auth", "google_auth_oauthlib",
                        "urllib3", "requests")

    def __init__(self, log_name: str,
                 resource: Resource|None = None,
                 labels: dict[str,str]|None = None,
                 level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self.log_name = log_name
        self.resource = resource if resource is not None else build_monitored_resource()
        self.labels = dict(labels) if labels else {}
        self._trace_ids = {}
        self._trace_lock = threading.Lock()
        self._sending = threading.local()

    def __str__(self) -> str:
        return f"{self.log_name}<{self.resource}>"

    def __repr__(self) -> str:
        return f"{self.__class__}:{str(self)}"

    def add_trace_id(self, trace_id: str|None) -> None:
        """Associate the trace id with the current thread"""
        with self._trace_lock:
            self._trace_ids[threading.get_ident()] = trace_id

    def delete_trace_id(self) -> None:
        with self._trace_lock:
            self._trace_ids.pop(threading.get_ident(), None)

    @property
    def trace_id(self) -> str|None:
        """The trace id for the current thread, if any"""
        with self._trace_lock:
            return self._trace_ids.get(threading.get_ident(), None)

    def make_entry(self, record: logging.LogRecord) -> LogEntry:
        entry = LogEntry(severity=severity(record.levelno),
                         timestamp=datetime.datetime.fromtimestamp(record.created, datetime.timezone.utc),
                         textPayload=self.format(record),
                         labels=dict(self.labels) if self.labels else None,
                         sourceLocation={"file": record.pathname, "line": str(record.lineno),
                                         "function": record.funcName})
        trace_id = self.trace_id
        if trace_id:
            entry.trace = f"projects/{gcp.project}/traces/{trace_id}"
        return entry

    def filter(self, record: logging.LogRecord) -> bool:
        if any(record.name == n or record.name.startswith(n + ".") for n in self.EXCLUDED_LOGGERS):
            return False
        return super().filter(record)

    def emit(self, record: logging.LogRecord) -> None:
        # anything logged on this thread while a write is in flight is dropped
        if getattr(self._sending, "active", False):
            return
        self._sending.active = True
        try:
            ops.write_entries(self.make_entry(record), log_name=self.log_name, resource=self.resource)
        except Exception:
            self.handleError(record)
        finally:
            self._sending.active = False
