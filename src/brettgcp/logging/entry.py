from dataclasses import dataclass, field, asdict
import datetime

from ..resources import GoogleCloudResourceBase, rfc3339
from .resource import Resource

# python logging levels to LogSeverity
# https://cloud.google.com/logging/docs/reference/v2/rest/v2/LogEntry#LogSeverity
SEVERITIES = {
    0: "DEFAULT",
    10: "DEBUG",
    20: "INFO",
    30: "WARNING",
    40: "ERROR",
    50: "CRITICAL"
}

def severity(level: int) -> str:
    """Nearest severity at or below the level, NOTICE/ALERT/EMERGENCY have no python level"""
    for lvl in sorted(SEVERITIES, reverse=True):
        if level >= lvl:
            return SEVERITIES[lvl]
    return "DEFAULT"

@dataclass
class LogEntry(GoogleCloudResourceBase):
    """
    https://cloud.google.com/logging/docs/reference/v2/rest/v2/LogEntry
    Only one of textPayload/jsonPayload/protoPayload should be set.
    The API trims out anything None so use that as the empty/default.
    """
    logName: str|None = field(default=None)
    resource: Resource|dict|None = field(default=None)
    timestamp: datetime.datetime|str|None = field(default=None)
    receiveTimestamp: datetime.datetime|str|None = field(default=None)
    severity: str|None = field(default=None)
    insertId: str|None = field(default=None)
    httpRequest: dict|None = field(default=None)
    labels: dict[str,str]|None = field(default=None)
    operation: dict|None = field(default=None)
    trace: str|None = field(default=None)
    spanId: str|None = field(default=None)
    traceSampled: bool|None = field(default=None)
    sourceLocation: dict|None = field(default=None)
    textPayload: str|None = field(default=None)
    jsonPayload: dict|None = field(default=None)
    protoPayload: dict|None = field(default=None)

    def __post_init__(self) -> None:
        self.fixup()

    def __str__(self) -> str:
        payload = self.textPayload if self.textPayload is not None else self.jsonPayload
        return f"{self.timestamp} {self.severity or 'DEFAULT'} {self.logName}: {payload}"

    def __repr__(self) -> str:
        return f"{str(self.__class__)}:{str(self)}"

    def fixup(self) -> None:
        if self.resource is not None and not isinstance(self.resource, Resource):
            self.resource = Resource(**dict(self.resource))
        if self.timestamp is not None and not isinstance(self.timestamp, datetime.datetime):
            self.timestamp = datetime.datetime.fromisoformat(str(self.timestamp))
        if self.receiveTimestamp is not None and not isinstance(self.receiveTimestamp, datetime.datetime):
            self.receiveTimestamp = datetime.datetime.fromisoformat(str(self.receiveTimestamp))

    def to_base(self) -> dict:
        """
        Timestamps need to be RFC3339 with the 'T' separator and a Z.
        """
        self.fixup()
        b = asdict(self)
        if self.resource is not None:
            b['resource'] = self.resource.to_base()
        if self.timestamp is not None:
            b['timestamp'] = rfc3339(self.timestamp)
        if self.receiveTimestamp is not None:
            b['receiveTimestamp'] = rfc3339(self.receiveTimestamp)
        return b
