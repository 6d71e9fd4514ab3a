import datetime
import logging

import pytest

from brettgcp import environment
from brettgcp.logging import (Resource, LogEntry, Logger, Middleware, build_monitored_resource,
                              severity, write_entries, list_entries, delete_log, log_path)

def test_default_resource_global():
    r = build_monitored_resource()
    assert(r.type == "global")
    assert(r.labels == {})

def test_explicit_resource():
    r = build_monitored_resource("gce_instance", {"instance_id": "1", "zone": "us-central1-a"})
    assert(r.type == "gce_instance")
    assert(r.labels["zone"] == "us-central1-a")
    # both have to be given
    assert(build_monitored_resource("gce_instance").type == "global")

def test_gae_resource(monkeypatch):
    monkeypatch.setenv("GAE_SERVICE", "default")
    monkeypatch.setenv("GAE_VERSION", "20240501t120000")
    r = build_monitored_resource()
    assert(r.type == "gae_app")
    assert(r.labels == {"module_id": "default", "version_id": "20240501t120000"})

def test_gke_resource(monkeypatch):
    monkeypatch.setenv("KUBERNETES_SERVICE_HOST", "10.0.0.1")
    monkeypatch.delenv("GKE_NAMESPACE_ID", raising=False)
    monkeypatch.setattr(environment, "gke_cluster_name", lambda: "cluster-1")
    r = build_monitored_resource()
    assert(r.type == "container")
    assert(r.labels == {"cluster_name": "cluster-1", "namespace_id": "default"})

def test_gce_resource(monkeypatch):
    monkeypatch.setattr(environment, "gce", lambda: True)
    values = {"instance/id": "1234567890",
              "instance/zone": "projects/123456/zones/us-central1-a"}
    monkeypatch.setattr(environment, "metadata", lambda path: values.get(path))
    r = build_monitored_resource()
    assert(r.type == "gce_instance")
    assert(r.labels == {"instance_id": "1234567890", "zone": "us-central1-a"})

def test_resource_base():
    assert(Resource("gae_app", {"module_id": "x", "version_id": None}).to_base() ==
           {"type": "gae_app", "labels": {"module_id": "x"}})

def test_severity():
    assert(severity(logging.DEBUG) == "DEBUG")
    assert(severity(logging.INFO) == "INFO")
    assert(severity(25) == "INFO")
    assert(severity(logging.CRITICAL) == "CRITICAL")
    assert(severity(0) == "DEFAULT")

def test_entry():
    e = LogEntry(severity="INFO", textPayload="hello",
                 timestamp="2024-05-01T12:30:00.250000Z",
                 resource={"type": "global", "labels": {}})
    assert(isinstance(e.timestamp, datetime.datetime))
    assert(isinstance(e.resource, Resource))
    b = e.trim()
    assert(b == {"severity": "INFO", "textPayload": "hello",
                 "timestamp": "2024-05-01T12:30:00.250000Z",
                 "resource": {"type": "global", "labels": {}}})

def test_log_path(project):
    assert(log_path("my-app") == "projects/test-project/logs/my-app")
    assert(log_path("cloudaudit.googleapis.com/activity") ==
           "projects/test-project/logs/cloudaudit.googleapis.com%2Factivity")
    assert(log_path("projects/x/logs/y") == "projects/x/logs/y")

def test_write_entries(logging_service):
    write = logging_service.entries.return_value.write
    write.return_value.execute.return_value = {}
    assert(write_entries([LogEntry(textPayload="a"), {"textPayload": "b"}],
                         log_name="my-app", resource=Resource(), labels={"env": "test"}))
    body = write.call_args.kwargs["body"]
    assert(body["entries"] == [{"textPayload": "a"}, {"textPayload": "b"}])
    assert(body["logName"] == "projects/test-project/logs/my-app")
    assert(body["resource"] == {"type": "global", "labels": {}})
    assert(body["labels"] == {"env": "test"})
    assert("partialSuccess" not in body)

def test_write_nothing(logging_service):
    assert(write_entries([]))
    logging_service.entries.assert_not_called()

def test_list_entries(logging_service):
    method = logging_service.entries.return_value.list
    method.return_value.execute.side_effect = [
        {"entries": [{"logName": "projects/test-project/logs/my-app", "textPayload": "one",
                      "timestamp": "2024-05-01T12:30:00Z", "insertId": "a"}],
         "nextPageToken": "page2"},
        {"entries": [{"logName": "projects/test-project/logs/my-app", "jsonPayload": {"n": 2},
                      "timestamp": "2024-05-01T12:31:00Z", "insertId": "b", "futureField": 1}]}
    ]
    entries = list_entries(filter='logName="projects/test-project/logs/my-app"',
                           order_by="timestamp desc")
    assert(len(entries) == 2)
    assert(entries[0].textPayload == "one")
    assert(entries[1].jsonPayload == {"n": 2})
    assert(entries[1].timestamp.minute == 31)
    body = method.call_args.kwargs["body"]
    assert(body["resourceNames"] == ["projects/test-project"])
    assert(body["orderBy"] == "timestamp desc")
    assert(body["pageToken"] == "page2")

def test_list_entries_order(logging_service):
    with pytest.raises(ValueError):
        list_entries(order_by="severity")

def test_delete_log(logging_service):
    method = logging_service.logs.return_value.delete
    method.return_value.execute.return_value = {}
    assert(delete_log("my-app"))
    assert(method.call_args.kwargs["logName"] == "projects/test-project/logs/my-app")

def test_logger(logging_service):
    write = logging_service.entries.return_value.write
    write.return_value.execute.return_value = {}
    handler = Logger("my-app", labels={"env": "test"})
    assert(handler.resource.type == "global")
    log = logging.getLogger("test_logger")
    log.setLevel(logging.INFO)
    log.addHandler(handler)
    try:
        handler.add_trace_id("105445aa7843bc8bf206b12000100000")
        log.warning("hello %s", "world")
        handler.delete_trace_id()
        assert(handler.trace_id is None)
        log.debug("not sent")
    finally:
        log.removeHandler(handler)

    assert(write.call_count == 1)
    body = write.call_args.kwargs["body"]
    assert(body["logName"] == "projects/test-project/logs/my-app")
    entry = body["entries"][0]
    assert(entry["severity"] == "WARNING")
    assert(entry["textPayload"] == "hello world")
    assert(entry["labels"] == {"env": "test"})
    assert(entry["trace"] == "projects/test-project/traces/105445aa7843bc8bf206b12000100000")
    assert(entry["sourceLocation"]["function"] == "test_logger")

def test_logger_on_root(logging_service):
    write = logging_service.entries.return_value.write
    def send():
        # what the http stack logs while the entry is on its way out
        logging.getLogger("myapp.retry").info("retrying write")
        return {}
    write.return_value.execute.side_effect = send
    handler = Logger("my-app")
    root = logging.getLogger()
    level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)
    try:
        logging.getLogger("myapp").info("hello")
        logging.getLogger("brettgcp.access").debug("not sent")
        logging.getLogger("googleapiclient.discovery").debug("not sent either")
    finally:
        root.removeHandler(handler)
        root.setLevel(level)

    assert(write.call_count == 1)
    assert(write.call_args.kwargs["body"]["entries"][0]["textPayload"] == "hello")
    assert(not handler.filter(logging.makeLogRecord({"name": "urllib3.connectionpool"})))
    assert(handler.filter(logging.makeLogRecord({"name": "brettgcpx"})))

def test_middleware(project):
    handler = Logger("my-app", resource=Resource())
    seen = {}

    def app(environ, start_response):
        seen["logger"] = environ[Middleware.ENVIRON_KEY]
        seen["trace_id"] = handler.trace_id
        return [b"ok"]

    mw = Middleware(app, handler)
    environ = {"HTTP_X_CLOUD_TRACE_CONTEXT": "105445aa7843bc8bf206b12000100000/1;o=1"}
    assert(mw(environ, lambda *args: None) == [b"ok"])
    assert(seen["logger"] is handler)
    assert(seen["trace_id"] == "105445aa7843bc8bf206b12000100000")
    assert(handler.trace_id is None)

def test_middleware_error():
    handler = Logger("my-app", resource=Resource())

    def app(environ, start_response):
        raise RuntimeError("broken")

    with pytest.raises(RuntimeError):
        Middleware(app, handler)({"HTTP_X_CLOUD_TRACE_CONTEXT": "abc/1"}, None)
    assert(handler.trace_id is None)

def test_extract_trace_id():
    assert(Middleware.extract_trace_id({}) is None)
    assert(Middleware.extract_trace_id({"HTTP_X_CLOUD_TRACE_CONTEXT": ""}) is None)
    assert(Middleware.extract_trace_id({"HTTP_X_CLOUD_TRACE_CONTEXT": "abc"}) == "abc")
