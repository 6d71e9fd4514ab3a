import json
from unittest.mock import MagicMock

import pytest
import google.auth
import google.auth.exceptions
from google.oauth2 import service_account
from googleapiclient.errors import HttpError

from brettgcp import gcp, service, load_config, ApiError, NotConnectedError, GoogleCloudError
from brettgcp.access import execute

@pytest.fixture
def access():
    gcp.reset()
    yield gcp
    gcp.reset()

def test_scopes(access):
    assert(gcp.get_scope("bigquery") == "https://www.googleapis.com/auth/bigquery")
    assert(gcp.get_scope("https://www.googleapis.com/auth/custom") == "https://www.googleapis.com/auth/custom")
    assert(gcp.get_scope("nope") == "")

    gcp.scopes = ["bigquery", "nope", "https://www.googleapis.com/auth/datastore"]
    assert(gcp.scopes == ["https://www.googleapis.com/auth/bigquery",
                          "https://www.googleapis.com/auth/datastore"])
    gcp.append_scopes("language", ["logging-write", "bigquery"])
    assert(len(gcp.scopes) == 4)
    assert(not gcp.connected)
    assert(not gcp.scope_in_session("bigquery"))

def test_not_connected(access):
    with pytest.raises(NotConnectedError):
        gcp.get_service("bigquery", "v2")

def test_project(access, monkeypatch):
    for var in gcp.PROJECT_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    assert(gcp.project == "")
    monkeypatch.setenv("GCLOUD_PROJECT", "from-gcloud")
    assert(gcp.project == "from-gcloud")
    monkeypatch.setenv("DATASTORE_PROJECT", "from-datastore")
    assert(gcp.project == "from-datastore")
    gcp.project = "explicit"
    assert(gcp.project == "explicit")

def test_config(access, tmp_path):
    gcp.config = {"project": "p1", "scopes": ["bigquery"], "keyfile": str(tmp_path / "key.json"),
                  "port": 8080}
    config = gcp.config
    assert(config["project"] == "p1")
    assert(config["scopes"] == ["https://www.googleapis.com/auth/bigquery"])
    assert(config["keyfile"] == str(tmp_path / "key.json"))
    assert(config["port"] == 8080)
    assert(gcp.keyfile == tmp_path / "key.json")

def test_load_toml(access, tmp_path):
    path = tmp_path / "config.toml"
    path.write_text('[gcp]\nproject = "from-toml"\nscopes = ["bigquery", "logging-write"]\n')
    config = load_config(path)
    assert(config["project"] == "from-toml")
    assert(gcp.project == "from-toml")
    assert(len(gcp.scopes) == 2)

def test_load_json(access, tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"project": "from-json", "scopes": ["datastore"]}))
    load_config(str(path))
    assert(gcp.project == "from-json")
    assert(gcp.scopes == ["https://www.googleapis.com/auth/datastore"])

def test_execute():
    request = MagicMock()
    request.execute.return_value = {"a": 1}
    assert(execute(request) == {"a": 1})
    request.execute.return_value = None
    assert(execute(request) == {})

def test_execute_error():
    resp = MagicMock(status=404, reason="Not Found")
    content = json.dumps({"error": {"code": 404, "message": "Not found: Dataset test-project:nope"}}).encode("utf-8")
    request = MagicMock()
    request.execute.side_effect = HttpError(resp, content)
    with pytest.raises(ApiError) as e:
        execute(request)
    assert(isinstance(e.value, GoogleCloudError))
    assert(e.value.status_code == 404)
    assert(e.value.reason == "Not Found")
    assert(str(e.value) == "404 Not found: Dataset test-project:nope")
    assert(isinstance(e.value.__cause__, HttpError))

def test_error_without_body():
    resp = MagicMock(status=500, reason="Internal Server Error")
    e = ApiError.from_http_error(HttpError(resp, b"not json"))
    assert(e.status_code == 500)
    assert(str(e) == "500 Internal Server Error")

def test_service_decorator(access, monkeypatch):
    requested = []
    def get_service(name, version):
        requested.append((name, version))
        return "the-service"
    monkeypatch.setattr(gcp, "get_service", get_service)

    @service("bigquery", "v2")
    def list_things(prefix, service=None):
        return f"{prefix}:{service}"

    assert(list_things("x") == "x:the-service")
    assert(requested == [("bigquery", "v2")])

def _expired_creds() -> MagicMock:
    creds = MagicMock(valid=False, project_id="sa-project")
    creds.refresh.side_effect = google.auth.exceptions.RefreshError("invalid_grant: Token has been expired or revoked.")
    return creds

def test_service_account_refresh_fails(access, monkeypatch, tmp_path, caplog):
    creds = _expired_creds()
    monkeypatch.setattr(service_account.Credentials, "from_service_account_file",
                        lambda *args, **kwargs: creds)
    keyfile = tmp_path / "key.json"
    keyfile.write_text("{}")
    gcp.keyfile = keyfile
    gcp.scopes = ["bigquery"]
    assert(not gcp.connect())
    assert(not gcp.connected)
    assert(creds.refresh.called)
    assert("invalid_grant" in caplog.text)

def test_default_creds_refresh_fails(access, monkeypatch, tmp_path):
    creds = _expired_creds()
    monkeypatch.setattr(google.auth, "default", lambda scopes=None: (creds, "adc-project"))
    gcp.keyfile = None
    gcp.client_secrets = tmp_path / "no_secrets.json"
    gcp.cred_cache = tmp_path / "no_tokens.json"
    gcp.scopes = ["bigquery"]
    assert(not gcp.connect())
    assert(creds.refresh.called)
    with pytest.raises(NotConnectedError):
        gcp.get_service("bigquery", "v2")
