from unittest.mock import MagicMock
import importlib

import pytest

from brettgcp import gcp, environment

PROJECT = "test-project"

@pytest.fixture(autouse=True)
def no_metadata_server(monkeypatch):
    """Nothing should go looking for a GCE metadata server during tests"""
    monkeypatch.setattr(environment, "gce", lambda: False)
    for var in ["GAE_SERVICE", "GAE_MODULE_NAME", "KUBERNETES_SERVICE_HOST"]:
        monkeypatch.delenv(var, raising=False)

@pytest.fixture
def project():
    gcp.project = PROJECT
    yield PROJECT
    gcp.project = None

def _patch_service(monkeypatch, *module_names) -> MagicMock:
    # by module name, a package can export a function with the same name as a submodule
    # (brettgcp.bigquery.query is the query() function)
    service = MagicMock()
    for name in module_names:
        monkeypatch.setattr(importlib.import_module(name), "_get_service", lambda: service)
    return service

@pytest.fixture
def language_service(monkeypatch):
    return _patch_service(monkeypatch, "brettgcp.language.ops")

@pytest.fixture
def datastore_service(monkeypatch, project):
    return _patch_service(monkeypatch, "brettgcp.datastore.ops")

@pytest.fixture
def logging_service(monkeypatch, project):
    return _patch_service(monkeypatch, "brettgcp.logging.ops")

@pytest.fixture
def bigquery_service(monkeypatch, project):
    return _patch_service(monkeypatch, "brettgcp.bigquery.dataset", "brettgcp.bigquery.query")
