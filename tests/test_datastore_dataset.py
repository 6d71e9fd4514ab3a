import pytest

from brettgcp import ApiError
from brettgcp.datastore import (Dataset, Key, Entity, Commit, LookupResults, QueryResults,
                                DatastoreError, TransactionError)
from brettgcp.datastore import ops

TASK_KEY = {"partitionId": {"projectId": "test-project"},
            "path": [{"kind": "Task", "id": "5629499534213120"}]}

def _found(key: dict, **props) -> dict:
    return {"entity": {"key": key,
                       "properties": {k: {"stringValue": v} for k,v in props.items()}}}

def test_project(monkeypatch, project):
    assert(Dataset().project == project)
    assert(Dataset("other").project == "other")

def test_missing_project(monkeypatch):
    for var in ["DATASTORE_DATASET", "DATASTORE_PROJECT", "GCLOUD_PROJECT", "GOOGLE_CLOUD_PROJECT"]:
        monkeypatch.delenv(var, raising=False)
    with pytest.raises(ValueError):
        Dataset()

def test_default_project(monkeypatch):
    for var in ["DATASTORE_DATASET", "DATASTORE_PROJECT", "GCLOUD_PROJECT", "GOOGLE_CLOUD_PROJECT"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("GOOGLE_CLOUD_PROJECT", "from-google")
    assert(Dataset.default_project() == "from-google")
    monkeypatch.setenv("DATASTORE_DATASET", "from-dataset")
    assert(Dataset.default_project() == "from-dataset")

def test_read_options():
    assert(ops.read_options() is None)
    assert(ops.read_options("eventual") == {"readConsistency": "EVENTUAL"})
    assert(ops.read_options("strong") == {"readConsistency": "STRONG"})
    assert(ops.read_options(transaction="tx1") == {"transaction": "tx1"})
    with pytest.raises(ValueError):
        ops.read_options("sometimes")

def test_save_allocates_key(datastore_service):
    commit = datastore_service.projects.return_value.commit
    commit.return_value.execute.return_value = {"mutationResults": [{"key": TASK_KEY}],
                                                "indexUpdates": 2}
    ds = Dataset()
    task = ds.entity("Task", description="Buy milk")
    assert(task.key.is_incomplete)

    saved = ds.save(task)
    kwargs = commit.call_args.kwargs
    assert(kwargs["projectId"] == "test-project")
    assert(kwargs["body"]["mode"] == "NON_TRANSACTIONAL")
    assert(kwargs["body"]["mutations"] == [{"upsert": {
        "key": {"path": [{"kind": "Task"}]},
        "properties": {"description": {"stringValue": "Buy milk"}}}}])

    assert(saved == [task])
    assert(task.persisted)
    assert(task.key.id == 5629499534213120)
    with pytest.raises(DatastoreError):
        task.key.id_or_name = 1

def test_commit_context(datastore_service):
    commit = datastore_service.projects.return_value.commit
    commit.return_value.execute.return_value = {"mutationResults": [{}, {}]}
    ds = Dataset()
    task = ds.entity("Task", "sampleTask", done=True)
    with ds.commit() as c:
        c.save(task)
        c.delete(Key("Task", "oldTask"))
    assert(len(c) == 2)
    assert(c.results == [task])
    assert(task.persisted)
    mutations = commit.call_args.kwargs["body"]["mutations"]
    assert(list(mutations[0]) == ["upsert"])
    assert(mutations[1] == {"delete": {"path": [{"kind": "Task", "name": "oldTask"}]}})

def test_commit_errors():
    with pytest.raises(ValueError):
        Commit().save({"not": "an entity"})
    with pytest.raises(ValueError):
        Commit().delete("Task")
    with pytest.raises(RuntimeError):
        Commit().save(Entity(Key("Task", "a"))).execute()

def test_delete(datastore_service):
    commit = datastore_service.projects.return_value.commit
    commit.return_value.execute.return_value = {"mutationResults": [{}]}
    task = Entity.from_base(_found(TASK_KEY)["entity"])
    assert(Dataset().delete(task))
    assert(commit.call_args.kwargs["body"]["mutations"] == [{"delete": task.key.to_base()}])

def test_find(datastore_service):
    lookup = datastore_service.projects.return_value.lookup
    lookup.return_value.execute.return_value = {"found": [_found(TASK_KEY, description="Buy milk")]}
    task = Dataset().find("Task", 5629499534213120, consistency="strong")
    assert(task["description"] == "Buy milk")
    assert(task.persisted)
    body = lookup.call_args.kwargs["body"]
    assert(body["keys"] == [{"path": [{"kind": "Task", "id": "5629499534213120"}]}])
    assert(body["readOptions"] == {"readConsistency": "STRONG"})

def test_find_missing(datastore_service):
    lookup = datastore_service.projects.return_value.lookup
    lookup.return_value.execute.return_value = {"missing": [{"entity": {"key": TASK_KEY}}]}
    ds = Dataset()
    assert(ds.get(Key("Task", 5629499534213120)) is None)
    results = ds.lookup(Key("Task", 5629499534213120), Key("Task", 1))
    assert(isinstance(results, LookupResults))
    assert(not results)
    assert(len(results.missing) == 1)
    assert(results.missing[0].key.id == 5629499534213120)

def test_run(datastore_service):
    run_query = datastore_service.projects.return_value.runQuery
    run_query.return_value.execute.return_value = {"batch": {
        "entityResults": [_found(TASK_KEY, description="Buy milk")],
        "endCursor": "CURSOR",
        "moreResults": "MORE_RESULTS_AFTER_LIMIT",
        "skippedResults": 0}}
    ds = Dataset()
    results = ds.run(ds.query("Task").where("done", "=", False).limit(1), namespace="ns")
    assert(isinstance(results, QueryResults))
    assert(len(results) == 1)
    assert(results.first()["description"] == "Buy milk")
    assert(results.cursor == "CURSOR")
    assert(results.is_more_after_limit)
    assert(not results.is_no_more)
    body = run_query.call_args.kwargs["body"]
    assert(body["partitionId"] == {"projectId": "test-project", "namespaceId": "ns"})
    assert(body["query"]["limit"] == 1)
    assert("readOptions" not in body)

def test_allocate_ids(datastore_service):
    allocate = datastore_service.projects.return_value.allocateIds
    allocate.return_value.execute.return_value = {"keys": [
        {"path": [{"kind": "Task", "id": "1"}]}, {"path": [{"kind": "Task", "id": "2"}]}]}
    ds = Dataset()
    keys = ds.allocate_ids(ds.key("Task"), 2)
    assert([k.id for k in keys] == [1, 2])
    assert(len(allocate.call_args.kwargs["body"]["keys"]) == 2)
    with pytest.raises(DatastoreError):
        ds.allocate_ids(ds.key("Task", "named"))

def test_transaction(datastore_service):
    projects = datastore_service.projects.return_value
    projects.beginTransaction.return_value.execute.return_value = {"transaction": "tx1"}
    projects.lookup.return_value.execute.return_value = {"found": [_found(TASK_KEY, description="x")]}
    projects.commit.return_value.execute.return_value = {"mutationResults": [{}]}
    ds = Dataset()

    with ds.transaction() as tx:
        assert(tx.started)
        task = tx.find(Key("Task", 5629499534213120))
        task["description"] = "y"
        tx.save(task)

    assert(not tx.started)
    assert(projects.lookup.call_args.kwargs["body"]["readOptions"] == {"transaction": "tx1"})
    body = projects.commit.call_args.kwargs["body"]
    assert(body["mode"] == "TRANSACTIONAL")
    assert(body["transaction"] == "tx1")
    assert(body["mutations"][0]["upsert"]["properties"]["description"] == {"stringValue": "y"})
    projects.rollback.assert_not_called()

def test_transaction_rollback(datastore_service):
    projects = datastore_service.projects.return_value
    projects.beginTransaction.return_value.execute.return_value = {"transaction": "tx1"}
    projects.rollback.return_value.execute.return_value = {}

    with pytest.raises(TransactionError) as e:
        with Dataset().transaction() as tx:
            tx.save(Entity(Key("Task", "a")))
            raise KeyError("boom")
    assert(isinstance(e.value.commit_error, KeyError))
    assert(e.value.rollback_error is None)
    assert(str(e.value) == "Transaction failed to commit.")
    assert(projects.rollback.call_args.kwargs["body"] == {"transaction": "tx1"})
    projects.commit.assert_not_called()

def test_transaction_commit_and_rollback_fail(datastore_service):
    projects = datastore_service.projects.return_value
    projects.beginTransaction.return_value.execute.return_value = {"transaction": "tx1"}
    projects.commit.return_value.execute.side_effect = ApiError("409 too much contention", 409)
    projects.rollback.return_value.execute.side_effect = ApiError("400 gone", 400)

    with pytest.raises(TransactionError) as e:
        with Dataset().transaction() as tx:
            tx.save(Entity(Key("Task", "a")))
    assert(str(e.value) == "Transaction failed to commit and rollback.")
    assert(e.value.commit_error.status_code == 409)
    assert(e.value.rollback_error.status_code == 400)
