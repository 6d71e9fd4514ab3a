import pytest

from brettgcp.datastore import Query, Key

def test_single_filter():
    q = Query().kind("Task").where("done", "=", False)
    assert(q.to_base() == {
        "kind": [{"name": "Task"}],
        "filter": {"propertyFilter": {"property": {"name": "done"}, "op": "EQUAL",
                                      "value": {"booleanValue": False}}}})

def test_composite_filter():
    q = (Query().kind("Task")
         .where("done", "=", False)
         .filter("priority", ">=", 4)
         .order("priority", "desc")
         .order("created")
         .limit(10)
         .offset(5))
    b = q.to_base()
    f = b["filter"]["compositeFilter"]
    assert(f["op"] == "AND")
    assert(len(f["filters"]) == 2)
    assert(f["filters"][1]["propertyFilter"]["op"] == "GREATER_THAN_OR_EQUAL")
    assert(f["filters"][1]["propertyFilter"]["value"] == {"integerValue": "4"})
    assert(b["order"] == [{"property": {"name": "priority"}, "direction": "DESCENDING"},
                          {"property": {"name": "created"}, "direction": "ASCENDING"}])
    assert(b["limit"] == 10)
    assert(b["offset"] == 5)

def test_operators():
    assert(Query.operator("<") == "LESS_THAN")
    assert(Query.operator("!=") == "NOT_EQUAL")
    assert(Query.operator("not_in") == "NOT_IN")
    assert(Query.operator("~") == "")
    # API names are accepted as is
    q = Query().where("tag", "IN", ["a", "b"])
    assert(q.to_base()["filter"]["propertyFilter"]["op"] == "IN")
    with pytest.raises(ValueError):
        Query().where("x", "~", 1)
    with pytest.raises(ValueError):
        Query().order("x", "sideways")
    with pytest.raises(ValueError):
        Query().limit(-1)

def test_ancestor():
    q = Query().kind("Task").ancestor(Key("TaskList", "default"))
    pf = q.to_base()["filter"]["propertyFilter"]
    assert(pf["property"] == {"name": "__key__"})
    assert(pf["op"] == "HAS_ANCESTOR")
    assert(pf["value"] == {"keyValue": {"path": [{"kind": "TaskList", "name": "default"}]}})

def test_projection_and_cursors():
    q = Query().kind("Task").select("priority", "done").distinct_on("priority").start("abc").end("xyz")
    b = q.to_base()
    assert(b["projection"] == [{"property": {"name": "priority"}}, {"property": {"name": "done"}}])
    assert(b["distinctOn"] == [{"name": "priority"}])
    assert(b["startCursor"] == "abc")
    assert(b["endCursor"] == "xyz")

def test_empty():
    assert(Query().to_base() == {})
