"""
Classes to facilitate working with BigQuery.
Datasets and tables are dataclasses with the operations as static methods,
query() runs a query to completion and hands back the decoded rows.

    data = query("SELECT name, count FROM `proj.ds.names` LIMIT 10")
    for row in data:
        print(row["name"], row["count"])
"""
from .schema import Field, Schema, encode_value
from .dataset import Dataset, Table, InsertError, cleanup
from .query import QueryData, query
