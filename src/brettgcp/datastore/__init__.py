"""
Classes to facilitate working with Cloud Datastore.
Dataset is the starting point, everything else hangs off it.
"""
from .key import Key
from .entity import Entity, GeoPoint, to_value, from_value
from .query import Query
from .results import LookupResults, QueryResults
from .commit import Commit
from .transaction import Transaction
from .dataset import Dataset
from ..exceptions import DatastoreError, TransactionError
