"""
A collection of utility wrappers around the Google Cloud Python API client.
The goal is to simplify the more tedious aspects like authentication, project
resolution, and translating the JSON requests/responses into usable objects.

Python dataclasses are used for the resource structs where the REST payload
maps cleanly onto one, and most of the logic is translating between those and
the raw dicts.

Right now BigQuery, Natural Language, Logging and Datastore are supported.

Logging goes through the standard library under the 'brettgcp' logger which
has a NullHandler attached, so attach your own handler to see anything:

    logging.getLogger('brettgcp').addHandler(logging.StreamHandler())
"""
import logging

logging.getLogger(__name__).addHandler(logging.NullHandler())

from .exceptions import GoogleCloudError, ApiError, NotConnectedError
from .access import gcp, service, load_config
