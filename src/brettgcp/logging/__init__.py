"""
Classes to facilitate working with Cloud Logging.
Logger is a standard library logging.Handler so the usual way to use this is
to attach one to a logger and, for WSGI apps, wrap the app in the Middleware
so entries carry the request trace.
"""
from .resource import Resource, build_monitored_resource, default_monitored_resource
from .entry import LogEntry, severity
from .ops import write_entries, list_entries, delete_log, log_path
from .logger import Logger
from .middleware import Middleware
