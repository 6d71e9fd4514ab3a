from collections.abc import Iterable
from pathlib import Path
import json
import copy
import logging
import os
import tomllib
from functools import wraps

import google.auth
import google.auth.exceptions
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google.oauth2 import service_account
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build, Resource
from googleapiclient.errors import HttpError
from googleapiclient.http import HttpRequest
import googleapiclient.discovery_cache as gcp_discovery_cache

from .exceptions import ApiError, NotConnectedError
from . import environment

logger = logging.getLogger(__name__)

class __GCPAccess():
    """
    Authenticated access to the Google Cloud APIs, shared by every module.
    Credentials are looked for in this order:
        a service account key file (keyfile)
        the OAuth token cache from a previous run (cred_cache)
        an OAuth installed-app flow from the client secrets file, which opens the consent screen
        Application Default Credentials
    Each API module adds the scopes it needs, which can force a reconnect.

    There is one of these per process, the module level 'gcp', and the API
    modules only ever want a built service from it.
    """

    __SCOPES = {
        "cloud-platform": "https://www.googleapis.com/auth/cloud-platform",
        "cloud-platform-ro": "https://www.googleapis.com/auth/cloud-platform.read-only",
        "bigquery": "https://www.googleapis.com/auth/bigquery",
        "bigquery-ro": "https://www.googleapis.com/auth/bigquery.readonly",
        "bigquery-insert": "https://www.googleapis.com/auth/bigquery.insertdata",
        "datastore": "https://www.googleapis.com/auth/datastore",
        "logging-write": "https://www.googleapis.com/auth/logging.write",
        "logging-read": "https://www.googleapis.com/auth/logging.read",
        "logging-admin": "https://www.googleapis.com/auth/logging.admin",
        "language": "https://www.googleapis.com/auth/cloud-language",
        "devstorage-ro": "https://www.googleapis.com/auth/devstorage.read_only",
        "openid": "openid",
        "email": "email",
        "userinfo-email": "https://www.googleapis.com/auth/userinfo.email"
    }
    __SCOPE_URL_PREFIX = "https://www.googleapis.com/"

    # first one set wins
    PROJECT_ENV_VARS = ["DATASTORE_DATASET", "DATASTORE_PROJECT",
                        "GCLOUD_PROJECT", "GOOGLE_CLOUD_PROJECT"]

    __DEFAULT_AUTH_PROMPT_MSG = "Please visit this URL to authorize this application: {url}"
    __DEFAULT_AUTH_FLOW_SUCCESS_MSG = "The authentication flow has completed. You may close this window."
    __DEFAULT_SECRETS = (Path.home() / "gcp_client_secrets.json").absolute()
    __DEFAULT_CACHE = (Path.home() / "gcp_tokens.json").absolute()

    def __init__(self) -> None:
        self.reset()

    def __bool__(self) -> bool:
        return self.connected

    def __str__(self) -> str:
        if self.connected:
            return f"Connected({self.project}):{self.session_scopes}"
        return f"Disconnected:{self.__scopes}"

    def __repr__(self) -> str:
        return f"{str(self.__class__)}:{str(self)}"

    @classmethod
    def get_scope(cls, scope: str) -> str:
        """
        Full scope for a short label such as 'bigquery', a googleapis URL is
        passed through.  Empty string for anything else.
        """
        label = str(scope)
        if label in cls.__SCOPES:
            return cls.__SCOPES[label]
        return label if label.startswith(cls.__SCOPE_URL_PREFIX) else ""

    @classmethod
    def _resolve_scopes(cls, *values) -> list[str]:
        """Labels, URLs, or iterables of them, to a de-duplicated list of full scopes"""
        resolved = []
        for value in values:
            items = [value] if isinstance(value, str) or not isinstance(value, Iterable) else value
            for item in items:
                s = cls.get_scope(str(item))
                if s and s not in resolved:
                    resolved.append(s)
        return resolved

    def _set_path(self, key: str, value: Path|str|None) -> None:
        # a different file means different credentials
        path = value if value is None or isinstance(value, Path) else Path(str(value))
        if path != self.__paths[key]:
            self.__paths[key] = path
            if self.connected:
                self.connect()

    @property
    def client_secrets(self) -> Path:
        """OAuth client secrets file downloaded from the Cloud console"""
        return self.__paths["secrets"]

    @client_secrets.setter
    def client_secrets(self, value: Path|str) -> None:
        self._set_path("secrets", value)

    @property
    def keyfile(self) -> Path|None:
        """
        Service account key file.  When it exists it is used in preference
        to any OAuth flow.  Defaults to GOOGLE_APPLICATION_CREDENTIALS.
        """
        return self.__paths["keyfile"]

    @keyfile.setter
    def keyfile(self, value: Path|str|None) -> None:
        self._set_path("keyfile", value)

    @property
    def cred_cache(self) -> Path:
        """Where the OAuth refresh token is kept between runs"""
        return self.__paths["cache"]

    @cred_cache.setter
    def cred_cache(self, value: Path|str):
        self._set_path("cache", value)

    def clear(self):
        """Drop the credentials, scopes and built services"""
        self.__creds = None
        self.__scopes = []
        self.__services = {}

    @property
    def connected(self) -> bool:
        return self.__creds is not None and bool(self.__creds.valid)

    @property
    def session_scopes(self) -> list[str]:
        """
        What the current credentials were actually granted, as opposed to
        scopes which is what will be asked for on the next connect.
        """
        return list(self.__creds.scopes or []) if self.connected else []

    @property
    def scopes(self) -> list[str]:
        return self.__scopes

    @scopes.setter
    def scopes(self, value: None|list[str]|str) -> None:
        """
        Replace the requested scopes.  If connected and the session doesnt
        cover them all this reconnects, an empty list drops the session.
        """
        self.__scopes = self._resolve_scopes(value) if value is not None else []
        if self.__scopes and self.connected:
            self.refresh()
        else:
            self.__creds = None
            self.__services = {}

    def append_scopes(self, *args) -> bool:
        """
        Add to the requested scopes, reconnecting if the session is missing
        any of them.  API modules call this with what they need.
        """
        for s in self._resolve_scopes(*args):
            if s not in self.__scopes:
                self.__scopes.append(s)
        return self.refresh()

    def scope_in_session(self, scope: str) -> bool:
        s = self.get_scope(scope)
        return bool(s) and s in self.session_scopes

    @property
    def creds(self):
        """The active credentials, None before connecting"""
        return self.__creds

    @property
    def services(self) -> dict[str,Resource]:
        """Built services keyed by 'name:version'"""
        return self.__services

    @property
    def project(self) -> str:
        """
        The project requests are addressed to.  An explicitly set project wins,
        then the usual environment variables, then whatever the credentials or
        the GCE metadata server report.  Empty string if none of those has one.
        """
        if self.__project:
            return self.__project
        return self.default_project()

    @project.setter
    def project(self, value: str|None) -> None:
        self.__project = str(value) if value else None

    def default_project(self) -> str:
        for var in self.PROJECT_ENV_VARS:
            v = os.environ.get(var, "")
            if v:
                return v
        if self.__creds_project:
            return self.__creds_project
        return environment.project_id() or ""

    @property
    def config(self) -> dict:
        """
        Everything configurable as one dict, the same shape load_config() reads.
        """
        keyfile = self.__paths["keyfile"]
        return {
            'secrets': str(self.__paths["secrets"]),
            'cache': str(self.__paths["cache"]),
            'keyfile': str(keyfile) if keyfile else None,
            'scopes': list(self.__scopes),
            'project': self.__project,
            'server': self.auth_server,
            'port': self.auth_port
        }

    @config.setter
    def config(self, config: dict) -> None:
        """
        Apply settings from a dict, anything missing is left alone.
        Changing the credential files or scopes reconnects an active session.
        """
        if config.get('port') is not None:
            self.auth_port = int(config['port'])
        if config.get('server') is not None:
            self.auth_server = str(config['server'])
        if config.get('project') is not None:
            self.project = config['project']
        if config.get('auth_prompt_msg') is not None:
            self.auth_prompt_msg = str(config['auth_prompt_msg'])
        if config.get('flow_success_msg') is not None:
            self.auth_flow_success_msg = str(config['flow_success_msg'])
        changed = False
        if config.get('scopes'):
            self.__scopes = self._resolve_scopes(config['scopes'])
            changed = True
        for key in ['secrets', 'cache', 'keyfile']:
            if config.get(key) is not None:
                self.__paths[key] = Path(config[key])
                changed = True
        if changed and self.connected:
            self.connect()

    @property
    def developer_key(self) -> str|None:
        """API key sent with requests, some APIs accept one in place of OAuth"""
        return self.__developer_key

    @developer_key.setter
    def developer_key(self, value: str|None) -> None:
        v = value if value is None else str(value)
        if v != self.__developer_key:
            self.__services = {}
            self.__developer_key = v

    def reset(self) -> None:
        """Back to a fresh, unconnected state with the default settings"""
        keyfile = os.environ.get("GOOGLE_APPLICATION_CREDENTIALS", "")
        self.__paths = {
            "secrets": self.__DEFAULT_SECRETS,
            "cache": self.__DEFAULT_CACHE,
            "keyfile": Path(keyfile) if keyfile else None
        }
        self.__discovery_cache = gcp_discovery_cache.autodetect()
        self.__creds = None
        self.__creds_project = None
        self.__project = None
        self.__scopes = []
        self.__services = {}
        self.__developer_key = None
        self.auth_server = 'localhost'
        self.auth_port = 0
        self.auth_prompt_msg = self.__DEFAULT_AUTH_PROMPT_MSG
        self.auth_flow_success_msg = self.__DEFAULT_AUTH_FLOW_SUCCESS_MSG

    def refresh(self) -> bool:
        """
        Reconnect if connected but the session is missing some of the requested scopes.
        """
        if self.connected and not all(s in self.session_scopes for s in self.__scopes):
            return self.connect()
        return True

    def _connect_service_account(self, requested_scopes: list[str]) -> None:
        """
        Service account key files dont need any caching, the key is the credential.
        """
        self.__creds = service_account.Credentials.from_service_account_file(
            str(self.__paths["keyfile"]), scopes=requested_scopes)
        self.__creds_project = self.__creds.project_id
        # service account creds come back without a token, need one to be valid
        self._refresh_new_creds()

    def _refresh_new_creds(self) -> None:
        try:
            self.__creds.refresh(Request())
        except google.auth.exceptions.RefreshError as e:
            logger.warning("failed to refresh creds: %s...not connected", e)
            self.__creds = None
            self.__creds_project = None

    def _connect_cached(self, requested_scopes: list[str]) -> None:
        cache = self.__paths["cache"]
        if cache.is_file():
            # the cached token is only any good if it was granted everything we want now
            cf = cache.resolve()
            with open(cf, 'r', encoding='utf-8') as f:
                cached_scopes = json.load(f).get('scopes', [])
            if all(s in cached_scopes for s in requested_scopes):
                self.__creds = Credentials.from_authorized_user_file(str(cf), requested_scopes)
            else:
                cache.unlink()
        if not self.connected and self.__creds and self.__creds.refresh_token:
            try:
                self.__creds.refresh(Request())
            except google.auth.exceptions.RefreshError as e:
                logger.warning("failed to refresh stored creds: %s...deleting cred cache and re-authorizing", e)
            finally:
                if not self.connected:
                    cache.unlink(missing_ok=True)

    def _connect_flow(self, requested_scopes: list[str]) -> None:
        flow = InstalledAppFlow.from_client_secrets_file(str(self.__paths["secrets"]), requested_scopes)
        self.__creds = flow.run_local_server(host=self.auth_server, port=self.auth_port,
                                             authorization_prompt_message=self.auth_prompt_msg,
                                             success_message=self.auth_flow_success_msg)
        if self.connected:
            user_info = {'refresh_token': self.__creds.refresh_token, 'client_id': self.__creds.client_id,
                         'client_secret': self.__creds.client_secret, 'scopes': requested_scopes}
            with open(self.__paths["cache"].resolve(), 'w', encoding='utf-8') as f:
                json.dump(user_info, f, ensure_ascii=False, indent=2)

    def _connect_default(self, requested_scopes: list[str]) -> None:
        # GOOGLE_APPLICATION_CREDENTIALS, gcloud's own login, then the metadata server
        try:
            self.__creds, self.__creds_project = google.auth.default(scopes=requested_scopes)
        except google.auth.exceptions.DefaultCredentialsError:
            logger.debug("no application default credentials available")
            self.__creds = None
            return
        if not self.__creds.valid:
            self._refresh_new_creds()

    def connect(self) -> bool:
        """
        Start a new session with the requested scopes, returns whether it worked.
        Tokens from an OAuth flow are written to cred_cache for next time.
        """
        self.__creds = None
        self.__creds_project = None
        self.__services = {}
        if not self.__scopes:
            return False
        requested_scopes = copy.copy(self.__scopes)

        keyfile = self.__paths["keyfile"]
        if keyfile is not None and keyfile.is_file():
            logger.debug("connecting with service account key %s", keyfile)
            self._connect_service_account(requested_scopes)
            return self.connected

        self._connect_cached(requested_scopes)
        if not self.connected:
            if self.__paths["secrets"].is_file():
                self._connect_flow(requested_scopes)
            else:
                self._connect_default(requested_scopes)
        logger.debug("connect: %s", self)
        return self.connected

    def get_service(self, name: str, version: str) -> Resource:
        """
        Build the requested service if not already available, connecting if required.
        Raises NotConnectedError if there is no way to get valid credentials.
        """
        if not self.connected:
            self.connect()
        if not self.connected:
            raise NotConnectedError(f"Unable to authenticate for {name}:{version} with scopes {self.__scopes}")
        id = f'{name}:{version}'
        s = self.__services.get(id, None)
        if s is None:
            s = build(name, version, credentials=self.__creds,
                      developerKey=self.__developer_key, cache=self.__discovery_cache)
            self.__services[id] = s
        return s

gcp = __GCPAccess()

def service(name: str, version: str):
    """
    Decorator that passes the built service to the wrapped function as the
    'service' keyword argument.
    param: name: discovery service name, e.g. 'bigquery'
    param: version: service version, e.g. 'v2'
    """
    def _inner_decorator(f):
        @wraps(f)
        def wrapped(*args,**kwargs):
            kwargs['service'] = gcp.get_service(name, version)
            return f(*args, **kwargs)
        return wrapped
    return _inner_decorator

def execute(request: HttpRequest) -> dict:
    """
    Send a built request.  All the remote calls funnel through here so that
    HttpError comes out as ApiError.
    """
    logger.debug("%s %s", getattr(request, 'method', ''), getattr(request, 'uri', ''))
    try:
        response = request.execute()
    except HttpError as e:
        raise ApiError.from_http_error(e) from e
    return response if response is not None else {}

def load_config(path: Path|str) -> dict:
    """
    Read access configuration from a TOML or JSON file and apply it to the gcp singleton.
    For TOML the settings live in a [gcp] table, for JSON its the top level object.
    """
    p = Path(path)
    if p.suffix == ".toml":
        with open(p, 'rb') as f:
            config = tomllib.load(f).get('gcp', {})
    else:
        with open(p, 'r', encoding='utf-8') as f:
            config = json.load(f)
    gcp.config = config
    return config
