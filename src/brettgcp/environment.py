"""
Work out what kind of Google compute environment we are running in.
App Engine and Kubernetes announce themselves through environment
variables, Compute Engine (and GKE nodes) through the metadata server.
"""
import logging
import os
from functools import lru_cache

import requests

logger = logging.getLogger(__name__)

METADATA_HOST = os.environ.get("GCE_METADATA_HOST", "metadata.google.internal")
METADATA_URL = f"http://{METADATA_HOST}/computeMetadata/v1/"
METADATA_HEADERS = {"Metadata-Flavor": "Google"}
METADATA_TIMEOUT = 0.5

def metadata(path: str) -> str|None:
    """
    Get a value from the metadata server, e.g. 'project/project-id'.
    None if the server isnt there or doesnt have it.
    """
    try:
        response = requests.get(METADATA_URL + path, headers=METADATA_HEADERS,
                                timeout=METADATA_TIMEOUT)
    except requests.RequestException as e:
        logger.debug("metadata server unavailable for %s: %s", path, e)
        return None
    if response.status_code != 200:
        return None
    return response.text

@lru_cache(maxsize=1)
def gce() -> bool:
    """Is the metadata server reachable"""
    try:
        response = requests.get(METADATA_URL, headers=METADATA_HEADERS,
                                timeout=METADATA_TIMEOUT)
    except requests.RequestException:
        return False
    return response.headers.get("Metadata-Flavor", "") == "Google"

def gae() -> bool:
    return bool(gae_module_id())

def gke() -> bool:
    return bool(os.environ.get("KUBERNETES_SERVICE_HOST", ""))

def gae_module_id() -> str|None:
    return os.environ.get("GAE_SERVICE") or os.environ.get("GAE_MODULE_NAME")

def gae_module_version() -> str|None:
    return os.environ.get("GAE_VERSION") or os.environ.get("GAE_MODULE_VERSION")

def gke_cluster_name() -> str|None:
    return metadata("instance/attributes/cluster-name") if gce() else None

def gke_namespace_id() -> str|None:
    return os.environ.get("GKE_NAMESPACE_ID")

def project_id() -> str|None:
    return metadata("project/project-id") if gce() else None

def instance_id() -> str|None:
    return metadata("instance/id") if gce() else None

def instance_zone() -> str|None:
    """
    The metadata server returns the zone as projects/<num>/zones/<zone>
    so just keep the last bit.
    """
    zone = metadata("instance/zone") if gce() else None
    return zone.rsplit("/", 1)[-1] if zone else None
