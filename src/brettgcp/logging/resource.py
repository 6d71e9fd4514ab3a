from dataclasses import dataclass, field

from ..resources import GoogleCloudResourceBase
from .. import environment

@dataclass
class Resource(GoogleCloudResourceBase):
    """
    https://cloud.google.com/logging/docs/reference/v2/rest/v2/MonitoredResource
    Identifies where a log entry came from, the type (gae_app, container,
    gce_instance, global, ...) and the labels that type requires.
    """
    type: str = field(default="global")
    labels: dict[str,str] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return bool(self.type)

    def __str__(self) -> str:
        return f"{self.type}{self.labels}"

    def to_base(self) -> dict:
        # the API rejects null label values
        return {"type": self.type,
                "labels": {k: str(v) for k,v in self.labels.items() if v is not None}}

def build_monitored_resource(type: str|None = None,
                             labels: dict[str,str]|None = None) -> Resource:
    """
    A resource with the given type and labels if both are provided,
    otherwise the default for the environment we are running in.
    """
    if type and labels is not None:
        return Resource(type, dict(labels))
    return default_monitored_resource()

def default_monitored_resource() -> Resource:
    """
    App Engine, then Kubernetes, then Compute Engine, then 'global'.
    """
    if environment.gae():
        return Resource("gae_app", {"module_id": environment.gae_module_id(),
                                    "version_id": environment.gae_module_version()})
    if environment.gke():
        return Resource("container", {"cluster_name": environment.gke_cluster_name(),
                                      "namespace_id": environment.gke_namespace_id() or "default"})
    if environment.gce():
        return Resource("gce_instance", {"instance_id": environment.instance_id(),
                                         "zone": environment.instance_zone()})
    return Resource("global", {})
