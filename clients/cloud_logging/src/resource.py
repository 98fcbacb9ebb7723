from functools import lru_cache
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from .environment import Environment
from .logging import jlog

class MonitoredResource(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str = Field(..., description="Monitored resource type, e.g. gae_app, container, gce_instance, global")
    labels: Dict[str, Any] = Field(default_factory=dict, description="Type-specific labels")

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "labels": dict(self.labels)}

def build_monitored_resource(type: Optional[str] = None, labels: Optional[Dict[str, Any]] = None) -> MonitoredResource:
    """
    Resource for log entries: the given type and labels when both are set,
    otherwise the detected platform default. A lone type or lone labels
    are ignored, never merged into the default.
    """
    if type is not None and labels is not None:
        return MonitoredResource(type=type, labels=labels)
    return default_monitored_resource()

@lru_cache(maxsize=None)
def default_monitored_resource() -> MonitoredResource:
    """Platform resource for this process, detected once and cached."""
    resource = detect_monitored_resource(Environment())
    jlog(event="monitored_resource_detected", resource=resource.to_dict())
    return resource

def detect_monitored_resource(env: Environment) -> MonitoredResource:
    # Order matters: GKE nodes and App Engine flex VMs also answer as GCE
    if env.gae():
        return MonitoredResource(type="gae_app", labels=_compact({
            "module_id": env.gae_module_id(),
            "version_id": env.gae_module_version(),
        }))
    if env.gke():
        return MonitoredResource(type="container", labels=_compact({
            "cluster_name": env.gke_cluster_name(),
            "namespace_id": env.gke_namespace_id(),
            "instance_id": env.instance_id(),
            "pod_id": env.gke_pod_id(),
            "container_name": env.gke_container_name(),
            "zone": env.instance_zone(),
        }))
    if env.gce():
        return MonitoredResource(type="gce_instance", labels=_compact({
            "instance_id": env.instance_id(),
            "zone": env.instance_zone(),
        }))
    return MonitoredResource(type="global", labels={})

def _compact(labels: Dict[str, Optional[str]]) -> Dict[str, str]:
    return {k: v for k, v in labels.items() if v is not None}
