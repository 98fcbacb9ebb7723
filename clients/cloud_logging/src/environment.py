import os
import socket
from typing import Dict, Optional

import httpx

from .config import settings
from .logging import jlog

METADATA_FLAVOR = "Google"
METADATA_PATH = "/computeMetadata/v1/"

class Environment:
    """
    Facts about the hosting platform.
    App Engine is detected from its environment variables; GCE and GKE by
    asking the metadata server. Every metadata answer is cached on the
    instance, the platform does not change while the process runs.
    """

    def __init__(self, metadata_host: Optional[str] = None, timeout_s: Optional[float] = None,
                 environ: Optional[Dict[str, str]] = None):
        self.metadata_host = metadata_host or settings.metadata_host
        self.timeout_s = timeout_s if timeout_s is not None else settings.metadata_timeout_s
        self.environ = os.environ if environ is None else environ
        self._gce: Optional[bool] = None
        self._metadata: Dict[str, Optional[str]] = {}

    # -----------------------
    # Platform checks
    # -----------------------

    def gae(self) -> bool:
        return bool(self.environ.get("GAE_INSTANCE") or self.environ.get("GAE_VM"))

    def gke(self) -> bool:
        return self.gce() and self.gke_cluster_name() is not None

    def gce(self) -> bool:
        if self._gce is None:
            self._gce = self._probe_metadata_server()
        return self._gce

    # -----------------------
    # Labels
    # -----------------------

    def project_id(self) -> Optional[str]:
        return (
            self.environ.get("GOOGLE_CLOUD_PROJECT")
            or self.environ.get("GCLOUD_PROJECT")
            or self.get_metadata("project/project-id")
        )

    def gae_module_id(self) -> Optional[str]:
        return self.environ.get("GAE_SERVICE") or self.environ.get("GAE_MODULE_NAME")

    def gae_module_version(self) -> Optional[str]:
        return self.environ.get("GAE_VERSION") or self.environ.get("GAE_MODULE_VERSION")

    def gke_cluster_name(self) -> Optional[str]:
        return self.get_metadata("instance/attributes/cluster-name")

    def gke_namespace_id(self) -> Optional[str]:
        return self.environ.get("GKE_NAMESPACE_ID")

    def gke_container_name(self) -> Optional[str]:
        return self.environ.get("GKE_CONTAINER_NAME")

    def gke_pod_id(self) -> Optional[str]:
        return self.environ.get("HOSTNAME") or socket.gethostname()

    def instance_id(self) -> Optional[str]:
        return self.get_metadata("instance/id")

    def instance_zone(self) -> Optional[str]:
        # metadata returns projects/<number>/zones/<zone>
        zone = self.get_metadata("instance/zone")
        return zone.rsplit("/", 1)[-1] if zone else None

    # -----------------------
    # Metadata server
    # -----------------------

    def get_metadata(self, path: str) -> Optional[str]:
        if path in self._metadata:
            return self._metadata[path]
        value = None
        if self.gce():
            value = self._fetch(METADATA_PATH + path)
        self._metadata[path] = value
        return value

    def _probe_metadata_server(self) -> bool:
        try:
            resp = httpx.get(
                f"http://{self.metadata_host}/",
                headers={"Metadata-Flavor": METADATA_FLAVOR},
                timeout=self.timeout_s,
            )
        except httpx.HTTPError as e:
            jlog(event="metadata_probe_failed", severity="DEBUG", host=self.metadata_host, error=str(e))
            return False
        return resp.headers.get("Metadata-Flavor") == METADATA_FLAVOR

    def _fetch(self, path: str) -> Optional[str]:
        try:
            resp = httpx.get(
                f"http://{self.metadata_host}{path}",
                headers={"Metadata-Flavor": METADATA_FLAVOR},
                timeout=self.timeout_s,
            )
        except httpx.HTTPError as e:
            jlog(event="metadata_fetch_failed", severity="DEBUG", path=path, error=str(e))
            return None
        if resp.status_code != 200:
            return None
        return resp.text.strip() or None
