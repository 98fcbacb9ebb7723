from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Dict, Optional

class Settings(BaseSettings):

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Core
    service_name: str = "cloud-logging"
    environment: str = "local"
    project_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("project_id", "google_cloud_project", "gcloud_project"),
    )
    log_level: str = "INFO"

    # Log entries
    log_name: str = "python_app_log"
    log_labels: Dict[str, str] = {}

    # Monitored resource override; both must be set or the platform default wins
    monitored_resource_type: Optional[str] = None
    monitored_resource_labels: Optional[Dict[str, str]] = None

    # Metadata server (GCE / GKE detection)
    metadata_host: str = "169.254.169.254"
    metadata_timeout_s: float = 0.5

    # Tracing for the example app
    enable_tracing: bool = False
    use_cloud_trace: bool = False

settings = Settings()
