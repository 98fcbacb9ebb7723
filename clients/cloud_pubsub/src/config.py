from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional

class Settings(BaseSettings):

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Core
    service_name: str = "cloud-pubsub"
    environment: str = "local"
    log_level: str = "INFO"
    project_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("project_id", "google_cloud_project", "gcloud_project"),
    )

    # Subscription
    subscription_name: Optional[str] = None
    pull_max_messages: int = 100
    pull_timeout_s: Optional[float] = None

    # Acknowledge / modify deadline retry tuning
    ack_max_retries: int = 3
    ack_retry_budget_s: float = 30.0
    ack_backoff_base_ms: int = 100
    ack_backoff_cap_ms: int = 5000

settings = Settings()
