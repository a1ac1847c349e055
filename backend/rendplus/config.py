from pydantic_settings import BaseSettings, SettingsConfigDict
import os

class Settings(BaseSettings):
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./rendplus.db")
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    cors_origins: str = "http://localhost:5173"
    log_level: str = "INFO"

    # Service-account JSON for the push gateway, supplied as a deployment secret
    firebase_service_account: str = ""
    vapid_public_key: str = ""
    fcm_scope: str = "https://www.googleapis.com/auth/cloud-platform"
    token_uri: str = "https://oauth2.googleapis.com/token"

    # Public origin of the site; relative click targets resolve against it
    site_origin: str = "http://localhost:5173"
    notification_link: str = "/"
    notification_icon: str = "/favicon.ico"
    notification_tag: str = "rendplus-notification"

    http_timeout_seconds: float = 10.0
    permission_timeout_seconds: float = 120.0

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

settings = Settings()
