from pydantic_settings import BaseSettings


class GlobalConfig(BaseSettings):
    # Challenge sources (empty URL = source not configured)
    primary_database_url: str = ""
    bolt_database_url: str = ""
    old_database_url: str = ""
    source_fetch_timeout_sec: float = 10.0
    source_pool_size: int = 5

    # Hosted auth provider (admin user listing)
    auth_url: str = ""
    auth_service_key: str = ""
    auth_page_size: int = 1000

    # Backend REST collaborator
    backend_api_url: str = "http://localhost:3000/api"
    backend_timeout_sec: float = 10.0

    # Lifecycle
    release_credentials_on_contract: bool = True

    # App
    admin_api_token: str = ""
    dashboard_api_token: str = ""
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    debug: bool = False
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:5173"

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
