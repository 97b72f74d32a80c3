"""
Base configuration model for the function bridge.
Provider-specific config loading is handled by each provider.
"""
from functools import lru_cache

from pydantic_settings import BaseSettings


DEFAULT_TEXT_MIME_TYPES = [
    "text/",
    "application/json",
    "application/javascript",
    "application/xml",
    "application/vnd.api+json",
]


class Settings(BaseSettings):
    # Handler wiring
    app_import: str = "sample.app:app"  # "module:attribute" of the app to wrap
    app_interface: str = "asgi"  # "asgi" or "handler"

    # Entry point name the deployment references (--entry-point / --target)
    function_target: str = "handler"

    # Request policy
    base_path: str = ""  # Prefix stripped from incoming paths
    max_request_body_bytes: int = 0  # 0 disables the limit

    # Error responses
    expose_errors: bool = False  # Include exception text in 500 bodies

    # Logging
    log_invocations: bool = True

    # AWS: content types returned as plain text instead of base64
    text_mime_types: list[str] = DEFAULT_TEXT_MIME_TYPES

    class Config:
        env_file = ".env"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
