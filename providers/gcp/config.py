"""
GCP-specific configuration loading (Cloud Functions runtime environment).

The Cloud Functions runtime exports the configured entry point as
FUNCTION_TARGET and the service name as K_SERVICE. Secrets can be mounted
as environment variables directly:
    gcloud functions deploy bridge-example \\
        --set-secrets 'EXPOSE_ERRORS=expose-errors:latest'
"""
import os
from functools import lru_cache

from bridge.config import Settings

ENTRY_POINT = "handler"


@lru_cache()
def get_settings() -> Settings:
    """Load settings from environment variables, noting the runtime target."""
    settings = Settings()

    if os.environ.get('K_SERVICE'):
        print(f"DEBUG: Running in Cloud Functions service {os.environ['K_SERVICE']}", flush=True)

    if settings.function_target != ENTRY_POINT:
        print(
            f"DEBUG: WARNING - FUNCTION_TARGET is {settings.function_target!r}, "
            f"deploy with --entry-point={ENTRY_POINT}",
            flush=True,
        )

    return settings
