"""
AWS-specific configuration loading (Lambda runtime environment).
"""
import os
from functools import lru_cache

from bridge.config import Settings

ENTRY_POINT = "providers.aws.handler.handler"


@lru_cache()
def get_settings() -> Settings:
    """Load settings from environment variables, noting the Lambda handler."""
    settings = Settings()
    # Lambda exports the configured handler as _HANDLER
    if os.environ.get('AWS_LAMBDA_FUNCTION_NAME'):
        lambda_handler = os.environ.get('_HANDLER', '')
        print(f"DEBUG: Running in Lambda function {os.environ['AWS_LAMBDA_FUNCTION_NAME']} ({lambda_handler})", flush=True)
        if lambda_handler and lambda_handler != ENTRY_POINT:
            print(f"DEBUG: WARNING - _HANDLER is {lambda_handler!r}, expected {ENTRY_POINT!r}", flush=True)
    return settings
