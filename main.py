"""
Cloud Functions source entry point.

The Python runtime loads main.py from the deployed source directory and
calls the function named by --entry-point, which must be `handler`.
"""
from providers.gcp.handler import handler

__all__ = ["handler"]
