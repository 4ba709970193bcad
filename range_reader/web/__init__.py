"""
Web package: the FastAPI application and its HTML rendering.
"""

from range_reader.web.app import create_app

__all__ = ["create_app"]
