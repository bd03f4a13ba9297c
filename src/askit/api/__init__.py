"""HTTP API exposing ingestion and question answering."""

from .app import create_app

__all__ = ["create_app"]
