"""Chunk ingestion entry points."""
from __future__ import annotations

from .pipeline import MessageIngestor

__all__ = ["MessageIngestor"]
