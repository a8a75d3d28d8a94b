"""Acquisition service entry points."""
from __future__ import annotations

from .service import AcquisitionService, AnalyzerEvent, ServiceStats

__all__ = ["AcquisitionService", "AnalyzerEvent", "ServiceStats"]
