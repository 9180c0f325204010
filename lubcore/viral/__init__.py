"""Viral mention detection, verification and reward hand-off."""

from __future__ import annotations

from lubcore.viral.detector import ViralDetector
from lubcore.viral.types import (
    DetectionType,
    DistributionStatus,
    Engagement,
    ViralDetection,
)

__all__ = [
    "DetectionType",
    "DistributionStatus",
    "Engagement",
    "ViralDetection",
    "ViralDetector",
]
