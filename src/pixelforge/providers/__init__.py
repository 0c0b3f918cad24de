"""Image-generation providers and the polling prediction gateway.

This package contains the :class:`ImageProvider` interface, the polling
prediction client shared by every Replicate-style call, and the concrete
backends the orchestrator selects between.
"""

from __future__ import annotations

from typing import Any

from pixelforge.providers._base import GenerationStage, ImageProvider, StageTracker
from pixelforge.providers.prediction import PredictionClient, resolve_prediction_target


# Concrete providers import the refinement stage, which itself depends on
# the prediction client; load them on first access.
def __getattr__(name: str) -> Any:
    if name == "ReplicateProvider":
        from pixelforge.providers.replicate import ReplicateProvider

        return ReplicateProvider
    if name == "GeminiProvider":
        from pixelforge.providers.gemini import GeminiProvider

        return GeminiProvider
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "GeminiProvider",
    "GenerationStage",
    "ImageProvider",
    "PredictionClient",
    "ReplicateProvider",
    "StageTracker",
    "resolve_prediction_target",
]
