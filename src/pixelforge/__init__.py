"""PixelForge: generation orchestration engine for AI game art."""

from typing import Any

from pixelforge.artifacts import ArtifactPipeline, LocalBlobStore, build_storage_key
from pixelforge.config import PlatformConfig, load_platform_config
from pixelforge.credits import credits_required
from pixelforge.errors import (
    AuthenticationError,
    ConfigError,
    GenerationError,
    InsufficientCreditsError,
    InvalidRequestError,
    PixelForgeError,
    ProviderError,
    StorageError,
)
from pixelforge.logging import get_logger, setup_logging
from pixelforge.models import (
    AnimationFramesRequest,
    AnimationPreset,
    DirectAnimationRequest,
    EncodedImage,
    GenerationKind,
    GenerationRequest,
    GenerationResult,
    NamingContext,
    PredictionJob,
    ProviderCredentials,
    ProviderName,
    SheetLayout,
    SpritesheetRequest,
    SpritesheetResult,
)
from pixelforge.orchestrator import (
    GenerationOrchestrator,
    ProviderRoute,
    build_selection_policy,
)
from pixelforge.prompts import (
    build_animation_frame_prompt,
    build_prompt,
    get_image_dimensions,
    wants_partial_character,
)
from pixelforge.providers import ImageProvider, PredictionClient
from pixelforge.refinement import PromptRefiner
from pixelforge.service import GenerationService, ServiceResponse
from pixelforge.spritesheet import (
    ANIMATION_PRESETS,
    SpritesheetGenerator,
    classify_layout,
    get_animation_preset,
    get_animation_presets,
)


def __getattr__(name: str) -> Any:
    """Lazy access to the concrete provider classes."""
    if name in ("ReplicateProvider", "GeminiProvider"):
        from pixelforge import providers

        return getattr(providers, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "ANIMATION_PRESETS",
    "AnimationFramesRequest",
    "AnimationPreset",
    "ArtifactPipeline",
    "AuthenticationError",
    "ConfigError",
    "DirectAnimationRequest",
    "EncodedImage",
    "GeminiProvider",
    "GenerationError",
    "GenerationKind",
    "GenerationOrchestrator",
    "GenerationRequest",
    "GenerationResult",
    "GenerationService",
    "ImageProvider",
    "InsufficientCreditsError",
    "InvalidRequestError",
    "LocalBlobStore",
    "NamingContext",
    "PixelForgeError",
    "PlatformConfig",
    "PredictionClient",
    "PredictionJob",
    "PromptRefiner",
    "ProviderCredentials",
    "ProviderError",
    "ProviderName",
    "ProviderRoute",
    "ReplicateProvider",
    "ServiceResponse",
    "SheetLayout",
    "SpritesheetGenerator",
    "SpritesheetRequest",
    "SpritesheetResult",
    "StorageError",
    "build_animation_frame_prompt",
    "build_prompt",
    "build_selection_policy",
    "build_storage_key",
    "classify_layout",
    "credits_required",
    "get_animation_preset",
    "get_animation_presets",
    "get_image_dimensions",
    "get_logger",
    "load_platform_config",
    "setup_logging",
    "wants_partial_character",
]
