"""Prompt constants and builders for PixelForge model interactions.

This package consolidates the prompt strings used across the engine:
deterministic image prompts, animation frame prompts and the
instructions sent to the prompt-refinement text model.
"""

from __future__ import annotations

from pixelforge.prompts.builder import (
    FLAT_VECTOR_PREAMBLE,
    FULL_BODY_CLAUSE,
    PIXEL_ART_PREAMBLE,
    QUALITY_SUFFIX,
    build_animation_frame_prompt,
    build_prompt,
    get_image_dimensions,
    wants_partial_character,
)
from pixelforge.prompts.refinement import (
    REFINEMENT_SYSTEM_PROMPT,
    build_refinement_system_prompt,
    build_refinement_user_prompt,
)

__all__ = [
    "FLAT_VECTOR_PREAMBLE",
    "FULL_BODY_CLAUSE",
    "PIXEL_ART_PREAMBLE",
    "QUALITY_SUFFIX",
    "REFINEMENT_SYSTEM_PROMPT",
    "build_animation_frame_prompt",
    "build_prompt",
    "build_refinement_system_prompt",
    "build_refinement_user_prompt",
    "get_image_dimensions",
    "wants_partial_character",
]
