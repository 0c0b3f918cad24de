"""Prompt templates for the prompt-refinement text model.

All prompts are Python string constants or builder functions; no
template engines are used.
"""

from __future__ import annotations

from pixelforge.models import GenerationKind, GenerationRequest
from pixelforge.prompts.builder import wants_partial_character

PIXEL_ART_DIRECTION = (
    "Pixel Art style with clear pixel boundaries, limited color palette, "
    "retro game aesthetic, sharp pixelated edges"
)

FLAT_DIRECTION = "2D flat vector style with clean lines, solid colors, modern appearance"

FULL_BODY_REQUIREMENT: str = """
CRITICAL CHARACTER REQUIREMENT:
- ALWAYS generate FULL-BODY characters showing the ENTIRE figure from head to feet
- Characters must be fully standing/visible, NOT cropped at chest, waist, or knees
- Include the character's full legs and feet in the frame
- The character should be centered and complete within the image bounds
- Do NOT generate half-body, bust, portrait, or cropped character images"""

REFINEMENT_SYSTEM_PROMPT: str = """\
You are an expert prompt engineer for game asset generation (sprites and scenes).
Your task is to ENHANCE the user's request into a detailed, technical prompt \
optimized for image generation.

IMPORTANT RULES:
1. PRESERVE THE ORIGINAL STYLE - Do not change the core artistic style the user requested
2. Keep the same art direction ({style_direction})
3. Only add technical details that enhance quality without changing the fundamental look
4. Do not add realistic elements to pixel art or stylized requests
5. Maintain the game-ready aesthetic appropriate for 2D game assets
{full_body_requirement}

Context:
- Type: {kind}
- SubType: {sub_type}
- Style: {style} (DO NOT CHANGE THIS)
- Viewpoint: {viewpoint}
- Aspect Ratio: {aspect_ratio}

Output ONLY the enhanced prompt string. No explanations, no markdown, no commentary."""

REFINEMENT_USER_PROMPT: str = """\
Enhance this prompt for game asset generation: "{user_prompt}"{full_body_addition}

Requirements:
- Keep the {style_label} style intact
- Add details about lighting, texture, and composition
- Ensure the output is suitable for a {kind} game asset
- Do NOT make it realistic or change the artistic style"""

FULL_BODY_ADDITION = (
    " The character must be FULL-BODY showing head to feet, completely "
    "visible and not cropped."
)


def build_refinement_system_prompt(user_prompt: str, request: GenerationRequest) -> str:
    """Build the system instruction sent to the refinement model."""
    partial = wants_partial_character(user_prompt)
    is_pixel = request.style == "pixel_art"
    if request.kind is GenerationKind.SPRITE:
        sub_type = request.sprite_type or "character"
    else:
        sub_type = request.scene_type or "environment"
    return REFINEMENT_SYSTEM_PROMPT.format(
        style_direction=PIXEL_ART_DIRECTION if is_pixel else FLAT_DIRECTION,
        full_body_requirement="" if partial else FULL_BODY_REQUIREMENT,
        kind=request.kind.value,
        sub_type=sub_type,
        style=request.style,
        viewpoint=request.viewpoint,
        aspect_ratio=request.aspect_ratio,
    )


def build_refinement_user_prompt(user_prompt: str, request: GenerationRequest) -> str:
    """Build the user-turn prompt sent to the refinement model."""
    partial = wants_partial_character(user_prompt)
    return REFINEMENT_USER_PROMPT.format(
        user_prompt=user_prompt,
        full_body_addition="" if partial else FULL_BODY_ADDITION,
        style_label="pixel art" if request.style == "pixel_art" else "2D flat",
        kind=request.kind.value,
    )
