"""Shared lookup tables and provider identifiers.

The aspect-ratio table, partial-body markers, and viewpoint clauses are
used by both the deterministic prompt builder and the orchestrator's
dimension resolution, so they live here to keep the two in agreement.
"""

# ---------------------------------------------------------------------------
# Image geometry
# ---------------------------------------------------------------------------

ASPECT_RATIO_DIMENSIONS: dict[str, tuple[int, int]] = {
    "2:3": (688, 1024),
    "1:1": (1024, 1024),
    "9:16": (576, 1024),
    "4:3": (1024, 768),
    "3:2": (1024, 688),
    "16:9": (1024, 576),
}

DEFAULT_DIMENSIONS: tuple[int, int] = (1024, 1024)

# Larger side of a text-to-image request derived from an aspect ratio.
MAX_GENERATED_SIDE: int = 384

# Used when neither explicit dimensions nor an aspect ratio are given.
FALLBACK_SPRITE_SIDE: int = 128

MAX_QUANTITY: int = 4

# ---------------------------------------------------------------------------
# Prompt vocabulary
# ---------------------------------------------------------------------------

PARTIAL_BODY_MARKERS: tuple[str, ...] = (
    "half body",
    "half-body",
    "upper body",
    "above chest",
    "portrait",
    "bust",
    "headshot",
    "face only",
    "torso",
)

VIEWPOINT_CLAUSES: dict[str, str] = {
    "front": "Show from a front-facing view. ",
    "back": "Show from behind/back view. ",
    "side": "Show from a side profile view. ",
    "top_down": "Show from a top-down/bird's eye view. ",
    "isometric": "Show in isometric perspective (45-degree angle). ",
}

FRAME_VIEW_CLAUSES: dict[str, str] = {
    "side": "Maintain the side-scrolling 2D view. ",
    "isometric": "Maintain the isometric 45-degree angle view. ",
    "top_down": "Maintain the top-down bird's eye view. ",
}

FRAME_DIRECTION_CLAUSES: dict[str, str] = {
    "right": "Character should be facing right. ",
    "left": "Character should be facing left. ",
    "up": "Character should be facing up/away. ",
    "down": "Character should be facing down/toward viewer. ",
    "up_right": "Character should be facing diagonally up-right. ",
    "up_left": "Character should be facing diagonally up-left. ",
    "down_right": "Character should be facing diagonally down-right. ",
    "down_left": "Character should be facing diagonally down-left. ",
}

# ---------------------------------------------------------------------------
# Provider models
# ---------------------------------------------------------------------------

TEXT_TO_IMAGE_MODEL = "retro-diffusion/rd-plus"
ANIMATION_SHEET_MODEL = "retro-diffusion/rd-animation"
IMAGE_EDIT_MODEL = "qwen/qwen-image-edit-plus"
REFINEMENT_MODEL = "google/gemini-2.5-flash"
GEMINI_IMAGE_MODEL = "gemini-2.0-flash-exp-image-generation"

# Frame-extension requests are rendered at a fixed square size.
ANIMATION_FRAME_SIDE: int = 512

GEMINI_KEY_PLACEHOLDER = "your_gemini_api_key_here"
