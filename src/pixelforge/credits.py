"""Credit pricing for generation calls."""

from __future__ import annotations

from pixelforge.models import GenerationKind
from pixelforge.utils import clamp_quantity

SPRITE_COST = 5
SCENE_COST = 8
ANIMATION_FRAME_COST = 3
DIRECT_ANIMATION_COST = 6
SPRITESHEET_COST = 10


def credits_required(kind: GenerationKind, units: int = 1) -> int:
    """Return the credit cost of a generation.

    Args:
        kind: The generation kind.
        units: Frame count for ``animation_frames``; requested quantity
            for ``direct_animation`` (clamped to 1..4).  Ignored for
            the flat-priced kinds.

    Raises:
        ValueError: If *kind* has no price.
    """
    if kind is GenerationKind.SPRITE:
        return SPRITE_COST
    if kind is GenerationKind.SCENE:
        return SCENE_COST
    if kind is GenerationKind.ANIMATION_FRAMES:
        return ANIMATION_FRAME_COST * max(units, 1)
    if kind is GenerationKind.DIRECT_ANIMATION:
        return DIRECT_ANIMATION_COST * clamp_quantity(units)
    if kind is GenerationKind.SPRITESHEET:
        return SPRITESHEET_COST
    raise ValueError(f"No credit price for {kind!r}")
