"""Tests for pixelforge.prompts: deterministic prompt builders."""

from __future__ import annotations

import pytest

from pixelforge.constants import ASPECT_RATIO_DIMENSIONS, PARTIAL_BODY_MARKERS
from pixelforge.models import AnimationFramesRequest, GenerationKind, GenerationRequest
from pixelforge.prompts import (
    FLAT_VECTOR_PREAMBLE,
    FULL_BODY_CLAUSE,
    PIXEL_ART_PREAMBLE,
    QUALITY_SUFFIX,
    build_animation_frame_prompt,
    build_prompt,
    build_refinement_system_prompt,
    build_refinement_user_prompt,
    get_image_dimensions,
    wants_partial_character,
)


def _sprite(prompt: str = "a knight", **kwargs: object) -> GenerationRequest:
    return GenerationRequest(kind=GenerationKind.SPRITE, prompt=prompt, **kwargs)


# ---------------------------------------------------------------------------
# Dimensions
# ---------------------------------------------------------------------------


class TestImageDimensions:
    """Aspect-ratio lookup and its embedding in the built prompt."""

    @pytest.mark.parametrize("ratio,dims", sorted(ASPECT_RATIO_DIMENSIONS.items()))
    def test_known_ratio_embedded(self, ratio: str, dims: tuple[int, int]) -> None:
        prompt = build_prompt(_sprite(aspect_ratio=ratio))
        assert f"The image should be {dims[0]}x{dims[1]} pixels ({ratio} aspect ratio). " in prompt

    def test_unknown_ratio_defaults_to_square(self) -> None:
        prompt = build_prompt(_sprite(aspect_ratio="21:9"))
        assert "1024x1024 pixels (21:9 aspect ratio)" in prompt

    def test_lookup_table(self) -> None:
        assert get_image_dimensions("2:3") == (688, 1024)
        assert get_image_dimensions("16:9") == (1024, 576)
        assert get_image_dimensions(None) == (1024, 1024)
        assert get_image_dimensions("bogus") == (1024, 1024)


# ---------------------------------------------------------------------------
# Full-body clause
# ---------------------------------------------------------------------------


class TestFullBodyClause:
    """The full-body clause is suppressed by partial-body markers."""

    @pytest.mark.parametrize("marker", PARTIAL_BODY_MARKERS)
    def test_marker_suppresses_clause(self, marker: str) -> None:
        prompt = build_prompt(_sprite(f"A wizard, {marker.upper()} shot"))
        assert FULL_BODY_CLAUSE not in prompt
        assert wants_partial_character(marker.title())

    def test_clause_present_without_marker(self) -> None:
        assert FULL_BODY_CLAUSE in build_prompt(_sprite("a wizard with a staff"))

    def test_objects_never_get_clause(self) -> None:
        prompt = build_prompt(_sprite("a treasure chest", sprite_type="object"))
        assert FULL_BODY_CLAUSE not in prompt
        assert "game sprite object/item" in prompt

    def test_scenes_never_get_clause(self) -> None:
        request = GenerationRequest(kind=GenerationKind.SCENE, prompt="a forest")
        assert FULL_BODY_CLAUSE not in build_prompt(request)

    def test_nine_markers(self) -> None:
        assert len(PARTIAL_BODY_MARKERS) == 9


# ---------------------------------------------------------------------------
# Section order and content
# ---------------------------------------------------------------------------


class TestBuildPrompt:
    def test_section_order(self) -> None:
        request = _sprite(
            "a knight",
            viewpoint="side",
            colors=["#ff0000", "gold"],
            dimensions="64x64",
        )
        prompt = build_prompt(request)
        positions = [
            prompt.index(PIXEL_ART_PREAMBLE),
            prompt.index("This is a game sprite character"),
            prompt.index("Show from a side profile view. "),
            prompt.index("The image should be 1024x1024 pixels"),
            prompt.index("Use these colors prominently in the design: #ff0000, gold. "),
            prompt.index("designed to look good at 64x64 pixel dimensions"),
            prompt.index("a knight"),
        ]
        assert positions == sorted(positions)
        assert prompt.endswith("a knight" + QUALITY_SUFFIX)

    def test_deterministic(self) -> None:
        request = _sprite(colors=["red"])
        assert build_prompt(request) == build_prompt(request)

    def test_non_pixel_style_uses_flat_preamble(self) -> None:
        prompt = build_prompt(_sprite(style="flat"))
        assert prompt.startswith(FLAT_VECTOR_PREAMBLE)

    def test_unknown_viewpoint_adds_nothing(self) -> None:
        prompt = build_prompt(_sprite(viewpoint="worm_eye"))
        assert "Show from" not in prompt

    def test_empty_palette_omits_clause(self) -> None:
        assert "Use these colors" not in build_prompt(_sprite())

    def test_scene_environment(self) -> None:
        indoor = GenerationRequest(kind=GenerationKind.SCENE, prompt="a tavern", scene_type="indoor")
        other = GenerationRequest(kind=GenerationKind.SCENE, prompt="a field", scene_type="environment")
        assert "This is an indoor game scene" in build_prompt(indoor)
        assert "This is an outdoor game scene" in build_prompt(other)

    def test_scene_ignores_sprite_size_hint(self) -> None:
        request = GenerationRequest(kind=GenerationKind.SCENE, prompt="a field", dimensions="64x64")
        assert "pixel dimensions" not in build_prompt(request)


# ---------------------------------------------------------------------------
# Animation frames
# ---------------------------------------------------------------------------


class TestAnimationFramePrompt:
    def _request(self, **kwargs: object) -> AnimationFramesRequest:
        defaults: dict[str, object] = {
            "character_image": "data:image/png;base64,AAAA",
            "frame_descriptions": ["idle", "walk-1", "walk-2"],
            "animation_type": "walk",
        }
        defaults.update(kwargs)
        return AnimationFramesRequest(**defaults)

    def test_position_and_pose(self) -> None:
        request = self._request()
        for index, pose in enumerate(request.frame_descriptions):
            prompt = build_animation_frame_prompt(request, index, 3)
            assert f"This is frame {index + 1} of 3 for a \"walk\" animation sequence." in prompt
            assert f"POSE FOR THIS FRAME: {pose}. " in prompt

    def test_unknown_view_and_direction_fall_back(self) -> None:
        prompt = build_animation_frame_prompt(
            self._request(view_type="fisheye", direction="sideways"), 0, 3
        )
        assert "Maintain the isometric 45-degree angle view. " in prompt
        assert "Character should be facing right. " in prompt

    def test_diagonal_direction(self) -> None:
        prompt = build_animation_frame_prompt(self._request(direction="up_left"), 0, 3)
        assert "facing diagonally up-left" in prompt


# ---------------------------------------------------------------------------
# Refinement templates
# ---------------------------------------------------------------------------


class TestRefinementTemplates:
    def test_templates_carry_prompt(self) -> None:
        request = _sprite("a knight", viewpoint="isometric")
        system = build_refinement_system_prompt("a knight", request)
        user = build_refinement_user_prompt("a knight", request)
        assert system
        assert "a knight" in user

    def test_system_prompt_context(self) -> None:
        request = _sprite("a knight", viewpoint="isometric", aspect_ratio="2:3")
        system = build_refinement_system_prompt("a knight", request)
        assert "Viewpoint: isometric" in system
        assert "Aspect Ratio: 2:3" in system
        assert "FULL-BODY" in system

    def test_partial_prompt_drops_full_body_requirement(self) -> None:
        request = _sprite("a knight portrait")
        assert "FULL-BODY" not in build_refinement_system_prompt("a knight portrait", request)
        assert "FULL-BODY" not in build_refinement_user_prompt("a knight portrait", request)
