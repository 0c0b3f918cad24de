"""Tests for pixelforge.spritesheet: preset catalog and sheet generation."""

from __future__ import annotations

import logging
import random

import pytest
from mock_transport import FakeProviderAPI, png_data_url

from pixelforge.constants import ANIMATION_SHEET_MODEL
from pixelforge.models import SheetLayout, SpritesheetRequest
from pixelforge.providers.prediction import PredictionClient
from pixelforge.spritesheet import (
    MAX_SEED,
    SpritesheetGenerator,
    classify_layout,
    default_prompt,
    get_animation_preset,
    get_animation_presets,
)


class TestPresets:
    def test_catalog(self) -> None:
        presets = get_animation_presets()
        assert [p.id for p in presets] == [
            "four_angle_walking",
            "walking_and_idle",
            "small_sprites",
            "vfx",
        ]
        assert [(p.width, p.height, p.frame_count) for p in presets] == [
            (48, 48, 16),
            (48, 48, 24),
            (32, 32, 16),
            (64, 64, 8),
        ]
        assert [p.id for p in presets if p.recommended] == ["four_angle_walking", "walking_and_idle"]

    def test_default_prompt(self) -> None:
        preset = get_animation_preset("vfx")
        assert preset is not None
        assert default_prompt(preset) == "pixel art character sprite, visual effects"

    def test_catalog_is_a_copy(self) -> None:
        presets = get_animation_presets()
        presets.clear()
        assert len(get_animation_presets()) == 4

    def test_lookup(self) -> None:
        preset = get_animation_preset("vfx")
        assert preset is not None
        assert preset.name == "Visual Effects"
        assert get_animation_preset("moonwalk") is None

    @pytest.mark.parametrize(
        "frames,layout",
        [(1, SheetLayout.HORIZONTAL), (8, SheetLayout.HORIZONTAL), (9, SheetLayout.GRID), (16, SheetLayout.GRID)],
    )
    def test_layout(self, frames: int, layout: SheetLayout) -> None:
        assert classify_layout(frames) is layout


class TestBuildInput:
    def test_preset_defaults(self, prediction_client: PredictionClient) -> None:
        generator = SpritesheetGenerator(prediction_client, rng=random.Random(7))
        request = SpritesheetRequest(character_image_url="https://cdn.test/c.png", preset_id="small_sprites")
        payload = generator.build_input(request, get_animation_preset("small_sprites"))

        assert payload["prompt"] == "pixel art character sprite, small sprite actions"
        assert payload["style"] == "small_sprites"
        assert (payload["width"], payload["height"]) == (32, 32)
        assert payload["input_image"] == "https://cdn.test/c.png"
        assert payload["return_spritesheet"] is True
        assert 0 <= payload["seed"] <= MAX_SEED

    def test_overrides(self, prediction_client: PredictionClient) -> None:
        generator = SpritesheetGenerator(prediction_client)
        request = SpritesheetRequest(
            character_image_url="https://cdn.test/c.png",
            preset_id="vfx",
            custom_prompt="a fireball burst",
            custom_width=96,
            custom_height=80,
            seed=1234,
        )
        payload = generator.build_input(request, get_animation_preset("vfx"))
        assert payload["prompt"] == "a fireball burst"
        assert (payload["width"], payload["height"]) == (96, 80)
        assert payload["seed"] == 1234

    def test_random_seed_in_range(self, prediction_client: PredictionClient) -> None:
        generator = SpritesheetGenerator(prediction_client, rng=random.Random(0))
        request = SpritesheetRequest(character_image_url="u", preset_id="vfx")
        preset = get_animation_preset("vfx")
        seeds = {generator.build_input(request, preset)["seed"] for _ in range(50)}
        assert all(0 <= s <= MAX_SEED for s in seeds)
        assert len(seeds) > 1


class TestGenerate:
    @pytest.mark.asyncio
    async def test_success(
        self, fake_api: FakeProviderAPI, prediction_client: PredictionClient
    ) -> None:
        fake_api.add_prediction(
            ANIMATION_SHEET_MODEL,
            ["starting", "succeeded"],
            output=["https://cdn.test/sheet.png", "https://cdn.test/extra.png"],
        )
        generator = SpritesheetGenerator(prediction_client)
        request = SpritesheetRequest(character_image_url=png_data_url(), preset_id="four_angle_walking")

        result = await generator.generate(request, "tok")

        assert result.success
        assert result.spritesheet_url == "https://cdn.test/sheet.png"
        assert result.frame_count == 16
        assert (result.frame_width, result.frame_height) == (48, 48)
        assert result.layout is SheetLayout.GRID
        assert fake_api.requests[0].headers["Authorization"] == "Token tok"

    @pytest.mark.asyncio
    async def test_string_output(
        self, fake_api: FakeProviderAPI, prediction_client: PredictionClient
    ) -> None:
        fake_api.add_prediction(ANIMATION_SHEET_MODEL, output="https://cdn.test/sheet.png")
        request = SpritesheetRequest(character_image_url="u", preset_id="vfx", custom_width=24)
        result = await SpritesheetGenerator(prediction_client).generate(request, "tok")
        assert result.spritesheet_url == "https://cdn.test/sheet.png"
        assert result.layout is SheetLayout.HORIZONTAL
        assert (result.frame_width, result.frame_height) == (24, 64)

    @pytest.mark.asyncio
    async def test_unknown_preset_makes_no_request(
        self, fake_api: FakeProviderAPI, prediction_client: PredictionClient
    ) -> None:
        request = SpritesheetRequest(character_image_url="u", preset_id="moonwalk")
        result = await SpritesheetGenerator(prediction_client).generate(request, "tok")
        assert not result.success
        assert result.error == "Invalid animation preset: moonwalk"
        assert fake_api.requests == []

    @pytest.mark.asyncio
    async def test_provider_failure_reported(
        self, fake_api: FakeProviderAPI, prediction_client: PredictionClient
    ) -> None:
        fake_api.add_prediction(ANIMATION_SHEET_MODEL, ["processing", "failed"], error="timeout")
        request = SpritesheetRequest(character_image_url="u", preset_id="vfx")
        result = await SpritesheetGenerator(prediction_client).generate(request, "tok")
        assert not result.success
        assert "timeout" in result.error

    @pytest.mark.asyncio
    async def test_input_image_not_logged(
        self,
        fake_api: FakeProviderAPI,
        prediction_client: PredictionClient,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        fake_api.add_prediction(ANIMATION_SHEET_MODEL, output="https://cdn.test/sheet.png")
        image = png_data_url()
        request = SpritesheetRequest(character_image_url=image, preset_id="vfx")
        with caplog.at_level(logging.INFO, logger="pixelforge.spritesheet"):
            await SpritesheetGenerator(prediction_client).generate(request, "tok")
        assert "Generating spritesheet" in caplog.text
        assert image not in caplog.text
