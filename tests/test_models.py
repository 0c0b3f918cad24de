"""Tests for pixelforge.models: request validation and result invariants."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from pixelforge.models import (
    AnimationFramesRequest,
    DirectAnimationRequest,
    EncodedImage,
    GenerationKind,
    GenerationRequest,
    GenerationResult,
    NamingContext,
    PredictionJob,
    ProviderCredentials,
    ProviderName,
    SpritesheetRequest,
)


class TestGenerationRequest:
    def test_defaults(self) -> None:
        request = GenerationRequest(prompt="a knight")
        assert request.kind is GenerationKind.SPRITE
        assert request.style == "pixel_art"
        assert request.aspect_ratio == "1:1"
        assert request.quantity == 2
        assert request.colors == []
        assert request.remove_bg is True

    @pytest.mark.parametrize("prompt", ["", "   "])
    def test_blank_prompt_rejected(self, prompt: str) -> None:
        with pytest.raises(ValidationError):
            GenerationRequest(prompt=prompt)

    def test_non_image_kind_rejected(self) -> None:
        with pytest.raises(ValidationError, match="kind must be"):
            GenerationRequest(prompt="x", kind=GenerationKind.SPRITESHEET)

    def test_out_of_range_quantity_accepted(self) -> None:
        assert GenerationRequest(prompt="x", quantity=10).quantity == 10


class TestAnimationRequests:
    def test_frames_require_descriptions(self) -> None:
        with pytest.raises(ValidationError):
            AnimationFramesRequest(character_image="data:image/png;base64,AA", frame_descriptions=[])

    def test_frames_require_character(self) -> None:
        with pytest.raises(ValidationError):
            AnimationFramesRequest(character_image=" ", frame_descriptions=["idle"])

    def test_total_frames(self) -> None:
        request = AnimationFramesRequest(character_image="u", frame_descriptions=["a", "b"])
        assert request.total_frames == 2

    def test_direct_animation_defaults(self) -> None:
        request = DirectAnimationRequest(prompt="fox")
        assert (request.width, request.height) == (48, 48)
        assert request.seed is None
        assert request.return_spritesheet is True

    def test_direct_animation_positive_size(self) -> None:
        with pytest.raises(ValidationError):
            DirectAnimationRequest(prompt="fox", width=0)

    def test_spritesheet_positive_overrides(self) -> None:
        with pytest.raises(ValidationError):
            SpritesheetRequest(character_image_url="u", preset_id="vfx", custom_height=-4)


class TestProviderCredentials:
    def test_own_key(self) -> None:
        assert not ProviderCredentials().own_key
        assert not ProviderCredentials(api_key="").own_key
        creds = ProviderCredentials(api_key="k", provider="gemini")
        assert creds.own_key
        assert creds.provider is ProviderName.GEMINI


class TestPredictionJob:
    def test_terminal_states(self) -> None:
        assert not PredictionJob(id="1", status="processing").is_terminal
        for status in ("succeeded", "failed", "canceled"):
            assert PredictionJob(id="1", status=status).is_terminal
        assert PredictionJob(id="1", status="succeeded").succeeded

    def test_structured_error_stringified(self) -> None:
        job = PredictionJob(id="1", status="failed", error={"detail": "oom"})
        assert job.error == "{'detail': 'oom'}"

    def test_extra_fields_ignored(self) -> None:
        job = PredictionJob.model_validate(
            {"id": "1", "status": "starting", "logs": "", "metrics": {}}
        )
        assert job.urls == {}


class TestEncodedImage:
    def test_data_url_round_trip(self) -> None:
        image = EncodedImage(data=b"ABC", mime_type="image/webp")
        assert image.to_data_url() == "data:image/webp;base64,QUJD"
        assert EncodedImage.from_data_url(image.to_data_url()) == image

    def test_extension(self) -> None:
        assert EncodedImage(data=b"x", mime_type="image/png").extension == "png"
        assert EncodedImage(data=b"x", mime_type="image/svg+xml").extension == "svg"

    def test_not_a_data_url(self) -> None:
        with pytest.raises(ValueError):
            EncodedImage.from_data_url("https://cdn.test/a.png")


class TestGenerationResult:
    def test_success_requires_output(self) -> None:
        with pytest.raises(ValidationError):
            GenerationResult(success=True)

    def test_failure_always_has_error(self) -> None:
        assert GenerationResult(success=False).error == "Generation failed"
        assert GenerationResult.failure("", provider="gemini").error == "Generation failed"
        assert GenerationResult.failure("boom").error == "boom"


class TestNamingContext:
    def test_owner_required(self) -> None:
        with pytest.raises(ValidationError):
            NamingContext(owner_id="")
