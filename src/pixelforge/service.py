"""Generation service: credit check, generate, deduct, persist.

Mirrors what an HTTP handler does around the orchestrator, without the
HTTP layer: the caller's balance is checked before any provider call,
credits are only deducted after a successful generation, and every
output is persisted through the artifact pipeline.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from pixelforge.artifacts import ArtifactPipeline
from pixelforge.collaborators import (
    AssetStore,
    CreditLedger,
    IdentityVerifier,
    ProjectStore,
)
from pixelforge.credits import credits_required
from pixelforge.errors import (
    AuthenticationError,
    InsufficientCreditsError,
    InvalidRequestError,
    StorageError,
)
from pixelforge.logging import get_logger
from pixelforge.models import (
    AnimationFramesRequest,
    DirectAnimationRequest,
    EncodedImage,
    GenerationKind,
    GenerationRequest,
    GenerationResult,
    NamingContext,
    ProviderCredentials,
    SheetLayout,
    SpritesheetRequest,
)
from pixelforge.orchestrator import GenerationOrchestrator
from pixelforge.spritesheet import SpritesheetGenerator, get_animation_preset
from pixelforge.utils import clamp_quantity

logger = get_logger("service")

RequestT = TypeVar("RequestT", bound=BaseModel)

# Defaults applied when the caller leaves a field unset.
SPRITE_DEFAULTS: dict[str, Any] = {"dimensions": "64x64"}
SCENE_DEFAULTS: dict[str, Any] = {"aspect_ratio": "16:9", "viewpoint": "side"}

PROJECT_TITLE_LIMIT = 50


class ServiceResponse(BaseModel):
    """Outcome of a service call.

    Attributes:
        success: Whether generation succeeded.
        urls: Durable URLs (or inline data URLs when an upload failed),
            in output order.
        credits_used: Credits deducted for this call.
        remaining_credits: Balance after the call.
        provider: Provider that served the call.
        error: Failure text when ``success`` is False.
        project_id: Project the outputs were filed under, if any.
        assets: Asset records created for persisted outputs.
        frame_count: Spritesheet frame count.
        frame_width: Spritesheet frame width.
        frame_height: Spritesheet frame height.
        layout: Spritesheet layout.
    """

    success: bool
    urls: list[str] = []
    credits_used: int = 0
    remaining_credits: int | None = None
    provider: str | None = None
    error: str | None = None
    project_id: str | None = None
    assets: list[dict[str, Any]] = []
    frame_count: int | None = None
    frame_width: int | None = None
    frame_height: int | None = None
    layout: SheetLayout | None = None


def coerce_request(model: type[RequestT], data: RequestT | Mapping[str, Any]) -> RequestT:
    """Validate *data* as *model*.

    Raises:
        InvalidRequestError: If validation fails.
    """
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise InvalidRequestError(str(exc)) from exc


def apply_defaults(request: RequestT, defaults: Mapping[str, Any]) -> RequestT:
    """Fill fields the caller did not set explicitly from *defaults*."""
    missing = {
        name: value
        for name, value in defaults.items()
        if name not in request.model_fields_set
    }
    if not missing:
        return request
    return request.model_copy(update=missing)


def project_title(prompt: str, fallback: str) -> str:
    """Shorten *prompt* into a project title."""
    if len(prompt) > PROJECT_TITLE_LIMIT:
        return prompt[: PROJECT_TITLE_LIMIT - 3] + "..."
    return prompt or fallback


class GenerationService:
    """Run generation calls on behalf of an authenticated user.

    Args:
        orchestrator: Provider selection and generation.
        spritesheets: Preset-driven spritesheet generator.
        artifacts: Persistence for generated outputs.
        ledger: Credit balance store.
        assets: Optional asset record store; records are skipped when
            omitted.
        identity: Optional token verifier used by :meth:`authenticate`.
        projects: Optional project store; when given, sprite, scene and
            direct-animation calls without a ``project_id`` file their
            outputs under a new project.
    """

    def __init__(
        self,
        orchestrator: GenerationOrchestrator,
        spritesheets: SpritesheetGenerator,
        artifacts: ArtifactPipeline,
        ledger: CreditLedger,
        assets: AssetStore | None = None,
        identity: IdentityVerifier | None = None,
        projects: ProjectStore | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._spritesheets = spritesheets
        self._artifacts = artifacts
        self._ledger = ledger
        self._assets = assets
        self._identity = identity
        self._projects = projects

    async def authenticate(self, token: str) -> str:
        """Resolve a bearer token to a user id.

        Raises:
            AuthenticationError: If no verifier is configured or the
                token is rejected.
        """
        if self._identity is None:
            raise AuthenticationError("No identity verifier configured")
        if not token:
            raise AuthenticationError("Missing or invalid authorization token")
        user_id = await self._identity.verify(token)
        if not user_id:
            raise AuthenticationError("Invalid token")
        return user_id

    # -- credit handling ----------------------------------------------------

    async def _reserve(
        self, user_id: str, cost: int, credentials: ProviderCredentials
    ) -> int:
        """Check the balance before any provider call; return it."""
        balance = await self._ledger.current_balance(user_id)
        if not credentials.own_key and balance < cost:
            logger.info(
                "User %s has %d credits, %d required", user_id, balance, cost
            )
            raise InsufficientCreditsError(cost, balance)
        return balance

    async def _charge(
        self, user_id: str, cost: int, balance: int, credentials: ProviderCredentials
    ) -> tuple[int, int]:
        """Deduct *cost* unless the caller used their own key."""
        if credentials.own_key:
            return 0, balance
        await self._ledger.deduct(user_id, cost)
        return cost, balance - cost

    # -- persistence --------------------------------------------------------

    async def _persist(
        self,
        images: list[EncodedImage],
        naming: NamingContext,
        records: list[dict[str, Any]],
    ) -> tuple[list[str], list[dict[str, Any]]]:
        urls = await self._artifacts.persist_all(images, naming)
        saved: list[dict[str, Any]] = []
        for index, (url, record) in enumerate(zip(urls, records)):
            if url.startswith("data:"):
                continue
            asset = await self._record_asset(
                {
                    "user_id": naming.owner_id,
                    "project_id": naming.project_id,
                    "asset_type": naming.asset_type,
                    "file_type": "gif" if images[index].mime_type == "image/gif" else "png",
                    "blob_url": url,
                    **record,
                }
            )
            if asset is not None:
                saved.append(asset)
        return urls, saved

    async def _record_asset(self, record: dict[str, Any]) -> dict[str, Any] | None:
        """Create an asset record; a failure is logged and the output kept."""
        if self._assets is None:
            return None
        try:
            return await self._assets.create(record)
        except Exception as exc:
            logger.error("Failed to save asset record %s: %s", record.get("name"), exc)
            return None

    async def _resolve_project(
        self,
        user_id: str,
        project_id: str | None,
        project: dict[str, Any],
    ) -> str | None:
        """Return *project_id*, or the id of a newly created project."""
        if project_id or self._projects is None:
            return project_id
        try:
            created = await self._projects.create(
                {"user_id": user_id, "status": "active", **project}
            )
        except Exception as exc:
            logger.error("Failed to create project for %s: %s", user_id, exc)
            return None
        logger.info("Created project %s", created.get("id"))
        return created.get("id")

    async def _run_images(
        self,
        user_id: str,
        request: GenerationRequest,
        credentials: ProviderCredentials,
        project_id: str | None,
    ) -> ServiceResponse:
        cost = credits_required(request.kind)
        balance = await self._reserve(user_id, cost, credentials)
        result = await self._orchestrator.generate_images(request, credentials)
        if not result.success:
            return self._failed(result)

        used, remaining = await self._charge(user_id, cost, balance, credentials)
        is_sprite = request.kind is GenerationKind.SPRITE
        subtype = request.sprite_type if is_sprite else request.scene_type
        settings: dict[str, Any] = {"style": request.style, "viewpoint": request.viewpoint}
        if is_sprite:
            settings.update(dimensions=request.dimensions, sprite_type=request.sprite_type)
        else:
            settings["scene_type"] = request.scene_type
        project_id = await self._resolve_project(
            user_id,
            project_id,
            {
                "title": project_title(
                    request.prompt, "Untitled Sprite" if is_sprite else "Untitled Scene"
                ),
                "type": request.kind.value,
                "description": request.prompt,
                "settings": settings,
            },
        )
        records = [
            {
                "name": f"{subtype}_{index}",
                "metadata": {
                    "prompt": request.prompt,
                    "style": request.style,
                    "viewpoint": request.viewpoint,
                    "aspect_ratio": request.aspect_ratio,
                    "colors": list(request.colors),
                    "variant_index": index,
                },
            }
            for index in range(1, len(result.images) + 1)
        ]
        naming = NamingContext(
            owner_id=user_id, asset_type=request.kind.value, project_id=project_id
        )
        urls, saved = await self._persist(result.images, naming, records)
        return ServiceResponse(
            success=True,
            urls=urls,
            credits_used=used,
            remaining_credits=remaining,
            provider=result.provider,
            project_id=project_id,
            assets=saved,
        )

    @staticmethod
    def _failed(result: GenerationResult) -> ServiceResponse:
        return ServiceResponse(
            success=False, provider=result.provider, error=result.error
        )

    # -- public operations --------------------------------------------------

    async def generate_sprite(
        self,
        user_id: str,
        request: GenerationRequest | Mapping[str, Any],
        credentials: ProviderCredentials | None = None,
        project_id: str | None = None,
    ) -> ServiceResponse:
        """Generate sprite images (5 credits).

        Sprites default to ``dimensions="64x64"``.

        Raises:
            InvalidRequestError: If the request is malformed.
            InsufficientCreditsError: If the balance does not cover the cost.
        """
        request = coerce_request(GenerationRequest, request)
        if request.kind is not GenerationKind.SPRITE:
            raise InvalidRequestError("generate_sprite requires kind='sprite'")
        request = apply_defaults(request, SPRITE_DEFAULTS)
        return await self._run_images(
            user_id, request, credentials or ProviderCredentials(), project_id
        )

    async def generate_scene(
        self,
        user_id: str,
        request: GenerationRequest | Mapping[str, Any],
        credentials: ProviderCredentials | None = None,
        project_id: str | None = None,
    ) -> ServiceResponse:
        """Generate scene images (8 credits).

        Scenes default to a 16:9 side view unless the caller sets
        ``aspect_ratio`` or ``viewpoint``.
        """
        if isinstance(request, Mapping):
            request = {"kind": GenerationKind.SCENE, **request}
        request = coerce_request(GenerationRequest, request)
        if request.kind is not GenerationKind.SCENE:
            raise InvalidRequestError("generate_scene requires kind='scene'")
        request = apply_defaults(request, SCENE_DEFAULTS)
        return await self._run_images(
            user_id, request, credentials or ProviderCredentials(), project_id
        )

    async def generate_animation(
        self,
        user_id: str,
        request: AnimationFramesRequest | Mapping[str, Any],
        credentials: ProviderCredentials | None = None,
        project_id: str | None = None,
    ) -> ServiceResponse:
        """Extend a character into animation frames (3 credits per frame)."""
        request = coerce_request(AnimationFramesRequest, request)
        credentials = credentials or ProviderCredentials()
        cost = credits_required(GenerationKind.ANIMATION_FRAMES, request.total_frames)
        balance = await self._reserve(user_id, cost, credentials)

        result = await self._orchestrator.generate_animation_frames(request, credentials)
        if not result.success:
            return self._failed(result)

        used, remaining = await self._charge(user_id, cost, balance, credentials)
        records = [
            {
                "name": f"{request.animation_type}_frame_{index}",
                "asset_type": "animation",
                "metadata": {
                    "animation_type": request.animation_type,
                    "view_type": request.view_type,
                    "direction": request.direction,
                    "frame_index": index,
                    "frame_count": request.total_frames,
                    "frame_description": description,
                },
            }
            for index, description in enumerate(request.frame_descriptions, start=1)
        ]
        # Frames are stored alongside sprites but recorded as animation assets.
        naming = NamingContext(
            owner_id=user_id, asset_type="sprite", project_id=project_id
        )
        urls, saved = await self._persist(result.frames, naming, records)
        return ServiceResponse(
            success=True,
            urls=urls,
            credits_used=used,
            remaining_credits=remaining,
            provider=result.provider,
            project_id=project_id,
            assets=saved,
            frame_count=len(urls),
        )

    async def generate_direct_animation(
        self,
        user_id: str,
        request: DirectAnimationRequest | Mapping[str, Any],
        credentials: ProviderCredentials | None = None,
        project_id: str | None = None,
    ) -> ServiceResponse:
        """Generate animation sheets directly (6 credits per sheet)."""
        request = coerce_request(DirectAnimationRequest, request)
        credentials = credentials or ProviderCredentials()
        quantity = clamp_quantity(request.quantity)
        cost = credits_required(GenerationKind.DIRECT_ANIMATION, quantity)
        balance = await self._reserve(user_id, cost, credentials)

        result = await self._orchestrator.generate_direct_animation(request, credentials)
        if not result.success:
            return self._failed(result)

        used, remaining = await self._charge(user_id, cost, balance, credentials)
        records = [
            {
                "name": f"{request.style}_{index}",
                "asset_type": "animation",
                "metadata": {
                    "prompt": request.prompt,
                    "style": request.style,
                    "width": request.width,
                    "height": request.height,
                    "is_spritesheet": request.return_spritesheet,
                    "variant_index": index,
                },
            }
            for index in range(1, len(result.images) + 1)
        ]
        project_id = await self._resolve_project(
            user_id,
            project_id,
            {
                "title": project_title(request.prompt, "Untitled Animation"),
                "type": "sprite",
                "description": request.prompt,
                "settings": {
                    "style": request.style,
                    "dimensions": f"{request.width}x{request.height}",
                    "animation_type": request.style,
                },
            },
        )
        naming = NamingContext(
            owner_id=user_id, asset_type="sprite", project_id=project_id
        )
        urls, saved = await self._persist(result.images, naming, records)
        return ServiceResponse(
            success=True,
            urls=urls,
            credits_used=used,
            remaining_credits=remaining,
            provider=result.provider,
            project_id=project_id,
            assets=saved,
        )

    async def generate_spritesheet(
        self,
        user_id: str,
        request: SpritesheetRequest | Mapping[str, Any],
        credentials: ProviderCredentials | None = None,
        project_id: str | None = None,
    ) -> ServiceResponse:
        """Generate a preset-driven spritesheet (10 credits).

        Raises:
            InvalidRequestError: If the request is malformed or names an
                unknown preset.
            InsufficientCreditsError: If the balance does not cover the cost.
        """
        request = coerce_request(SpritesheetRequest, request)
        preset = get_animation_preset(request.preset_id)
        if preset is None:
            raise InvalidRequestError(f"Invalid animation preset: {request.preset_id}")

        credentials = credentials or ProviderCredentials()
        cost = credits_required(GenerationKind.SPRITESHEET)
        balance = await self._reserve(user_id, cost, credentials)

        token = credentials.api_key or self._orchestrator.config.replicate_api_token
        if not token:
            return ServiceResponse(success=False, error="No API token configured")

        result = await self._spritesheets.generate(request, token)
        if not result.success or not result.spritesheet_url:
            return ServiceResponse(
                success=False, error=result.error or "Spritesheet generation failed"
            )

        used, remaining = await self._charge(user_id, cost, balance, credentials)
        naming = NamingContext(
            owner_id=user_id,
            asset_type="animation",
            project_id=project_id,
            label=preset.name,
        )
        try:
            url = await self._artifacts.persist_remote(result.spritesheet_url, naming)
        except StorageError as exc:
            logger.error("Spritesheet upload failed, returning provider URL: %s", exc)
            url = result.spritesheet_url

        saved: list[dict[str, Any]] = []
        if url != result.spritesheet_url:
            asset = await self._record_asset(
                {
                    "user_id": user_id,
                    "project_id": project_id,
                    "name": f"sprite_{preset.name}",
                    "asset_type": "sprite",
                    "file_type": "png",
                    "blob_url": url,
                    "metadata": {
                        "animation_preset": preset.id,
                        "animation_name": preset.name,
                        "frame_count": result.frame_count,
                        "frame_width": result.frame_width,
                        "frame_height": result.frame_height,
                        "layout": result.layout.value,
                        "is_spritesheet": True,
                    },
                }
            )
            if asset is not None:
                saved.append(asset)

        return ServiceResponse(
            success=True,
            urls=[url],
            credits_used=used,
            remaining_credits=remaining,
            provider="replicate",
            project_id=project_id,
            assets=saved,
            frame_count=result.frame_count,
            frame_width=result.frame_width,
            frame_height=result.frame_height,
            layout=result.layout,
        )
