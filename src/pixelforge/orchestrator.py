"""Generation orchestrator: provider selection with fallback.

Picks one provider per call from a fixed, priority-ordered selection
policy, drives it through the capability interface, and converts every
failure into a uniform :class:`~pixelforge.models.GenerationResult`.
The orchestrator holds no per-call state; concurrent calls share only
the HTTP clients.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

import httpx

from pixelforge.config import PlatformConfig
from pixelforge.errors import ConfigError, PixelForgeError
from pixelforge.logging import get_logger
from pixelforge.models import (
    AnimationFramesRequest,
    DirectAnimationRequest,
    GenerationRequest,
    GenerationResult,
    ProviderCredentials,
    ProviderName,
)
from pixelforge.providers._base import GenerationStage, ImageProvider, StageTracker
from pixelforge.providers.gemini import GeminiProvider
from pixelforge.providers.prediction import PredictionClient
from pixelforge.providers.replicate import ReplicateProvider

logger = get_logger("orchestrator")

NO_KEY_MESSAGE = (
    "No API key configured. Please add your own API key in settings "
    "or contact support."
)

ProviderFactory = Callable[
    [ProviderCredentials, PredictionClient, httpx.AsyncClient], ImageProvider
]


@dataclass(frozen=True)
class ProviderRoute:
    """One rule of the selection policy.

    Attributes:
        name: Label used in logs.
        predicate: Returns True when this route applies to the caller.
        factory: Builds the provider for the caller.
    """

    name: str
    predicate: Callable[[ProviderCredentials], bool]
    factory: ProviderFactory


def build_selection_policy(config: PlatformConfig) -> tuple[ProviderRoute, ...]:
    """Build the ordered provider selection policy for *config*.

    Routes are evaluated top to bottom and the first match wins:

    1. caller's own key for the single-call provider,
    2. caller's own key for the polling provider,
    3. platform polling-provider token (with the platform model id),
    4. platform single-call key, unless it is the placeholder value.
    """

    def own_gemini(
        creds: ProviderCredentials, client: PredictionClient, http: httpx.AsyncClient
    ) -> ImageProvider:
        return GeminiProvider(creds.api_key or "", http, base_url=config.gemini_base_url)

    def own_replicate(
        creds: ProviderCredentials, client: PredictionClient, http: httpx.AsyncClient
    ) -> ImageProvider:
        return ReplicateProvider(
            creds.api_key or "", client, http, frame_model=config.replicate_model_id
        )

    def platform_replicate(
        creds: ProviderCredentials, client: PredictionClient, http: httpx.AsyncClient
    ) -> ImageProvider:
        return ReplicateProvider(
            config.replicate_api_token or "",
            client,
            http,
            frame_model=config.replicate_model_id,
        )

    def platform_gemini(
        creds: ProviderCredentials, client: PredictionClient, http: httpx.AsyncClient
    ) -> ImageProvider:
        return GeminiProvider(
            config.gemini_api_key or "", http, base_url=config.gemini_base_url
        )

    return (
        ProviderRoute(
            "own-gemini",
            lambda creds: creds.own_key and creds.provider is ProviderName.GEMINI,
            own_gemini,
        ),
        ProviderRoute("own-replicate", lambda creds: creds.own_key, own_replicate),
        ProviderRoute(
            "platform-replicate",
            lambda creds: config.has_replicate_token,
            platform_replicate,
        ),
        ProviderRoute(
            "platform-gemini", lambda creds: config.has_gemini_key, platform_gemini
        ),
    )


class GenerationOrchestrator:
    """Entry point for every generation call.

    Args:
        config: Platform-level credentials and gateway settings.
        prediction_client: Shared polling gateway.  Built from *config*
            when omitted.
        http_client: Shared client for output downloads and single-call
            providers.  Built from *config* when omitted.
        policy: Selection policy override; defaults to
            :func:`build_selection_policy`.
    """

    def __init__(
        self,
        config: PlatformConfig,
        prediction_client: PredictionClient | None = None,
        http_client: httpx.AsyncClient | None = None,
        policy: tuple[ProviderRoute, ...] | None = None,
    ) -> None:
        self._config = config
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=config.request_timeout)
        self._owns_client = prediction_client is None
        self._client = prediction_client or PredictionClient(
            config.replicate_base_url,
            poll_interval=config.poll_interval,
            max_wait=config.max_wait,
            http_client=self._http,
        )
        self._policy = policy if policy is not None else build_selection_policy(config)

    @property
    def config(self) -> PlatformConfig:
        return self._config

    @property
    def policy(self) -> tuple[ProviderRoute, ...]:
        return self._policy

    def select_provider(self, credentials: ProviderCredentials) -> ImageProvider:
        """Return the provider of the first matching route.

        Raises:
            ConfigError: If no route matches.
        """
        for route in self._policy:
            if route.predicate(credentials):
                logger.info("Selected provider route %s", route.name)
                return route.factory(credentials, self._client, self._http)
        raise ConfigError(NO_KEY_MESSAGE)

    def _animation_provider(self, credentials: ProviderCredentials) -> ReplicateProvider:
        if credentials.own_key:
            token = credentials.api_key
        else:
            token = self._config.replicate_api_token
        if not token:
            raise ConfigError("No API key configured.")
        return ReplicateProvider(token, self._client, self._http)

    async def generate_images(
        self,
        request: GenerationRequest,
        credentials: ProviderCredentials | None = None,
    ) -> GenerationResult:
        """Generate sprite or scene images.

        Args:
            request: A :class:`~pixelforge.models.GenerationRequest`.
            credentials: Caller credentials; platform keys are used when
                omitted.

        Returns:
            A successful result with at least one image, or a failed
            result carrying the error message.  Never raises for
            provider, transport or configuration failures.
        """
        credentials = credentials or ProviderCredentials()
        tracker = StageTracker("generate_images")
        provider_name = None
        try:
            provider = self.select_provider(credentials)
            provider_name = provider.name
            images = await provider.generate_images(request, tracker)
        except PixelForgeError as exc:
            return self._fail(tracker, exc, provider_name)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected error during image generation")
            return self._fail(tracker, exc, provider_name)

        tracker.enter(GenerationStage.DONE)
        return GenerationResult(success=True, images=images, provider=provider_name)

    async def generate_animation_frames(
        self,
        request: AnimationFramesRequest,
        credentials: ProviderCredentials | None = None,
    ) -> GenerationResult:
        """Generate one frame per pose description, in input order."""
        credentials = credentials or ProviderCredentials()
        tracker = StageTracker("generate_animation_frames")
        provider_name = None
        logger.info(
            "Generating %d animation frames (view=%s, direction=%s, type=%s)",
            request.total_frames,
            request.view_type,
            request.direction,
            request.animation_type,
        )
        try:
            provider = self.select_provider(credentials)
            provider_name = provider.name
            frames = await provider.generate_frames(request, tracker)
        except PixelForgeError as exc:
            return self._fail(tracker, exc, provider_name)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected error during frame generation")
            return self._fail(tracker, exc, provider_name)

        if len(frames) != request.total_frames:
            return self._fail(
                tracker,
                f"Expected {request.total_frames} frames, got {len(frames)}",
                provider_name,
            )
        tracker.enter(GenerationStage.DONE)
        return GenerationResult(success=True, frames=frames, provider=provider_name)

    async def generate_direct_animation(
        self,
        request: DirectAnimationRequest,
        credentials: ProviderCredentials | None = None,
    ) -> GenerationResult:
        """Generate animation sheets with the dedicated animation model."""
        credentials = credentials or ProviderCredentials()
        tracker = StageTracker("generate_direct_animation")
        provider_name = ProviderName.REPLICATE.value
        try:
            provider = self._animation_provider(credentials)
            images = await provider.generate_direct_animation(request, tracker)
        except ConfigError as exc:
            return self._fail(tracker, exc, None)
        except PixelForgeError as exc:
            return self._fail(tracker, exc, provider_name)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected error during direct animation")
            return self._fail(tracker, exc, provider_name)

        tracker.enter(GenerationStage.DONE)
        return GenerationResult(success=True, images=images, provider=provider_name)

    @staticmethod
    def _fail(
        tracker: StageTracker, error: Exception | str, provider: str | None
    ) -> GenerationResult:
        tracker.enter(GenerationStage.FAILED)
        message = str(error) or type(error).__name__
        logger.error(
            "%s failed: %s",
            tracker.call_name,
            message,
            extra={"provider": provider} if provider else None,
        )
        return GenerationResult.failure(message, provider=provider)

    async def close(self) -> None:
        """Close the HTTP clients this orchestrator created."""
        if self._owns_client:
            await self._client.close()
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> "GenerationOrchestrator":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
