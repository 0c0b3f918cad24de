"""Polling gateway for long-running prediction jobs.

Wraps the job-creation / status-polling protocol of a Replicate-style
prediction API behind :meth:`PredictionClient.submit_and_await`.  Uses
``httpx.AsyncClient``; tests inject an ``httpx.MockTransport``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import httpx
from pydantic import ValidationError

from pixelforge.errors import ProviderError
from pixelforge.logging import get_logger, redact_payload
from pixelforge.models import PredictionJob

logger = get_logger("providers.prediction")

DEFAULT_BASE_URL = "https://api.replicate.com/v1"

# Poll responses with this status are retried on the next tick.
_RATE_LIMITED = 429


def resolve_prediction_target(model: str) -> tuple[str, str | None]:
    """Pick the job-creation endpoint for a model identifier.

    * ``owner/name`` → ``/models/owner/name/predictions`` (the provider
      resolves the latest version).
    * ``owner/name:version`` or a bare version hash → ``/predictions``
      with the version carried in the request body.

    Args:
        model: Model identifier in one of the forms above.

    Returns:
        ``(path, version)`` where *version* is ``None`` for the
        model-specific endpoint.

    Raises:
        ValueError: If *model* is empty.
    """
    model = model.strip()
    if not model:
        raise ValueError("model identifier must not be empty")
    if ":" in model:
        return "/predictions", model.split(":", 1)[1]
    if "/" in model:
        return f"/models/{model}/predictions", None
    return "/predictions", model


def _error_body(response: httpx.Response) -> str:
    try:
        return response.text
    except (UnicodeDecodeError, httpx.ResponseNotRead):
        return ""


class PredictionClient:
    """Submit prediction jobs and poll them to a terminal status.

    One client can be shared by many orchestration calls: it holds no
    per-job state, and every job is owned by the coroutine that created it.

    Usage::

        async with PredictionClient(poll_interval=1.0) as client:
            output = await client.submit_and_await(
                token, "retro-diffusion/rd-plus", {"prompt": "a knight"}
            )
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        poll_interval: float = 1.0,
        max_wait: float | None = None,
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Prediction API base URL (no trailing slash needed).
            poll_interval: Seconds to wait between status polls.
            max_wait: Optional cap on polling time per job, in seconds.
                ``None`` polls until the provider reports a terminal status.
            timeout: Per-request HTTP timeout in seconds.
            http_client: Optional shared client.  When omitted a client is
                created and closed by this instance.
            sleep: Awaitable sleep function (overridable in tests).
        """
        self._base_url = base_url.rstrip("/")
        self._poll_interval = poll_interval
        self._max_wait = max_wait
        self._sleep = sleep
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    @staticmethod
    def _headers(api_token: str, *, prefer_wait: bool = False) -> dict[str, str]:
        headers = {
            "Authorization": f"Token {api_token}",
            "Content-Type": "application/json",
        }
        if prefer_wait:
            headers["Prefer"] = "wait"
        return headers

    @staticmethod
    def _parse_job(response: httpx.Response) -> PredictionJob:
        try:
            return PredictionJob.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise ProviderError(
                f"Malformed prediction response: {exc}",
                status_code=response.status_code,
                body=_error_body(response),
            ) from exc

    async def create_prediction(
        self, api_token: str, model: str, input: dict[str, Any]
    ) -> PredictionJob:
        """POST a new prediction job.

        Raises:
            ProviderError: On transport failure or a non-2xx response.
        """
        path, version = resolve_prediction_target(model)
        body: dict[str, Any] = {"input": input}
        if version is not None:
            body["version"] = version

        logger.debug(
            "Creating prediction for %s: %s", model, redact_payload(body)
        )
        try:
            response = await self._client.post(
                f"{self._base_url}{path}",
                json=body,
                headers=self._headers(api_token, prefer_wait=True),
            )
        except httpx.HTTPError as exc:
            raise ProviderError(f"Prediction request failed: {exc}") from exc

        if not response.is_success:
            text = _error_body(response)
            raise ProviderError(
                f"Prediction API error: {response.status_code} - {text}",
                status_code=response.status_code,
                body=text,
            )

        job = self._parse_job(response)
        logger.info(
            "Prediction %s started for %s (status=%s)",
            job.id,
            model,
            job.status,
            extra={"model": model, "prediction_id": job.id},
        )
        return job

    async def get_prediction(self, api_token: str, job: PredictionJob) -> PredictionJob | None:
        """Fetch the current state of *job*.

        Returns:
            The refreshed job, or ``None`` when the provider rate-limited
            the poll and it should simply be retried.

        Raises:
            ProviderError: On transport failure or a non-2xx, non-429
                response.
        """
        url = job.urls.get("get") or f"{self._base_url}/predictions/{job.id}"
        try:
            response = await self._client.get(
                url, headers={"Authorization": f"Token {api_token}"}
            )
        except httpx.HTTPError as exc:
            raise ProviderError(f"Prediction poll failed: {exc}") from exc

        if response.status_code == _RATE_LIMITED:
            logger.debug("Poll for %s rate-limited; retrying", job.id)
            return None
        if not response.is_success:
            text = _error_body(response)
            raise ProviderError(
                f"Prediction poll error: {response.status_code} - {text}",
                status_code=response.status_code,
                body=text,
            )
        return self._parse_job(response)

    async def wait(self, api_token: str, job: PredictionJob) -> PredictionJob:
        """Poll *job* until it reaches a terminal status.

        Stops on the first terminal response and never polls past it.

        Raises:
            ProviderError: If polling fails or ``max_wait`` elapses.
        """
        loop = asyncio.get_running_loop()
        started = loop.time()
        polls = 0
        while not job.is_terminal:
            if self._max_wait is not None and loop.time() - started > self._max_wait:
                raise ProviderError(
                    f"Prediction {job.id} did not finish within {self._max_wait:.0f}s"
                )
            await self._sleep(self._poll_interval)
            refreshed = await self.get_prediction(api_token, job)
            polls += 1
            if refreshed is not None:
                job = refreshed
        logger.debug("Prediction %s reached %s after %d polls", job.id, job.status, polls)
        return job

    async def submit_and_await(
        self, api_token: str, model: str, input: dict[str, Any]
    ) -> Any:
        """Create a prediction, wait for it, and return its raw output.

        Args:
            api_token: Provider credential.
            model: Model identifier (see :func:`resolve_prediction_target`).
            input: Model input mapping.

        Returns:
            The provider's ``output`` field unchanged (a string or a list).

        Raises:
            ProviderError: If creation fails, polling fails, or the job
                ends in ``failed``/``canceled``.
        """
        job = await self.create_prediction(api_token, model, input)
        job = await self.wait(api_token, job)
        if not job.succeeded:
            logger.warning("Prediction %s %s: %s", job.id, job.status, job.error)
            raise ProviderError(job.error or "Prediction failed")
        return job.output

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "PredictionClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
