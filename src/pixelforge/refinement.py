"""Prompt refinement stage (intelligence layer).

Sends the user's prompt plus structured context to a text model and
returns an enhanced prompt.  Failures never propagate: the deterministic
:func:`~pixelforge.prompts.build_prompt` output is returned instead.
"""

from __future__ import annotations

from pixelforge.constants import REFINEMENT_MODEL
from pixelforge.logging import get_logger
from pixelforge.models import GenerationRequest
from pixelforge.prompts import (
    build_prompt,
    build_refinement_system_prompt,
    build_refinement_user_prompt,
)
from pixelforge.providers.prediction import PredictionClient
from pixelforge.utils import join_text_output

logger = get_logger("refinement")


class PromptRefiner:
    """Rewrite user prompts through a text-generation model.

    Args:
        client: Polling prediction client used for the text model call.
        model: Text model identifier.
        max_output_tokens: Token cap for the rewritten prompt.
        temperature: Sampling temperature.
        top_p: Nucleus sampling parameter.
    """

    def __init__(
        self,
        client: PredictionClient,
        model: str = REFINEMENT_MODEL,
        max_output_tokens: int = 1024,
        temperature: float = 0.5,
        top_p: float = 0.9,
    ) -> None:
        self._client = client
        self._model = model
        self._max_output_tokens = max_output_tokens
        self._temperature = temperature
        self._top_p = top_p

    def build_input(self, user_prompt: str, request: GenerationRequest) -> dict[str, object]:
        """Build the text model input for *user_prompt*."""
        return {
            "prompt": build_refinement_user_prompt(user_prompt, request),
            "system_instruction": build_refinement_system_prompt(user_prompt, request),
            "max_output_tokens": self._max_output_tokens,
            "temperature": self._temperature,
            "top_p": self._top_p,
        }

    async def refine(
        self, user_prompt: str, request: GenerationRequest, api_token: str
    ) -> str:
        """Return an enhanced prompt, or the deterministic prompt on failure.

        Args:
            user_prompt: The caller's raw prompt.
            request: Context (kind, style, viewpoint, aspect ratio).
            api_token: Credential for the text model call.

        Returns:
            The rewritten prompt; the raw prompt when the model returns
            nothing; :func:`build_prompt` output when the call fails.
        """
        try:
            output = await self._client.submit_and_await(
                api_token, self._model, self.build_input(user_prompt, request)
            )
            refined = join_text_output(output).strip()
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Prompt refinement failed, falling back to built prompt: %s", exc
            )
            return build_prompt(request)

        if not refined:
            logger.info("Prompt refinement returned no text; using raw prompt")
            return user_prompt
        logger.debug("Refined prompt: %s", refined)
        return refined
