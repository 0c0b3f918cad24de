"""Capability interface shared by every image-generation backend."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum

from pixelforge.logging import get_logger
from pixelforge.models import AnimationFramesRequest, EncodedImage, GenerationRequest

logger = get_logger("providers")


class GenerationStage(str, Enum):
    """Lifecycle of a single orchestration call."""

    IDLE = "idle"
    REFINING_PROMPT = "refining_prompt"
    GENERATING = "generating"
    FETCHING_OUTPUTS = "fetching_outputs"
    DONE = "done"
    FAILED = "failed"


class StageTracker:
    """Record and log the stage transitions of one orchestration call."""

    def __init__(self, call_name: str) -> None:
        self.call_name = call_name
        self.history: list[GenerationStage] = [GenerationStage.IDLE]

    @property
    def current(self) -> GenerationStage:
        """The most recent stage."""
        return self.history[-1]

    def enter(self, stage: GenerationStage) -> None:
        """Transition to *stage*."""
        if stage is self.current:
            return
        logger.debug(
            "%s: %s -> %s",
            self.call_name,
            self.current.value,
            stage.value,
            extra={"stage": stage.value},
        )
        self.history.append(stage)


class ImageProvider(ABC):
    """Abstract base for image-generation backends.

    Implementations hide whether the backend is a polling job API or a
    single synchronous call; both return fully fetched, in-memory images
    in request order.  Failures are raised, and the orchestrator turns
    them into failed results.
    """

    name: str = "provider"

    @abstractmethod
    async def generate_images(
        self, request: GenerationRequest, tracker: StageTracker
    ) -> list[EncodedImage]:
        """Generate sprite or scene images for *request*.

        Raises:
            PixelForgeError: If generation or fetching fails.
        """

    @abstractmethod
    async def generate_frames(
        self, request: AnimationFramesRequest, tracker: StageTracker
    ) -> list[EncodedImage]:
        """Generate one frame per pose description, in input order.

        Raises:
            PixelForgeError: If any frame fails.
        """
