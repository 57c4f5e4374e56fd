"""Local Hugging Face pipelines as an alternative to the remote capabilities."""
import asyncio
import io
from typing import Any, Mapping

import torch
from PIL import Image, UnidentifiedImageError
from transformers import pipeline

from src.core.exceptions import InvocationError, InvocationErrorKind
from src.core.logging import get_logger
from src.dtos.detection_dto import RawImageOutputDTO, RawTextOutputDTO
from src.services.capabilities import parse_label_scores

logger = get_logger(__name__)


def _get_device() -> str:
    if torch.backends.mps.is_available():
        return "mps"
    if torch.cuda.is_available():
        return "cuda"
    return "cpu"


class _LocalPipeline:
    task: str = ""

    def __init__(self, model: str) -> None:
        self.model = model
        self._device = _get_device()
        self._pipeline = None

    def _load_model_sync(self) -> None:
        self._pipeline = pipeline(self.task, model=self.model, device=self._device)

    async def load(self) -> None:
        """Load model in a thread pool so the event loop is not blocked."""
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._load_model_sync)
        logger.info("local_model_loaded", task=self.task, model=self.model, device=self._device)

    async def _call(self, *args: Any, **kwargs: Any) -> Any:
        if self._pipeline is None:
            raise InvocationError(
                InvocationErrorKind.CAPABILITY_UNAVAILABLE,
                {"model": self.model, "reason": "model not loaded"},
            )
        loop = asyncio.get_running_loop()
        try:
            # Runs to completion in the pool even if the awaiting task is cancelled
            return await loop.run_in_executor(None, lambda: self._pipeline(*args, **kwargs))
        except (RuntimeError, ValueError, OSError) as e:
            logger.warning("local_model_inference_failed", model=self.model, error_type=type(e).__name__)
            raise InvocationError(
                InvocationErrorKind.CAPABILITY_UNAVAILABLE,
                {"model": self.model, "error": str(e)},
            ) from e


class LocalTextCapability(_LocalPipeline):
    """Instruction-tuned causal LM answering the detection prompt."""
    task = "text-generation"

    def __init__(self, model: str, max_new_tokens: int = 256) -> None:
        super().__init__(model)
        self._max_new_tokens = max_new_tokens

    async def run(self, prompt: str, params: Mapping[str, Any] | None = None) -> RawTextOutputDTO:
        kwargs: dict[str, Any] = {
            "max_new_tokens": self._max_new_tokens,
            "return_full_text": False,
            "do_sample": False,
        }
        if params:
            kwargs.update(params)

        output = await self._call(prompt, **kwargs)
        # [{"generated_text": str}]
        if (
            not isinstance(output, list)
            or not output
            or not isinstance(output[0], Mapping)
            or not isinstance(output[0].get("generated_text"), str)
        ):
            raise InvocationError(
                InvocationErrorKind.MALFORMED_RESPONSE,
                {"model": self.model, "reason": "no generated_text"},
            )
        return RawTextOutputDTO(model=self.model, response=output[0]["generated_text"])


class LocalImageCapability(_LocalPipeline):
    """Image classifier such as ``umm-maybe/AI-image-detector``."""
    task = "image-classification"

    async def run(self, image: bytes, params: Mapping[str, Any] | None = None) -> RawImageOutputDTO:
        try:
            picture = Image.open(io.BytesIO(image))
            picture.load()
        except (UnidentifiedImageError, OSError) as e:
            raise InvocationError(
                InvocationErrorKind.CAPABILITY_UNAVAILABLE,
                {"model": self.model, "reason": "image could not be decoded"},
            ) from e

        output = await self._call(picture.convert("RGB"), **dict(params or {}))
        return RawImageOutputDTO(model=self.model, items=parse_label_scores(output))
