"""Image generation through an OpenAI-style image router."""

from __future__ import annotations

import json
import logging
import random
from dataclasses import dataclass

import httpx

logger = logging.getLogger(__name__)

MODELS_API_URL = "https://ir-api.myqa.cc/v1/openai/images/models"
GENERATE_URL = "https://ir-api.myqa.cc/v1/openai/images/generations"
FALLBACK_MODEL = "test/test"

_BASE_ERROR = "Image not generated"
_LIMIT_REACHED = "limit is reached"
_SUCCESS = "Image generated and sent in chat"


@dataclass(frozen=True)
class GeneratedImage:
    """A generated image: a reply for the model, the base64 data and the model used."""

    message: str
    b64_json: str
    model: str


class ImageGenerationError(Exception):
    """Generation failed; ``reply`` is the text to hand back to the model."""

    def __init__(self, message: str, reply: str = _BASE_ERROR) -> None:
        super().__init__(message)
        self.reply = reply


class ImageGenerator:
    """Generates images, choosing a free model when none is given."""

    def __init__(self, http_client: httpx.Client, rng: random.Random | None = None) -> None:
        self.http_client = http_client
        self._rng = rng or random.Random()

    def generate_image(self, prompt: str, model: str = "", api_key: str = "") -> GeneratedImage:
        """Generate one image for ``prompt``."""
        try:
            if not model:
                model = self.random_free_model()
            model = model or FALLBACK_MODEL

            body = {
                "prompt": prompt,
                "model": model,
                "quality": "auto",
                "response_format": "b64_json",
            }
            response = self.http_client.post(
                GENERATE_URL,
                content=json.dumps(body),
                headers={
                    "Authorization": f"Bearer {api_key}",
                    "Content-Type": "application/json",
                },
            )
        except httpx.HTTPError as exc:
            raise ImageGenerationError(str(exc)) from exc
        except ValueError as exc:
            raise ImageGenerationError(str(exc)) from exc

        if response.status_code == 429:
            raise ImageGenerationError(_LIMIT_REACHED, reply=_LIMIT_REACHED)

        try:
            payload = json.loads(response.content)
        except ValueError as exc:
            raise ImageGenerationError(str(exc)) from exc

        images = payload.get("data") if isinstance(payload, dict) else None
        if images:
            return GeneratedImage(_SUCCESS, str(images[0].get("b64_json") or ""), model)
        raise ImageGenerationError("image not generated")

    def free_models(self) -> list[str]:
        """Names of the models whose first provider has a fixed price of zero."""
        response = self.http_client.get(MODELS_API_URL)
        models = json.loads(response.content)
        if not isinstance(models, dict):
            raise ValueError("unexpected models listing")
        free: list[str] = []
        for name, info in models.items():
            providers = (info or {}).get("providers") or []
            if not providers or name == FALLBACK_MODEL:
                continue
            pricing = providers[0].get("pricing") or {}
            if pricing.get("type") == "fixed" and pricing.get("value") == 0:
                free.append(name)
        return free

    def random_free_model(self) -> str:
        """A random free model, or the fallback model when none is free."""
        models = self.free_models()
        if not models:
            logger.info("0 free models from image router")
            return FALLBACK_MODEL
        return self._rng.choice(models)