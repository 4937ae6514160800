"""Client for the OpenRouter service."""

from __future__ import annotations

import random
import time
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import replace

import httpx

from gachigazer.ai.openai import OpenAICompatibleClient
from gachigazer.ai.types import (
    Chunk,
    CompletionRequest,
    CompletionResponse,
    ModelConfig,
    ModelInfo,
    ModelNotFoundError,
)

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
RANDOM_FREE_MODEL = "random-free"
APP_TITLE = "Gachigazer"


class OpenRouterClient(OpenAICompatibleClient):
    """OpenRouter provider with free model filtering and random free model choice."""

    def __init__(
        self,
        name: str,
        base_url: str = "",
        chat_url: str = "",
        api_key: str = "",
        default_model: str = "",
        override_models: bool = False,
        models: Iterable[ModelConfig] = (),
        http_client: httpx.Client | None = None,
        only_free_models: bool = False,
        rng: random.Random | None = None,
    ) -> None:
        super().__init__(
            name,
            base_url or DEFAULT_BASE_URL,
            chat_url,
            api_key,
            default_model,
            override_models,
            models,
            http_client,
        )
        self.only_free_models = only_free_models
        self._rng = rng or random.Random()

    @staticmethod
    def _filter(models: Mapping[str, ModelInfo], only_free: bool) -> dict[str, ModelInfo]:
        return {
            model_id: model
            for model_id, model in models.items()
            if not only_free or model.is_free()
        }

    def get_models(self, only_free: bool = False, fresh: bool = False) -> dict[str, ModelInfo]:
        """Models offered by OpenRouter, cached for thirty minutes.

        A listing restricted to free models is cached only when the client is
        configured to use free models exclusively.
        """
        if not fresh:
            with self._lock:
                if self._cache_is_fresh():
                    return self._filter(self._models_cache, only_free)

        models = self._fetch_models()
        if only_free or self.only_free_models:
            models = self._filter(models, True)

        if self.only_free_models or not only_free:
            with self._lock:
                self._models_cache = dict(models)
                self._last_sync = time.monotonic()
        return models

    def get_random_free_model(self) -> str:
        """Pick one of the free models at random; raises LookupError if there are none."""
        models = self.get_models(only_free=True, fresh=False)
        if not models:
            raise LookupError("no free models available")
        return self._rng.choice(sorted(models))

    def _resolve_request(self, request: CompletionRequest) -> CompletionRequest:
        if request.model == RANDOM_FREE_MODEL:
            try:
                model = self.get_random_free_model()
            except Exception as exc:
                raise LookupError(f"failed to get random free model: {exc}") from exc
            return replace(request, model=model)
        if not request.model:
            return replace(request, model=self.default_model)
        return request

    def ask(
        self,
        request: CompletionRequest,
        headers: Mapping[str, str] | None = None,
    ) -> tuple[str, str, CompletionResponse, ModelInfo | None]:
        return super().ask(self._resolve_request(request), headers)

    def ask_stream(
        self,
        request: CompletionRequest,
        headers: Mapping[str, str] | None = None,
    ) -> tuple[Iterator[Chunk], ModelInfo | None]:
        request = self._resolve_request(request)
        merged = dict(headers or {})
        merged["X-Title"] = APP_TITLE
        free = request.model_info is not None and request.model_info.is_free()
        request = replace(request, provider_sort="throughput" if free else "price")
        return super().ask_stream(request, merged)

    def get_model_info(self, name: str) -> ModelInfo:
        if name == RANDOM_FREE_MODEL:
            try:
                name = self.get_random_free_model()
            except Exception as exc:
                raise ModelNotFoundError(name, ModelInfo(id=name, provider=self.name)) from exc
        return super().get_model_info(name)