"""Client for locally hosted OpenAI-compatible servers."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace

import httpx

from gachigazer.ai.openai import OpenAICompatibleClient
from gachigazer.ai.types import ModelConfig, ModelInfo


class LocalAIClient(OpenAICompatibleClient):
    """A local server without authentication whose models come from configuration."""

    def __init__(
        self,
        name: str,
        base_url: str = "",
        chat_url: str = "",
        default_model: str = "",
        override_models: bool = False,
        models: Iterable[ModelConfig] = (),
        http_client: httpx.Client | None = None,
    ) -> None:
        super().__init__(
            name,
            base_url,
            chat_url,
            "",
            default_model,
            override_models,
            models,
            http_client,
        )

    def get_models(self, only_free: bool = False, fresh: bool = False) -> dict[str, ModelInfo]:
        """The configured models; supported parameters are not reported here."""
        return {
            cfg.model: replace(ModelInfo.from_config(self.name, cfg), supported_parameters=[])
            for cfg in self._configured_models
        }