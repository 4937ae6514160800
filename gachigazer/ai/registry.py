"""Registry of AI providers with model resolution."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import replace
from typing import Protocol

from gachigazer.ai.types import (
    Chunk,
    CompletionRequest,
    CompletionResponse,
    InvalidModelFormatError,
    Message,
    ModelInfo,
    ModelNotFoundError,
    ModelParams,
    ProviderNotFoundError,
    Tool,
)
from gachigazer.ai.utils import parse_model_spec

logger = logging.getLogger(__name__)


class ChatService(Protocol):
    """Per-chat settings the registry consults."""

    def get_current_model_spec(self, chat_id: int) -> str:
        """The provider:model spec chosen for the chat, or an empty string."""

    def merge_model_params(
        self,
        chat_id: int,
        provider: str,
        alias: str,
        prompt: str,
        request_params: ModelParams,
    ) -> ModelParams:
        """Combine configured, chat and request parameters."""


class Provider(Protocol):
    """An AI provider as the registry uses it."""

    name: str
    default_model: str

    def ask(
        self, request: CompletionRequest, headers: Mapping[str, str] | None = None
    ) -> tuple[str, str, CompletionResponse, ModelInfo | None]:
        """Run a completion."""

    def ask_stream(
        self, request: CompletionRequest, headers: Mapping[str, str] | None = None
    ) -> tuple[Iterator[Chunk], ModelInfo | None]:
        """Run a streamed completion."""

    def create_request(
        self,
        stream: bool,
        messages: Iterable[Message],
        tools: Iterable[Tool],
        model: ModelInfo,
        params: ModelParams,
        web_search: bool,
    ) -> CompletionRequest:
        """Build a completion request."""

    def get_models(self, only_free: bool = False, fresh: bool = False) -> dict[str, ModelInfo]:
        """List the provider's models."""

    def get_model_info(self, name: str) -> ModelInfo:
        """Describe one model."""


class ProviderRegistry:
    """Holds the configured providers and resolves which one serves a request."""

    def __init__(self, default_model: str, aliases: Mapping[str, str] | None = None) -> None:
        self.default_model = default_model
        self.aliases = dict(aliases or {})
        self._providers: dict[str, Provider] = {}
        self._lock = threading.RLock()
        self._chat_service: ChatService | None = None

    def set_chat_service(self, service: ChatService) -> None:
        self._chat_service = service

    def register_provider(self, name: str, provider: Provider) -> None:
        with self._lock:
            self._providers[name] = provider

    def get_provider(self, name: str) -> Provider:
        with self._lock:
            try:
                return self._providers[name]
            except KeyError:
                raise ProviderNotFoundError(name) from None

    def providers(self) -> list[str]:
        with self._lock:
            return list(self._providers)

    def _require_chat_service(self) -> ChatService:
        if self._chat_service is None:
            raise RuntimeError("chat service is not set")
        return self._chat_service

    def _chat_model(self, chat_id: int) -> tuple[Provider, str] | None:
        if self._chat_service is None:
            return None
        try:
            spec = self._chat_service.get_current_model_spec(chat_id)
        except Exception:
            logger.debug("No model spec for chat %s", chat_id, exc_info=True)
            return None
        if not spec:
            return None
        try:
            provider_name, model_name = parse_model_spec(spec)
            return self.get_provider(provider_name), model_name
        except (InvalidModelFormatError, ProviderNotFoundError):
            return None

    def resolve_model(self, model_spec: str, chat_id: int = 0) -> tuple[Provider, str]:
        """Find the provider and model, by priority: explicit spec, chat setting, default."""
        if model_spec:
            provider_name, model_name = parse_model_spec(model_spec)
            return self.get_provider(provider_name), model_name

        if chat_id:
            found = self._chat_model(chat_id)
            if found is not None:
                return found

        provider_name, model_name = parse_model_spec(self.default_model)
        return self.get_provider(provider_name), model_name

    def ask(
        self,
        messages: Iterable[Message],
        tools: Iterable[Tool],
        model: ModelInfo,
        prompt_name: str,
        chat_id: int,
        web_search: bool,
        request_params: ModelParams,
    ) -> tuple[str, str, CompletionResponse, ModelInfo | None, ModelParams]:
        """Run a completion; returns content, reasoning, response, model and merged params."""
        provider, _ = self.resolve_model(model.full_name(), chat_id)
        merged = self._require_chat_service().merge_model_params(
            chat_id, model.provider, model.alias, prompt_name, request_params
        )
        request = provider.create_request(False, messages, tools, model, merged, web_search)
        content, reasoning, response, info = provider.ask(request, None)
        return content, reasoning, response, info, merged

    def ask_stream(
        self,
        messages: Iterable[Message],
        tools: Iterable[Tool],
        model: ModelInfo,
        prompt_name: str,
        chat_id: int,
        web_search: bool,
        params: ModelParams,
    ) -> tuple[Iterator[Chunk], ModelInfo | None, ModelParams]:
        """Run a streamed completion; returns the chunks, the model and merged params."""
        provider, _ = self.resolve_model(model.full_name(), chat_id)
        merged = self._require_chat_service().merge_model_params(
            chat_id, model.provider, model.alias, prompt_name, params
        )
        request = provider.create_request(True, messages, tools, model, merged, web_search)
        chunks, info = provider.ask_stream(request, None)
        return chunks, info, merged

    def get_formatted_model(self, model_name: str, provider_name: str = "") -> ModelInfo:
        """Validate a model name, resolving aliases and a missing provider part.

        A name without a provider is looked up in every registered provider.
        """
        logger.debug("Get model info (model=%s, provider=%s)", model_name, provider_name)
        alias_name = ""
        if model_name in self.aliases:
            alias_name = model_name
            model_name = self.aliases[model_name]

        if not provider_name:
            try:
                provider_name, model_name = parse_model_spec(model_name)
            except InvalidModelFormatError:
                provider_name = ""

        model: ModelInfo | None = None
        if provider_name:
            try:
                provider = self.get_provider(provider_name)
            except ProviderNotFoundError:
                provider = None
            if provider is not None:
                model = provider.get_model_info(model_name)

        if model is None:
            last_error: Exception | None = None
            with self._lock:
                candidates = list(self._providers.values())
            for provider in candidates:
                try:
                    model = provider.get_model_info(model_name)
                except Exception as exc:
                    last_error = exc
                    continue
                break
            if model is None:
                if last_error is not None:
                    raise last_error
                raise ModelNotFoundError(model_name)

        return replace(model, alias=alias_name)

    def get_all_models(self, free: bool = False, fresh: bool = False) -> dict[str, list[ModelInfo]]:
        """Models of every provider by provider name; failing providers are skipped."""
        result: dict[str, list[ModelInfo]] = {}
        for name in self.providers():
            try:
                provider = self.get_provider(name)
                models = provider.get_models(free, fresh)
            except Exception:
                logger.exception("get models error (provider=%s)", name)
                continue
            if models:
                result[name] = list(models.values())
        return result