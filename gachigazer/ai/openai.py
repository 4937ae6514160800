"""Client for providers that speak the OpenAI chat completions protocol."""

from __future__ import annotations

import copy
import json
import logging
import threading
import time
from collections.abc import Iterable, Iterator, Mapping
from typing import Any

import httpx

from gachigazer.ai.types import (
    AIError,
    AnnotationContent,
    Chunk,
    CompletionRequest,
    CompletionResponse,
    FunctionCall,
    Message,
    ModelConfig,
    ModelInfo,
    ModelNotFoundError,
    ModelParams,
    ModelUsage,
    Plugin,
    Tool,
    ToolCall,
)

logger = logging.getLogger(__name__)

MODELS_CACHE_SECONDS = 30 * 60
DEFAULT_CHAT_URL = "/chat/completions"

_TRUNCATED_KEYS = frozenset({"url", "content", "text", "file_data"})
_TRUNCATE_LIMIT = 1000
_TRUNCATED_SUFFIX = "...[truncated]"
_SSE_PREFIX = "data: "
_SSE_DONE = "[DONE]"


def truncate_large_fields(data: dict[str, Any]) -> None:
    """Shorten long url/content/text/file_data strings in place, recursively."""
    for key, value in data.items():
        if isinstance(value, str):
            if key in _TRUNCATED_KEYS and len(value) > _TRUNCATE_LIMIT:
                data[key] = value[:_TRUNCATE_LIMIT] + _TRUNCATED_SUFFIX
        elif isinstance(value, dict):
            truncate_large_fields(value)
        elif isinstance(value, list):
            for item in value:
                if isinstance(item, dict):
                    truncate_large_fields(item)


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


class BaseHTTPClient:
    """Sends JSON requests relative to a base URL with bearer authentication."""

    def __init__(self, client: httpx.Client, base_url: str = "", api_key: str = "") -> None:
        self.client = client
        self.base_url = base_url
        self.api_key = api_key

    def _url(self, endpoint: str) -> str:
        if self.base_url and not endpoint.startswith("http"):
            return f"{self.base_url.removesuffix('/')}/{endpoint.removeprefix('/')}"
        return endpoint

    def _log_request(self, method: str, url: str, body: Any) -> None:
        if not logger.isEnabledFor(logging.DEBUG):
            return
        logged = copy.deepcopy(body)
        if isinstance(logged, dict):
            truncate_large_fields(logged)
        try:
            payload = json.dumps({"url": url, "method": method, "body": logged})
        except (TypeError, ValueError):
            logger.exception("Fail marshal json for request")
            return
        logger.debug("HTTP request: %s", payload)

    def send(
        self,
        method: str,
        endpoint: str,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
        stream: bool = False,
    ) -> httpx.Response:
        """Send a request; with ``stream`` the body is left unread for the caller."""
        merged = dict(headers or {})
        if self.api_key:
            merged["Authorization"] = f"Bearer {self.api_key}"
        merged["Content-Type"] = "application/json"
        url = self._url(endpoint)
        content = None if body is None else json.dumps(body)
        self._log_request(method, url, body)
        request = self.client.build_request(method, url, headers=merged, content=content)
        return self.client.send(request, stream=stream)


class OpenAICompatibleClient:
    """A provider reachable through the OpenAI chat completions API."""

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
    ) -> None:
        self.name = name
        self.chat_url = (chat_url or DEFAULT_CHAT_URL).removeprefix("/")
        self.default_model = default_model
        self.override_models = override_models
        self._configured_models: tuple[ModelConfig, ...] = tuple(models)
        self._http = BaseHTTPClient(http_client or httpx.Client(), base_url, api_key)
        self._lock = threading.RLock()
        self._models_cache: dict[str, ModelInfo] = {}
        self._last_sync: float | None = None

    # ------------------------------------------------------------------ transport

    def _do_request(
        self,
        method: str,
        endpoint: str,
        body: Any,
        headers: Mapping[str, str] | None,
        stream: bool,
    ) -> httpx.Response:
        try:
            response = self._http.send(method, endpoint, body, headers, stream)
        except httpx.HTTPError as exc:
            raise AIError("network request failed", provider_name=self.name, original=exc) from exc

        ok = 200 <= response.status_code < 300
        if not stream or not ok:
            try:
                response.read()
            except httpx.HTTPError as exc:
                raise AIError(
                    "failed to read response body", provider_name=self.name, original=exc
                ) from exc
            finally:
                response.close()

        if not ok:
            raise self._status_error(response)
        return response

    def _status_error(self, response: httpx.Response) -> AIError:
        status = response.status_code
        message = f"HTTP request failed with status code: {status}"
        code = ""
        if response.content:
            try:
                payload = json.loads(response.content)
            except ValueError:
                payload = None
            error = payload.get("error") if isinstance(payload, dict) else None
            if isinstance(error, dict) and error.get("message"):
                message = _text(error.get("message"))
                code = _text(error.get("code"))
        return AIError(
            message,
            provider_name=self.name,
            http_status_code=status,
            error_code=code,
        )

    # ------------------------------------------------------------------ completions

    def ask(
        self,
        request: CompletionRequest,
        headers: Mapping[str, str] | None = None,
    ) -> tuple[str, str, CompletionResponse, ModelInfo | None]:
        """Run a completion; returns content, reasoning, the response and the model."""
        try:
            response = self._do_request("POST", self.chat_url, request.to_dict(), headers, False)
        except AIError as err:
            err.model_name = request.model
            raise

        try:
            payload = json.loads(response.content)
            if not isinstance(payload, dict):
                raise ValueError("response is not a JSON object")
            result = CompletionResponse.from_dict(payload)
        except (ValueError, TypeError, AttributeError) as exc:
            raise AIError(
                "failed to unmarshal response",
                provider_name=self.name,
                model_name=request.model,
                original=exc,
            ) from exc

        # Some providers report errors inside a successful response.
        if result.error is not None:
            raise AIError(
                result.error.message,
                provider_name=self.name,
                model_name=request.model,
                error_code=result.error.code,
            )
        if not result.choices:
            raise AIError(
                "no choices in response", provider_name=self.name, model_name=request.model
            )

        message = result.choices[0]
        reasoning = message.reasoning or message.reasoning_content
        return message.content, reasoning, result, request.model_info

    def ask_stream(
        self,
        request: CompletionRequest,
        headers: Mapping[str, str] | None = None,
    ) -> tuple[Iterator[Chunk], ModelInfo | None]:
        """Start a streamed completion; returns an iterator of chunks and the model."""
        merged = dict(headers or {})
        merged["Accept"] = "text/event-stream"
        try:
            response = self._do_request("POST", self.chat_url, request.to_dict(), merged, True)
        except AIError as err:
            err.model_name = request.model
            raise
        return self._stream_chunks(response, request), request.model_info

    def _stream_chunks(self, response: httpx.Response, request: CompletionRequest) -> Iterator[Chunk]:
        pending: dict[int, ToolCall] = {}
        try:
            for line in response.iter_lines():
                logger.debug(
                    "Raw SSE event: %r (model=%s, web_search=%s)",
                    line,
                    request.model,
                    request.web_search,
                )
                if len(line) <= len(_SSE_PREFIX) or not line.startswith(_SSE_PREFIX):
                    continue
                data = line[len(_SSE_PREFIX):]
                if data == _SSE_DONE:
                    return
                try:
                    event = json.loads(data)
                    if not isinstance(event, dict):
                        raise ValueError("event is not a JSON object")
                except ValueError as exc:
                    logger.error("stream decode error: %s (data=%r)", exc, data)
                    continue

                choices = event.get("choices") or []
                if not choices:
                    continue
                choice = choices[0]
                delta = choice.get("delta") or {}

                for raw_call in delta.get("tool_calls") or []:
                    part = ToolCall.from_dict(raw_call)
                    current = pending.get(part.index)
                    if current is None:
                        pending[part.index] = ToolCall(
                            index=part.index,
                            id=part.id,
                            type=part.type,
                            function=FunctionCall(part.function.name, part.function.arguments),
                        )
                        continue
                    if part.id:
                        current.id = part.id
                    if part.type:
                        current.type = part.type
                    if part.function.name:
                        current.function.name = part.function.name
                    if part.function.arguments:
                        current.function.arguments += part.function.arguments

                chunk = Chunk(
                    content=_text(delta.get("content")),
                    reasoning=_text(delta.get("reasoning")) or _text(delta.get("reasoning_content")),
                    usage=ModelUsage.from_dict(event.get("usage")),
                    annotations=[
                        AnnotationContent._from_dict(a) for a in delta.get("annotations") or []
                    ],
                )
                finish_reason = choice.get("finish_reason")
                if finish_reason == "tool_calls":
                    chunk.tools = list(pending.values())
                    pending = {}
                elif finish_reason == "error":
                    chunk.error = AIError(
                        f"stream generation failed: {finish_reason}",
                        provider_name=self.name,
                        model_name=request.model,
                    )
                yield chunk
        except httpx.HTTPError as exc:
            logger.error("stream read error: %s", exc)
        finally:
            response.close()

    def create_request(
        self,
        stream: bool,
        messages: Iterable[Message],
        tools: Iterable[Tool],
        model: ModelInfo,
        params: ModelParams,
        web_search: bool,
    ) -> CompletionRequest:
        """Build a completion request, adding web search and file parser plugins."""
        messages = list(messages)
        plugins: list[Plugin] = []
        if web_search:
            plugins.append(Plugin(id="web", max_results=2))
        if any(message.has_files() for message in messages):
            engine = "native" if model.supports_files() else "pdf-text"
            plugins.append(Plugin(id="file-parser", pdf_engine=engine))

        return CompletionRequest(
            model=model.id,
            messages=messages,
            tools=list(tools or ()),
            stream=stream,
            temperature=params.temperature,
            max_tokens=params.max_tokens,
            top_p=params.top_p,
            frequency_penalty=params.frequency_penalty,
            presence_penalty=params.presence_penalty,
            plugins=plugins,
            include_usage=True,
            web_search=web_search,
            model_info=model,
        )

    # ------------------------------------------------------------------ models

    def _config_models(self) -> dict[str, ModelInfo]:
        return {cfg.model: ModelInfo.from_config(self.name, cfg) for cfg in self._configured_models}

    def _fetch_models(self) -> dict[str, ModelInfo]:
        response = self._do_request("GET", "models", None, None, False)
        try:
            payload = json.loads(response.content)
            entries = [ModelInfo.from_dict(entry) for entry in payload.get("data") or []]
        except (ValueError, TypeError, AttributeError) as exc:
            raise AIError("decode models error", provider_name=self.name, original=exc) from exc
        models: dict[str, ModelInfo] = {}
        for model in entries:
            model.provider = self.name
            models[model.id] = model
        return models

    def _cache_is_fresh(self) -> bool:
        return (
            self._last_sync is not None
            and time.monotonic() - self._last_sync < MODELS_CACHE_SECONDS
            and bool(self._models_cache)
        )

    def _sync_models(self, fresh: bool) -> dict[str, ModelInfo]:
        if self.override_models:
            return self._config_models()
        with self._lock:
            if not fresh and self._cache_is_fresh():
                return dict(self._models_cache)

        models = self._fetch_models()
        models.update(self._config_models())

        with self._lock:
            self._models_cache = dict(models)
            self._last_sync = time.monotonic()
        return models

    def get_models(self, only_free: bool = False, fresh: bool = False) -> dict[str, ModelInfo]:
        """Models offered by the provider, cached for thirty minutes."""
        return self._sync_models(fresh)

    def get_model_info(self, name: str) -> ModelInfo:
        """Look a model up in the configuration, the cache, then the provider.

        Raises ModelNotFoundError, carrying a minimal ModelInfo, when it is unknown.
        """
        configured = self._config_models()
        if name in configured:
            return configured[name]
        with self._lock:
            cached = self._models_cache.get(name)
        if cached is not None:
            return cached
        models = self._sync_models(fresh=True)
        if name in models:
            return models[name]
        raise ModelNotFoundError(name, ModelInfo(id=name, provider=self.name))