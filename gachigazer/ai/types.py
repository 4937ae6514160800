"""Data model shared by the AI providers: requests, responses, models, tools and errors."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

FREE = "🆓"
TOOLS = "🛠️"

IMAGE_GENERATION_MODALITY = "🖼️"
IMAGE_RECOGNITION_MODALITY = "👁️"
TEXT_MODALITY = "💬"
FILE_MODALITY = "📄"
AUDIO_MODALITY = "🎵"
UNKNOWN_MODALITIES = "❓"

PROVIDER_OPENROUTER = "openrouter"
PROVIDER_OPENAI = "openai-compatible"
PROVIDER_LOCAL = "local"

ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"
ROLE_SYSTEM = "system"
ROLE_TOOL = "tool"
ROLE_INTERNAL = "internal"

SUPPORTED_ROLES = (ROLE_SYSTEM, ROLE_USER, ROLE_ASSISTANT, ROLE_TOOL)

_INPUT_SYMBOLS = {
    "text": TEXT_MODALITY,
    "image": IMAGE_RECOGNITION_MODALITY,
    "file": FILE_MODALITY,
    "audio": AUDIO_MODALITY,
}
_OUTPUT_SYMBOLS = {
    "text": TEXT_MODALITY,
    "image": IMAGE_GENERATION_MODALITY,
    "file": FILE_MODALITY,
    "audio": AUDIO_MODALITY,
}


# --------------------------------------------------------------------------- errors


class ErrorType(str, Enum):
    """Classification of provider errors."""

    NETWORK = "network"
    RATE_LIMIT = "rate_limit"
    SERVER = "server"
    CLIENT = "client"
    CONTENT_POLICY = "content_policy"
    UNKNOWN = "unknown"


class AIError(Exception):
    """An error reported by, or while talking to, an AI provider."""

    def __init__(
        self,
        message: str = "",
        *,
        provider_name: str = "",
        model_name: str = "",
        http_status_code: int = 0,
        error_code: str = "",
        original: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.provider_name = provider_name
        self.model_name = model_name
        self.http_status_code = http_status_code
        self.error_code = error_code
        self.original = original
        if original is not None:
            self.__cause__ = original

    def __str__(self) -> str:
        msg = self.message
        if not msg and self.original is not None:
            msg = str(self.original)
        if self.provider_name and self.model_name:
            msg = f"[{self.provider_name}:{self.model_name}] {msg}"
        if self.error_code:
            msg = f"{msg} (code: {self.error_code})"
        if self.http_status_code:
            msg = f"{self.http_status_code} {msg}"
        return msg

    def error_type(self) -> ErrorType:
        status = self.http_status_code
        if status == 429:
            return ErrorType.RATE_LIMIT
        if status >= 500:
            return ErrorType.SERVER
        if status == 400 and "policy" in self.message.lower():
            return ErrorType.CONTENT_POLICY
        if 400 <= status < 500:
            return ErrorType.CLIENT
        return ErrorType.UNKNOWN

    def is_retryable(self) -> bool:
        return self.error_type() in (
            ErrorType.NETWORK,
            ErrorType.RATE_LIMIT,
            ErrorType.SERVER,
        )


class InvalidModelFormatError(ValueError):
    """A model spec is not of the form provider:model."""

    def __init__(self, spec: str = "") -> None:
        self.spec = spec
        text = "invalid model format, expected provider:model"
        super().__init__(f"{text}: {spec}" if spec else text)


class ProviderNotFoundError(LookupError):
    """No provider is registered under the given name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"provider not found: {name}")


class ModelNotFoundError(LookupError):
    """A model is unknown to its provider; ``model`` holds a minimal description."""

    def __init__(self, name: str, model: ModelInfo | None = None) -> None:
        self.name = name
        self.model = model
        super().__init__(f"model not found: {name}")


def _find_ai_error(err: BaseException | None) -> AIError | None:
    seen: set[int] = set()
    current = err
    while current is not None and id(current) not in seen:
        if isinstance(current, AIError):
            return current
        seen.add(id(current))
        current = current.__cause__ or current.__context__
    return None


def is_retryable_error(err: BaseException | None) -> bool:
    """True if ``err`` or an error it was raised from is a retryable AIError."""
    found = _find_ai_error(err)
    return found.is_retryable() if found is not None else False


def get_error_type(err: BaseException | None) -> ErrorType:
    found = _find_ai_error(err)
    return found.error_type() if found is not None else ErrorType.UNKNOWN


def is_error_type(err: BaseException | None, error_type: ErrorType) -> bool:
    return get_error_type(err) == error_type


# --------------------------------------------------------------------------- models


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


@dataclass
class ModelConfig:
    """A model declared for a provider in the configuration."""

    model: str
    input_modalities: list[str] = field(default_factory=list)
    output_modalities: list[str] = field(default_factory=list)
    supported_parameters: list[str] = field(default_factory=list)
    is_free: bool = False


@dataclass
class ModelPricing:
    completion: str = ""
    prompt: str = ""
    image: str = ""
    web_search: str = ""

    def completion_price(self) -> float:
        return float(self.completion)

    def prompt_price(self) -> float:
        return float(self.prompt)

    @classmethod
    def _free(cls) -> ModelPricing:
        return cls(completion="0", prompt="0", image="0", web_search="0")

    def _to_dict(self) -> dict[str, Any]:
        return {
            "completion": self.completion,
            "prompt": self.prompt,
            "image": self.image,
            "web_search": self.web_search,
        }


@dataclass
class ModelArchitecture:
    modality: str = ""
    input_modalities: list[str] = field(default_factory=list)
    output_modalities: list[str] = field(default_factory=list)
    tokenizer: str = ""
    instruct_type: str | None = None


@dataclass
class ModelInfo:
    id: str
    provider: str = ""
    alias: str = ""
    architecture: ModelArchitecture | None = None
    pricing: ModelPricing | None = None
    supported_parameters: list[str] = field(default_factory=list)
    created: int | None = None

    def supports_tools(self) -> bool:
        return "tools" in self.supported_parameters

    def full_name(self) -> str:
        return f"{self.provider}:{self.id}"

    def supports_input_modality(self, modality: str) -> bool:
        if self.architecture is None:
            return False
        return modality in self.architecture.input_modalities

    def supports_output_modality(self, modality: str) -> bool:
        if self.architecture is None:
            return False
        return modality in self.architecture.output_modalities

    def supports_image_recognition(self) -> bool:
        return self.supports_input_modality("image")

    def supports_image_generation(self) -> bool:
        return self.supports_output_modality("image")

    def supports_files(self) -> bool:
        return self.supports_input_modality("file")

    def supports_audio_recognition(self) -> bool:
        return self.supports_input_modality("audio")

    def supports_text(self) -> bool:
        return self.supports_input_modality("text") and self.supports_output_modality("text")

    def is_multimodal(self) -> bool:
        return (
            self.supports_image_recognition()
            or self.supports_files()
            or self.supports_audio_recognition()
        )

    def created_at(self) -> datetime | None:
        """Creation time as an aware UTC datetime, or None if unknown."""
        if self.created is None:
            return None
        return datetime.fromtimestamp(self.created, tz=timezone.utc)

    def is_free(self) -> bool:
        p = self.pricing
        if p is None:
            return False
        return p.completion == "0" and p.prompt == "0" and p.image == "0" and p.web_search == "0"

    def formatted_input_modalities(self) -> str:
        if self.architecture is None:
            return ""
        return "".join(_INPUT_SYMBOLS.get(m, "") for m in self.architecture.input_modalities)

    def formatted_output_modalities(self) -> str:
        if self.architecture is None:
            return ""
        return "".join(_OUTPUT_SYMBOLS.get(m, "") for m in self.architecture.output_modalities)

    def formatted_modalities(self) -> str:
        inputs = self.formatted_input_modalities()
        outputs = self.formatted_output_modalities()
        modalities = UNKNOWN_MODALITIES
        if inputs and outputs:
            modalities = f"{inputs} \\> {outputs}"
        free = FREE if self.is_free() else ""
        tools = TOOLS if self.supports_tools() else ""
        return free + modalities + tools

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ModelInfo:
        """Build a model from a provider's models listing entry."""
        arch = data.get("architecture")
        architecture = None
        if isinstance(arch, dict):
            architecture = ModelArchitecture(
                modality=_as_str(arch.get("modality")),
                input_modalities=list(arch.get("input_modalities") or []),
                output_modalities=list(arch.get("output_modalities") or []),
                tokenizer=_as_str(arch.get("tokenizer")),
                instruct_type=arch.get("instruct_type"),
            )
        price = data.get("pricing")
        pricing = None
        if isinstance(price, dict):
            pricing = ModelPricing(
                completion=_as_str(price.get("completion")),
                prompt=_as_str(price.get("prompt")),
                image=_as_str(price.get("image")),
                web_search=_as_str(price.get("web_search")),
            )
        provider = data.get("provider")
        created = data.get("created")
        return cls(
            id=_as_str(data.get("id")),
            provider=provider if isinstance(provider, str) else "",
            alias=_as_str(data.get("alias")),
            architecture=architecture,
            pricing=pricing,
            supported_parameters=list(data.get("supported_parameters") or []),
            created=int(created) if created is not None else None,
        )

    @classmethod
    def from_config(cls, provider: str, config: ModelConfig) -> ModelInfo:
        """Build a model from a configured model entry of ``provider``."""
        return cls(
            id=config.model,
            provider=provider,
            architecture=ModelArchitecture(
                input_modalities=list(config.input_modalities),
                output_modalities=list(config.output_modalities),
            ),
            pricing=ModelPricing._free() if config.is_free else None,
            supported_parameters=list(config.supported_parameters),
        )


@dataclass
class ModelParams:
    stream: bool | None = None
    temperature: float | None = None
    max_tokens: int | None = None
    top_p: float | None = None
    frequency_penalty: float | None = None
    presence_penalty: float | None = None
    stop_sequences: list[str] = field(default_factory=list)


# --------------------------------------------------------------------------- messages


@dataclass
class Content:
    """One part of a multimodal message: text, image_url, file or input_audio."""

    type: str
    text: str = ""
    image_url: str = ""
    filename: str = ""
    file_data: str = ""
    audio_data: str = ""
    audio_format: str = ""
    annotations: list[AnnotationContent] = field(default_factory=list)

    def _to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"type": self.type}
        if self.text:
            out["text"] = self.text
        if self.image_url:
            out["image_url"] = {"url": self.image_url}
        if self.filename or self.file_data:
            out["file"] = {"filename": self.filename, "file_data": self.file_data}
        if self.audio_data or self.audio_format:
            out["input_audio"] = {"data": self.audio_data, "format": self.audio_format}
        if self.annotations:
            out["annotations"] = [a._to_dict() for a in self.annotations]
        return out

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> Content:
        image = data.get("image_url") or {}
        file = data.get("file") or {}
        audio = data.get("input_audio") or {}
        return cls(
            type=_as_str(data.get("type")),
            text=_as_str(data.get("text")),
            image_url=_as_str(image.get("url")),
            filename=_as_str(file.get("filename")),
            file_data=_as_str(file.get("file_data")),
            audio_data=_as_str(audio.get("data")),
            audio_format=_as_str(audio.get("format")),
            annotations=[AnnotationContent._from_dict(a) for a in data.get("annotations") or []],
        )


@dataclass
class AnnotationContent:
    type: str
    text: str = ""
    file_name: str = ""
    file_hash: str = ""
    file_content: list[Content] = field(default_factory=list)

    def _to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"type": self.type}
        if self.text:
            out["text"] = self.text
        if self.file_name or self.file_hash or self.file_content:
            out["file"] = {
                "name": self.file_name,
                "hash": self.file_hash,
                "content": [c._to_dict() for c in self.file_content],
            }
        return out

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> AnnotationContent:
        file = data.get("file") or {}
        return cls(
            type=_as_str(data.get("type")),
            text=_as_str(data.get("text")),
            file_name=_as_str(file.get("name")),
            file_hash=_as_str(file.get("hash")),
            file_content=[Content._from_dict(c) for c in file.get("content") or []],
        )


@dataclass
class Message:
    """A chat message; ``content`` for multimodal parts, ``text`` for plain text."""

    role: str
    content: list[Content] = field(default_factory=list)
    text: str = ""
    name: str = ""
    tool_call_id: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)

    def has_files(self) -> bool:
        return any(part.type == "file" for part in self.content)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"role": self.role}
        if self.name:
            out["name"] = self.name
        if self.tool_call_id:
            out["tool_call_id"] = self.tool_call_id
        if self.tool_calls:
            out["tool_calls"] = [tc.to_dict() for tc in self.tool_calls]
        if self.content:
            out["content"] = [part._to_dict() for part in self.content]
        else:
            out["content"] = self.text
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Message:
        message = cls(
            role=_as_str(data.get("role")),
            name=_as_str(data.get("name")),
            tool_call_id=_as_str(data.get("tool_call_id")),
            tool_calls=[ToolCall.from_dict(tc) for tc in data.get("tool_calls") or []],
        )
        content = data.get("content")
        if isinstance(content, str):
            message.text = content
        elif isinstance(content, list):
            message.content = [Content._from_dict(part) for part in content]
        elif content is not None:
            raise ValueError(f"unexpected content type: {type(content).__name__}")
        return message


# --------------------------------------------------------------------------- requests


@dataclass
class Plugin:
    id: str
    pdf_engine: str = ""
    max_results: int = 0
    search_prompt: str = ""

    def _to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"id": self.id}
        if self.pdf_engine:
            out["pdf"] = {"engine": self.pdf_engine}
        if self.max_results:
            out["max_results"] = self.max_results
        if self.search_prompt:
            out["search_prompt"] = self.search_prompt
        return out


@dataclass
class CompletionRequest:
    """A chat completion request; ``web_search`` and ``model_info`` are not sent."""

    model: str
    messages: list[Message] = field(default_factory=list)
    tools: list[Tool] = field(default_factory=list)
    stream: bool = False
    temperature: float | None = None
    max_tokens: int | None = None
    top_p: float | None = None
    frequency_penalty: float | None = None
    presence_penalty: float | None = None
    plugins: list[Plugin] = field(default_factory=list)
    provider_sort: str = ""
    provider_require_parameters: bool = False
    include_usage: bool = True
    web_search: bool = False
    model_info: ModelInfo | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "model": self.model,
            "messages": [m.to_dict() for m in self.messages],
        }
        if self.tools:
            out["tools"] = [t.to_dict() for t in self.tools]
        if self.stream:
            out["stream"] = True
        optional = {
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "top_p": self.top_p,
            "frequency_penalty": self.frequency_penalty,
            "presence_penalty": self.presence_penalty,
        }
        out.update({k: v for k, v in optional.items() if v is not None})
        if self.plugins:
            out["plugins"] = [p._to_dict() for p in self.plugins]
        if self.provider_sort or self.provider_require_parameters:
            provider: dict[str, Any] = {}
            if self.provider_sort:
                provider["sort"] = self.provider_sort
            if self.provider_require_parameters:
                provider["require_parameters"] = True
            out["provider"] = provider
        if self.include_usage:
            out["usage"] = {"include": True}
        return out


# --------------------------------------------------------------------------- responses


@dataclass
class UsageDetails:
    reasoning_tokens: int = 0
    cached_tokens: int = 0

    @classmethod
    def _from_dict(cls, data: dict[str, Any] | None) -> UsageDetails:
        data = data or {}
        return cls(
            reasoning_tokens=int(data.get("reasoning_tokens") or 0),
            cached_tokens=int(data.get("cached_tokens") or 0),
        )


@dataclass
class ModelUsage:
    completion_tokens: int = 0
    completion_tokens_details: UsageDetails = field(default_factory=UsageDetails)
    cost: float = 0.0
    prompt_tokens: int = 0
    prompt_tokens_details: UsageDetails = field(default_factory=UsageDetails)
    total_tokens: int = 0

    def cost_in_dollars(self) -> float:
        return float(self.cost) / 1000

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ModelUsage:
        data = data or {}
        return cls(
            completion_tokens=int(data.get("completion_tokens") or 0),
            completion_tokens_details=UsageDetails._from_dict(data.get("completion_tokens_details")),
            cost=float(data.get("cost") or 0),
            prompt_tokens=int(data.get("prompt_tokens") or 0),
            prompt_tokens_details=UsageDetails._from_dict(data.get("prompt_tokens_details")),
            total_tokens=int(data.get("total_tokens") or 0),
        )


@dataclass
class ProviderError:
    message: str = ""
    code: str = ""
    type: str = ""


@dataclass
class MessageResponse:
    content: str = ""
    reasoning: str = ""
    reasoning_content: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> MessageResponse:
        return cls(
            content=_as_str(data.get("content")),
            reasoning=_as_str(data.get("reasoning")),
            reasoning_content=_as_str(data.get("reasoning_content")),
            tool_calls=[ToolCall.from_dict(tc) for tc in data.get("tool_calls") or []],
        )


@dataclass
class CompletionResponse:
    """A non-streaming completion; ``choices`` holds each choice's message."""

    id: str = ""
    choices: list[MessageResponse] = field(default_factory=list)
    usage: ModelUsage = field(default_factory=ModelUsage)
    annotations: list[AnnotationContent] = field(default_factory=list)
    error: ProviderError | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CompletionResponse:
        error = data.get("error")
        return cls(
            id=_as_str(data.get("id")),
            choices=[
                MessageResponse._from_dict(choice.get("message") or {})
                for choice in data.get("choices") or []
            ],
            usage=ModelUsage.from_dict(data.get("usage")),
            annotations=[AnnotationContent._from_dict(a) for a in data.get("annotations") or []],
            error=ProviderError(
                message=_as_str(error.get("message")),
                code=_as_str(error.get("code")),
                type=_as_str(error.get("type")),
            )
            if isinstance(error, dict)
            else None,
        )


@dataclass
class Chunk:
    """One piece of a streamed completion."""

    content: str = ""
    reasoning: str = ""
    usage: ModelUsage | None = None
    tools: list[ToolCall] = field(default_factory=list)
    annotations: list[AnnotationContent] = field(default_factory=list)
    error: AIError | None = None


# --------------------------------------------------------------------------- tools


@dataclass
class Property:
    type: str
    enum: list[str] = field(default_factory=list)
    description: str = ""
    items: Property | None = None

    def _to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"type": self.type}
        if self.enum:
            out["enum"] = list(self.enum)
        if self.description:
            out["description"] = self.description
        if self.items is not None:
            out["items"] = self.items._to_dict()
        return out


@dataclass
class Parameters:
    type: str = "object"
    properties: dict[str, Property] = field(default_factory=dict)
    required: list[str] = field(default_factory=list)

    def _to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "type": self.type,
            "properties": {name: prop._to_dict() for name, prop in self.properties.items()},
        }
        if self.required:
            out["required"] = list(self.required)
        return out


@dataclass
class ToolFunction:
    name: str
    description: str = ""
    parameters: Parameters = field(default_factory=Parameters)


@dataclass
class Tool:
    function: ToolFunction
    type: str = "function"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "function": {
                "name": self.function.name,
                "description": self.function.description,
                "parameters": self.function.parameters._to_dict(),
            },
        }


@dataclass
class FunctionCall:
    name: str = ""
    arguments: str = ""

    def parsed_arguments(self) -> dict[str, Any]:
        """Decode the JSON arguments; raises ValueError unless they form an object."""
        result = json.loads(self.arguments)
        if result is None:
            return {}
        if not isinstance(result, dict):
            raise ValueError("function arguments are not a JSON object")
        return result


@dataclass
class ToolCall:
    index: int = 0
    id: str = ""
    type: str = ""
    function: FunctionCall = field(default_factory=FunctionCall)

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "id": self.id,
            "type": self.type,
            "function": {"name": self.function.name, "arguments": self.function.arguments},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ToolCall:
        function = data.get("function") or {}
        return cls(
            index=int(data.get("index") or 0),
            id=_as_str(data.get("id")),
            type=_as_str(data.get("type")),
            function=FunctionCall(
                name=_as_str(function.get("name")),
                arguments=_as_str(function.get("arguments")),
            ),
        )