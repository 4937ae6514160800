# gachigazer

The AI and caching core of a chat bot. It contains:

- clients for chat-completion APIs that follow the OpenAI protocol;
- a registry that chooses which provider and model serve a request;
- key/value byte caches that expire entries, kept in memory, in SQLite, or in both.

## Installation

```
pip install .
```

To run the test suite as well:

```
pip install ".[test]"
pytest
```

## Shared types

`gachigazer.ai.types` defines the data that the clients exchange:

- requests: `Message`, `Content`, `CompletionRequest`, `Plugin`, `ModelParams`;
- responses: `CompletionResponse`, `MessageResponse`, `ModelUsage`, `Chunk`;
- tool calling: `Tool`, `ToolFunction`, `Parameters`, `Property`, `ToolCall`, `FunctionCall`;
- model descriptions: `ModelInfo`, `ModelArchitecture`, `ModelPricing`, `ModelConfig`.

`ModelInfo` reports what a model supports. `supports_tools()`, `supports_files()` and
`is_free()` are examples. `formatted_modalities()` gives a compact emoji summary of
inputs, outputs, free pricing and tool support.

## Providers

`gachigazer.ai.openai.OpenAICompatibleClient` works with any endpoint that implements
`chat/completions` and `models`.

- `ask` sends a plain request. It returns the content, the reasoning, the parsed
  `CompletionResponse` and the model info.
- `ask_stream` reads a server-sent-events response. It returns an iterator of `Chunk`
  objects and the model info. Tool calls that arrive in pieces are assembled and handed
  over on the chunk whose finish reason is `tool_calls`.
- `create_request` builds a `CompletionRequest` and adds plugins where needed. Web search
  adds a `web` plugin. Messages that carry files add a `file-parser` plugin, which uses the
  `native` engine if the model accepts files and `pdf-text` otherwise.
- `get_models` merges the models listed by the API with the configured models and caches
  the result for 30 minutes. With `override_models`, it returns only the configured models.
- `get_model_info` searches the configuration first, then the cache, then the API. If the
  model is not found anywhere, it raises `ModelNotFoundError`.

Two subclasses build on it:

- `gachigazer.ai.openrouter.OpenRouterClient` uses `https://openrouter.ai/api/v1` by
  default. It filters for free models and accepts the model name `random-free`, which picks
  a free model at random. Streamed requests are sorted by throughput for free models and by
  price for all others.
- `gachigazer.ai.local.LocalAIClient` sends no API key and lists only its configured models.

```python
import httpx
from gachigazer.ai.openai import OpenAICompatibleClient
from gachigazer.ai.types import Message, ModelParams

client = OpenAICompatibleClient(
    name="main",
    base_url="https://api.example.com/v1",
    chat_url="",
    api_key="placeholder",
    default_model="some-model",
    override_models=False,
    models=[],
    http_client=httpx.Client(),
)
model = client.get_model_info("some-model")
request = client.create_request(
    False, [Message(role="user", text="Hello")], [], model, ModelParams(), False
)
content, reasoning, response, info = client.ask(request, None)
```

## Registry

`gachigazer.ai.registry.ProviderRegistry(default_model, aliases)` holds providers by name.

`resolve_model` chooses a provider and model in this order:

1. an explicit `provider:model` spec;
2. the model set for the chat, supplied by a `ChatService`;
3. the registry's default.

`ask` and `ask_stream` combine model parameters through the chat service before they send
the request. `get_formatted_model` expands aliases, and it searches every provider when no
provider is given. `get_all_models` collects the models of each provider and skips any
provider that fails.

`gachigazer.ai.utils` has two helpers:

- `parse_model_spec` splits a `provider:model` string at its first colon.
- `handle_content_reasoning` separates inline reasoning from the answer. It recognises a
  `Reasoning:` label and `<reasoning>` tags.

## Errors

Provider failures raise `gachigazer.ai.types.AIError`. Each error carries a provider name,
a model name, an HTTP status and an error code.

- `error_type()` classifies the error as rate limit, server, client, content policy or
  unknown.
- `is_retryable()` tells whether the request can be sent again.
- `is_retryable_error`, `get_error_type` and `is_error_type` do the same for any exception,
  following its chain of causes.

Lookups raise their own errors: `InvalidModelFormatError`, `ProviderNotFoundError` and
`ModelNotFoundError`.

## Cache

`gachigazer.cache` provides three caches. Their `ttl` is a `timedelta` or a number of
seconds, and `get` returns `None` for a key that is missing or expired.

- `MemoryCache` keeps entries in memory and is thread-safe.
- `DBCache(connection)` keeps entries in a `cache` table of a `sqlite3` connection and
  creates that table if it is missing.
- `MultiLevelCache(memory, db)` writes to both levels. On a read it checks memory first,
  and it copies entries found only in the database into memory for 24 hours.

Key prefixes in `MultiLevelCache`:

- `mem:` keeps the entry in memory only.
- `db:` is removed, and the key is then handled like any other.

## What this package does not do

This package has no bot front end, no command-line program and no message storage. The
`gachigazer.tools` package holds no modules, so none of the tools that a model can call
are implemented here: there are no tool specifications, weather lookups or image
generation. The `ChatService` that the registry consults is a protocol only, and the
caller must supply an implementation.