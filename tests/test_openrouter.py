import json
import random

import httpx
import pytest

from gachigazer.ai.openrouter import OpenRouterClient
from gachigazer.ai.types import CompletionRequest, ModelInfo, ModelNotFoundError, ModelPricing

FREE_PRICING = {"completion": "0", "prompt": "0", "image": "0", "web_search": "0"}
PAID_PRICING = {"completion": "0.01", "prompt": "0.01", "image": "0", "web_search": "0"}


class _Server:
    def __init__(self, models):
        self.models = models
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.endswith("/models"):
            return httpx.Response(200, json={"data": self.models})
        if path.endswith("/chat/completions"):
            body = json.loads(request.content)
            if body.get("stream"):
                payload = (
                    b'data: {"choices":[{"delta":{"content":"hi"},"finish_reason":null}]}\n\n'
                    b"data: [DONE]\n\n"
                )
                return httpx.Response(200, content=payload)
            return httpx.Response(
                200,
                json={"id": "c1", "choices": [{"message": {"content": "hello", "reasoning": "why"}}]},
            )
        return httpx.Response(404)

    def model_requests(self):
        return [r for r in self.requests if r.url.path.endswith("/models")]

    def chat_bodies(self):
        return [json.loads(r.content) for r in self.requests if r.url.path.endswith("/chat/completions")]


def _models():
    return [
        {"id": "free/model", "pricing": FREE_PRICING},
        {"id": "paid/model", "pricing": PAID_PRICING},
    ]


def _client(server, **kwargs):
    http = httpx.Client(transport=httpx.MockTransport(server))
    return OpenRouterClient("openrouter", http_client=http, **kwargs)


def test_default_base_url_used_for_models():
    server = _Server(_models())
    client = _client(server)
    client.get_models(False, True)
    assert str(server.requests[0].url) == "https://openrouter.ai/api/v1/models"


def test_api_key_sent_as_bearer():
    server = _Server(_models())
    client = _client(server, api_key="placeholder")
    client.get_models(False, True)
    assert server.requests[0].headers["Authorization"] == "Bearer placeholder"


def test_only_free_filters_models():
    server = _Server(_models())
    client = _client(server)
    assert set(client.get_models(True, True)) == {"free/model"}


def test_all_models_are_cached():
    server = _Server(_models())
    client = _client(server)
    first = client.get_models(False, True)
    second = client.get_models(False, False)
    assert set(first) == set(second) == {"free/model", "paid/model"}
    assert len(server.model_requests()) == 1


def test_free_listing_does_not_replace_cache():
    server = _Server(_models())
    client = _client(server)
    client.get_models(False, True)
    assert set(client.get_models(True, True)) == {"free/model"}
    assert set(client.get_models(False, False)) == {"free/model", "paid/model"}


def test_only_free_models_client_caches_free_listing():
    server = _Server(_models())
    client = _client(server, only_free_models=True)
    assert set(client.get_models(False, True)) == {"free/model"}
    assert set(client.get_models(False, False)) == {"free/model"}
    assert len(server.model_requests()) == 1


def test_random_free_model_is_free():
    server = _Server(_models() + [{"id": "free/other", "pricing": FREE_PRICING}])
    client = _client(server, rng=random.Random(0))
    for _ in range(5):
        assert client.get_random_free_model() in {"free/model", "free/other"}


def test_random_free_model_without_free_models():
    server = _Server([{"id": "paid/model", "pricing": PAID_PRICING}])
    client = _client(server)
    with pytest.raises(LookupError, match="no free models available"):
        client.get_random_free_model()


def test_ask_with_random_free_model():
    server = _Server(_models())
    client = _client(server)
    request = CompletionRequest(model="random-free")
    content, reasoning, response, _ = client.ask(request)
    assert content == "hello"
    assert reasoning == "why"
    assert server.chat_bodies()[0]["model"] == "free/model"
    assert request.model == "random-free"


def test_ask_with_empty_model_uses_default():
    server = _Server(_models())
    client = _client(server, default_model="paid/model")
    client.ask(CompletionRequest(model=""))
    assert server.chat_bodies()[0]["model"] == "paid/model"


def test_ask_random_free_failure_wraps_error():
    server = _Server([{"id": "paid/model", "pricing": PAID_PRICING}])
    client = _client(server)
    with pytest.raises(LookupError, match="failed to get random free model"):
        client.ask(CompletionRequest(model="random-free"))


def test_ask_stream_paid_model_sorts_by_price():
    server = _Server(_models())
    client = _client(server)
    info = ModelInfo(id="paid/model", pricing=ModelPricing(completion="1"))
    chunks, returned = client.ask_stream(CompletionRequest(model="paid/model", stream=True, model_info=info))
    assert [c.content for c in chunks] == ["hi"]
    assert returned is info
    chat = [r for r in server.requests if r.url.path.endswith("/chat/completions")][0]
    assert chat.headers["X-Title"] == "Gachigazer"
    assert json.loads(chat.content)["provider"] == {"sort": "price"}


def test_ask_stream_free_model_sorts_by_throughput():
    server = _Server(_models())
    client = _client(server)
    info = ModelInfo(id="free/model", pricing=ModelPricing("0", "0", "0", "0"))
    chunks, _ = client.ask_stream(CompletionRequest(model="free/model", stream=True, model_info=info))
    list(chunks)
    assert server.chat_bodies()[0]["provider"] == {"sort": "throughput"}


def test_get_model_info_random_free():
    server = _Server(_models())
    client = _client(server)
    model = client.get_model_info("random-free")
    assert model.id == "free/model"
    assert model.is_free()


def test_get_model_info_random_free_without_free_models():
    server = _Server([{"id": "paid/model", "pricing": PAID_PRICING}])
    client = _client(server)
    with pytest.raises(ModelNotFoundError) as info:
        client.get_model_info("random-free")
    assert info.value.model.id == "random-free"
    assert info.value.model.provider == "openrouter"