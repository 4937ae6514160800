import json

import httpx

from gachigazer.ai.local import LocalAIClient
from gachigazer.ai.types import Message, ModelConfig, ModelInfo, ModelParams

BASE = "http://localhost:11434/v1"


def make_client(handler, models=()):
    http = httpx.Client(transport=httpx.MockTransport(handler))
    return LocalAIClient("local", base_url=BASE, models=models, http_client=http)


CONFIGURED = [
    ModelConfig(
        model="llama",
        input_modalities=["text", "image"],
        output_modalities=["text"],
        supported_parameters=["tools"],
        is_free=True,
    ),
    ModelConfig(model="paid", input_modalities=["text"], output_modalities=["text"]),
]


def test_get_models_returns_configured_models_without_requests():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={"data": []})

    client = make_client(handler, CONFIGURED)
    models = client.get_models(only_free=True, fresh=True)
    assert set(models) == {"llama", "paid"}
    assert calls == []
    llama = models["llama"]
    assert llama.provider == "local"
    assert llama.is_free()
    assert llama.supports_image_recognition()
    assert llama.supported_parameters == []
    assert not models["paid"].is_free()
    assert models["paid"].pricing is None


def test_get_model_info_from_config_keeps_supported_parameters():
    client = make_client(lambda request: httpx.Response(200, json={"data": []}), CONFIGURED)
    info = client.get_model_info("llama")
    assert info.supports_tools()
    assert info.full_name() == "local:llama"


def test_ask_sends_no_authorization():
    seen = {}

    def handler(request):
        seen["headers"] = request.headers
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": "pong"}}]})

    client = make_client(handler, CONFIGURED)
    model = ModelInfo(id="llama", provider="local")
    request = client.create_request(False, [Message(role="user", text="ping")], [], model, ModelParams(), False)
    content, reasoning, _, info = client.ask(request)
    assert content == "pong"
    assert reasoning == ""
    assert info is model
    assert "authorization" not in seen["headers"]
    assert seen["url"] == BASE + "/chat/completions"
    assert seen["body"]["model"] == "llama"


def test_default_model_is_kept():
    http = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
    client = LocalAIClient("local", base_url=BASE, default_model="llama", http_client=http)
    assert client.default_model == "llama"
    assert client.name == "local"
    assert client.get_models() == {}