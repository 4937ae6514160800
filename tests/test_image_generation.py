import json
import random

import httpx
import pytest

from gachigazer.tools.image_generation import (
    GeneratedImage,
    ImageGenerationError,
    ImageGenerator,
)

MODELS = {
    "free/one": {"providers": [{"pricing": {"type": "fixed", "value": 0}}]},
    "paid/two": {"providers": [{"pricing": {"type": "fixed", "value": 3}}]},
    "calc/three": {"providers": [{"pricing": {"type": "calculated", "value": 0}}]},
    "test/test": {"providers": [{"pricing": {"type": "fixed", "value": 0}}]},
    "none/four": {"providers": []},
}


def _generator(models=MODELS, status=200, images=None, seen=None):
    def handler(request):
        if request.url.path.endswith("/models"):
            return httpx.Response(200, content=json.dumps(models).encode())
        if seen is not None:
            seen.append(request)
        data = [{"b64_json": "aGVsbG8="}] if images is None else images
        return httpx.Response(status, content=json.dumps({"data": data}).encode())

    client = httpx.Client(transport=httpx.MockTransport(handler))
    return ImageGenerator(client, random.Random(1))


def test_free_models_filters_listing():
    assert _generator().free_models() == ["free/one"]


def test_random_free_model_picks_from_free():
    assert _generator().random_free_model() == "free/one"


def test_random_free_model_fallback_when_none_free():
    assert _generator(models={"paid/two": MODELS["paid/two"]}).random_free_model() == "test/test"


def test_generate_with_explicit_model_sends_request():
    seen = []
    result = _generator(seen=seen).generate_image("a cat", "my/model", "placeholder")
    assert result == GeneratedImage("Image generated and sent in chat", "aGVsbG8=", "my/model")
    request = seen[0]
    assert request.headers["Authorization"] == "Bearer placeholder"
    body = json.loads(request.content)
    assert body == {
        "prompt": "a cat",
        "model": "my/model",
        "quality": "auto",
        "response_format": "b64_json",
    }


def test_generate_without_model_uses_free_model():
    result = _generator().generate_image("a cat", "", "placeholder")
    assert result.model == "free/one"


def test_rate_limit_raises():
    with pytest.raises(ImageGenerationError) as info:
        _generator(status=429).generate_image("a cat", "my/model", "placeholder")
    assert info.value.reply == "limit is reached"


def test_empty_data_raises():
    with pytest.raises(ImageGenerationError) as info:
        _generator(images=[]).generate_image("a cat", "my/model", "placeholder")
    assert info.value.reply == "Image not generated"
    assert str(info.value) == "image not generated"