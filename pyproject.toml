[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gachigazer"
version = "0.1.0"
description = "OpenAI-compatible AI provider clients, a provider registry and layered caches for a chat bot"
requires-python = ">=3.10"
keywords = ["ai", "llm", "openai", "openrouter", "chat", "bot", "cache", "sqlite"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Communications :: Chat",
]
dependencies = [
    "httpx",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["gachigazer"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
