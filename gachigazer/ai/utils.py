"""Helpers for model specs and for reasoning embedded in model output."""

from __future__ import annotations

from gachigazer.ai.types import InvalidModelFormatError

_REASONING_LABEL = "Reasoning:"
_REASONING_OPEN = "<reasoning>"
_REASONING_CLOSE = "</reasoning>"
_REASONING_FENCE = "```reasoning"
_FENCE = "```"


def parse_model_spec(model_spec: str) -> tuple[str, str]:
    """Split ``provider:model`` into its two parts.

    Only the first colon separates; the model part may hold further colons.
    Raises InvalidModelFormatError when there is no colon at all.
    """
    provider, sep, model = model_spec.partition(":")
    if not sep:
        raise InvalidModelFormatError(model_spec)
    return provider, model


def handle_content_reasoning(text: str) -> tuple[str, str]:
    """Separate reasoning written inline by a model from the answer itself.

    Returns ``(content, reasoning)``; when no reasoning marker is recognised the
    text comes back unchanged with empty reasoning.
    """
    content = text
    reasoning = ""

    if _REASONING_LABEL in text:
        head, _, tail = text.partition(_REASONING_LABEL)
        return head.strip(), tail.strip()

    if _REASONING_OPEN in text:
        start = text.find(_REASONING_OPEN)
        end = text.find(_REASONING_CLOSE)
        if start >= 0 and end > start:
            reasoning = content[start + len(_REASONING_OPEN):end].strip()
            content = (content[:start] + content[end + len(_REASONING_CLOSE):]).strip()
        return content, reasoning

    if _REASONING_FENCE in content:
        start = content.find(_REASONING_FENCE)
        # The closing fence is searched from the beginning, so it is found at
        # the opening fence itself and the block is left in place.
        end = content.find(_FENCE)
        if start >= 0 and end > start:
            reasoning = content[start + len(_REASONING_FENCE):end].strip()
            content = (content[:start] + content[end + len(_FENCE):]).strip()

    return content, reasoning