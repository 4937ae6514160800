import pytest

from gachigazer.tools.specs import (
    all_tools,
    available_tools,
    available_tools_text,
    tool_names,
)

BASE = {
    "weather",
    "search",
    "fetch_url",
    "generate_image",
    "search_images",
    "fetch_yt_comments",
}
TELEGRAM = {"fetch_tg_posts", "fetch_tg_post_comments"}


def test_all_tools_default_set():
    assert set(all_tools()) == BASE


def test_all_tools_with_telegram():
    assert set(all_tools(include_telegram=True)) == BASE | TELEGRAM


@pytest.mark.parametrize("include_telegram", [False, True])
def test_tool_function_names_match_keys(include_telegram):
    for name, tool in all_tools(include_telegram).items():
        data = tool.to_dict()
        assert data["type"] == "function"
        assert data["function"]["name"] == name


def test_allowed_tools_filter_and_ignore_unknown():
    result = available_tools(["search", "nope", "weather"], [])
    assert list(result) == ["search", "weather"]


def test_allowed_takes_precedence_over_excluded():
    result = available_tools(["search"], ["search"])
    assert list(result) == ["search"]


def test_excluded_tools_removed():
    result = available_tools([], ["search", "weather"])
    assert set(result) == BASE - {"search", "weather"}


def test_empty_lists_give_everything():
    assert set(available_tools()) == BASE


def test_telegram_tool_allowed_only_when_included():
    assert available_tools(["fetch_tg_posts"]) == {}
    assert list(available_tools(["fetch_tg_posts"], include_telegram=True)) == ["fetch_tg_posts"]


def test_tool_names_match_available_tools():
    assert tool_names([], ["fetch_url"]) == list(available_tools([], ["fetch_url"]))
    assert "fetch_url" not in tool_names([], ["fetch_url"])


def test_available_tools_text_lists_parameters():
    text = available_tools_text(["fetch_url"])
    assert text.startswith("• fetch_url: Fetch full content from URL.")
    assert "  Parameters:\n" in text
    assert "  - url (string): \n" in text


def test_available_tools_text_has_one_entry_per_tool():
    text = available_tools_text()
    entries = [line for line in text.splitlines() if line.startswith("• ")]
    assert len(entries) == len(BASE)


def test_telegram_duration_mentions_limit():
    tool = all_tools(include_telegram=True)["fetch_tg_posts"]
    description = tool.to_dict()["function"]["parameters"]["properties"]["duration"]["description"]
    assert "Max: 720h" in description


def test_all_tools_returns_independent_copies():
    first = all_tools()
    first.pop("search")
    assert "search" in all_tools()