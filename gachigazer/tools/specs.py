"""Descriptions of the tools offered to models, and selection among them."""

from __future__ import annotations

from collections.abc import Iterable

from gachigazer.ai.types import Parameters, Property, Tool, ToolFunction

TOOL_WEATHER = "weather"
TOOL_SEARCH = "search"
TOOL_FETCH_URL = "fetch_url"
TOOL_GENERATE_IMAGE = "generate_image"
TOOL_SEARCH_IMAGES = "search_images"
TOOL_FETCH_TG_POSTS = "fetch_tg_posts"
TOOL_FETCH_TG_POST_COMMENTS = "fetch_tg_post_comments"
TOOL_FETCH_YT_COMMENTS = "fetch_yt_comments"

TG_MAX_DURATION_HOURS = 720

_TIME_LIMITS = ["", "d", "w", "m", "y"]


def _function_tool(name: str, description: str, properties: dict[str, Property], required: list[str]) -> Tool:
    return Tool(
        type="function",
        function=ToolFunction(
            name=name,
            description=description,
            parameters=Parameters(type="object", properties=properties, required=required),
        ),
    )


def _base_tools() -> dict[str, Tool]:
    return {
        TOOL_WEATHER: _function_tool(
            TOOL_WEATHER,
            "Fetches comprehensive weather forecasts",
            {
                "location": Property(
                    type="string",
                    description="City name in English (e.g., `London`, `New+York`)",
                ),
                "days": Property(
                    type="integer",
                    description=(
                        "Number of forecast days (1-3). 1 - Today, 2 - Today and tomorrow, etc."
                    ),
                ),
            },
            ["location", "days"],
        ),
        TOOL_SEARCH: _function_tool(
            TOOL_SEARCH,
            "Search with duckduckgo, use when need more relevant information.",
            {
                "query": Property(type="string", description="Search query"),
                "max_results": Property(
                    type="integer", description="Max search results. Min: 3, max: 10"
                ),
                "time_limit": Property(
                    type="string",
                    enum=list(_TIME_LIMITS),
                    description=(
                        "Time range for search results: 'd' (last 24h), 'w' (last week), "
                        "'m' (last month), 'y' (last year). Leave empty for all time."
                    ),
                ),
            },
            ["query", "max_results"],
        ),
        TOOL_FETCH_URL: _function_tool(
            TOOL_FETCH_URL,
            "Fetch full content from URL. Use when you need more info from URL "
            "(e.g. after search) or if user asks.",
            {"url": Property(type="string")},
            ["url"],
        ),
        TOOL_GENERATE_IMAGE: _function_tool(
            TOOL_GENERATE_IMAGE,
            "Generate image with prompt",
            {"prompt": Property(type="string", description="Detailed prompt in English")},
            ["prompt"],
        ),
        TOOL_SEARCH_IMAGES: _function_tool(
            TOOL_SEARCH_IMAGES,
            "Search images in internet",
            {
                "keywords": Property(type="string", description="Search keywords"),
                "max_results": Property(
                    type="integer", description="Limit images in result. Min 1, max 5"
                ),
                "time_limit": Property(
                    type="string",
                    enum=list(_TIME_LIMITS),
                    description=(
                        "Time range for search results: 'd' (last 24h), 'w' (last week), "
                        "'m' (last month), 'y' (last year). Default: empty. "
                        "Leave empty for all time."
                    ),
                ),
            },
            ["keywords", "max_results"],
        ),
        TOOL_FETCH_YT_COMMENTS: _function_tool(
            TOOL_FETCH_YT_COMMENTS,
            "Fetch comments from YouTube video",
            {
                "url": Property(type="string", description="YouTube video URL"),
                "max": Property(
                    type="integer",
                    description="Maximum number of comments to fetch (default: 50, max: 100)",
                ),
            },
            ["url"],
        ),
    }


def _telegram_tools() -> dict[str, Tool]:
    return {
        TOOL_FETCH_TG_POSTS: _function_tool(
            TOOL_FETCH_TG_POSTS,
            'Fetch posts from telegram channel. By default uses limit=10. Use duration for '
            'time period (e.g. "last 24h") OR limit for exact count. Can use both only if '
            'explicitly requested (e.g. "last 5 posts from 24h")',
            {
                "channel_name": Property(type="string", description="Channel username"),
                "duration": Property(
                    type="string",
                    description=(
                        "Only use when time period is specified (e.g. 'posts from last 24h'). "
                        f"Must end with 'h'. Max: {TG_MAX_DURATION_HOURS}h"
                    ),
                ),
                "limit": Property(
                    type="integer",
                    description="Use when post count is specified (e.g. '5 posts'). Max: 100",
                ),
            },
            ["channel_name"],
        ),
        TOOL_FETCH_TG_POST_COMMENTS: _function_tool(
            TOOL_FETCH_TG_POST_COMMENTS,
            "Fetch comments from telegram post. Accepts either channel_name with post_id or "
            "automatically extracts them from telegram URL (e.g. [messaging-link])",
            {
                "channel_name": Property(
                    type="string",
                    description="Channel username (can be extracted from [messaging-link])",
                ),
                "post_id": Property(
                    type="integer",
                    description="Post ID (can be extracted from [messaging-link])",
                ),
            },
            ["channel_name", "post_id"],
        ),
    }


def all_tools(include_telegram: bool = False) -> dict[str, Tool]:
    """Every known tool by name; the Telegram tools only when requested."""
    tools = _base_tools()
    if include_telegram:
        tools.update(_telegram_tools())
    return tools


def available_tools(
    allowed_tools: Iterable[str] = (),
    excluded_tools: Iterable[str] = (),
    include_telegram: bool = False,
) -> dict[str, Tool]:
    """Tools left after applying an allow list, or failing that an exclude list."""
    allowed = list(allowed_tools or ())
    excluded = set(excluded_tools or ())
    known = all_tools(include_telegram)
    if allowed:
        return {name: known[name] for name in allowed if name in known}
    if excluded:
        return {name: tool for name, tool in known.items() if name not in excluded}
    return known


def tool_names(
    allowed_tools: Iterable[str] = (),
    excluded_tools: Iterable[str] = (),
    include_telegram: bool = False,
) -> list[str]:
    """Names of the available tools."""
    return list(available_tools(allowed_tools, excluded_tools, include_telegram))


def available_tools_text(
    allowed_tools: Iterable[str] = (),
    excluded_tools: Iterable[str] = (),
    include_telegram: bool = False,
) -> str:
    """A readable list of the available tools and their parameters."""
    lines: list[str] = []
    for name, tool in available_tools(allowed_tools, excluded_tools, include_telegram).items():
        function = tool.function
        lines.append(f"• {name}: {function.description}\n")
        properties = function.parameters.properties
        if properties:
            lines.append("  Parameters:\n")
            for param_name, param in properties.items():
                lines.append(f"  - {param_name} ({param.type}): {param.description}\n")
    return "".join(lines)