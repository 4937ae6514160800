"""Weather forecasts from the wttr.in service."""

from __future__ import annotations

import json
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

import httpx

WEATHER_URL = "https://wttr.in/{location}?format=j1"

_TIME_SLOTS: tuple[tuple[str, frozenset[str]], ...] = (
    ("Night", frozenset({"0", "300", "600"})),
    ("Morning", frozenset({"900", "1200"})),
    ("Afternoon", frozenset({"1500"})),
    ("Evening", frozenset({"1800", "2100"})),
)
_WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
_MONTHS = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


def _description(entry: Mapping[str, Any]) -> str:
    descriptions = entry.get("weatherDesc") or []
    return str(descriptions[0].get("value", "")) if descriptions else ""


def _parse_date(value: Any) -> date:
    try:
        return datetime.strptime(str(value), "%Y-%m-%d").date()
    except ValueError:
        return date(1, 1, 1)


def _day_heading(day: date, today: date) -> str:
    name = "Today" if day == today else _WEEKDAYS[day.weekday()]
    return f"{name}, {_MONTHS[day.month - 1]} {day.day}"


def format_forecast(data: Mapping[str, Any], location: str, days: int, today: date) -> str:
    """Render a wttr.in ``j1`` document as a short forecast for ``days`` days."""
    parts = [f"Weather forecast for {location}:\n"]

    current_conditions = data.get("current_condition") or []
    if current_conditions:
        current = current_conditions[0]
        parts.append(
            f"\nCurrent: {current.get('temp_C', '')}°C, {_description(current)}, "
            f"wind {current.get('windspeedKmph', '')} km/h\n"
        )

    for day in (data.get("weather") or [])[: max(days, 0)]:
        parts.append(f"\n{_day_heading(_parse_date(day.get('date')), today)}:\n")
        hourly = day.get("hourly") or []
        for period, times in _TIME_SLOTS:
            hour = next((h for h in hourly if str(h.get("time")) in times), None)
            if hour is not None:
                parts.append(
                    f"- {period}: {hour.get('tempC', '')}°C, {_description(hour)}, "
                    f"wind {hour.get('windspeedKmph', '')} km/h\n"
                )

    return "".join(parts)


def fetch_weather(http_client: httpx.Client, location: str, days: int) -> str:
    """Fetch and format a forecast; ``days`` outside 1..7 means one day."""
    if days < 1 or days > 7:
        days = 1
    try:
        response = http_client.get(WEATHER_URL.format(location=location))
    except httpx.HTTPError as exc:
        raise ConnectionError("Weather service unavailable") from exc
    try:
        data = json.loads(response.content)
    except ValueError as exc:
        raise ValueError("Failed to parse weather data") from exc
    if not isinstance(data, dict):
        raise ValueError("Failed to parse weather data")
    return format_forecast(data, location, days, date.today())