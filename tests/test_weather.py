import json
from datetime import date

import httpx
import pytest

from gachigazer.tools.weather import fetch_weather, format_forecast


def _hour(time, temp, desc, wind):
    return {
        "time": time,
        "tempC": temp,
        "weatherDesc": [{"value": desc}],
        "windspeedKmph": wind,
    }


DATA = {
    "current_condition": [
        {"temp_C": "5", "weatherDesc": [{"value": "Sunny"}], "windspeedKmph": "10"}
    ],
    "weather": [
        {
            "date": "2020-01-01",
            "hourly": [
                _hour("0", "1", "Clear", "3"),
                _hour("300", "2", "Cloudy", "4"),
                _hour("1200", "7", "Rain", "12"),
                _hour("2100", "4", "Mist", "6"),
            ],
        },
        {"date": "2020-01-02", "hourly": [_hour("1500", "8", "Fog", "5")]},
    ],
}


def _client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_format_forecast_today_heading_and_current():
    text = format_forecast(DATA, "London", 1, date(2020, 1, 1))
    assert text.startswith("Weather forecast for London:\n")
    assert "\nCurrent: 5°C, Sunny, wind 10 km/h\n" in text
    assert "\nToday, January 1:\n" in text


def test_format_forecast_uses_first_match_per_period_in_order():
    text = format_forecast(DATA, "London", 1, date(2020, 1, 1))
    assert "- Night: 1°C, Clear, wind 3 km/h\n" in text
    assert "Cloudy" not in text
    assert text.index("- Night:") < text.index("- Morning:") < text.index("- Evening:")
    assert "- Afternoon:" not in text


def test_format_forecast_limits_days_to_data():
    one = format_forecast(DATA, "London", 1, date(2020, 1, 1))
    many = format_forecast(DATA, "London", 5, date(2020, 1, 1))
    assert "Fog" not in one
    assert "- Afternoon: 8°C, Fog, wind 5 km/h\n" in many
    assert many.startswith(one)


def test_format_forecast_without_current_condition():
    text = format_forecast({"weather": []}, "Paris", 1, date(2020, 1, 1))
    assert text == "Weather forecast for Paris:\n"


def test_fetch_weather_requests_location_and_clamps_days():
    seen = []

    def handler(request):
        seen.append(request.url)
        return httpx.Response(200, content=json.dumps(DATA).encode())

    with _client(handler) as client:
        text = fetch_weather(client, "London", 0)
    assert seen[0].path == "/London"
    assert seen[0].params["format"] == "j1"
    assert text == format_forecast(DATA, "London", 1, date.today())


def test_fetch_weather_bad_json():
    with _client(lambda request: httpx.Response(200, content=b"not json")) as client:
        with pytest.raises(ValueError, match="Failed to parse weather data"):
            fetch_weather(client, "London", 2)


def test_fetch_weather_network_error():
    def handler(request):
        raise httpx.ConnectError("down", request=request)

    with _client(handler) as client:
        with pytest.raises(ConnectionError, match="Weather service unavailable"):
            fetch_weather(client, "London", 2)