"""Weather side of the dashboard (MET Norway Locationforecast)."""

from trmnl_agenda.weather.met_client import fetch_weather_now, parse_forecast

__all__ = ["fetch_weather_now", "parse_forecast"]
