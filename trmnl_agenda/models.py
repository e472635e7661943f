"""Request-scoped data models for the dashboard page."""

from pydantic import BaseModel, ConfigDict, Field

FALLBACK_SUMMARY = "Opptatt"


class CalendarEvent(BaseModel):
    """One of today's events, projected for display."""

    time: str = Field(..., description="Start time as HH:MM in the dashboard timezone")
    summary: str = Field(default=FALLBACK_SUMMARY, description="Event title")
    all_day: bool = Field(default=False, description="Date-only (all-day) event")

    model_config = ConfigDict(frozen=True)


class WeatherSnapshot(BaseModel):
    """Current weather taken from the first forecast timeseries entry."""

    temperature: float = Field(..., description="Air temperature in Celsius degrees")
    precipitation_next_hour: str = Field(
        default="0", description="Next-hour precipitation in mm, one decimal"
    )
    symbol_code: str = Field(default="", description="MET symbol code, e.g. partlycloudy_day")

    model_config = ConfigDict(frozen=True)

    @property
    def symbol_label(self) -> str:
        """Symbol code made readable (``partlycloudy_day`` -> ``partlycloudy day``)."""
        return self.symbol_code.replace("_", " ")


class PageModel(BaseModel):
    """Everything the renderer needs for one page."""

    events: list[CalendarEvent] = Field(default_factory=list)
    weather: WeatherSnapshot

    model_config = ConfigDict(frozen=True)
