"""HTML rendering of the dashboard page for the TRMNL e-ink display."""

import html
import logging

from trmnl_agenda.models import CalendarEvent, PageModel, WeatherSnapshot

logger = logging.getLogger(__name__)

TRMNL_STYLESHEET_URL = "https://usetrmnl.com/css/latest/plugins.css"
PAGE_TITLE = "Dagens agenda + vær"
NO_EVENTS_TEXT = "Ingen hendelser"
ALL_DAY_TEXT = "Hele dagen"

_INLINE_STYLE = (
    "body{margin:0;font-family:var(--font)}.grid{display:flex;height:100vh}"
    ".col{flex:1;padding:1.6rem}.title{font-size:1.2rem;font-weight:700}\n"
    "ul{margin:0;padding:0;list-style:none}li{margin:.25rem 0}"
    ".weather-now{font-size:2.5rem;font-weight:700}.label{font-size:.9rem;opacity:.7}\n"
)


class DashboardHTMLRenderer:
    """Renders a PageModel as a two-column HTML document (events | weather).

    Rendering is pure string substitution; every value that originates from the
    calendar feed or the forecast API is escaped.
    """

    def render(self, page: PageModel) -> str:
        """Render the complete HTML document.

        Args:
            page: Events and weather for the page

        Returns:
            str: Complete HTML document with doctype, head and body
        """
        logger.debug("Rendering dashboard with %d event(s)", len(page.events))
        return (
            '<!DOCTYPE html><html lang="no"><head>\n'
            f'<meta charset="utf-8"><link rel="stylesheet" href="{TRMNL_STYLESHEET_URL}">\n'
            f"<style>{_INLINE_STYLE}</style><title>{self._escape_html(PAGE_TITLE)}</title>"
            "</head><body>\n"
            '<div class="grid">\n'
            f"{self._render_events_column(page.events)}\n"
            f"{self._render_weather_column(page.weather)}\n"
            "</div>\n"
            "</body></html>"
        )

    def _render_events_column(self, events: list[CalendarEvent]) -> str:
        if events:
            items = "".join(self._render_event(event) for event in events)
        else:
            items = f"<li>{NO_EVENTS_TEXT}</li>"
        return (
            '  <div class="col">\n'
            '    <div class="title">I DAG</div>\n'
            f"    <ul>\n      {items}\n    </ul>\n"
            "  </div>"
        )

    def _render_event(self, event: CalendarEvent) -> str:
        time_text = ALL_DAY_TEXT if event.all_day else event.time
        return (
            f"<li><strong>{self._escape_html(time_text)}</strong> "
            f"{self._escape_html(event.summary)}</li>"
        )

    def _render_weather_column(self, weather: WeatherSnapshot) -> str:
        return (
            '  <div class="col" style="text-align:center">\n'
            '    <div class="title">Vær nå</div>\n'
            f'    <div class="weather-now">{weather.temperature:.1f}°C</div>\n'
            '    <div class="label">Nedbør neste time: '
            f"{self._escape_html(weather.precipitation_next_hour)} mm</div>\n"
            f'    <div class="label">{self._escape_html(weather.symbol_label)}</div>\n'
            "  </div>"
        )

    @staticmethod
    def _escape_html(text: str) -> str:
        """Escape HTML special characters, quotes included."""
        if not text:
            return ""
        return html.escape(text, quote=True)


def render_page(page: PageModel) -> str:
    """Render ``page`` with the default renderer."""
    return DashboardHTMLRenderer().render(page)
