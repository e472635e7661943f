"""Page rendering."""

from trmnl_agenda.render.html_renderer import DashboardHTMLRenderer, render_page

__all__ = ["DashboardHTMLRenderer", "render_page"]
