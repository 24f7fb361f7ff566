"""Jinja2 environment for the public pages and the admin screen.

Templates are the presentation layer. Autoescaping is left on, which is what
keeps admin-entered rules and instructions from injecting markup.
"""

from __future__ import annotations

from datetime import date

from fastapi import Request
from fastapi.templating import Jinja2Templates

from .config import AppSettings


def build_templates(settings: AppSettings) -> Jinja2Templates:
    """Create a ``Jinja2Templates`` instance with the site globals registered."""

    templates = Jinja2Templates(directory=str(settings.templates_dir))
    env = templates.env
    env.globals["site_title"] = settings.SITE_TITLE
    # A callable so the page title rolls over at new year without a restart.
    env.globals["current_year"] = lambda: date.today().year
    return templates


def get_templates(request: Request) -> Jinja2Templates:
    return request.app.state.templates
