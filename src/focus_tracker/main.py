from __future__ import annotations

import uvicorn

from focus_tracker.api import build_app
from focus_tracker.config import load_settings
from focus_tracker.logging_setup import setup_logging
from focus_tracker.services import build_services


def run_app() -> None:
    settings = load_settings()
    setup_logging(settings.log_level)
    services = build_services(settings)
    app = build_app(services, settings.api_token)
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
