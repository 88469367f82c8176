"""Entrypoint for running the attendance API via `python -m slack_attendance.main`."""

from __future__ import annotations

import logging
import os

import uvicorn

from .api import create_app
from .config import load_settings


def run() -> None:
    env_file = os.getenv("SLACK_ATTENDANCE_ENV")
    settings = load_settings(env_file)
    logging.basicConfig(level=settings.log_level.upper(), handlers=[logging.StreamHandler()])
    app = create_app(settings)
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        log_level=settings.log_level,
    )


if __name__ == "__main__":  # pragma: no cover
    run()
