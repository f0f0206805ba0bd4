"""ASGI entrypoint for the PeakPerformance tracker API."""

from peak_performance.api.app import create_app
from peak_performance.containers import build_container

app = create_app(build_container())
