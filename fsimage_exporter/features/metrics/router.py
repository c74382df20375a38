"""Prometheus scrape endpoint."""

from fastapi import APIRouter, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["Metrics"])


@router.get("/metrics")
def metrics(request: Request) -> Response:
    """Render the exporter registry in Prometheus text format.

    Declared sync so FastAPI runs it on the thread pool; concurrent scrapes
    never block the event loop that drives the refresh task.
    """
    registry = request.app.state.registry
    return Response(content=generate_latest(registry), media_type=CONTENT_TYPE_LATEST)
