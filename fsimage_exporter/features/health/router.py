"""Health endpoint reporting the background refresh state."""

from fastapi import APIRouter, Request

from fsimage_exporter import __app_name__, __version__
from fsimage_exporter.common.datetime_utils import age_seconds
from fsimage_exporter.features.health.schemas import HealthResponse, RefreshStatus

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    """Report refresh progress and the age of the published statistics.

    This endpoint is public (no authentication required) as it only
    exposes non-sensitive exporter state.
    """
    store = request.app.state.store
    scheduler = request.app.state.scheduler
    state = store.state
    snapshot = state.snapshot

    return HealthResponse(
        status="ok" if snapshot is not None else "starting",
        version=__version__,
        app_name=__app_name__,
        refresh=RefreshStatus(
            phase=scheduler.phase.value,
            has_snapshot=snapshot is not None,
            last_identity=state.last_identity,
            last_attempted_identity=state.last_attempted_identity,
            snapshot_age_seconds=age_seconds(snapshot.computed_at) if snapshot else None,
            last_attempt_at=state.last_attempt_at,
            last_error=state.last_error,
            last_error_type=state.last_error_type,
            success_count=state.success_count,
            failure_count=state.failure_count,
        ),
    )
