"""Health and job status endpoints."""

from typing import Any

from fastapi import APIRouter, Depends

from tunealert.api.dependencies import get_app_settings, get_checkpoint_repository
from tunealert.config import Settings
from tunealert.infrastructure.persistence import CheckpointRepository

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health(settings: Settings = Depends(get_app_settings)) -> dict[str, str]:
    """Liveness probe."""
    return {"status": "ok", "app": settings.app_name}


# Yo, this is what you look at when "nobody got notifications today": status=error plus
# error_message tells you the last run blew up, a cursor that never moves tells you the
# scheduler stopped calling us.
@router.get("/jobs/{job_name}")
async def job_status(
    job_name: str,
    checkpoints: CheckpointRepository = Depends(get_checkpoint_repository),
) -> dict[str, Any]:
    """Get the checkpoint of a batch job (404 if the job was never seeded)."""
    checkpoint = await checkpoints.load(job_name)
    return checkpoint.to_dict()
