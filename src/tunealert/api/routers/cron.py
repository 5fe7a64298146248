"""Cron trigger for scheduled batch jobs.

Hey future me - this is the endpoint the external scheduler hits every few minutes:

    GET /api/cron/check-new-releases
    Authorization: Bearer <CRON__SECRET>

It does nothing but authenticate and run ONE release check invocation. Status codes:
- 200: run finished (also when the time budget cut it short - progress is saved)
- 401: wrong/missing secret, nothing was touched
- 409: another invocation still holds the run claim
- 500: run failed as a whole, cron_state is flagged status=error
"""

from typing import Any

from fastapi import APIRouter, Depends

from tunealert.api.dependencies import get_release_check_service, verify_cron_secret
from tunealert.application.services import ReleaseCheckService

router = APIRouter(prefix="/cron", tags=["cron"])


@router.get("/check-new-releases", dependencies=[Depends(verify_cron_secret)])
async def check_new_releases(
    service: ReleaseCheckService = Depends(get_release_check_service),
) -> dict[str, Any]:
    """Run one invocation of the release notification job.

    JobAlreadyRunningError (409) and JobExecutionError (500) are mapped to
    {"error": ...} bodies by the registered exception handlers.
    """
    summary = await service.run()
    return summary.to_response()
