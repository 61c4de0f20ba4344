from fastapi import APIRouter, Depends, HTTPException, status

from fieldbook.app.core.errors import RecordStoreUnavailable
from fieldbook.app.routers.deps import get_reminders
from fieldbook.app.services.reminders import ReminderRun, ReminderService


router = APIRouter()


@router.post("/reminders/run", response_model=ReminderRun)
async def run_reminders(reminders: ReminderService = Depends(get_reminders)) -> ReminderRun:
    """Send due booking reminders; meant to be hit by a cron job every few minutes."""
    try:
        return await reminders.run()
    except RecordStoreUnavailable as exc:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, detail="Record store unavailable") from exc
