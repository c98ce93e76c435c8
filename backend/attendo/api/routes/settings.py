from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from attendo.api.deps import get_db, require_timetable_admin
from attendo.models.user import User
from attendo.schemas.settings import TimetableSettingsOut, TimetableSettingsUpdate
from attendo.services.timetable_settings import load_timetable_settings, update_timetable_settings

router = APIRouter()


@router.get("/timetable-settings", response_model=TimetableSettingsOut)
def get_timetable_settings(
    current_user: User = Depends(require_timetable_admin),
    db: Session = Depends(get_db),
) -> TimetableSettingsOut:
    return load_timetable_settings(db)


@router.put("/timetable-settings", response_model=TimetableSettingsOut)
def put_timetable_settings(
    payload: TimetableSettingsUpdate,
    current_user: User = Depends(require_timetable_admin),
    db: Session = Depends(get_db),
) -> TimetableSettingsOut:
    return update_timetable_settings(db, payload)
