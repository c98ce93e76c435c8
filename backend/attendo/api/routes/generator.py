import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from attendo.api.deps import get_db, require_timetable_admin
from attendo.core.exceptions import AppError
from attendo.models.user import User
from attendo.schemas.generator import GenerateTimetableRequest, GenerateTimetableResponse, PreflightReport
from attendo.services.generation import generate_timetable
from attendo.services.generation_lock import GenerationLockRegistry, get_generation_locks
from attendo.services.preflight import run_preflight

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/timetable/generate/pre-flight", response_model=PreflightReport)
def get_preflight_report(
    term_id: str = Query(min_length=1, max_length=36),
    current_user: User = Depends(require_timetable_admin),
    db: Session = Depends(get_db),
) -> PreflightReport:
    return run_preflight(db, term_id)


@router.post(
    "/timetable/generate",
    response_model=GenerateTimetableResponse,
    status_code=status.HTTP_201_CREATED,
)
def post_generate_timetable(
    payload: GenerateTimetableRequest,
    current_user: User = Depends(require_timetable_admin),
    db: Session = Depends(get_db),
    locks: GenerationLockRegistry = Depends(get_generation_locks),
) -> GenerateTimetableResponse:
    try:
        return generate_timetable(db, payload, locks=locks, user=current_user)
    except AppError as exc:
        logger.warning(
            "TIMETABLE GENERATION REJECTED | user_id=%s | term_id=%s | status=%s | reason=%s",
            current_user.id,
            payload.term_id,
            exc.status_code,
            exc.message,
        )
        raise
    except Exception:
        logger.exception(
            "TIMETABLE GENERATION FAILED | user_id=%s | term_id=%s",
            current_user.id,
            payload.term_id,
        )
        raise
