import hmac
import logging
import os

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from familybank.core.clock import Clock, GetClock
from familybank.core.errors import FamilyBankError
from familybank.core.http import RaiseForDomainError
from familybank.core.storage import EnsureStorageReady
from familybank.db import GetDb
from familybank.modules.allowances.services import ProcessDueAllowances
from familybank.modules.chores.services.cleanup_service import PurgeApprovedChores
from familybank.modules.chores.services.recurrence_service import MaterializeRecurringChores

CRON_SECRET_HEADER = "X-Cron-Secret"

logger = logging.getLogger("familybank.jobs")


def RequireCronSecret(request: Request) -> None:
    expected = os.getenv("CRON_SECRET", "").strip()
    provided = request.headers.get(CRON_SECRET_HEADER, "")
    if not expected:
        logger.warning("job blocked: CRON_SECRET not configured path=%s", request.url.path)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    if not provided or not hmac.compare_digest(provided.encode(), expected.encode()):
        logger.warning("job blocked: invalid cron secret path=%s", request.url.path)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


router = APIRouter(
    prefix="/api/jobs",
    tags=["jobs"],
    dependencies=[Depends(RequireCronSecret), Depends(EnsureStorageReady)],
)


@router.post("/process-allowances")
def RunProcessAllowances(
    db: Session = Depends(GetDb),
    clock: Clock = Depends(GetClock),
) -> dict:
    logger.info("job started name=process-allowances")
    try:
        return ProcessDueAllowances(db, clock)
    except FamilyBankError as exc:
        RaiseForDomainError(exc)


@router.post("/process-recurring-chores")
def RunProcessRecurringChores(
    db: Session = Depends(GetDb),
    clock: Clock = Depends(GetClock),
) -> dict:
    logger.info("job started name=process-recurring-chores")
    try:
        return MaterializeRecurringChores(db, clock)
    except FamilyBankError as exc:
        RaiseForDomainError(exc)


@router.post("/cleanup-old-chores")
def RunCleanupOldChores(
    db: Session = Depends(GetDb),
    clock: Clock = Depends(GetClock),
) -> dict:
    logger.info("job started name=cleanup-old-chores")
    try:
        return PurgeApprovedChores(db, clock)
    except FamilyBankError as exc:
        RaiseForDomainError(exc)
