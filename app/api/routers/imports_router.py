import logging
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import CurrentUser, get_current_user
from app.core.result import Ok
from app.db.base import get_db
from app.schemas.imports import CorrectionRequest, ImportPayload, ImportResponse
from app.services.exceptions import DuplicateCheckError
from app.services.importer.messages import import_notification
from app.services.importer.pipeline import ImportOutcome, OrderImportPipeline
from app.services.risk.evaluator import RiskEvaluator, evaluate_risk

logger = logging.getLogger(__name__)
router = APIRouter()

def get_risk_evaluator() -> RiskEvaluator:
    return evaluate_risk

def to_response(outcome: ImportOutcome) -> ImportResponse:
    notification = import_notification(outcome)
    if isinstance(outcome, Ok):
        return ImportResponse(ok=True, notification=notification, report=outcome.value)
    return ImportResponse(ok=False, notification=notification, issue=outcome.error)

def processing_failed(e: Exception) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to process file: {str(e)}",
    )

@router.post("/imports", response_model=ImportResponse)
async def upload_orders(
    file: UploadFile = File(...),
    current_user: CurrentUser = Depends(get_current_user),
    risk_evaluator: RiskEvaluator = Depends(get_risk_evaluator),
    db: AsyncSession = Depends(get_db)
):
    """
    Import orders from an uploaded .xlsx, .xls or .csv file.
    """
    content = await file.read()
    pipeline = OrderImportPipeline(db, current_user.id, risk_evaluator=risk_evaluator)
    try:
        outcome = await pipeline.run(content, file.filename or "")
    except DuplicateCheckError as e:
        raise processing_failed(e)
    return to_response(outcome)

@router.post("/imports/resume", response_model=ImportResponse)
async def resume_import(
    payload: ImportPayload,
    current_user: CurrentUser = Depends(get_current_user),
    risk_evaluator: RiskEvaluator = Depends(get_risk_evaluator),
    db: AsyncSession = Depends(get_db)
):
    """
    Continue a suspended import (e.g. after creating missing products) without re-uploading.
    """
    pipeline = OrderImportPipeline(db, current_user.id, risk_evaluator=risk_evaluator)
    try:
        outcome = await pipeline.resume(payload)
    except DuplicateCheckError as e:
        raise processing_failed(e)
    return to_response(outcome)

@router.post("/imports/corrections", response_model=ImportResponse)
async def apply_corrections(
    request: CorrectionRequest,
    current_user: CurrentUser = Depends(get_current_user),
    risk_evaluator: RiskEvaluator = Depends(get_risk_evaluator),
    db: AsyncSession = Depends(get_db)
):
    """
    Confirm an import after assigning a catalog product to every invalid row.
    """
    pipeline = OrderImportPipeline(db, current_user.id, risk_evaluator=risk_evaluator)
    try:
        outcome = await pipeline.apply_corrections(request.payload, request.corrections)
    except DuplicateCheckError as e:
        raise processing_failed(e)
    return to_response(outcome)
