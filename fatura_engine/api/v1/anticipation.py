"""Installment anticipation endpoints"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Request

from fatura_engine.api.dependencies import get_ledger, get_request_id
from fatura_engine.api.v1.schemas import (
    AnticipationRequest,
    AnticipationResponse,
    FutureInstallmentsResponse,
    InstallmentSchema,
)
from fatura_engine.config import settings
from fatura_engine.domain.anticipation import anticipate_installments
from fatura_engine.domain.exceptions import (
    AnticipationCommitError,
    InvalidAnticipationError,
    RecordNotFoundError,
    StatementLoadError,
)
from fatura_engine.infrastructure.database.repositories import LedgerRepository
from fatura_engine.infrastructure.observability.logging import log_anticipation
from fatura_engine.infrastructure.observability.metrics import record_anticipation

router = APIRouter()


@router.get("/expenses/{expense_id}/future-installments", response_model=FutureInstallmentsResponse)
def get_future_installments(
    expense_id: str,
    ledger: LedgerRepository = Depends(get_ledger),
):
    """Later installments of the same purchase, oldest first"""
    try:
        expense = ledger.get_expense(expense_id)
        installments = ledger.future_installments(expense)
    except RecordNotFoundError:
        raise HTTPException(status_code=404, detail="Expense not found")
    except StatementLoadError:
        raise HTTPException(status_code=503, detail="Could not load installments")

    return FutureInstallmentsResponse(
        expense_id=expense.id,
        installments=[
            InstallmentSchema(
                id=inst.id,
                date=inst.date,
                amount_cents=inst.amount_cents,
                current_installment=inst.current_installment,
                installments=inst.installments,
                description=inst.description,
            )
            for inst in installments
        ],
    )


@router.post("/expenses/{expense_id}/anticipation", response_model=AnticipationResponse)
def anticipate(
    expense_id: str,
    request_body: AnticipationRequest,
    request: Request,
    ledger: LedgerRepository = Depends(get_ledger),
):
    """
    Collapse the installment and the selected future ones into one expense.

    Flow:
    1. Load the installment shown in the current statement
    2. Validate the selected future installments
    3. Delete them and insert the replacement in one transaction

    Nothing is changed when the transaction fails; the client may retry.
    """
    request_id = get_request_id(request)

    try:
        current = ledger.get_expense(expense_id)
        result = anticipate_installments(
            ledger,
            current,
            request_body.installment_ids,
            request_body.new_total_cents,
            description_prefix=settings.anticipation_description_prefix,
        )

    except RecordNotFoundError:
        raise HTTPException(status_code=404, detail="Expense not found")

    except InvalidAnticipationError as e:
        record_anticipation("rejected")
        logging.warning(f"Invalid anticipation: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except StatementLoadError as e:
        logging.error(f"Installment lookup failed: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Could not load installments")

    except AnticipationCommitError as e:
        record_anticipation("failed")
        logging.error(f"Anticipation failed: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Anticipation could not be saved")

    record_anticipation("applied" if result.applied else "noop", result)
    log_anticipation(request_id, expense_id, result)

    new_expense = result.new_expense
    return AnticipationResponse(
        applied=result.applied,
        deleted_ids=result.deleted_ids,
        new_expense_id=new_expense.id if new_expense else None,
        new_expense_date=new_expense.date if new_expense else None,
        new_total_cents=new_expense.amount_cents if new_expense else None,
        original_total_cents=result.original_total_cents,
        discount_cents=result.discount_cents,
    )
