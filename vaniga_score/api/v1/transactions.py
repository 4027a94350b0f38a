"""/v1/transactions - ledger mutations that keep the VanigaScore in step"""

import time
import uuid
import logging
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from vaniga_score.api.v1.schemas import (
    TransactionCreateRequest,
    TransactionDeleteResponse,
    TransactionListResponse,
    TransactionMutationResponse,
    TransactionSchema,
    TransactionUpdateRequest,
)
from vaniga_score.api.dependencies import get_business_id, get_coordinator, get_queries, get_request_id
from vaniga_score.infrastructure.database.session import get_db
from vaniga_score.domain.exceptions import ForbiddenError, InvalidInputError, NotFoundError
from vaniga_score.domain.models import TransactionDraft, TransactionKind
from vaniga_score.infrastructure.observability.logging import log_mutation
from vaniga_score.infrastructure.observability.metrics import record_mutation
from vaniga_score.services.coordinator import MutationCoordinator
from vaniga_score.services.queries import LedgerQueries

router = APIRouter()


@router.post("/transactions", response_model=TransactionMutationResponse, status_code=201)
def create_transaction(
    request_body: TransactionCreateRequest,
    request: Request,
    business_id: uuid.UUID = Depends(get_business_id),
    db: Session = Depends(get_db),
    coordinator: MutationCoordinator = Depends(get_coordinator),
):
    """
    Record a credit, payment or expense.

    Flow:
    1. Validate and write the transaction (committed)
    2. Refresh the counterparty's aggregate if one applies
    3. Recompute score and loan eligibility over the last 30 days
    4. Echo the updated score (score_stale=True if recompute fell back)
    """
    start_time = time.time()
    request_id = get_request_id(request)

    try:
        result = coordinator.create_transaction(business_id, TransactionDraft(**request_body.model_dump()))

    except NotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))

    except InvalidInputError as e:
        db.rollback()
        logging.warning(f"Invalid transaction: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=400, detail=str(e))

    record_mutation("create")
    log_mutation(
        request_id,
        str(business_id),
        "create",
        result.updated_score,
        result.score_stale,
        (time.time() - start_time) * 1000,
        transaction_id=str(result.transaction.transaction_id),
    )

    return TransactionMutationResponse(
        transaction=TransactionSchema.from_domain(result.transaction),
        updated_score=result.updated_score,
        loan_eligible=result.loan_eligible,
        score_stale=result.score_stale,
    )


@router.get("/transactions", response_model=TransactionListResponse)
def list_transactions(
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    kind: Optional[TransactionKind] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=500),
    business_id: uuid.UUID = Depends(get_business_id),
    queries: LedgerQueries = Depends(get_queries),
):
    """Most recent transactions first, optionally filtered by date range and kind"""
    try:
        transactions = queries.list_transactions(business_id, start=start_date, end=end_date, kind=kind, limit=limit)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return TransactionListResponse(
        count=len(transactions),
        transactions=[TransactionSchema.from_domain(t) for t in transactions],
    )


@router.get("/transactions/{transaction_id}", response_model=TransactionSchema)
def get_transaction(
    transaction_id: uuid.UUID,
    business_id: uuid.UUID = Depends(get_business_id),
    queries: LedgerQueries = Depends(get_queries),
):
    try:
        return TransactionSchema.from_domain(queries.get_transaction(business_id, transaction_id))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ForbiddenError as e:
        raise HTTPException(status_code=403, detail=str(e))


@router.put("/transactions/{transaction_id}", response_model=TransactionMutationResponse)
def update_transaction(
    transaction_id: uuid.UUID,
    request_body: TransactionUpdateRequest,
    request: Request,
    business_id: uuid.UUID = Depends(get_business_id),
    db: Session = Depends(get_db),
    coordinator: MutationCoordinator = Depends(get_coordinator),
):
    """Apply the sent fields, then refresh aggregates and the score"""
    start_time = time.time()
    request_id = get_request_id(request)

    try:
        result = coordinator.update_transaction(
            business_id, transaction_id, request_body.model_dump(exclude_unset=True)
        )

    except NotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))

    except ForbiddenError as e:
        db.rollback()
        logging.warning(f"Forbidden update: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=403, detail="Not authorized to update this transaction")

    except InvalidInputError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))

    record_mutation("update")
    log_mutation(
        request_id,
        str(business_id),
        "update",
        result.updated_score,
        result.score_stale,
        (time.time() - start_time) * 1000,
        transaction_id=str(transaction_id),
    )

    return TransactionMutationResponse(
        transaction=TransactionSchema.from_domain(result.transaction),
        updated_score=result.updated_score,
        loan_eligible=result.loan_eligible,
        score_stale=result.score_stale,
    )


@router.delete("/transactions/{transaction_id}", response_model=TransactionDeleteResponse)
def delete_transaction(
    transaction_id: uuid.UUID,
    request: Request,
    business_id: uuid.UUID = Depends(get_business_id),
    db: Session = Depends(get_db),
    coordinator: MutationCoordinator = Depends(get_coordinator),
):
    """Remove a transaction and return the recomputed score"""
    start_time = time.time()
    request_id = get_request_id(request)

    try:
        result = coordinator.delete_transaction(business_id, transaction_id)

    except NotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))

    except ForbiddenError as e:
        db.rollback()
        logging.warning(f"Forbidden delete: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=403, detail="Not authorized to delete this transaction")

    record_mutation("delete")
    log_mutation(
        request_id,
        str(business_id),
        "delete",
        result.updated_score,
        result.score_stale,
        (time.time() - start_time) * 1000,
        transaction_id=str(transaction_id),
    )

    return TransactionDeleteResponse(
        updated_score=result.updated_score,
        loan_eligible=result.loan_eligible,
        score_stale=result.score_stale,
    )
