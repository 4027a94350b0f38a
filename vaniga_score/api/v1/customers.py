"""/v1/customers - per-counterparty balances derived from the ledger"""

import uuid
import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from vaniga_score.api.v1.schemas import CustomerListResponse, CustomerRefreshRequest, CustomerSchema
from vaniga_score.api.dependencies import get_business_id, get_coordinator, get_queries, get_request_id
from vaniga_score.infrastructure.database.models import CustomerAggregate
from vaniga_score.infrastructure.database.session import get_db
from vaniga_score.domain.exceptions import InvalidInputError, NotFoundError
from vaniga_score.services.coordinator import MutationCoordinator
from vaniga_score.services.queries import LedgerQueries
from vaniga_score.utils.date_utils import ensure_utc

router = APIRouter()


def to_schema(customer: CustomerAggregate) -> CustomerSchema:
    return CustomerSchema(
        customer_id=str(customer.id),
        name=customer.name,
        total_credit_given=float(customer.total_credit_given),
        total_payment_received=float(customer.total_payment_received),
        outstanding_balance=float(customer.outstanding_balance),
        last_transaction_at=ensure_utc(customer.last_transaction_at) if customer.last_transaction_at else None,
    )


@router.get("/customers", response_model=CustomerListResponse)
def list_customers(
    business_id: uuid.UUID = Depends(get_business_id),
    queries: LedgerQueries = Depends(get_queries),
):
    """All customer aggregates for the business, by name"""
    try:
        customers = queries.list_customers(business_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return CustomerListResponse(count=len(customers), customers=[to_schema(c) for c in customers])


@router.post("/customers/refresh", response_model=CustomerSchema)
def refresh_customer(
    request_body: CustomerRefreshRequest,
    request: Request,
    business_id: uuid.UUID = Depends(get_business_id),
    db: Session = Depends(get_db),
    coordinator: MutationCoordinator = Depends(get_coordinator),
):
    """Recompute one counterparty's totals from the ledger (idempotent)"""
    try:
        customer = coordinator.refresh_customer_aggregate(business_id, request_body.name)
    except NotFoundError as e:
        db.rollback()
        logging.info(f"Customer refresh miss: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidInputError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))

    return to_schema(customer)
