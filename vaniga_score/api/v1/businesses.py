"""/v1/businesses - registration and current score state"""

import uuid
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from vaniga_score.api.v1.schemas import BusinessCreateRequest, BusinessResponse
from vaniga_score.api.dependencies import get_business_id, get_coordinator, get_queries
from vaniga_score.infrastructure.database.models import Business
from vaniga_score.infrastructure.database.session import get_db
from vaniga_score.domain.exceptions import InvalidInputError, NotFoundError
from vaniga_score.services.coordinator import MutationCoordinator
from vaniga_score.services.queries import LedgerQueries

router = APIRouter()


def to_schema(business: Business) -> BusinessResponse:
    return BusinessResponse(
        business_id=str(business.id),
        business_name=business.business_name,
        owner_name=business.owner_name,
        score=business.score,
        loan_eligible=business.loan_eligible,
    )


@router.post("/businesses", response_model=BusinessResponse, status_code=201)
def register_business(
    request_body: BusinessCreateRequest,
    db: Session = Depends(get_db),
    coordinator: MutationCoordinator = Depends(get_coordinator),
):
    """New businesses start at the minimum score of 300"""
    try:
        business = coordinator.register_business(request_body.business_name, request_body.owner_name)
    except InvalidInputError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))

    return to_schema(business)


@router.get("/businesses/me", response_model=BusinessResponse)
def get_current_business(
    business_id: uuid.UUID = Depends(get_business_id),
    queries: LedgerQueries = Depends(get_queries),
):
    try:
        return to_schema(queries.get_business(business_id))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
