"""POST /v1/admin/businesses/{business_id}/resync - rebuild derived state from the ledger"""

import uuid
import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from vaniga_score.api.v1.schemas import ResyncResponse
from vaniga_score.api.dependencies import get_coordinator, get_request_id, require_admin
from vaniga_score.infrastructure.database.session import get_db
from vaniga_score.domain.exceptions import ComputationFallbackError, NotFoundError
from vaniga_score.services.coordinator import MutationCoordinator

router = APIRouter()


@router.post(
    "/admin/businesses/{business_id}/resync",
    response_model=ResyncResponse,
    dependencies=[Depends(require_admin)],
)
def resync_business(
    business_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    coordinator: MutationCoordinator = Depends(get_coordinator),
):
    """
    Repair drift between the ledger and its derived values.

    Re-links transactions to customers, refreshes every aggregate and
    recomputes the score. Safe to run repeatedly.
    """
    try:
        result = coordinator.resync_business(business_id)
    except NotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))
    except ComputationFallbackError as e:
        logging.error(f"Resync incomplete: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=503, detail="Score recomputation unavailable")

    return ResyncResponse(
        business_id=str(result.business_id),
        relinked_transactions=result.relinked_transactions,
        refreshed_customers=result.refreshed_customers,
        score=result.score,
        loan_eligible=result.loan_eligible,
    )
