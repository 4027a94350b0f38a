"""GET /v1/dashboard/stats - window totals and a fresh score breakdown"""

import uuid
from fastapi import APIRouter, Depends, HTTPException, Query

from vaniga_score.api.v1.schemas import DashboardResponse, DashboardStatsSchema, ScoreBreakdownSchema
from vaniga_score.api.dependencies import get_business_id, get_queries
from vaniga_score.domain.exceptions import NotFoundError
from vaniga_score.services.queries import LedgerQueries

router = APIRouter()


@router.get("/dashboard/stats", response_model=DashboardResponse)
def get_dashboard_stats(
    window_days: int = Query(30, ge=1, le=365, description="Days of history the totals cover"),
    business_id: uuid.UUID = Depends(get_business_id),
    queries: LedgerQueries = Depends(get_queries),
):
    """
    Totals of credit given, payments received and expenses for the window.

    The score breakdown is recomputed on every call; nothing is cached.
    """
    try:
        stats, result = queries.get_dashboard_stats(business_id, window_days=window_days)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return DashboardResponse(
        stats=DashboardStatsSchema(
            total_credit_given=float(stats.total_credit_given),
            total_payment_received=float(stats.total_payment_received),
            total_expenses=float(stats.total_expenses),
            pending_amount=float(stats.pending_amount),
            transaction_count=stats.transaction_count,
        ),
        score_breakdown=ScoreBreakdownSchema.from_result(result),
    )
