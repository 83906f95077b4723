"""Dashboard API endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from api.auth import get_current_user_id
from api.plaid import get_financial_data_service, load_snapshot
from schemas.dashboard import DashboardSummary
from services.dashboard_service import DashboardService
from services.financial_data_service import FinancialDataService
from utils.query_params import parse_id_list

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("/summary", response_model=DashboardSummary)
def get_summary(
    institution_ids: Optional[str] = Query(
        None, description="Comma-separated institution IDs to filter by"
    ),
    refresh: Optional[str] = Query(None, description="Pass \"true\" to bypass the snapshot cache"),
    user_id: str = Depends(get_current_user_id),
    service: FinancialDataService = Depends(get_financial_data_service),
):
    """Get per-institution balances and activity counts for the signed-in user."""
    parsed_ids = parse_id_list(institution_ids, label="institution ID")
    snapshot = load_snapshot(user_id, refresh == "true", service)
    return DashboardService().summarize(snapshot, institution_ids=parsed_ids)
