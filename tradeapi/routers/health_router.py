import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tradeapi.database.session import get_db
from tradeapi.deps import get_rate_oracle
from tradeapi.schemas.health import HealthCheckResponse
from tradeapi.services.rate_oracle import RateOracle

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", response_model=HealthCheckResponse)
def health_check(
    check_oracle: bool = Query(False, description="가격 오라클 연결까지 확인"),
    db: Session = Depends(get_db),
    rate_oracle: RateOracle = Depends(get_rate_oracle),
) -> HealthCheckResponse:
    """Health check endpoint."""
    response = HealthCheckResponse()
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        response.status = "unhealthy"
        response.database = False
        response.error = "database unavailable"

    if check_oracle:
        is_available = getattr(rate_oracle, "is_available", None)
        response.price_oracle = bool(is_available()) if is_available else None
        if response.price_oracle is False and response.status == "healthy":
            response.status = "degraded"
    return response
