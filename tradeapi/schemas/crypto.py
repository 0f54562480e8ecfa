from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class PriceSnapshot(BaseModel):
    """가격 오라클 응답 - 거래 기록의 rate_data 로 그대로 저장됩니다."""

    symbol: str = Field(..., description="심볼 (예: BTC)")
    coin_id: str = Field(..., description="CoinGecko 코인 ID")
    name: Optional[str] = Field(None, description="코인 이름")
    price_ngn: Decimal = Field(..., gt=0, description="1 단위당 NGN 가격")
    last_updated_at: int = Field(..., description="CoinGecko 기준 갱신 시각 (Unix seconds)")
    fetched_at: str = Field(..., description="조회 시각 (ISO 8601)")


class SupportedCrypto(BaseModel):
    symbol: str
    name: str


class HoldingResponse(BaseModel):
    """보유 자산 항목"""

    symbol: str = Field(..., description="심볼")
    name: str = Field(..., description="코인 이름")
    balance: Decimal = Field(..., description="보유 수량")


class PortfolioItem(BaseModel):
    symbol: str
    name: str
    balance: Decimal
    current_price_ngn: Decimal = Field(..., description="현재가 (가격 조회 실패 시 0)")
    value_ngn: Decimal = Field(..., description="평가 금액")


class PortfolioResponse(BaseModel):
    """포트폴리오 평가 응답"""

    holdings: List[PortfolioItem]
    total_value_ngn: Decimal
