from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from tradeapi.core.assets import normalize_symbol
from tradeapi.models.trade import TradeStatus, TradeType
from tradeapi.schemas.pagination import PaginationMeta


class _SymbolMixin(BaseModel):
    symbol: str = Field(..., min_length=1, max_length=10, description="코인 심볼 (BTC, ETH, USDT)")

    @field_validator("symbol")
    @classmethod
    def _normalize(cls, value: str) -> str:
        return normalize_symbol(value)


class BuyRequest(_SymbolMixin):
    """매수 요청 - NGN 금액 기준"""

    amount_in_naira: Decimal = Field(..., gt=0, decimal_places=2, description="지불할 NGN 금액")


class SellRequest(_SymbolMixin):
    """매도 요청 - 코인 수량 기준"""

    amount: Decimal = Field(..., gt=0, decimal_places=8, description="매도할 코인 수량")


class QuoteRequest(_SymbolMixin):
    """견적 요청 - buy 는 NGN 금액, sell 은 코인 수량"""

    type: TradeType
    amount: Decimal = Field(..., gt=0, decimal_places=8)

    @model_validator(mode="after")
    def _check_places(self) -> "QuoteRequest":
        # buy 는 매수 요청과 같이 NGN 소수 2자리까지
        if self.type is TradeType.BUY and self.amount != self.amount.quantize(Decimal("0.01")):
            raise ValueError("Decimal input should have no more than 2 decimal places for buy quotes")
        return self


class TradeResponse(BaseModel):
    """거래 기록"""

    reference: str = Field(..., description="거래 참조 번호")
    type: TradeType
    crypto_symbol: str
    crypto_amount: Decimal
    rate: Decimal = Field(..., description="1 단위당 NGN 가격")
    subtotal: Decimal
    fee_percentage: Decimal
    fee_amount: Decimal
    total_amount: Decimal
    status: TradeStatus
    failure_reason: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TradeQuote(BaseModel):
    """
    거래 견적 - 실행 경로와 같은 계산 함수로 산출

    buy:  ngn_amount = 지불 금액, total_amount = ngn_amount
    sell: ngn_amount = 수수료 차감 후 입금액, subtotal = 수량 * 시세
    """

    type: TradeType
    crypto_symbol: str
    ngn_amount: Decimal
    crypto_amount: Decimal
    subtotal: Decimal
    fee_percentage: Decimal
    fee_amount: Decimal
    total_amount: Decimal
    rate: Decimal
    minimum_amount: Decimal
    rate_data: dict


class TradeHistoryResponse(BaseModel):
    trades: List[TradeResponse]
    pagination: PaginationMeta
