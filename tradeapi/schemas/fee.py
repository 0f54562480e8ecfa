from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from tradeapi.utils.money import Number, percentage_of, to_decimal


class FeeSchedule(BaseModel):
    """
    거래 1건 동안 사용하는 수수료 정책 스냅샷 (불변)

    연산 시작 시 한 번 조회하여 전달하므로, 처리 도중 운영자가 정책을 바꿔도
    같은 거래 안에서 서로 다른 정책이 섞이지 않습니다.
    """

    model_config = ConfigDict(frozen=True, from_attributes=True)

    name: str
    percentage: Decimal = Field(..., ge=0, description="수수료율 (%)")
    minimum_amount: Decimal = Field(..., ge=0, description="최소 거래 금액 (NGN)")

    def fee(self, amount: Number) -> Decimal:
        """수수료 = round_half_up(amount * percentage / 100, 2)"""
        return percentage_of(amount, self.percentage)

    def meets_minimum(self, amount: Number) -> bool:
        return to_decimal(amount) >= self.minimum_amount


class FeeSettingResponse(BaseModel):
    """공개 수수료 정책 응답"""

    name: str
    description: Optional[str] = None
    percentage: Decimal
    minimum_amount: Decimal

    class Config:
        from_attributes = True
