from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from tradeapi.models.base import BaseModel, BigIntPK

BUY_FEE = "buy_fee"
SELL_FEE = "sell_fee"


class FeeSetting(BaseModel):
    """수수료 정책. 이름별로 활성(is_active) 정책 하나만 조회됩니다."""

    __tablename__ = "fee_settings"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text)
    percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    minimum_amount: Mapped[Decimal] = mapped_column(
        Numeric(20, 2), nullable=False, default=Decimal("0")
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
