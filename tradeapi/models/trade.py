"""
거래(Trade) 데이터 모델

매수/매도 1건의 체결 기록입니다. pending 으로 생성되어 같은 원자적 작업 안에서
completed 또는 failed 중 하나로 확정되며, 확정된 뒤에는 수정되지 않습니다.
"""

import enum
from decimal import Decimal
from typing import Optional

from sqlalchemy import JSON, BigInteger, Enum, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from tradeapi.models.base import BaseModel, BigIntPK


class TradeType(str, enum.Enum):
    BUY = "buy"
    SELL = "sell"


class TradeStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class Trade(BaseModel):
    """
    거래 테이블

    금액 필드:
    - 매수: subtotal = 수수료 차감 후 코인 구매에 쓰인 금액, total_amount = 지갑에서 차감된 금액
    - 매도: subtotal = 코인 수량 * 시세, total_amount = 수수료 차감 후 지갑에 입금된 금액
    """

    __tablename__ = "trades"
    __table_args__ = (UniqueConstraint("reference", name="uq_trades_reference"),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    reference: Mapped[str] = mapped_column(String(64), nullable=False)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    type: Mapped[TradeType] = mapped_column(
        Enum(TradeType, values_callable=lambda e: [m.value for m in e], native_enum=False),
        nullable=False,
    )
    crypto_symbol: Mapped[str] = mapped_column(String(10), nullable=False)
    crypto_amount: Mapped[Decimal] = mapped_column(Numeric(28, 8), nullable=False)
    rate: Mapped[Decimal] = mapped_column(Numeric(24, 2), nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False)
    fee_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    fee_amount: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False)
    status: Mapped[TradeStatus] = mapped_column(
        Enum(TradeStatus, values_callable=lambda e: [m.value for m in e], native_enum=False),
        nullable=False,
        default=TradeStatus.PENDING,
        index=True,
    )

    # 체결에 사용한 가격 오라클 응답 스냅샷
    rate_data: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    failure_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
