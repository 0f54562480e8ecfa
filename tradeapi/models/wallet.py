"""
지갑 데이터 모델

Wallet 은 사용자의 법정화폐(NGN) 잔액을, WalletTransaction 은 잔액 변동의 원장(Ledger)을 저장합니다.
잔액 변경은 모두 WalletTransaction 으로 기록되어 완전한 감사 추적(Audit Trail)을 제공합니다.
"""

import enum
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    Enum,
    ForeignKey,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from tradeapi.models.base import BaseModel, BigIntPK


class TransactionType(str, enum.Enum):
    CREDIT = "credit"
    DEBIT = "debit"


class TransactionSource(str, enum.Enum):
    """잔액 변동 출처. 거래에서 발생한 변동만 trade_id 를 가집니다."""

    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    TRADE_BUY = "trade_buy"
    TRADE_SELL = "trade_sell"


class Wallet(BaseModel):
    """
    법정화폐 지갑 - (user_id, currency) 당 하나

    원칙:
    1. 잔액은 항상 0 이상 (차감은 잔액 조건이 걸린 UPDATE 로만 수행)
    2. 최초 조회 시 생성, 삭제되지 않음
    3. 잔액 변경은 WalletRepository.credit/debit 을 통해서만
    """

    __tablename__ = "wallets"
    __table_args__ = (
        UniqueConstraint("user_id", "currency", name="uq_wallets_user_currency"),
        CheckConstraint("balance >= 0", name="ck_wallets_balance_non_negative"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="NGN")
    balance: Mapped[Decimal] = mapped_column(
        Numeric(20, 2), nullable=False, default=Decimal("0.00")
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def has_sufficient_balance(self, amount: Decimal) -> bool:
        """잔액 충분 여부 (조회 시점 기준, 실제 차감 시 다시 검증됨)"""
        return (self.balance or Decimal("0")) >= amount


class WalletTransaction(BaseModel):
    """
    지갑 원장 테이블 - 모든 잔액 변동 내역

    이 테이블은 다음 원칙을 따릅니다:
    1. 불변성(Immutable): 한번 생성된 레코드는 수정되지 않음
    2. 완전성(Complete): 모든 잔액 변동이 기록됨
    3. 정합성(Integrity): balance_after = balance_before ± amount,
       balance_after 는 기록 시점의 지갑 잔액과 같음
    """

    __tablename__ = "wallet_transactions"
    __table_args__ = (UniqueConstraint("reference", name="uq_wallet_transactions_reference"),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    reference: Mapped[str] = mapped_column(String(64), nullable=False)
    wallet_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("wallets.id"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    type: Mapped[TransactionType] = mapped_column(
        Enum(TransactionType, values_callable=lambda e: [m.value for m in e], native_enum=False),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False)
    balance_before: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False)
    balance_after: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    source: Mapped[TransactionSource] = mapped_column(
        Enum(TransactionSource, values_callable=lambda e: [m.value for m in e], native_enum=False),
        nullable=False,
        index=True,
    )

    # 거래에서 발생한 변동만 연결 (입금/출금은 NULL)
    trade_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("trades.id"), nullable=True, index=True
    )

    # "metadata" 는 Declarative 예약어라 속성명만 바꿈
    meta_data: Mapped[Optional[dict]] = mapped_column("metadata", JSON, nullable=True)
