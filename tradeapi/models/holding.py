from decimal import Decimal

from sqlalchemy import BigInteger, CheckConstraint, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from tradeapi.models.base import BaseModel, BigIntPK


class CryptoHolding(BaseModel):
    """사용자별 암호화폐 보유 잔액 - (user_id, crypto_symbol) 당 하나"""

    __tablename__ = "crypto_holdings"
    __table_args__ = (
        UniqueConstraint("user_id", "crypto_symbol", name="uq_crypto_holdings_user_symbol"),
        CheckConstraint("balance >= 0", name="ck_crypto_holdings_balance_non_negative"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    crypto_symbol: Mapped[str] = mapped_column(String(10), nullable=False)
    crypto_name: Mapped[str] = mapped_column(String(50), nullable=False)
    balance: Mapped[Decimal] = mapped_column(
        Numeric(28, 8), nullable=False, default=Decimal("0")
    )

    def has_sufficient_balance(self, amount: Decimal) -> bool:
        return (self.balance or Decimal("0")) >= amount
