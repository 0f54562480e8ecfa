from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import asc, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tradeapi.core.assets import get_crypto_info, normalize_symbol
from tradeapi.core.exceptions import InsufficientAssetBalanceError
from tradeapi.models.holding import CryptoHolding
from tradeapi.repositories.base import BaseRepository
from tradeapi.schemas.crypto import HoldingResponse


class HoldingRepository(BaseRepository[CryptoHolding, HoldingResponse]):
    """암호화폐 보유 잔액 리포지토리 - WalletRepository 와 같은 조건부 UPDATE 방식"""

    def __init__(self, db: Session):
        super().__init__(CryptoHolding, HoldingResponse, db)

    def get_holding(self, user_id: int, symbol: str) -> Optional[CryptoHolding]:
        return (
            self.db.query(CryptoHolding)
            .filter(
                CryptoHolding.user_id == user_id,
                CryptoHolding.crypto_symbol == normalize_symbol(symbol),
            )
            .populate_existing()
            .first()
        )

    def get_or_create(self, user_id: int, symbol: str) -> CryptoHolding:
        """보유 잔액 조회, 없으면 0 으로 생성 (커밋하지 않음)"""
        symbol = normalize_symbol(symbol)
        holding = self.get_holding(user_id, symbol)
        if holding:
            return holding

        info = get_crypto_info(symbol) or {"name": symbol}
        try:
            with self.db.begin_nested():
                holding = CryptoHolding(
                    user_id=user_id,
                    crypto_symbol=symbol,
                    crypto_name=info["name"],
                    balance=Decimal("0"),
                )
                self.db.add(holding)
        except IntegrityError:
            holding = self.get_holding(user_id, symbol)
            if holding is None:
                raise
        return holding

    def add(self, holding: CryptoHolding, amount: Decimal) -> Tuple[Decimal, Decimal]:
        self.db.execute(
            update(CryptoHolding)
            .where(CryptoHolding.id == holding.id)
            .values(balance=CryptoHolding.balance + amount)
            .execution_options(synchronize_session=False)
        )
        balance_after = self._reload_balance(holding)
        return balance_after - amount, balance_after

    def subtract(self, holding: CryptoHolding, amount: Decimal) -> Tuple[Decimal, Decimal]:
        result = self.db.execute(
            update(CryptoHolding)
            .where(CryptoHolding.id == holding.id, CryptoHolding.balance >= amount)
            .values(balance=CryptoHolding.balance - amount)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InsufficientAssetBalanceError(
                holding.crypto_symbol, details={"required": str(amount)}
            )
        balance_after = self._reload_balance(holding)
        return balance_after + amount, balance_after

    def _reload_balance(self, holding: CryptoHolding) -> Decimal:
        self.db.refresh(holding, attribute_names=["balance"])
        return holding.balance

    def list_for_user(self, user_id: int) -> List[CryptoHolding]:
        return (
            self.db.query(CryptoHolding)
            .filter(CryptoHolding.user_id == user_id)
            .order_by(asc(CryptoHolding.crypto_symbol))
            .all()
        )

    def to_response(self, holding: CryptoHolding) -> HoldingResponse:
        return HoldingResponse(
            symbol=holding.crypto_symbol,
            name=holding.crypto_name,
            balance=holding.balance,
        )
