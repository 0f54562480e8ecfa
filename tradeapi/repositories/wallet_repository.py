"""
지갑 리포지토리 - 법정화폐 잔액과 원장 기록

핵심 특징:
- 잔액 변경은 조건부 UPDATE 한 문장으로 처리되어 조회 후 갱신 사이의 경쟁 조건이 없습니다
  (PostgreSQL 에서는 행 잠금, SQLite 에서는 BEGIN IMMEDIATE 쓰기 잠금)
- 차감 시 잔액 조건을 만족하는 행이 없으면 InsufficientFundsError
- 원장 항목의 balance_after 는 같은 트랜잭션 안에서 다시 읽은 실제 잔액입니다
- 커밋은 호출하는 서비스가 원자적 작업 단위로 결정합니다
"""

from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import desc, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tradeapi.core.exceptions import InsufficientFundsError
from tradeapi.models.wallet import (
    TransactionSource,
    TransactionType,
    Wallet,
    WalletTransaction,
)
from tradeapi.repositories.base import BaseRepository, generate_reference
from tradeapi.schemas.wallet import WalletResponse, WalletTransactionResponse


def _day_start(value: date) -> datetime:
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


class WalletRepository(BaseRepository[Wallet, WalletResponse]):
    """지갑 리포지토리 - 잔액 증감 원자적 처리 및 원장 기록"""

    def __init__(self, db: Session):
        super().__init__(Wallet, WalletResponse, db)

    def get_wallet(self, user_id: int, currency: str) -> Optional[Wallet]:
        return (
            self.db.query(Wallet)
            .filter(Wallet.user_id == user_id, Wallet.currency == currency)
            .populate_existing()
            .first()
        )

    def get_or_create(self, user_id: int, currency: str) -> Wallet:
        """
        지갑 조회, 없으면 생성 (커밋하지 않음)

        동시에 두 요청이 생성을 시도하면 유니크 제약 위반이 나는 쪽은
        세이브포인트만 롤백하고 먼저 만들어진 지갑을 다시 조회합니다.
        """
        wallet = self.get_wallet(user_id, currency)
        if wallet:
            return wallet

        try:
            with self.db.begin_nested():
                wallet = Wallet(
                    user_id=user_id,
                    currency=currency,
                    balance=Decimal("0.00"),
                    is_active=True,
                )
                self.db.add(wallet)
        except IntegrityError:
            wallet = self.get_wallet(user_id, currency)
            if wallet is None:
                raise
        return wallet

    def credit(self, wallet: Wallet, amount: Decimal) -> Tuple[Decimal, Decimal]:
        """잔액 증가. (변경 전 잔액, 변경 후 잔액) 반환"""
        self.db.execute(
            update(Wallet)
            .where(Wallet.id == wallet.id)
            .values(balance=Wallet.balance + amount)
            .execution_options(synchronize_session=False)
        )
        balance_after = self._reload_balance(wallet)
        return balance_after - amount, balance_after

    def debit(self, wallet: Wallet, amount: Decimal) -> Tuple[Decimal, Decimal]:
        """
        잔액 차감. (변경 전 잔액, 변경 후 잔액) 반환

        잔액 검증과 차감이 한 문장이므로, 동시에 들어온 차감 요청이
        같은 잔액을 보고 둘 다 통과하는 일이 없습니다.
        """
        result = self.db.execute(
            update(Wallet)
            .where(Wallet.id == wallet.id, Wallet.balance >= amount)
            .values(balance=Wallet.balance - amount)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InsufficientFundsError(
                details={"required": str(amount), "wallet_id": wallet.id}
            )
        balance_after = self._reload_balance(wallet)
        return balance_after + amount, balance_after

    def _reload_balance(self, wallet: Wallet) -> Decimal:
        self.db.refresh(wallet, attribute_names=["balance"])
        return wallet.balance

    def record_transaction(
        self,
        wallet: Wallet,
        transaction_type: TransactionType,
        amount: Decimal,
        balance_before: Decimal,
        balance_after: Decimal,
        source: TransactionSource,
        description: str,
        trade_id: Optional[int] = None,
        meta_data: Optional[dict] = None,
    ) -> WalletTransaction:
        """원장 항목 추가 (flush 만 수행)"""
        entry = WalletTransaction(
            reference=generate_reference("WTX"),
            wallet_id=wallet.id,
            user_id=wallet.user_id,
            type=transaction_type,
            amount=amount,
            balance_before=balance_before,
            balance_after=balance_after,
            description=description,
            source=source,
            trade_id=trade_id,
            meta_data=meta_data or {},
        )
        self.db.add(entry)
        self.db.flush()
        return entry

    def list_transactions(
        self,
        wallet_id: int,
        transaction_type: Optional[TransactionType] = None,
        source: Optional[TransactionSource] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: int = 15,
        offset: int = 0,
    ) -> Tuple[List[WalletTransactionResponse], int]:
        """지갑 원장 조회 (최신순, 페이징)"""
        query = self.db.query(WalletTransaction).filter(
            WalletTransaction.wallet_id == wallet_id
        )

        if transaction_type is not None:
            query = query.filter(WalletTransaction.type == transaction_type)
        if source is not None:
            query = query.filter(WalletTransaction.source == source)
        if date_from is not None:
            query = query.filter(WalletTransaction.created_at >= _day_start(date_from))
        if date_to is not None:
            query = query.filter(
                WalletTransaction.created_at < _day_start(date_to + timedelta(days=1))
            )

        total_count = query.count()
        entries = (
            query.order_by(desc(WalletTransaction.created_at), desc(WalletTransaction.id))
            .limit(limit)
            .offset(offset)
            .all()
        )
        return (
            [WalletTransactionResponse.model_validate(entry) for entry in entries],
            total_count,
        )

    def to_response(self, wallet: Wallet) -> WalletResponse:
        return self._to_schema(wallet)
