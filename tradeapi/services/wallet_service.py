from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from tradeapi.config import Settings, settings as default_settings
from tradeapi.core.exceptions import InsufficientFundsError, ValidationError
from tradeapi.database.session import atomic
from tradeapi.models.wallet import TransactionSource, TransactionType, Wallet
from tradeapi.repositories.wallet_repository import WalletRepository
from tradeapi.schemas.pagination import PaginationLimits, PaginationMeta, clamp_limit
from tradeapi.schemas.wallet import (
    WalletOperationResponse,
    WalletResponse,
    WalletTransactionListResponse,
    WalletTransactionResponse,
)
from tradeapi.utils.money import Number, round_fiat
import logging

logger = logging.getLogger(__name__)


class WalletService:
    """법정화폐 지갑 관련 비즈니스 로직을 담당하는 서비스

    입금/출금은 각각 하나의 원자적 작업 단위입니다.
    잔액 변경과 원장 항목 기록이 함께 커밋되거나 함께 롤백됩니다.
    """

    def __init__(self, db: Session, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or default_settings
        self.currency = self.settings.DEFAULT_CURRENCY
        self.wallet_repo = WalletRepository(db)

    def get_or_create_wallet(self, user_id: int) -> Wallet:
        """사용자 지갑 조회, 없으면 잔액 0 으로 생성하여 커밋"""
        with atomic(self.db, "get_or_create_wallet"):
            wallet = self.wallet_repo.get_or_create(user_id, self.currency)
        return wallet

    def get_wallet(self, user_id: int) -> WalletResponse:
        """사용자 지갑 정보 조회

        Args:
            user_id: 사용자 ID

        Returns:
            WalletResponse: 지갑 정보 (최초 조회 시 자동 생성)
        """
        return self.wallet_repo.to_response(self.get_or_create_wallet(user_id))

    def get_balance(self, user_id: int) -> Decimal:
        return self.get_or_create_wallet(user_id).balance

    def _validated_amount(self, amount: Number) -> Decimal:
        amount = round_fiat(amount)
        if amount <= 0:
            raise ValidationError(
                "Amount must be greater than zero", details={"amount": str(amount)}
            )
        return amount

    def deposit(
        self,
        user_id: int,
        amount: Number,
        description: Optional[str] = None,
        meta_data: Optional[dict] = None,
    ) -> WalletOperationResponse:
        """지갑 입금

        Args:
            user_id: 사용자 ID
            amount: 입금 금액 (NGN, 소수점 2자리로 반올림)
            description: 원장 메모
            meta_data: 원장 부가 정보

        Returns:
            WalletOperationResponse: 원장 항목과 변경 후 지갑 정보
        """
        amount = self._validated_amount(amount)

        with atomic(self.db, "deposit"):
            wallet = self.wallet_repo.get_or_create(user_id, self.currency)
            balance_before, balance_after = self.wallet_repo.credit(wallet, amount)
            entry = self.wallet_repo.record_transaction(
                wallet=wallet,
                transaction_type=TransactionType.CREDIT,
                amount=amount,
                balance_before=balance_before,
                balance_after=balance_after,
                source=TransactionSource.DEPOSIT,
                description=description or "Wallet deposit",
                meta_data=meta_data,
            )

        logger.info(
            f"Deposited {amount} {self.currency} for user {user_id} "
            f"(balance {balance_before} -> {balance_after}, ref={entry.reference})"
        )
        return WalletOperationResponse(
            transaction=WalletTransactionResponse.model_validate(entry),
            wallet=self.wallet_repo.to_response(wallet),
        )

    def withdraw(
        self,
        user_id: int,
        amount: Number,
        description: Optional[str] = None,
        meta_data: Optional[dict] = None,
    ) -> WalletOperationResponse:
        """지갑 출금

        잔액 검증과 차감이 하나의 조건부 UPDATE 이므로 동시 출금 요청 중
        잔액을 초과하는 요청은 InsufficientFundsError 로 실패합니다.
        """
        amount = self._validated_amount(amount)

        try:
            with atomic(self.db, "withdraw"):
                wallet = self.wallet_repo.get_or_create(user_id, self.currency)
                balance_before, balance_after = self.wallet_repo.debit(wallet, amount)
                entry = self.wallet_repo.record_transaction(
                    wallet=wallet,
                    transaction_type=TransactionType.DEBIT,
                    amount=amount,
                    balance_before=balance_before,
                    balance_after=balance_after,
                    source=TransactionSource.WITHDRAWAL,
                    description=description or "Wallet withdrawal",
                    meta_data=meta_data,
                )
        except InsufficientFundsError as e:
            logger.warning(f"Withdrawal of {amount} failed for user {user_id}: {str(e)}")
            raise

        logger.info(
            f"Withdrew {amount} {self.currency} for user {user_id} "
            f"(balance {balance_before} -> {balance_after}, ref={entry.reference})"
        )
        return WalletOperationResponse(
            transaction=WalletTransactionResponse.model_validate(entry),
            wallet=self.wallet_repo.to_response(wallet),
        )

    def get_transactions(
        self,
        user_id: int,
        transaction_type: Optional[TransactionType] = None,
        source: Optional[TransactionSource] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> WalletTransactionListResponse:
        """지갑 원장 조회 (최신순)"""
        limit = clamp_limit(limit, PaginationLimits.WALLET_TRANSACTIONS)
        offset = max(offset, 0)

        wallet = self.get_or_create_wallet(user_id)
        entries, total_count = self.wallet_repo.list_transactions(
            wallet_id=wallet.id,
            transaction_type=transaction_type,
            source=source,
            date_from=date_from,
            date_to=date_to,
            limit=limit,
            offset=offset,
        )
        return WalletTransactionListResponse(
            transactions=entries,
            pagination=PaginationMeta.build(limit, offset, total_count),
        )
