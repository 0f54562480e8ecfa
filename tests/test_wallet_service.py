from decimal import Decimal
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from tradeapi.core.exceptions import (
    InsufficientFundsError,
    PersistenceFailureError,
    ValidationError,
)
from tradeapi.models.wallet import TransactionSource, TransactionType, Wallet, WalletTransaction
from tradeapi.services.wallet_service import WalletService


@pytest.fixture
def wallet_service(db):
    return WalletService(db)


class TestWalletService:
    """WalletService 테스트"""

    def test_wallet_created_lazily_with_zero_balance(self, wallet_service, db):
        """최초 조회 시 잔액 0 지갑 생성"""
        # Act
        wallet = wallet_service.get_wallet(user_id=1)

        # Assert
        assert wallet.user_id == 1
        assert wallet.currency == "NGN"
        assert wallet.balance == Decimal("0.00")
        assert db.query(Wallet).count() == 1

        # 두 번째 조회는 같은 지갑
        assert wallet_service.get_wallet(user_id=1).id == wallet.id
        assert db.query(Wallet).count() == 1

    def test_deposit_records_ledger_entry(self, wallet_service):
        # Act
        result = wallet_service.deposit(1, Decimal("5000"), description="Top up")

        # Assert
        assert result.wallet.balance == Decimal("5000.00")
        entry = result.transaction
        assert entry.type is TransactionType.CREDIT
        assert entry.source is TransactionSource.DEPOSIT
        assert entry.amount == Decimal("5000.00")
        assert entry.balance_before == Decimal("0.00")
        assert entry.balance_after == Decimal("5000.00")
        assert entry.description == "Top up"
        assert entry.reference.startswith("WTX-")
        assert entry.trade_id is None

    def test_withdraw_reduces_balance(self, wallet_service):
        wallet_service.deposit(1, Decimal("5000"))

        result = wallet_service.withdraw(1, Decimal("1200.50"))

        assert result.wallet.balance == Decimal("3799.50")
        assert result.transaction.type is TransactionType.DEBIT
        assert result.transaction.source is TransactionSource.WITHDRAWAL
        assert result.transaction.balance_before == Decimal("5000.00")
        assert result.transaction.balance_after == Decimal("3799.50")

    def test_withdraw_exact_balance_allowed(self, wallet_service):
        wallet_service.deposit(1, Decimal("1000"))

        result = wallet_service.withdraw(1, Decimal("1000"))

        assert result.wallet.balance == Decimal("0.00")

    def test_withdraw_more_than_balance_fails_without_side_effects(
        self, wallet_service, db
    ):
        wallet_service.deposit(1, Decimal("1000"))

        with pytest.raises(InsufficientFundsError) as exc_info:
            wallet_service.withdraw(1, Decimal("1000.01"))

        assert exc_info.value.status_code == 400
        assert exc_info.value.error_code == "BALANCE_001"
        assert wallet_service.get_balance(1) == Decimal("1000.00")
        assert db.query(WalletTransaction).count() == 1

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-10"), Decimal("0.001")])
    def test_non_positive_amount_rejected(self, wallet_service, amount):
        with pytest.raises(ValidationError):
            wallet_service.deposit(1, amount)

    def test_ledger_chain_matches_balance(self, wallet_service):
        """모든 원장 항목에서 balance_after = balance_before ± amount"""
        wallet_service.deposit(1, Decimal("10000"))
        wallet_service.withdraw(1, Decimal("2500"))
        wallet_service.deposit(1, Decimal("300.25"))
        wallet_service.withdraw(1, Decimal("800"))

        history = wallet_service.get_transactions(1, limit=100)
        entries = list(reversed(history.transactions))

        assert len(entries) == 4
        for entry in entries:
            sign = 1 if entry.type is TransactionType.CREDIT else -1
            assert entry.balance_after == entry.balance_before + sign * entry.amount
        for previous, current in zip(entries, entries[1:]):
            assert current.balance_before == previous.balance_after
        assert entries[-1].balance_after == wallet_service.get_balance(1)
        assert wallet_service.get_balance(1) == Decimal("7000.25")

    def test_get_transactions_filters_and_pagination(self, wallet_service):
        for _ in range(3):
            wallet_service.deposit(1, Decimal("1000"))
        wallet_service.withdraw(1, Decimal("500"))

        debits = wallet_service.get_transactions(1, transaction_type=TransactionType.DEBIT)
        assert debits.pagination.total_count == 1
        assert debits.transactions[0].source is TransactionSource.WITHDRAWAL

        page = wallet_service.get_transactions(1, limit=2, offset=0)
        assert len(page.transactions) == 2
        assert page.pagination.total_count == 4
        assert page.pagination.has_next is True
        # 최신순
        assert page.transactions[0].type is TransactionType.DEBIT

    def test_wallets_are_isolated_per_user(self, wallet_service):
        wallet_service.deposit(1, Decimal("1000"))
        wallet_service.deposit(2, Decimal("2000"))

        assert wallet_service.get_balance(1) == Decimal("1000.00")
        assert wallet_service.get_balance(2) == Decimal("2000.00")
        assert wallet_service.get_transactions(2).pagination.total_count == 1

    def test_commit_failure_rolls_back_and_raises_persistence_error(
        self, wallet_service, db
    ):
        wallet_service.get_wallet(1)

        with patch.object(
            db, "commit", side_effect=OperationalError("COMMIT", {}, Exception("disk I/O error"))
        ):
            with pytest.raises(PersistenceFailureError):
                wallet_service.deposit(1, Decimal("1000"))

        assert wallet_service.get_balance(1) == Decimal("0.00")
        assert db.query(WalletTransaction).count() == 0

    def test_unexpected_error_rolls_back_balance_change(self, wallet_service, db):
        """원장 기록 중 예기치 않은 오류가 나도 잔액 변경이 세션에 남지 않음"""
        wallet_service.deposit(1, Decimal("1000"))

        with patch.object(
            wallet_service.wallet_repo,
            "record_transaction",
            side_effect=RuntimeError("ledger unavailable"),
        ):
            with pytest.raises(RuntimeError):
                wallet_service.withdraw(1, Decimal("400"))

        # 같은 세션으로 이후 커밋해도 차감이 반영되지 않아야 함
        db.commit()
        assert wallet_service.get_balance(1) == Decimal("1000.00")
        assert db.query(WalletTransaction).count() == 1
