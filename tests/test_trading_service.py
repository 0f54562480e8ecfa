from decimal import Decimal
from unittest.mock import patch

import pytest
from sqlalchemy import event
from sqlalchemy.exc import OperationalError

from tradeapi.core.exceptions import (
    BelowMinimumError,
    ConfigurationMissingError,
    InsufficientAssetBalanceError,
    InsufficientFundsError,
    NotFoundError,
    PersistenceFailureError,
    RateUnavailableError,
    UnsupportedAssetError,
)
from tradeapi.models.holding import CryptoHolding
from tradeapi.models.trade import Trade, TradeStatus, TradeType
from tradeapi.models.wallet import TransactionSource, TransactionType, Wallet, WalletTransaction
from tradeapi.services.trading_service import TradingService
from tradeapi.services.wallet_service import WalletService

from conftest import StubRateOracle, seed_fees

USER_ID = 1


@pytest.fixture
def funded_db(fee_db):
    """잔액 ₦1,000,000 지갑 + 기본 수수료 정책"""
    WalletService(fee_db).deposit(USER_ID, Decimal("1000000"))
    return fee_db


@pytest.fixture
def trading_service(funded_db, rate_oracle):
    return TradingService(funded_db, rate_oracle)


def _wallet_balance(session_factory, user_id=USER_ID) -> Decimal:
    with session_factory() as session:
        return session.query(Wallet).filter(Wallet.user_id == user_id).one().balance


def _holding_balance(session_factory, symbol="BTC", user_id=USER_ID) -> Decimal:
    with session_factory() as session:
        holding = (
            session.query(CryptoHolding)
            .filter(CryptoHolding.user_id == user_id, CryptoHolding.crypto_symbol == symbol)
            .first()
        )
        return holding.balance if holding else Decimal("0")


class TestBuy:
    """매수 테스트"""

    def test_buy_example_scenario(self, trading_service, session_factory, rate_oracle):
        """잔액 1,000,000 / 수수료 1.5% / 시세 50,000,000 에서 100,000 매수"""
        # Act
        trade = trading_service.buy(USER_ID, "btc", Decimal("100000"))

        # Assert
        assert trade.status is TradeStatus.COMPLETED
        assert trade.type is TradeType.BUY
        assert trade.crypto_symbol == "BTC"
        assert trade.fee_amount == Decimal("1500.00")
        assert trade.subtotal == Decimal("98500.00")
        assert trade.total_amount == Decimal("100000.00")
        assert trade.crypto_amount == Decimal("0.00197")
        assert trade.rate == Decimal("50000000.00")
        assert trade.reference.startswith("TRD-")

        assert _wallet_balance(session_factory) == Decimal("900000.00")
        assert _holding_balance(session_factory) == Decimal("0.00197")
        assert rate_oracle.calls == 1

    def test_buy_writes_linked_ledger_entry(self, trading_service, session_factory):
        trade = trading_service.buy(USER_ID, "BTC", Decimal("100000"))

        with session_factory() as session:
            stored = session.query(Trade).filter(Trade.reference == trade.reference).one()
            entry = (
                session.query(WalletTransaction)
                .filter(WalletTransaction.trade_id == stored.id)
                .one()
            )
            assert entry.type is TransactionType.DEBIT
            assert entry.source is TransactionSource.TRADE_BUY
            assert entry.amount == Decimal("100000.00")
            assert entry.balance_before == Decimal("1000000.00")
            assert entry.balance_after == Decimal("900000.00")
            assert entry.description == "Buy BTC"
            assert entry.meta_data["trade_reference"] == trade.reference
            assert stored.rate_data["symbol"] == "BTC"
            assert stored.rate_data["coin_id"] == "bitcoin"

    def test_buy_entire_balance_allowed(self, trading_service, session_factory):
        trading_service.buy(USER_ID, "ETH", Decimal("1000000"))

        assert _wallet_balance(session_factory) == Decimal("0.00")

    def test_buy_balance_plus_one_kobo_fails(self, trading_service, funded_db, rate_oracle):
        with pytest.raises(InsufficientFundsError):
            trading_service.buy(USER_ID, "BTC", Decimal("1000000.01"))

        assert funded_db.query(Trade).count() == 0
        assert rate_oracle.calls == 0

    def test_buy_minimum_boundary(self, trading_service, funded_db):
        trade = trading_service.buy(USER_ID, "USDT", Decimal("1000.00"))
        assert trade.status is TradeStatus.COMPLETED

        with pytest.raises(BelowMinimumError) as exc_info:
            trading_service.buy(USER_ID, "USDT", Decimal("999.99"))
        assert exc_info.value.error_code == "TRADE_002"
        assert funded_db.query(Trade).count() == 1

    def test_unsupported_asset_rejected_before_oracle(self, trading_service, rate_oracle):
        with pytest.raises(UnsupportedAssetError) as exc_info:
            trading_service.buy(USER_ID, "DOGE", Decimal("5000"))

        assert exc_info.value.status_code == 422
        assert rate_oracle.calls == 0

    def test_missing_fee_configuration(self, db, rate_oracle):
        WalletService(db).deposit(USER_ID, Decimal("50000"))
        service = TradingService(db, rate_oracle)

        with pytest.raises(ConfigurationMissingError):
            service.buy(USER_ID, "BTC", Decimal("5000"))
        assert rate_oracle.calls == 0

    def test_rate_unavailable_leaves_no_trace(self, funded_db, session_factory):
        service = TradingService(funded_db, StubRateOracle(fail=True))

        with pytest.raises(RateUnavailableError) as exc_info:
            service.buy(USER_ID, "BTC", Decimal("5000"))

        assert exc_info.value.status_code == 503
        assert _wallet_balance(session_factory) == Decimal("1000000.00")
        assert funded_db.query(Trade).count() == 0

    def test_failed_settlement_is_recorded_and_rolled_back(
        self, trading_service, session_factory, monkeypatch
    ):
        """보유 잔액 갱신 실패 시 지갑 차감도 취소되고 failed 거래만 남음"""

        def _broken_add(holding, amount):
            raise RuntimeError("holding store unavailable")

        monkeypatch.setattr(trading_service.holding_repo, "add", _broken_add)

        with pytest.raises(RuntimeError):
            trading_service.buy(USER_ID, "BTC", Decimal("100000"))

        with session_factory() as session:
            trades = session.query(Trade).all()
            assert len(trades) == 1
            assert trades[0].status is TradeStatus.FAILED
            assert trades[0].failure_reason == "holding store unavailable"
            assert (
                session.query(WalletTransaction)
                .filter(WalletTransaction.trade_id.isnot(None))
                .count()
                == 0
            )
        assert _wallet_balance(session_factory) == Decimal("1000000.00")
        assert _holding_balance(session_factory) == Decimal("0")

    def test_database_error_in_settlement_marks_trade_failed(
        self, trading_service, session_factory, monkeypatch
    ):
        """정산 중 DB 오류는 failed 거래로 남기고 PersistenceFailureError 로 변환"""

        def _broken_add(holding, amount):
            raise OperationalError("UPDATE crypto_holdings", {}, Exception("disk I/O error"))

        monkeypatch.setattr(trading_service.holding_repo, "add", _broken_add)

        with pytest.raises(PersistenceFailureError) as exc_info:
            trading_service.buy(USER_ID, "BTC", Decimal("100000"))

        assert exc_info.value.status_code == 500
        with session_factory() as session:
            trade = session.query(Trade).one()
            assert trade.status is TradeStatus.FAILED
            assert "disk I/O error" in trade.failure_reason
            assert exc_info.value.details["trade_reference"] == trade.reference
        assert _wallet_balance(session_factory) == Decimal("1000000.00")
        assert _holding_balance(session_factory) == Decimal("0")

    def test_final_commit_failure_leaves_no_pending_trade(
        self, trading_service, funded_db, session_factory
    ):
        """최종 커밋 실패 시 pending 거래 없이 전체 롤백"""
        real_commit = funded_db.commit
        commits = []

        def _commit():
            commits.append(1)
            # 첫 커밋은 오라클 호출 전 읽기 단계 종료
            if len(commits) > 1:
                raise OperationalError("COMMIT", {}, Exception("disk I/O error"))
            real_commit()

        with patch.object(funded_db, "commit", side_effect=_commit):
            with pytest.raises(PersistenceFailureError):
                trading_service.buy(USER_ID, "BTC", Decimal("100000"))

        with session_factory() as session:
            assert session.query(Trade).count() == 0
            assert (
                session.query(WalletTransaction)
                .filter(WalletTransaction.trade_id.isnot(None))
                .count()
                == 0
            )
        assert _wallet_balance(session_factory) == Decimal("1000000.00")
        assert _holding_balance(session_factory) == Decimal("0")

    def test_references_are_unique(self, trading_service):
        references = {
            trading_service.buy(USER_ID, "USDT", Decimal("1000")).reference
            for _ in range(10)
        }
        assert len(references) == 10


class TestSell:
    """매도 테스트"""

    def test_sell_after_buy(self, trading_service, session_factory):
        trading_service.buy(USER_ID, "BTC", Decimal("100000"))

        trade = trading_service.sell(USER_ID, "BTC", Decimal("0.00197"))

        assert trade.status is TradeStatus.COMPLETED
        assert trade.subtotal == Decimal("98500.00")
        assert trade.fee_amount == Decimal("1477.50")
        assert trade.total_amount == Decimal("97022.50")
        assert _wallet_balance(session_factory) == Decimal("997022.50")
        assert _holding_balance(session_factory) == Decimal("0")

        with session_factory() as session:
            entry = (
                session.query(WalletTransaction)
                .filter(WalletTransaction.source == TransactionSource.TRADE_SELL)
                .one()
            )
            assert entry.type is TransactionType.CREDIT
            assert entry.amount == Decimal("97022.50")
            assert entry.description == "Sell BTC"

    def test_sell_without_holding_fails(self, trading_service, rate_oracle):
        with pytest.raises(InsufficientAssetBalanceError) as exc_info:
            trading_service.sell(USER_ID, "ETH", Decimal("0.1"))

        assert exc_info.value.error_code == "BALANCE_002"
        assert rate_oracle.calls == 0

    def test_sell_more_than_held_fails(self, trading_service, funded_db):
        trading_service.buy(USER_ID, "BTC", Decimal("100000"))

        with pytest.raises(InsufficientAssetBalanceError):
            trading_service.sell(USER_ID, "BTC", Decimal("0.00197001"))
        assert funded_db.query(Trade).filter(Trade.type == TradeType.SELL).count() == 0

    def test_sell_minimum_checked_before_fee(self, trading_service):
        # USDT 시세 1,500: 1 USDT 매도 시 수수료 전 1,500 (최소 1,000 이상)
        trading_service.buy(USER_ID, "USDT", Decimal("10000"))

        trade = trading_service.sell(USER_ID, "USDT", Decimal("0.66666667"))
        # 0.66666667 * 1500 = 1000.000005 -> 1000.00, 수수료 후 985.00 이지만 허용
        assert trade.subtotal == Decimal("1000.00")
        assert trade.total_amount == Decimal("985.00")

        with pytest.raises(BelowMinimumError):
            trading_service.sell(USER_ID, "USDT", Decimal("0.66"))

    def test_failed_sell_settlement_rolls_back_credit(
        self, trading_service, session_factory, monkeypatch
    ):
        """보유 차감 실패 시 먼저 반영된 지갑 입금도 취소"""
        trading_service.buy(USER_ID, "BTC", Decimal("100000"))

        def _broken_subtract(holding, amount):
            raise RuntimeError("holding store unavailable")

        monkeypatch.setattr(trading_service.holding_repo, "subtract", _broken_subtract)

        with pytest.raises(RuntimeError):
            trading_service.sell(USER_ID, "BTC", Decimal("0.001"))

        with session_factory() as session:
            sell = session.query(Trade).filter(Trade.type == TradeType.SELL).one()
            assert sell.status is TradeStatus.FAILED
            assert sell.failure_reason == "holding store unavailable"
            assert (
                session.query(WalletTransaction)
                .filter(WalletTransaction.source == TransactionSource.TRADE_SELL)
                .count()
                == 0
            )
        assert _wallet_balance(session_factory) == Decimal("900000.00")
        assert _holding_balance(session_factory) == Decimal("0.00197")

    def test_buy_and_sell_update_rows_in_same_order(self, trading_service, engine):
        """매수/매도 모두 wallets -> crypto_holdings 순서로 갱신 (교착 방지)"""
        updated = []

        def _record(conn, cursor, statement, parameters, context, executemany):
            words = statement.split()
            if words[:1] == ["UPDATE"] and words[1] in ("wallets", "crypto_holdings"):
                updated.append(words[1])

        event.listen(engine, "before_cursor_execute", _record)
        try:
            trading_service.buy(USER_ID, "BTC", Decimal("100000"))
            buy_order = list(dict.fromkeys(updated))
            updated.clear()
            trading_service.sell(USER_ID, "BTC", Decimal("0.001"))
            sell_order = list(dict.fromkeys(updated))
        finally:
            event.remove(engine, "before_cursor_execute", _record)

        assert buy_order == ["wallets", "crypto_holdings"]
        assert sell_order == buy_order


class TestQuote:
    def test_quote_matches_execution(self, trading_service):
        quote = trading_service.quote("buy", "BTC", Decimal("100000"))
        trade = trading_service.buy(USER_ID, "BTC", Decimal("100000"))

        assert quote.crypto_amount == trade.crypto_amount
        assert quote.fee_amount == trade.fee_amount
        assert quote.subtotal == trade.subtotal
        assert quote.total_amount == trade.total_amount
        assert quote.rate == trade.rate
        assert quote.minimum_amount == Decimal("1000.00")
        assert quote.rate_data["price_ngn"] == "50000000"

    def test_quote_does_not_check_balance_or_persist(self, fee_db, rate_oracle):
        service = TradingService(fee_db, rate_oracle)

        quote = service.quote(TradeType.BUY, "ETH", Decimal("5000000"))

        assert quote.fee_amount == Decimal("75000.00")
        assert fee_db.query(Trade).count() == 0

    def test_quote_with_supplied_snapshot_skips_oracle(self, fee_db, rate_oracle):
        snapshot = StubRateOracle(prices={"BTC": Decimal("40000000")}).get_price("BTC")
        service = TradingService(fee_db, rate_oracle)

        quote = service.quote(TradeType.BUY, "BTC", Decimal("100000"), snapshot=snapshot)

        assert rate_oracle.calls == 0
        assert quote.rate == Decimal("40000000.00")
        assert quote.crypto_amount == Decimal("0.0024625")

    def test_quote_sell_below_minimum(self, fee_db, rate_oracle):
        service = TradingService(fee_db, rate_oracle)

        with pytest.raises(BelowMinimumError):
            service.quote(TradeType.SELL, "USDT", Decimal("0.5"))


class TestQueries:
    def test_history_and_lookup(self, trading_service):
        trading_service.buy(USER_ID, "BTC", Decimal("100000"))
        eth = trading_service.buy(USER_ID, "ETH", Decimal("30000"))
        trading_service.sell(USER_ID, "BTC", Decimal("0.001"))

        history = trading_service.get_history(USER_ID)
        assert history.pagination.total_count == 3
        assert history.trades[0].type is TradeType.SELL

        buys = trading_service.get_history(USER_ID, trade_type=TradeType.BUY, symbol="eth")
        assert [t.reference for t in buys.trades] == [eth.reference]

        assert trading_service.get_trade(USER_ID, eth.reference).crypto_symbol == "ETH"

    def test_other_users_trade_not_found(self, trading_service):
        trade = trading_service.buy(USER_ID, "BTC", Decimal("5000"))

        with pytest.raises(NotFoundError):
            trading_service.get_trade(2, trade.reference)

    def test_portfolio_values_holdings(self, trading_service):
        trading_service.buy(USER_ID, "BTC", Decimal("100000"))
        trading_service.buy(USER_ID, "USDT", Decimal("15000"))

        portfolio = trading_service.get_portfolio(USER_ID)

        by_symbol = {item.symbol: item for item in portfolio.holdings}
        assert by_symbol["BTC"].value_ngn == Decimal("98500.00")
        # (15000 - 225) / 1500 = 9.85 USDT
        assert by_symbol["USDT"].balance == Decimal("9.85")
        assert by_symbol["USDT"].value_ngn == Decimal("14775.00")
        assert portfolio.total_value_ngn == Decimal("113275.00")

    def test_portfolio_with_missing_prices_values_zero(self, funded_db, rate_oracle):
        TradingService(funded_db, rate_oracle).buy(USER_ID, "BTC", Decimal("100000"))

        portfolio = TradingService(funded_db, StubRateOracle(fail=True)).get_portfolio(USER_ID)

        assert portfolio.holdings[0].current_price_ngn == Decimal("0")
        assert portfolio.total_value_ngn == Decimal("0")

    def test_supported_assets_and_fees(self, trading_service):
        symbols = [asset.symbol for asset in trading_service.supported_assets()]
        assert symbols == ["BTC", "ETH", "USDT"]
        assert {fee.name for fee in trading_service.list_fees()} == {"buy_fee", "sell_fee"}

    def test_fee_change_applies_to_next_trade(self, trading_service, funded_db):
        seed_fees(funded_db, percentage="2.00")

        trade = trading_service.buy(USER_ID, "BTC", Decimal("100000"))

        assert trade.fee_percentage == Decimal("2.00")
        assert trade.fee_amount == Decimal("2000.00")
