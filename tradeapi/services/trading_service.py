"""
매수/매도 체결 엔진

처리 흐름 (buy / sell 공통):
1. 사전 검증 (지원 자산, 수수료 정책, 최소 금액, 잔액) - 실패 시 아무것도 기록하지 않음
2. 읽기 트랜잭션 종료 후 가격 오라클 1회 호출 (외부 호출 동안 DB 잠금을 잡지 않음)
3. pending 거래 기록 생성
4. 세이브포인트 안에서 지갑 / 보유 잔액 변경 + 지갑 원장 기록
5. 성공 시 completed, 실패 시 세이브포인트만 롤백하고 failed 로 기록 후 커밋

failed 거래는 잔액 변경 없이 실패 사유와 함께 남습니다.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tradeapi.config import Settings, settings as default_settings
from tradeapi.core.assets import SUPPORTED_CRYPTOS, is_supported, normalize_symbol
from tradeapi.core.exceptions import (
    BelowMinimumError,
    InsufficientAssetBalanceError,
    InsufficientFundsError,
    NotFoundError,
    PersistenceFailureError,
    UnsupportedAssetError,
    ValidationError,
)
from tradeapi.models.trade import Trade, TradeStatus, TradeType
from tradeapi.models.wallet import TransactionSource, TransactionType
from tradeapi.repositories.holding_repository import HoldingRepository
from tradeapi.repositories.trade_repository import TradeRepository
from tradeapi.repositories.wallet_repository import WalletRepository
from tradeapi.schemas.crypto import (
    HoldingResponse,
    PortfolioItem,
    PortfolioResponse,
    PriceSnapshot,
    SupportedCrypto,
)
from tradeapi.schemas.fee import FeeSettingResponse
from tradeapi.schemas.pagination import PaginationLimits, PaginationMeta, clamp_limit
from tradeapi.schemas.trade import TradeHistoryResponse, TradeQuote, TradeResponse
from tradeapi.services.fee_service import FeeService
from tradeapi.services.rate_oracle import RateOracle
from tradeapi.services.trade_calculator import (
    TradeBreakdown,
    calculate_buy,
    calculate_sell,
)
from tradeapi.utils.money import Number, round_fiat, to_decimal, truncate_crypto

logger = logging.getLogger(__name__)


class TradingService:
    """암호화폐 매수/매도 및 거래 조회 서비스"""

    def __init__(
        self,
        db: Session,
        rate_oracle: RateOracle,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.rate_oracle = rate_oracle
        self.currency = (settings or default_settings).DEFAULT_CURRENCY
        self.fee_service = FeeService(db)
        self.wallet_repo = WalletRepository(db)
        self.holding_repo = HoldingRepository(db)
        self.trade_repo = TradeRepository(db)

    # ------------------------------------------------------------------
    # 체결
    # ------------------------------------------------------------------

    @staticmethod
    def _require_supported(symbol: str) -> str:
        symbol = normalize_symbol(symbol)
        if not is_supported(symbol):
            raise UnsupportedAssetError(symbol)
        return symbol

    def _end_read_phase(self) -> None:
        # SQLite(BEGIN IMMEDIATE)에서는 읽기만 해도 쓰기 잠금을 잡으므로 오라클 호출 전에 반납
        if self.db.in_transaction():
            self.db.commit()

    def buy(self, user_id: int, symbol: str, fiat_amount: Number) -> TradeResponse:
        """NGN 금액으로 암호화폐 매수

        Args:
            user_id: 사용자 ID
            symbol: 코인 심볼 (대소문자 무시)
            fiat_amount: 지불할 NGN 금액 (수수료 포함)

        Returns:
            TradeResponse: completed 상태의 거래 기록

        Raises:
            UnsupportedAssetError, ConfigurationMissingError, BelowMinimumError,
            InsufficientFundsError, RateUnavailableError, PersistenceFailureError
        """
        symbol = self._require_supported(symbol)
        fiat_amount = round_fiat(fiat_amount)
        if fiat_amount <= 0:
            raise ValidationError("Amount must be greater than zero")

        fee = self.fee_service.get_for_trade(TradeType.BUY)
        if not fee.meets_minimum(fiat_amount):
            raise BelowMinimumError(fee.minimum_amount, {"amount": str(fiat_amount)})

        wallet = self.wallet_repo.get_or_create(user_id, self.currency)
        sufficient = wallet.has_sufficient_balance(fiat_amount)
        available = wallet.balance
        self._end_read_phase()
        if not sufficient:
            raise InsufficientFundsError(
                details={"required": str(fiat_amount), "available": str(available)}
            )

        snapshot = self.rate_oracle.get_price(symbol)
        breakdown = calculate_buy(fee, symbol, fiat_amount, snapshot.price_ngn)

        def settle(trade: Trade) -> None:
            before, after = self.wallet_repo.debit(wallet, breakdown.total_amount)
            holding = self.holding_repo.get_or_create(user_id, symbol)
            self.holding_repo.add(holding, breakdown.crypto_amount)
            self.wallet_repo.record_transaction(
                wallet=wallet,
                transaction_type=TransactionType.DEBIT,
                amount=breakdown.total_amount,
                balance_before=before,
                balance_after=after,
                source=TransactionSource.TRADE_BUY,
                description=f"Buy {symbol}",
                trade_id=trade.id,
                meta_data=self._trade_meta(trade, breakdown),
            )

        return self._execute(user_id, breakdown, snapshot, settle)

    def sell(self, user_id: int, symbol: str, crypto_amount: Number) -> TradeResponse:
        """보유 암호화폐 매도

        최소 금액은 수수료 차감 전 금액(수량 * 시세) 기준으로 확인하므로
        시세 조회 후에 검증합니다.
        """
        symbol = self._require_supported(symbol)
        crypto_amount = truncate_crypto(crypto_amount)
        if crypto_amount <= 0:
            raise ValidationError("Amount must be greater than zero")

        fee = self.fee_service.get_for_trade(TradeType.SELL)

        holding = self.holding_repo.get_holding(user_id, symbol)
        available = holding.balance if holding else Decimal("0")
        self._end_read_phase()
        if holding is None or not holding.has_sufficient_balance(crypto_amount):
            raise InsufficientAssetBalanceError(
                symbol,
                details={"required": str(crypto_amount), "available": str(available)},
            )

        snapshot = self.rate_oracle.get_price(symbol)
        breakdown = calculate_sell(fee, symbol, crypto_amount, snapshot.price_ngn)
        if not fee.meets_minimum(breakdown.minimum_check_amount):
            raise BelowMinimumError(
                fee.minimum_amount, {"amount": str(breakdown.minimum_check_amount)}
            )

        def settle(trade: Trade) -> None:
            # 매수와 같은 잠금 순서 (wallets -> crypto_holdings)
            wallet = self.wallet_repo.get_or_create(user_id, self.currency)
            before, after = self.wallet_repo.credit(wallet, breakdown.total_amount)
            self.holding_repo.subtract(holding, breakdown.crypto_amount)
            self.wallet_repo.record_transaction(
                wallet=wallet,
                transaction_type=TransactionType.CREDIT,
                amount=breakdown.total_amount,
                balance_before=before,
                balance_after=after,
                source=TransactionSource.TRADE_SELL,
                description=f"Sell {symbol}",
                trade_id=trade.id,
                meta_data=self._trade_meta(trade, breakdown),
            )

        return self._execute(user_id, breakdown, snapshot, settle)

    @staticmethod
    def _trade_meta(trade: Trade, breakdown: TradeBreakdown) -> dict:
        return {
            "trade_reference": trade.reference,
            "crypto_symbol": breakdown.symbol,
            "crypto_amount": str(breakdown.crypto_amount),
        }

    def _execute(
        self,
        user_id: int,
        breakdown: TradeBreakdown,
        snapshot: PriceSnapshot,
        settle: Callable[[Trade], None],
    ) -> TradeResponse:
        try:
            trade = self.trade_repo.create_pending(user_id, breakdown, snapshot)
            try:
                with self.db.begin_nested():
                    settle(trade)
            except Exception as exc:
                reason = str(exc) or type(exc).__name__
                self.trade_repo.mark_failed(trade, reason)
                self.db.commit()
                logger.warning(
                    f"{breakdown.type.value} trade {trade.reference} failed for user "
                    f"{user_id}: {reason}"
                )
                if isinstance(exc, SQLAlchemyError):
                    raise PersistenceFailureError(
                        details={"trade_reference": trade.reference}
                    ) from exc
                raise

            self.trade_repo.mark_completed(trade)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error(f"Could not persist {breakdown.type.value} trade for user {user_id}: {exc}")
            raise PersistenceFailureError(
                details={"operation": f"trade_{breakdown.type.value}"}
            ) from exc

        logger.info(
            f"{breakdown.type.value} trade {trade.reference} completed for user {user_id}: "
            f"{breakdown.crypto_amount} {breakdown.symbol} @ {breakdown.rate} "
            f"(fee {breakdown.fee_amount}, total {breakdown.total_amount})"
        )
        return TradeResponse.model_validate(trade)

    # ------------------------------------------------------------------
    # 견적
    # ------------------------------------------------------------------

    def quote(
        self,
        trade_type: Union[TradeType, str],
        symbol: str,
        amount: Number,
        snapshot: Optional[PriceSnapshot] = None,
    ) -> TradeQuote:
        """거래 견적 - 잔액 확인을 제외한 사전 검증과 계산을 실행 경로와 동일하게 수행

        Args:
            trade_type: buy 또는 sell
            symbol: 코인 심볼
            amount: buy 는 NGN 금액, sell 은 코인 수량
            snapshot: 이미 조회한 시세 (없으면 오라클 1회 호출)

        Returns:
            TradeQuote: 계산 결과와 사용한 시세 스냅샷 (아무것도 기록하지 않음)
        """
        trade_type = TradeType(trade_type)
        symbol = self._require_supported(symbol)
        if to_decimal(amount) <= 0:
            raise ValidationError("Amount must be greater than zero")

        fee = self.fee_service.get_for_trade(trade_type)
        if trade_type is TradeType.BUY and not fee.meets_minimum(round_fiat(amount)):
            raise BelowMinimumError(fee.minimum_amount, {"amount": str(round_fiat(amount))})
        self._end_read_phase()

        if snapshot is None:
            snapshot = self.rate_oracle.get_price(symbol)
        if trade_type is TradeType.BUY:
            breakdown = calculate_buy(fee, symbol, amount, snapshot.price_ngn)
        else:
            breakdown = calculate_sell(fee, symbol, amount, snapshot.price_ngn)
            if not fee.meets_minimum(breakdown.minimum_check_amount):
                raise BelowMinimumError(
                    fee.minimum_amount, {"amount": str(breakdown.minimum_check_amount)}
                )

        return TradeQuote(
            type=trade_type,
            crypto_symbol=symbol,
            ngn_amount=breakdown.ngn_amount,
            crypto_amount=breakdown.crypto_amount,
            subtotal=breakdown.subtotal,
            fee_percentage=breakdown.fee_percentage,
            fee_amount=breakdown.fee_amount,
            total_amount=breakdown.total_amount,
            rate=breakdown.rate,
            minimum_amount=fee.minimum_amount,
            rate_data=snapshot.model_dump(mode="json"),
        )

    # ------------------------------------------------------------------
    # 조회
    # ------------------------------------------------------------------

    def get_history(
        self,
        user_id: int,
        trade_type: Optional[TradeType] = None,
        symbol: Optional[str] = None,
        status: Optional[TradeStatus] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> TradeHistoryResponse:
        """거래 내역 조회 (최신순, 페이징)"""
        limit = clamp_limit(limit, PaginationLimits.TRADE_HISTORY)
        offset = max(offset, 0)
        trades, total_count = self.trade_repo.list_for_user(
            user_id=user_id,
            trade_type=trade_type,
            symbol=normalize_symbol(symbol) if symbol else None,
            status=status,
            date_from=date_from,
            date_to=date_to,
            limit=limit,
            offset=offset,
        )
        return TradeHistoryResponse(
            trades=trades, pagination=PaginationMeta.build(limit, offset, total_count)
        )

    def get_trade(self, user_id: int, reference: str) -> TradeResponse:
        trade = self.trade_repo.get_user_trade(user_id, reference)
        if trade is None:
            raise NotFoundError(
                "Trade not found", details={"reference": reference}
            )
        return trade

    def get_holdings(self, user_id: int) -> List[HoldingResponse]:
        return [
            self.holding_repo.to_response(holding)
            for holding in self.holding_repo.list_for_user(user_id)
        ]

    def get_portfolio(self, user_id: int) -> PortfolioResponse:
        """보유 자산 평가 - 가격을 가져오지 못한 자산은 0 으로 평가"""
        holdings = self.holding_repo.list_for_user(user_id)
        self._end_read_phase()
        prices: Dict[str, PriceSnapshot] = (
            self.rate_oracle.get_all_prices() if holdings else {}
        )

        items: List[PortfolioItem] = []
        total_value = Decimal("0.00")
        for holding in holdings:
            snapshot = prices.get(holding.crypto_symbol)
            price = snapshot.price_ngn if snapshot else Decimal("0")
            value = round_fiat(holding.balance * price)
            total_value += value
            items.append(
                PortfolioItem(
                    symbol=holding.crypto_symbol,
                    name=holding.crypto_name,
                    balance=holding.balance,
                    current_price_ngn=price,
                    value_ngn=value,
                )
            )

        return PortfolioResponse(holdings=items, total_value_ngn=total_value)

    @staticmethod
    def supported_assets() -> List[SupportedCrypto]:
        return [
            SupportedCrypto(symbol=symbol, name=info["name"])
            for symbol, info in SUPPORTED_CRYPTOS.items()
        ]

    def list_fees(self) -> List[FeeSettingResponse]:
        return self.fee_service.list_active()
