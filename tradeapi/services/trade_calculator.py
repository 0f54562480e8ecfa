"""
매수/매도 금액 계산 - 순수 함수

견적(quote)과 실제 체결(buy/sell)이 같은 함수를 사용하므로, 두 결과가 다르다면
그 원인은 호출 사이의 시세 변동뿐입니다.

계산 순서 (고정):
- 매수: fee = fee(fiat), net = fiat - fee, crypto = net / rate
- 매도: subtotal = crypto * rate, fee = fee(subtotal), net = subtotal - fee
"""

from dataclasses import dataclass
from decimal import Decimal

from tradeapi.core.exceptions import RateUnavailableError
from tradeapi.models.trade import TradeType
from tradeapi.schemas.fee import FeeSchedule
from tradeapi.utils.money import Number, round_fiat, truncate_crypto


@dataclass(frozen=True)
class TradeBreakdown:
    type: TradeType
    symbol: str
    crypto_amount: Decimal
    rate: Decimal
    subtotal: Decimal
    fee_percentage: Decimal
    fee_amount: Decimal
    total_amount: Decimal  # 매수: 지갑 차감액, 매도: 지갑 입금액

    @property
    def minimum_check_amount(self) -> Decimal:
        """최소 금액 비교 대상 - 매수는 지불 금액, 매도는 수수료 전 금액"""
        if self.type is TradeType.BUY:
            return self.total_amount
        return self.subtotal

    @property
    def ngn_amount(self) -> Decimal:
        return self.total_amount


def _checked_rate(rate: Number) -> Decimal:
    rate = round_fiat(rate)
    if rate <= 0:
        raise RateUnavailableError(
            "Received an invalid exchange rate", details={"rate": str(rate)}
        )
    return rate


def calculate_buy(
    fee: FeeSchedule, symbol: str, fiat_amount: Number, rate: Number
) -> TradeBreakdown:
    fiat_amount = round_fiat(fiat_amount)
    rate = _checked_rate(rate)

    fee_amount = fee.fee(fiat_amount)
    net_fiat = fiat_amount - fee_amount
    crypto_amount = truncate_crypto(net_fiat / rate)

    return TradeBreakdown(
        type=TradeType.BUY,
        symbol=symbol,
        crypto_amount=crypto_amount,
        rate=rate,
        subtotal=net_fiat,
        fee_percentage=fee.percentage,
        fee_amount=fee_amount,
        total_amount=fiat_amount,
    )


def calculate_sell(
    fee: FeeSchedule, symbol: str, crypto_amount: Number, rate: Number
) -> TradeBreakdown:
    crypto_amount = truncate_crypto(crypto_amount)
    rate = _checked_rate(rate)

    subtotal = round_fiat(crypto_amount * rate)
    fee_amount = fee.fee(subtotal)
    net_fiat = subtotal - fee_amount

    return TradeBreakdown(
        type=TradeType.SELL,
        symbol=symbol,
        crypto_amount=crypto_amount,
        rate=rate,
        subtotal=subtotal,
        fee_percentage=fee.percentage,
        fee_amount=fee_amount,
        total_amount=net_fiat,
    )
