"""
금액 계산 유틸리티

모든 금액 계산은 Decimal로 수행합니다. 반올림은 이 모듈의 함수로만 하며,
표시 계층의 포맷팅에 정밀도 처리를 맡기지 않습니다.

- 법정화폐(NGN): 소수점 2자리
- 암호화폐: 소수점 8자리
"""

from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP
from typing import Union

FIAT_PLACES = Decimal("0.01")
CRYPTO_PLACES = Decimal("0.00000001")

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number) -> Decimal:
    """float는 문자열을 거쳐 변환하여 이진 표현 오차를 끌어오지 않습니다."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def round_fiat(value: Number) -> Decimal:
    """법정화폐 금액 반올림 (half-up, 2자리)"""
    return to_decimal(value).quantize(FIAT_PLACES, rounding=ROUND_HALF_UP)


def truncate_crypto(value: Number) -> Decimal:
    """암호화폐 수량 절사 (8자리). 지급 수량이 결제 금액을 넘지 않도록 내림."""
    return to_decimal(value).quantize(CRYPTO_PLACES, rounding=ROUND_DOWN)


def percentage_of(amount: Number, percentage: Number) -> Decimal:
    """amount * percentage / 100 을 2자리 half-up 으로 반올림"""
    return round_fiat(to_decimal(amount) * to_decimal(percentage) / Decimal(100))


def format_naira(value: Number) -> str:
    return f"₦{round_fiat(value):,.2f}"
