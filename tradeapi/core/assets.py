"""
거래 가능한 암호화폐 목록을 중앙에서 관리합니다.
CoinGecko 코인 ID 매핑을 함께 보관하여 가격 오라클과 거래 엔진이 같은 목록을 사용합니다.
"""

from typing import Optional

SUPPORTED_CRYPTOS = {
    "BTC": {"id": "bitcoin", "name": "Bitcoin", "symbol": "BTC"},
    "ETH": {"id": "ethereum", "name": "Ethereum", "symbol": "ETH"},
    "USDT": {"id": "tether", "name": "Tether", "symbol": "USDT"},
}


def normalize_symbol(symbol: str) -> str:
    return (symbol or "").strip().upper()


def is_supported(symbol: str) -> bool:
    """지원되는 심볼인지 확인합니다 (대소문자 무시)."""
    return normalize_symbol(symbol) in SUPPORTED_CRYPTOS


def get_crypto_info(symbol: str) -> Optional[dict]:
    return SUPPORTED_CRYPTOS.get(normalize_symbol(symbol))

