from tradeapi.models.base import Base
from tradeapi.models.fee_setting import FeeSetting
from tradeapi.models.holding import CryptoHolding
from tradeapi.models.trade import Trade, TradeStatus, TradeType
from tradeapi.models.wallet import (
    TransactionSource,
    TransactionType,
    Wallet,
    WalletTransaction,
)

__all__ = [
    "Base",
    "CryptoHolding",
    "FeeSetting",
    "Trade",
    "TradeStatus",
    "TradeType",
    "TransactionSource",
    "TransactionType",
    "Wallet",
    "WalletTransaction",
]
