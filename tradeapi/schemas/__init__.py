from .common import BaseResponse, Error
from .fee import FeeSchedule
from .crypto import PriceSnapshot, PortfolioResponse
from .wallet import WalletResponse, WalletTransactionResponse
from .trade import TradeResponse, TradeQuote
