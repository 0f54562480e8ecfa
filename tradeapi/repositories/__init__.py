from .fee_setting_repository import FeeSettingRepository
from .holding_repository import HoldingRepository
from .trade_repository import TradeRepository
from .wallet_repository import WalletRepository
