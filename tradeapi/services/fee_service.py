from typing import List
from sqlalchemy.orm import Session

from tradeapi.core.exceptions import ConfigurationMissingError
from tradeapi.models.fee_setting import BUY_FEE, SELL_FEE
from tradeapi.models.trade import TradeType
from tradeapi.repositories.fee_setting_repository import FeeSettingRepository
from tradeapi.schemas.fee import FeeSchedule, FeeSettingResponse
import logging

logger = logging.getLogger(__name__)

FEE_NAME_BY_TRADE_TYPE = {
    TradeType.BUY: BUY_FEE,
    TradeType.SELL: SELL_FEE,
}


class FeeService:
    """수수료 정책 조회 서비스"""

    def __init__(self, db: Session):
        self.db = db
        self.fee_repo = FeeSettingRepository(db)

    def get_active(self, name: str) -> FeeSchedule:
        """활성 수수료 정책 스냅샷 조회

        Raises:
            ConfigurationMissingError: 활성 정책이 없는 경우 (운영 설정 오류)
        """
        schedule = self.fee_repo.get_active(name)
        if schedule is None:
            logger.error(f"No active fee setting configured for '{name}'")
            raise ConfigurationMissingError(name)
        return schedule

    def get_for_trade(self, trade_type: TradeType) -> FeeSchedule:
        return self.get_active(FEE_NAME_BY_TRADE_TYPE[trade_type])

    def list_active(self) -> List[FeeSettingResponse]:
        return self.fee_repo.list_active()
