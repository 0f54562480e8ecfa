from decimal import Decimal
from typing import List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from tradeapi.models.fee_setting import FeeSetting
from tradeapi.repositories.base import BaseRepository
from tradeapi.schemas.fee import FeeSchedule, FeeSettingResponse


class FeeSettingRepository(BaseRepository[FeeSetting, FeeSettingResponse]):
    """수수료 정책 리포지토리"""

    def __init__(self, db: Session):
        super().__init__(FeeSetting, FeeSettingResponse, db)

    def get_active(self, name: str) -> Optional[FeeSchedule]:
        """이름별 활성 정책 스냅샷. 여러 개가 활성이면 가장 최근 것을 사용"""
        setting = (
            self.db.query(FeeSetting)
            .filter(FeeSetting.name == name, FeeSetting.is_active.is_(True))
            .order_by(desc(FeeSetting.id))
            .first()
        )
        if setting is None:
            return None
        return FeeSchedule.model_validate(setting)

    def list_active(self) -> List[FeeSettingResponse]:
        return self.find_all(filters={"is_active": True}, order_by="name")

    def upsert(
        self,
        name: str,
        percentage: Decimal,
        minimum_amount: Decimal,
        description: Optional[str] = None,
        is_active: bool = True,
    ) -> FeeSettingResponse:
        """이름 기준 생성 또는 갱신 (시드 스크립트용)"""
        setting = self.db.query(FeeSetting).filter(FeeSetting.name == name).first()
        if setting is None:
            setting = FeeSetting(name=name)
            self.db.add(setting)

        setting.percentage = percentage
        setting.minimum_amount = minimum_amount
        setting.description = description
        setting.is_active = is_active
        self.db.flush()
        return self._to_schema(setting)
