"""
기본 수수료 정책 시드 스크립트
매수/매도 수수료율과 최소 거래 금액을 설정값(DEFAULT_*)으로 생성 또는 갱신
"""

import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from tradeapi.config import settings
from tradeapi.database.connection import SessionLocal
from tradeapi.models.fee_setting import BUY_FEE, SELL_FEE
from tradeapi.repositories.fee_setting_repository import FeeSettingRepository
from tradeapi.utils.money import to_decimal


def seed_fee_settings():
    """기본 수수료 정책 시드"""
    default_fees = [
        (BUY_FEE, settings.DEFAULT_BUY_FEE_PERCENTAGE, "Fee applied to crypto purchases"),
        (SELL_FEE, settings.DEFAULT_SELL_FEE_PERCENTAGE, "Fee applied to crypto sales"),
    ]
    minimum_amount = to_decimal(settings.DEFAULT_MINIMUM_TRADE_AMOUNT)

    db = SessionLocal()
    try:
        repo = FeeSettingRepository(db)
        for name, percentage, description in default_fees:
            repo.upsert(
                name=name,
                percentage=to_decimal(percentage),
                minimum_amount=minimum_amount,
                description=description,
            )
        db.commit()

        print(f"✅ 수수료 정책 시드 완료: {len(default_fees)}개")
        for name, percentage, _ in default_fees:
            print(f"   {name}: {percentage}% (최소 ₦{minimum_amount:,.2f})")
    except Exception as e:
        db.rollback()
        print(f"❌ 수수료 정책 시드 실패: {str(e)}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed_fee_settings()
