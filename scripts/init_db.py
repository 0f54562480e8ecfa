import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from tradeapi.database.connection import engine
from tradeapi.models import Base


def init_db():
    """데이터베이스 초기화 - 모든 테이블 생성 (이미 있으면 건너뜀)"""
    try:
        Base.metadata.create_all(bind=engine)
        print(f"✅ Database initialized: {engine.url.render_as_string(hide_password=True)}")
        print("📋 Tables:")
        for table_name in Base.metadata.tables:
            print(f"   - {table_name}")
    except Exception as e:
        print(f"❌ Database initialization failed: {str(e)}")
        raise


if __name__ == "__main__":
    init_db()
