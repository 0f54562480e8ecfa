import logging
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tradeapi.core.exceptions import BaseAPIException, PersistenceFailureError
from tradeapi.database.connection import SessionLocal

logger = logging.getLogger(__name__)


def get_db():
    db = SessionLocal()
    try:
        yield db
    except Exception:
        if db.in_transaction():
            db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def atomic(db: Session, operation: str):
    """하나의 원자적 작업 단위 - 성공 시 커밋, 실패 시 전체 롤백

    도메인 예외(BaseAPIException)는 그대로 전파하고,
    커밋 불가 등 DB 오류는 PersistenceFailureError 로 변환합니다.
    """
    try:
        yield db
        db.commit()
    except BaseAPIException:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(f"Atomic unit '{operation}' failed: {exc}")
        raise PersistenceFailureError(details={"operation": operation}) from exc
    except Exception:
        db.rollback()
        raise
