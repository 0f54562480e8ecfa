from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from tradeapi.config import settings


def configure_sqlite_engine(engine: Engine) -> Engine:
    """SQLite 트랜잭션을 BEGIN IMMEDIATE 로 시작하도록 설정

    pysqlite 기본 동작은 SELECT 를 트랜잭션 밖에서 실행하고 SAVEPOINT 를 지원하지 않습니다.
    드라이버의 자동 BEGIN 을 끄고 직접 BEGIN IMMEDIATE 를 보내면
    쓰기 트랜잭션이 시작 시점에 직렬화되고 begin_nested() 도 정상 동작합니다.
    """

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def build_engine(database_url: str, echo: bool = False) -> Engine:
    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            echo=echo,
            connect_args={
                "check_same_thread": False,
                "timeout": settings.SQLITE_BUSY_TIMEOUT_SECONDS,
            },
        )
        return configure_sqlite_engine(engine)

    return create_engine(
        database_url,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,  # 연결 유효성 검사
        pool_recycle=3600,  # 1시간마다 연결 재생성
        echo=echo,  # 디버그 모드에서 SQL 로깅
    )


def build_session_factory(bind: Engine) -> sessionmaker:
    # Use expire_on_commit=False to avoid DetachedInstanceError when accessing
    # attributes after commit within the same request scope (common FastAPI pattern).
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=bind,
        expire_on_commit=False,
    )


engine = build_engine(settings.database_url, echo=settings.DEBUG)
SessionLocal = build_session_factory(engine)
