# database/session.py
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from core import config

# -----------------------------------------------------------------------------------
# 1) DB URL 설정
#    - ingest:    INGEST_DATABASE_URL > DATABASE_URL > DB_* 조합
#    - analytics: ANALYTICS_DATABASE_URL > ingest URL
# -----------------------------------------------------------------------------------
INGEST_DATABASE_URL = config.INGEST_DATABASE_URL
ANALYTICS_DATABASE_URL = config.ANALYTICS_DATABASE_URL or INGEST_DATABASE_URL

if not INGEST_DATABASE_URL:
    raise RuntimeError(
        "DB 접속 정보가 없습니다. "
        "환경변수 INGEST_DATABASE_URL / DATABASE_URL 또는 .env 의 DB_USER/DB_PASSWORD/DB_SERVER/DB_NAME 을 확인해줘."
    )

# -----------------------------------------------------------------------------------
# 2) SQLAlchemy Engine / SessionLocal
#    - URL 이 같으면 엔진 하나를 공유
# -----------------------------------------------------------------------------------
_engines: dict[str, Engine] = {}


def _get_engine(url: str) -> Engine:
    engine = _engines.get(url)
    if engine is None:
        engine = create_engine(
            url,
            echo=config.SQL_ECHO,
            pool_pre_ping=True,
        )
        _engines[url] = engine
    return engine


ingest_engine = _get_engine(INGEST_DATABASE_URL)
analytics_engine = _get_engine(ANALYTICS_DATABASE_URL)

IngestSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=ingest_engine,
)

AnalyticsSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=analytics_engine,
)


def same_database() -> bool:
    """True when ingest and analytics resolve to one physical database."""
    return ingest_engine is analytics_engine
