# core/config.py
import os

from dotenv import load_dotenv

# 0) .env 로드
load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"true", "1", "yes", "on"}


# 1) DB
DB = os.getenv("DB", "postgresql")
DB_USER = os.getenv("DB_USER", "")
DB_PASSWORD = os.getenv("DB_PASSWORD", "")
DB_SERVER = os.getenv("DB_SERVER", "")
DB_PORT = os.getenv("DB_PORT", "5432")
DB_NAME = os.getenv("DB_NAME", "")

DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"{DB}://{DB_USER}:{DB_PASSWORD}@{DB_SERVER}:{DB_PORT}/{DB_NAME}" if all([DB_USER, DB_PASSWORD, DB_SERVER, DB_NAME]) else ""
)

# ingest(원본 이벤트 + 체크포인트) / analytics(집계 결과) 분리 가능. 미지정 시 같은 DB 사용
INGEST_DATABASE_URL = os.getenv("INGEST_DATABASE_URL", DATABASE_URL)
ANALYTICS_DATABASE_URL = os.getenv("ANALYTICS_DATABASE_URL", INGEST_DATABASE_URL)

SQL_ECHO = _env_bool("SQL_ECHO", "false")

# 2) 집계 잡
AGGREGATION_BATCH_SIZE = int(os.getenv("AGGREGATION_BATCH_SIZE", "0"))  # 0 = 제한 없음
AGGREGATION_USE_LEASE = _env_bool("AGGREGATION_USE_LEASE", "true")
AGGREGATION_LEASE_NAME = os.getenv("AGGREGATION_LEASE_NAME", "activity_aggregation")
AGGREGATION_LEASE_SECONDS = int(os.getenv("AGGREGATION_LEASE_SECONDS", "600"))

UNKNOWN_LANGUAGE = os.getenv("UNKNOWN_LANGUAGE", "unknown")

# 3) 세션 캐시
SESSION_CACHE_TTL_MINUTES = int(os.getenv("SESSION_CACHE_TTL_MINUTES", "60"))

# 4) 로깅
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
