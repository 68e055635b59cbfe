# database/base.py
from sqlalchemy.engine import Engine

# 1) Base/metadata 는 models.base 의 것을 재사용
from models.base import Base, metadata  # 여기서 declarative_base() 절대 다시 만들지 말기

# 2) 여기서 모델 모듈 import 해서 Base.metadata 에 테이블들을 올려줌
import models.ingest     # noqa: F401
import models.analytics  # noqa: F401


def create_all(engine: Engine) -> None:
    """Create every table registered on ``Base.metadata`` that does not exist yet."""
    metadata.create_all(bind=engine)
