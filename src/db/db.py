from __future__ import annotations

import logging
from pathlib import Path

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from db.models import Base

logger = logging.getLogger(__name__)


def init_db(echo: bool = False, *, db_file: Path, reset: bool = False) -> Session:
    if reset and db_file.exists():
        logger.info("Removing existing database %s", db_file)
        db_file.unlink()
    db_file.parent.mkdir(parents=True, exist_ok=True)

    engine: Engine = create_engine(f"sqlite:///{db_file}", echo=echo)

    Base.metadata.create_all(engine)
    return sessionmaker(engine)()
