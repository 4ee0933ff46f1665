from __future__ import annotations

from datetime import datetime

import pytest
from sqlalchemy import create_engine

from relaywatch.infra.db import create_session_factory
from relaywatch.models import Base, CrossData


@pytest.fixture()
def store_engine(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'store.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(store_engine):
    return create_session_factory(store_engine)


@pytest.fixture()
def insert_row(session_factory):
    def _insert(row_id: str, source: str = "srcA", action_at: int = 1690000000, created_at: datetime | None = None):
        with session_factory() as db:
            db.add(
                CrossData(
                    id=row_id,
                    source=source,
                    action_at=action_at,
                    created_at=created_at or datetime.utcnow(),
                )
            )
            db.commit()

    return _insert
