from __future__ import annotations

from typing import Callable

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from relaywatch.core.errors import StoreUnavailable
from relaywatch.core.logging import logger
from relaywatch.models.entities import CrossData
from relaywatch.schemas.correlation import CorrelationRow, to_epoch_ns


class RowResolver:
    """Looks up the most recently created CrossData row.

    Every call opens its own session and releases it before returning, whether
    the query succeeded or not. Any driver or SQL failure is reported as
    ``StoreUnavailable``, and so is a row with NULL columns. An empty table is
    reported as ``None``.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self.session_factory = session_factory

    def fetch_latest(self) -> CorrelationRow | None:
        stmt = select(CrossData).order_by(CrossData.created_at.desc()).limit(1)
        try:
            with self.session_factory() as db:
                record = db.scalars(stmt).first()
                if record is None:
                    return None
                if None in (record.source, record.action_at, record.created_at):
                    raise StoreUnavailable(f"malformed CrossData row {record.id!r}: NULL column")
                return CorrelationRow(
                    id=record.id,
                    source=record.source,
                    action_at=record.action_at,
                    created_at_ns=to_epoch_ns(record.created_at),
                )
        except SQLAlchemyError as exc:
            logger.debug("latest row query failed: %s", exc)
            raise StoreUnavailable(f"correlation store query failed: {exc}") from exc
        except ValidationError as exc:
            raise StoreUnavailable(f"malformed CrossData row: {exc}") from exc
