from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, String
from sqlalchemy.dialects.mysql import DATETIME
from sqlalchemy.orm import Mapped, mapped_column

from relaywatch.models.base import Base


class CrossData(Base):
    __tablename__ = "CrossData"

    id: Mapped[str] = mapped_column("Id", String(64), primary_key=True)
    source: Mapped[str] = mapped_column("Source", String(128))
    action_at: Mapped[int] = mapped_column("ActionAt", BigInteger)
    created_at: Mapped[datetime] = mapped_column(
        "CreatedAt",
        DateTime().with_variant(DATETIME(fsp=6), "mysql"),
        default=datetime.utcnow,
        index=True,
    )
