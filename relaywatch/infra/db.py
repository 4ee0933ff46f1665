from __future__ import annotations

from typing import Any
from urllib.parse import quote_plus

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from relaywatch.core.config import Settings
from relaywatch.core.errors import ConfigError
from relaywatch.core.logging import logger


def build_database_url(settings: Settings) -> str:
    if settings.database_url:
        return settings.database_url

    # user and password may carry @, : or / characters
    username = quote_plus(settings.user)
    password = quote_plus(settings.password)
    return (
        f"mysql+pymysql://{username}:{password}@{settings.host}:{settings.port}"
        f"/{settings.database}?charset=utf8mb4"
    )


def create_store_engine(settings: Settings) -> Engine:
    try:
        url = make_url(build_database_url(settings))
    except SQLAlchemyError as exc:
        raise ConfigError(f"invalid database url: {exc}") from exc

    connect_args: dict[str, Any] = {}
    if settings.store_timeout_seconds and url.get_backend_name() == "mysql":
        connect_args["connect_timeout"] = settings.store_timeout_seconds
        connect_args["read_timeout"] = settings.store_timeout_seconds

    try:
        engine = create_engine(url, pool_pre_ping=True, connect_args=connect_args)
    except (SQLAlchemyError, ImportError) as exc:
        # unknown dialect or missing driver package
        raise ConfigError(f"cannot create store engine for {url.drivername}: {exc}") from exc
    logger.info("correlation store configured url=%s", url.render_as_string(hide_password=True))
    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
