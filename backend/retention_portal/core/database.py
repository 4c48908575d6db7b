"""
VICIdial database connection management.

Provides the SQLAlchemy engine for the dialer's MySQL database. The proxy
only reads ``vicidial_list``; nothing here creates or migrates tables.
"""

from typing import Dict, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine

from .config import Settings


# =============================================================================
# Engine Configuration
# =============================================================================

_engines: Dict[str, Engine] = {}


def get_engine_url(settings: Settings) -> URL:
    """
    Build the VICIdial database URL (MySQL via PyMySQL).

    Returns:
        Database connection URL
    """
    return URL.create(
        "mysql+pymysql",
        username=settings.vicidial_db_user,
        password=settings.vicidial_db_pass or None,
        host=settings.vicidial_db_host,
        port=settings.vicidial_db_port,
        database=settings.vicidial_db_name,
    )


def get_vicidial_engine(settings: Settings) -> Optional[Engine]:
    """
    Get the pooled engine for the configured VICIdial database.

    Engines are created on first use and reused per URL. Returns None when
    VICIDIAL_DB_HOST, VICIDIAL_DB_USER or VICIDIAL_DB_NAME is missing.
    """
    if not settings.vicidial_db_configured:
        return None

    url = get_engine_url(settings)
    key = url.render_as_string(hide_password=False)
    engine = _engines.get(key)
    if engine is None:
        engine = create_engine(
            url,
            pool_pre_ping=True,
            pool_recycle=settings.vicidial_db_pool_recycle,
            echo=settings.debug,
        )
        _engines[key] = engine
    return engine


def dispose_engines() -> None:
    """Close every pooled VICIdial database connection."""
    for engine in _engines.values():
        engine.dispose()
    _engines.clear()
