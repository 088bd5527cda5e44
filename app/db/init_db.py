"""Initialize database tables"""
import logging
from app.db.base import Base
from app.db.session import engine
from app.models.user import User  # noqa: F401  (registers the table)

logger = logging.getLogger(__name__)


def init_db() -> None:
    """Create all database tables"""
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created successfully")
    except Exception as e:
        logger.error(f"Error creating database tables: {str(e)}")
        raise
