from database import engine, Base, SessionLocal
from models import Role
from sqlalchemy import inspect
import logging

logger = logging.getLogger(__name__)

DEFAULT_ROLES = {
    'admin': 'Full access to the user directory',
    'member': 'Regular user',
}


def init_database(bind=None):
    """Create all tables and insert the default roles"""
    bind = bind or engine
    Base.metadata.create_all(bind=bind)
    logger.info(f"Database tables ready: {sorted(inspect(bind).get_table_names())}")

    db = SessionLocal(bind=bind)
    try:
        for name, description in DEFAULT_ROLES.items():
            existing = db.query(Role).filter(Role.name == name).first()
            if not existing:
                db.add(Role(name=name, description=description))
        db.commit()
        logger.info("✅ Database initialized successfully")
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_database()
