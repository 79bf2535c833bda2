from taskstars.core.logging_setup import setup_logging
from taskstars.db.session import SessionLocal, engine
from taskstars.db.base import Base
from taskstars.services.family_service import ensure_default_family
def init():
    setup_logging()
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as db:
        ensure_default_family(db)
if __name__ == "__main__":
    init()
    print("Database schema created.")
