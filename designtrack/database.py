from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
import logging
import os

logger = logging.getLogger(__name__)

# Database path detection for both Docker and bare metal
def get_database_url():
    configured = os.getenv("DATABASE_URL")
    if configured:
        return configured

    # Check if we're in Docker environment
    if os.path.exists('/app') and os.path.exists('/home/app'):
        data_dir = '/app/data'
    else:
        data_dir = './data'

    try:
        os.makedirs(data_dir, mode=0o755, exist_ok=True)
        logger.info(f"Using data directory: {data_dir}")
    except OSError as e:
        logger.warning(f"Could not create data directory {data_dir}: {e}")

    return f"sqlite:///{data_dir}/designtrack.db"

def make_engine(url):
    return create_engine(
        url,
        connect_args={"check_same_thread": False} if "sqlite" in url else {}
    )

DATABASE_URL = get_database_url()
logger.info(f"Using database URL: {DATABASE_URL}")

engine = make_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
