import logging
from sqlalchemy import create_engine
from sqlalchemy.orm import scoped_session, sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from shelfshare.configs import DB_URI, DEBUG

logger = logging.getLogger(__name__)


def make_engine(uri=DB_URI, echo=DEBUG):
    engine_kwargs = {'echo': echo}
    if uri.startswith('sqlite'):
        # In-memory databases must share a single connection across threads
        engine_kwargs['connect_args'] = {'check_same_thread': False}
        if ':memory:' in uri:
            engine_kwargs['poolclass'] = StaticPool
    else:
        engine_kwargs['client_encoding'] = 'utf8'
        engine_kwargs['pool_pre_ping'] = True
    return create_engine(uri, **engine_kwargs)


engine = make_engine()
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
# Thread-local session for scripts
session = scoped_session(SessionLocal)


Base = declarative_base()


def init(bind=None):
    # Import models so they register with Base before create_all
    from shelfshare.core import models  # noqa: F401
    try:
        Base.metadata.create_all(bind=bind or engine)
        return session
    except Exception as e:
        logger.warning(f"[WARNING] Database initialization failed: {e}")


def get_session():
    """FastAPI dependency yielding a session owned by one request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
