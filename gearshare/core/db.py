
import logging
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from gearshare.configs import DB_URI, DEBUG

logger = logging.getLogger(__name__)

engine_kwargs = {'echo': DEBUG}
if DB_URI.startswith('sqlite'):
    # One shared in-memory connection, visible to the sweep thread as well
    engine_kwargs['connect_args'] = {'check_same_thread': False}
    engine_kwargs['poolclass'] = StaticPool
else:
    engine_kwargs['client_encoding'] = 'utf8'
engine = create_engine(DB_URI, **engine_kwargs)
SessionLocal = sessionmaker(
    bind=engine, autoflush=False, expire_on_commit=False)

class GearShareBase:
    @classmethod
    def get_many(cls, session, offset=None, limit=None):
        return session.query(cls).order_by(cls.id).offset(offset).limit(limit).all()

Base = declarative_base(cls=GearShareBase)

def init(bind=None):
    """Creates every table registered on `Base`."""
    from gearshare.core import models  # noqa: F401 registers the tables
    Base.metadata.create_all(bind=bind or engine)

def reset(bind=None):
    """Drops and recreates all tables. Used by tests and local tooling."""
    from gearshare.core import models  # noqa: F401
    bind = bind or engine
    Base.metadata.drop_all(bind=bind)
    Base.metadata.create_all(bind=bind)
