from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

Base = declarative_base()


def make_engine(database_url: str):
    if database_url.startswith("sqlite"):
        # in-memory sqlite must share one connection across sessions
        poolclass = StaticPool if ":memory:" in database_url or database_url == "sqlite://" else None
        kwargs = {"connect_args": {"check_same_thread": False}}
        if poolclass:
            kwargs["poolclass"] = poolclass
        return create_engine(database_url, **kwargs)
    return create_engine(database_url, pool_pre_ping=True)


def make_session_factory(engine):
    # Initialise the tables
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
