from sqlalchemy.ext.asyncio import create_async_engine
from syndicate.load_secrets import user, password, host, port, db_name, database_url

POSTGRES_DATABASE_URL = (
    f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{db_name}"
)

if database_url:
    # e.g. sqlite+aiosqlite:///./syndicate.sqlite3 for local play
    engine = create_async_engine(database_url)
else:
    engine = create_async_engine(POSTGRES_DATABASE_URL, pool_size=20, max_overflow=20)
