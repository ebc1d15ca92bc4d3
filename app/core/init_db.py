from app.core.db import engine
from app.models import Base


async def init_db() -> None:
    """
    Initialize the database schema.

    Creates the `weather` table (and any other table registered on
    `Base.metadata`) if it does not already exist.

    Notes:
    - `Base.metadata.create_all` is suitable for development and
      prototyping.
    - In production environments, schema changes should be handled
      using a migration tool such as Alembic.
    """
    async with engine.begin() as conn:
        # `create_all` is synchronous; run it on the async connection.
        await conn.run_sync(Base.metadata.create_all)
