from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Declarative base for the ORM models.

    Models inheriting from it are registered on `Base.metadata`, which
    `init_db` uses to create the schema at startup and the test suite
    uses to build its in-memory database.
    """
    pass
