from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Rooms, seasonal rates, bookings, integrations, room mappings and sync logs
    all share this metadata, which Alembic and the test suite use to build the
    schema.
    """

    pass
