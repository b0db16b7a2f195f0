from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from appointment_service.core.config import DatabaseConfig


Base = declarative_base()

APPOINTMENTS_TABLE = 'appointments'


def create_database_engine(config: DatabaseConfig) -> Engine:
    if config.is_sqlite:
        return create_engine(
            config.sqlalchemy_url(),
            connect_args={'check_same_thread': False},
        )

    return create_engine(config.sqlalchemy_url(), pool_pre_ping=True)


def ensure_appointment_schema(engine: Engine) -> list[str]:
    """Add any appointment columns missing from an existing table.

    Returns the names of the columns that were added.
    """
    inspector = inspect(engine)

    if APPOINTMENTS_TABLE not in inspector.get_table_names():
        return []

    existing_columns = {column['name'] for column in inspector.get_columns(APPOINTMENTS_TABLE)}
    migration_steps = [
        ('name', "ALTER TABLE appointments ADD COLUMN name VARCHAR NOT NULL DEFAULT ''"),
        ('email', "ALTER TABLE appointments ADD COLUMN email VARCHAR NOT NULL DEFAULT ''"),
        ('phone', "ALTER TABLE appointments ADD COLUMN phone VARCHAR NOT NULL DEFAULT ''"),
        ('doctor', "ALTER TABLE appointments ADD COLUMN doctor VARCHAR NOT NULL DEFAULT ''"),
        ('date_time', "ALTER TABLE appointments ADD COLUMN date_time VARCHAR NOT NULL DEFAULT ''"),
    ]

    added: list[str] = []
    with engine.begin() as connection:
        for column_name, statement in migration_steps:
            if column_name not in existing_columns:
                connection.execute(text(statement))
                added.append(column_name)

    return added
