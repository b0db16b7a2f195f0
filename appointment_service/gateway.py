import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from appointment_service.core.config import DatabaseConfig
from appointment_service.database import Base, create_database_engine, ensure_appointment_schema
from appointment_service.models.appointment import MUTABLE_FIELDS, Appointment

logger = logging.getLogger(__name__)


class AppointmentNotFoundError(LookupError):
    def __init__(self, appointment_id: int | None):
        super().__init__(f'Appointment {appointment_id} not found')
        self.appointment_id = appointment_id


class AppointmentGateway:
    """All reads and writes of appointments go through here.

    Every primitive opens its own short-lived session. Records handed back are
    detached but fully loaded, so they can be serialized after the session
    has closed.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self._session_factory = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=engine,
        )

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> 'AppointmentGateway':
        return cls(create_database_engine(config))

    def initialize(self) -> None:
        with self.engine.connect() as connection:
            connection.execute(text('SELECT 1'))

        Base.metadata.create_all(bind=self.engine, tables=[Appointment.__table__])
        added_columns = ensure_appointment_schema(self.engine)
        if added_columns:
            logger.info('Added missing appointment columns: %s', ', '.join(added_columns))

        logger.info('Database connection established and schema migrated.')

    def close(self) -> None:
        self.engine.dispose()

    @contextmanager
    def session(self) -> Iterator[Session]:
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def insert(self, appointment: Appointment) -> Appointment:
        with self.session() as db:
            db.add(appointment)
            db.flush()
        return appointment

    def find_all(self) -> list[Appointment]:
        with self.session() as db:
            return db.query(Appointment).order_by(Appointment.id.asc()).all()

    def find_by_id(self, appointment_id: int) -> Appointment:
        with self.session() as db:
            appointment = db.get(Appointment, appointment_id)
            if appointment is None:
                raise AppointmentNotFoundError(appointment_id)
            return appointment

    def save(self, appointment: Appointment) -> Appointment:
        with self.session() as db:
            stored = db.get(Appointment, appointment.id)
            if stored is None:
                raise AppointmentNotFoundError(appointment.id)
            stored.apply_changes({field: getattr(appointment, field) for field in MUTABLE_FIELDS})
            db.flush()
        return stored

    def delete(self, appointment: Appointment) -> None:
        with self.session() as db:
            stored = db.get(Appointment, appointment.id)
            if stored is None:
                raise AppointmentNotFoundError(appointment.id)
            db.delete(stored)
