"""Appointment model definitions."""

from typing import Mapping

from sqlalchemy import Column, Integer, String

from appointment_service.database import Base

MUTABLE_FIELDS = ('name', 'email', 'phone', 'doctor', 'date_time')


class Appointment(Base):
    """A scheduled meeting between a patient and a doctor."""
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False, default='')
    email = Column(String, nullable=False, default='')
    phone = Column(String, nullable=False, default='')
    doctor = Column(String, nullable=False, default='')
    date_time = Column(String, nullable=False, default='')  # stored verbatim, never parsed

    def apply_changes(self, values: Mapping[str, str]) -> None:
        """Overwrite every mutable field, empty strings included. ``id`` is left alone."""
        for field in MUTABLE_FIELDS:
            setattr(self, field, values[field])

    def __repr__(self) -> str:
        return f"<Appointment id={self.id} name={self.name!r} doctor={self.doctor!r}>"
