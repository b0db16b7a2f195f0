import logging
import re

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from pydantic import BaseModel, Field, ValidationError, field_validator
from sqlalchemy.exc import SQLAlchemyError

from appointment_service.gateway import AppointmentGateway, AppointmentNotFoundError
from appointment_service.models.appointment import MUTABLE_FIELDS, Appointment

router = APIRouter(tags=['appointments'])

logger = logging.getLogger(__name__)

INVALID_PAYLOAD_DETAIL = 'Invalid JSON payload'
INVALID_ID_DETAIL = 'Invalid appointment ID'
NOT_FOUND_DETAIL = 'Appointment not found'

MAX_APPOINTMENT_ID = 2**63 - 1
APPOINTMENT_ID_PATTERN = re.compile(r'[+-]?[0-9]+')


class AppointmentPayload(BaseModel):
    id: int = Field(default=0, ge=0, le=MAX_APPOINTMENT_ID)
    name: str = ''
    email: str = ''
    phone: str = ''
    doctor: str = ''
    date_time: str = ''

    @field_validator(*MUTABLE_FIELDS, mode='before')
    @classmethod
    def null_as_empty(cls, value):
        # JSON null leaves the field at its zero value.
        if value is None:
            return ''
        return value

    def field_values(self) -> dict[str, str]:
        return self.model_dump(include=set(MUTABLE_FIELDS))


PAYLOAD_OPENAPI = {
    'requestBody': {
        'required': True,
        'content': {'application/json': {'schema': AppointmentPayload.model_json_schema()}},
    },
}


class AppointmentResponse(BaseModel):
    id: int
    name: str
    email: str
    phone: str
    doctor: str
    date_time: str

    class Config:
        from_attributes = True


def get_gateway(request: Request) -> AppointmentGateway:
    return request.app.state.gateway


def parse_appointment_id(raw_id: str | None) -> int:
    if raw_id is None or not APPOINTMENT_ID_PATTERN.fullmatch(raw_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=INVALID_ID_DETAIL)

    appointment_id = int(raw_id)
    if not 1 <= appointment_id <= MAX_APPOINTMENT_ID:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=INVALID_ID_DETAIL)

    return appointment_id


async def read_appointment_payload(request: Request) -> AppointmentPayload:
    # The body is decoded as JSON whatever Content-Type the client sent.
    body = await request.body()
    try:
        return AppointmentPayload.model_validate_json(body)
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=INVALID_PAYLOAD_DETAIL) from exc


def load_appointment(gateway: AppointmentGateway, appointment_id: int) -> Appointment:
    # A failed lookup is reported as not found whatever the cause.
    try:
        return gateway.find_by_id(appointment_id)
    except AppointmentNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND_DETAIL) from exc
    except SQLAlchemyError as exc:
        logger.exception('Lookup of appointment %s failed.', appointment_id)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND_DETAIL) from exc


@router.post(
    '',
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    openapi_extra=PAYLOAD_OPENAPI,
)
def create_appointment(
    data: AppointmentPayload = Depends(read_appointment_payload),
    gateway: AppointmentGateway = Depends(get_gateway),
):
    appointment = Appointment(**data.field_values())

    try:
        return gateway.insert(appointment)
    except SQLAlchemyError as exc:
        logger.exception('Failed to create appointment.')
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Failed to create appointment',
        ) from exc


@router.get('/all', response_model=list[AppointmentResponse])
def list_appointments(gateway: AppointmentGateway = Depends(get_gateway)):
    try:
        return gateway.find_all()
    except SQLAlchemyError as exc:
        logger.exception('Failed to retrieve appointments.')
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Failed to retrieve appointments',
        ) from exc


@router.get('/get', response_model=AppointmentResponse)
def get_appointment(
    raw_id: str | None = Query(default=None, alias='id', description='Appointment ID'),
    gateway: AppointmentGateway = Depends(get_gateway),
):
    appointment_id = parse_appointment_id(raw_id)
    return load_appointment(gateway, appointment_id)


@router.put('/update', response_model=AppointmentResponse, openapi_extra=PAYLOAD_OPENAPI)
def update_appointment(
    data: AppointmentPayload = Depends(read_appointment_payload),
    gateway: AppointmentGateway = Depends(get_gateway),
):
    existing = load_appointment(gateway, data.id)
    existing.apply_changes(data.field_values())

    try:
        return gateway.save(existing)
    except AppointmentNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND_DETAIL) from exc
    except SQLAlchemyError as exc:
        logger.exception('Failed to update appointment %s.', data.id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Failed to update appointment',
        ) from exc


@router.delete(
    '/delete',
    status_code=status.HTTP_200_OK,
    response_class=Response,
    responses={status.HTTP_200_OK: {'description': 'Appointment deleted, empty body'}},
)
def delete_appointment(
    raw_id: str | None = Query(default=None, alias='id', description='Appointment ID'),
    gateway: AppointmentGateway = Depends(get_gateway),
):
    appointment_id = parse_appointment_id(raw_id)
    existing = load_appointment(gateway, appointment_id)

    try:
        gateway.delete(existing)
    except AppointmentNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND_DETAIL) from exc
    except SQLAlchemyError as exc:
        logger.exception('Failed to delete appointment %s.', appointment_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Failed to delete appointment',
        ) from exc

    return Response(status_code=status.HTTP_200_OK)
