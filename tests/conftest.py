import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from appointment_service.core.config import ServerConfig
from appointment_service.database import Base
from appointment_service.gateway import AppointmentGateway
from appointment_service.main import create_app


@pytest.fixture
def gateway():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    appointment_gateway = AppointmentGateway(engine)
    appointment_gateway.initialize()
    try:
        yield appointment_gateway
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def client(gateway):
    app = create_app(gateway=gateway, server_config=ServerConfig())
    with TestClient(app) as test_client:
        yield test_client
