import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from appointment_service.core.config import (
    ConfigurationError,
    DatabaseConfig,
    ServerConfig,
    load_database_config,
    load_server_config,
)
from appointment_service.gateway import AppointmentGateway
from appointment_service.routes import appointment_routes

logger = logging.getLogger(__name__)

API_TITLE = 'Appointment API'
API_DESCRIPTION = 'Create, read, update and delete patient appointments with doctors.'
API_VERSION = '1.0.0'


def connect_gateway(config: DatabaseConfig) -> AppointmentGateway:
    """Connect to the configured database or terminate the process."""
    try:
        config.validate()
    except ConfigurationError:
        logger.exception('Invalid database configuration.')
        raise SystemExit(1)

    gateway = AppointmentGateway.from_config(config)
    try:
        gateway.initialize()
    except SQLAlchemyError:
        logger.exception(
            'Database initialization failed for %s. Check DB_HOST, DB_NAME, DB_USER and DB_PASS.',
            config.describe(),
        )
        gateway.close()
        raise SystemExit(1)

    return gateway


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> PlainTextResponse:
    return PlainTextResponse(str(exc.detail), status_code=exc.status_code, headers=getattr(exc, 'headers', None))


def create_app(
    gateway: AppointmentGateway | None = None,
    database_config: DatabaseConfig | None = None,
    server_config: ServerConfig | None = None,
) -> FastAPI:
    server_config = server_config or load_server_config()

    app = FastAPI(
        title=API_TITLE,
        description=API_DESCRIPTION,
        version=API_VERSION,
        docs_url='/swagger' if server_config.docs_enabled else None,
        openapi_url='/swagger/doc.json' if server_config.docs_enabled else None,
        redoc_url=None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=['*'],
        allow_credentials=False,
        allow_methods=['GET', 'POST', 'PUT', 'DELETE', 'OPTIONS'],
        allow_headers=['*'],
    )

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)

    app.state.gateway = gateway
    app.state.owns_gateway = gateway is None

    @app.on_event('startup')
    def initialize_database() -> None:
        if app.state.gateway is None:
            app.state.gateway = connect_gateway(database_config or load_database_config())

    @app.on_event('shutdown')
    def close_database() -> None:
        if app.state.owns_gateway and app.state.gateway is not None:
            app.state.gateway.close()
            app.state.gateway = None

    @app.get('/')
    def root():
        return {'status': 'Appointment API Running'}

    app.include_router(appointment_routes.router, prefix='/appointments')

    return app


def __getattr__(name: str):
    # `uvicorn appointment_service.main:app` builds the app on first access.
    if name == 'app':
        application = create_app()
        globals()['app'] = application
        return application
    raise AttributeError(f'module {__name__!r} has no attribute {name!r}')


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    try:
        server_config = load_server_config()
        database_config = load_database_config()
    except ConfigurationError:
        logger.exception('Invalid configuration.')
        raise SystemExit(1)

    logging.getLogger().setLevel(server_config.log_level)

    gateway = connect_gateway(database_config)
    application = create_app(gateway=gateway, server_config=server_config)

    logger.info('Server is running on http://%s:%s', server_config.host, server_config.port)
    try:
        uvicorn.run(application, host=server_config.host, port=server_config.port)
    finally:
        gateway.close()


if __name__ == '__main__':
    main()
