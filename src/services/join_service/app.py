from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from src.common.constants import TypeMsg
from src.common.exceptions import (
    CapacityExceededError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    RidepoolError,
)
from src.common.logger import log_info, setup_logging
from src.config import settings
from src.services.container import ServiceContainer
from src.services.join_service.routes import routers

ERROR_STATUS = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    CapacityExceededError: status.HTTP_409_CONFLICT,
    ConflictError: status.HTTP_409_CONFLICT,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    setup_logging()
    await log_info("Starting Join Service...", type_msg=TypeMsg.INFO)
    app.state.container = await ServiceContainer.start(settings)

    yield

    # Shutdown
    await log_info("Shutting down Join Service...", type_msg=TypeMsg.INFO)
    await app.state.container.close()


async def domain_error_handler(request: Request, exc: RidepoolError) -> JSONResponse:
    status_code = ERROR_STATUS.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
    body = {"error": exc.code, "detail": exc.detail}
    if isinstance(exc, CapacityExceededError):
        body.update(required=exc.required, available=exc.available)
    return JSONResponse(status_code=status_code, content=body)


def create_app(use_lifespan: bool = True) -> FastAPI:
    app = FastAPI(
        title="Join Service",
        description="Candidate search, join requests, seat capacity and link reconciliation",
        version=settings.system.VERSION,
        lifespan=lifespan if use_lifespan else None,
    )

    for router in routers:
        app.include_router(router, prefix="/api/v1")

    app.add_exception_handler(RidepoolError, domain_error_handler)

    @app.get("/health")
    async def health_check(request: Request):
        container = getattr(request.app.state, "container", None)
        checks = {}
        if container is not None:
            checks = {
                "database": await container.db.health_check(),
                "rabbitmq": await container.event_bus.health_check(),
                "redis": await container.redis.health_check() if container.redis is not None else None,
            }
        healthy = all(value is not False for value in checks.values())
        return JSONResponse(
            status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "ok" if healthy else "degraded", "service": "join_service", "checks": checks},
        )

    return app


app = create_app()
