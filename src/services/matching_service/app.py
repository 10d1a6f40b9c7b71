from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.common.constants import TypeMsg
from src.common.exceptions import InvalidConfiguration, InvalidCoordinate, InvalidRadius, MatchingError
from src.common.logger import log_info, log_warning
from src.config import settings
from src.infra.database import close_db, get_db, init_db
from src.infra.redis_client import close_redis, get_redis, init_redis
from src.services.matching_service.dependencies import build_services
from src.services.matching_service.routes import cache_router, providers_router, reviewables_router

# Параметры запроса, у которых есть собственный вид ошибки
VALIDATION_ERROR_KINDS: dict[str, type[MatchingError]] = {
    "lat": InvalidCoordinate,
    "lon": InvalidCoordinate,
    "radius_km": InvalidRadius,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    await log_info("Starting Matching Service...", type_msg=TypeMsg.INFO)
    # В режиме all инфраструктуру уже поднял main.py
    owns_db = not get_db().is_connected
    owns_redis = not get_redis().is_connected
    if owns_db:
        await init_db()
    if owns_redis:
        await init_redis()
    build_services(app.state)

    yield

    await log_info("Shutting down Matching Service...", type_msg=TypeMsg.INFO)
    if owns_redis:
        await close_redis()
    if owns_db:
        await close_db()


app = FastAPI(
    title="Provider Matching Service",
    description="Подбор исполнителей, агрегаты рейтинга и статистики, инвалидация кэша",
    version=settings.system.VERSION,
    lifespan=lifespan,
)

app.include_router(providers_router, prefix="/api/v1")
app.include_router(reviewables_router, prefix="/api/v1")
app.include_router(cache_router, prefix="/api/v1")


@app.exception_handler(MatchingError)
async def matching_error_handler(request: Request, exc: MatchingError) -> JSONResponse:
    await log_warning(
        f"{request.method} {request.url.path}: {exc}",
        extra={"error_kind": exc.error_kind, "retryable": exc.retryable},
    )
    return JSONResponse(status_code=exc.http_status, content=exc.to_envelope())


def validation_error_to_matching_error(exc: RequestValidationError) -> MatchingError:
    """Ошибка валидации FastAPI в терминах ядра (по первому неверному полю)."""
    errors = exc.errors()
    details = errors[0] if errors else {}
    loc = details.get("loc", ())
    field = str(loc[1]) if len(loc) > 1 else "body"
    error_class = VALIDATION_ERROR_KINDS.get(field, InvalidConfiguration)
    return error_class(
        f"Некорректный параметр {field}: {details.get('msg', 'ошибка валидации')}",
        field=field,
        value=details.get("input"),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return await matching_error_handler(request, validation_error_to_matching_error(exc))


@app.get("/health")
async def health_check():
    db_ok = await get_db().health_check() if get_db().is_connected else False
    redis_ok = await get_redis().health_check()
    return {
        "status": "ok" if db_ok and redis_ok else "degraded",
        "service": "matching_service",
        "database": db_ok,
        "redis": redis_ok,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "src.services.matching_service.app:app",
        host=settings.deployment.MATCHING_SERVICE_HOST,
        port=settings.deployment.MATCHING_SERVICE_PORT,
    )
