import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.core.database import SessionLocal, init_db
from app.core.errors import POSError
from app.routes.auth import router as auth_router
from app.routes.cash import router as cash_router
from app.routes.configuration import router as configuration_router
from app.routes.health import router as health_router
from app.routes.inventory import router as inventory_router
from app.routes.products import router as products_router
from app.routes.purchases import router as purchases_router
from app.routes.sales import router as sales_router
from app.routes.shifts import router as shifts_router
from app.routes.users import router as users_router
from app.services.seed import seed_demo


logger = logging.getLogger(__name__)


async def pos_error_handler(request: Request, exc: POSError) -> JSONResponse:
    logger.info("%s %s -> %s: %s", request.method, request.url.path, type(exc).__name__, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def create_app() -> FastAPI:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = FastAPI(title="Kiosco POS API", version="0.1.0")

    origins = settings.cors_origins
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_exception_handler(POSError, pos_error_handler)

    app.include_router(health_router, tags=["health"])
    app.include_router(auth_router, prefix="/auth", tags=["auth"])
    app.include_router(users_router, prefix="/users", tags=["users"])
    app.include_router(shifts_router, prefix="/shifts", tags=["shifts"])
    app.include_router(cash_router, prefix="/cash", tags=["cash"])
    app.include_router(sales_router, prefix="/sales", tags=["sales"])
    app.include_router(products_router, prefix="/products", tags=["products"])
    app.include_router(inventory_router, prefix="/inventory", tags=["inventory"])
    app.include_router(purchases_router, prefix="/purchases", tags=["purchases"])
    app.include_router(configuration_router, prefix="/configuration", tags=["configuration"])

    return app


app = create_app()

# Only seed in development or when explicitly requested
if settings.env == "dev" or settings.seed_demo:
    try:
        init_db()
        with SessionLocal() as db:
            seed_demo(db)
    except SQLAlchemyError:
        logger.exception("No se pudieron cargar los datos de demo")
