import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from account_api.api import auth, health, users
from account_api.core.config import settings
from account_api.core.database import create_schema, engine, wait_for_database
from account_api.core.errors import register_error_handlers
from account_api.core.logging import configure_logging

configure_logging(settings.log_level)

logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(users.router)


@app.on_event("startup")
async def on_startup() -> None:
    problems = settings.validate_production_secrets()
    if problems:
        for problem in problems:
            logger.error(problem)
        raise RuntimeError("Refusing to start with insecure production settings")
    await wait_for_database(engine)
    await create_schema(engine)
    logger.info("%s started (%s)", settings.app_name, settings.environment)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    await engine.dispose()
