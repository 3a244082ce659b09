from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import psychnorm.models  # noqa: F401  (registers mappers on Base.metadata)
from psychnorm.core.config import settings
from psychnorm.core.logging import configure_logging, get_logger
from psychnorm.core.metrics import get_counters, get_metrics
from psychnorm.db.database import Base, engine, get_db, schema_capabilities
from psychnorm.routers.evaluations import router as evaluations_router
from psychnorm.routers.exceptions import register_exception_handlers
from psychnorm.routers.stock import router as stock_router
from psychnorm.routers.tables import router as tables_router
from psychnorm.scoring.registry import list_scorers

configure_logging(environment=settings.environment)
logger = get_logger("psychnorm.app.main", component="app")

_app_start_time = datetime.now(timezone.utc)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables outside production; Alembic owns the schema when RUN_STARTUP_DDL=false."""
    if settings.run_startup_ddl:
        logger.info("startup_execute_ddl", extra={"structured_data": {"run_startup_ddl": True}})
        Base.metadata.create_all(bind=engine)
        schema_capabilities.refresh(engine)
    logger.info("scorers_loaded", extra={"structured_data": {"test_types": list_scorers()}})
    yield


app = FastAPI(title=settings.app_name, lifespan=lifespan)
register_exception_handlers(app)

app.include_router(tables_router)
app.include_router(evaluations_router)
app.include_router(stock_router)


@app.get("/health")
def health(db: Session = Depends(get_db)):
    """Uptime, database connectivity and a metrics summary."""
    now = datetime.now(timezone.utc)
    counters = get_counters()
    metrics = get_metrics()
    try:
        db.execute(text("SELECT 1"))
        db_status = "connected"
        overall_status = "healthy"
    except SQLAlchemyError as e:
        logger.error("health_check_db_failed", extra={"structured_data": {"error": str(e)}})
        db_status = "disconnected"
        overall_status = "unhealthy"
    return {
        "status": overall_status,
        "started_at": _app_start_time.isoformat(),
        "uptime_seconds": round((now - _app_start_time).total_seconds(), 2),
        "environment": settings.environment,
        "database": {
            "status": db_status,
            "engine": "postgresql" if "postgresql" in settings.database_url else "sqlite",
        },
        "metrics_summary": {
            "tracked_operations": len(metrics),
            "tracked_counters": len(counters),
        },
    }
