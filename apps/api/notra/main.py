from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.orm import Session

from notra.api.learning_assets import router as learning_assets_router
from notra.api.sessions import router as sessions_router
from notra.core.logging import configure_logging
from notra.db.session import get_db, init_db

configure_logging()


@asynccontextmanager
async def lifespan(_app: FastAPI):
    init_db()
    yield


app = FastAPI(title="Notra Learning Asset API", version="0.3.0", lifespan=lifespan)
app.include_router(learning_assets_router)
app.include_router(sessions_router)


class HealthResponse(BaseModel):
    ok: bool
    service: str
    version: str
    db_ok: bool


@app.get("/health", response_model=HealthResponse)
def health(db: Session = Depends(get_db)) -> HealthResponse:
    db_ok = False
    try:
        db.execute(text("SELECT 1"))
        db_ok = True
    except Exception:
        db_ok = False

    return HealthResponse(ok=True, service="api", version=app.version, db_ok=db_ok)
