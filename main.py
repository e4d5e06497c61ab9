import logging

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from app.api import comments, companies, reports, sample_data, storage
from app.core.config import settings
from app.core.envelope import UTF8JSONResponse, install_envelope_handlers
from app.core.security import require_api_token
from database import Base, engine
from app import models  # noqa: F401
from seed import seed_demo_data

logging.basicConfig(level=settings.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="Research Catalog API", version="0.1.0", default_response_class=UTF8JSONResponse)
install_envelope_handlers(app)


def _should_seed() -> bool:
    env = (settings.app_env or "").lower()
    return env in {"", "local", "dev", "development"} and not settings.sample_seed_disabled


@app.on_event("startup")
def on_startup() -> None:
    try:
        Base.metadata.create_all(bind=engine)
    except SQLAlchemyError as exc:
        logger.warning("Base.metadata.create_all failed; continuing without fatal error: %s", exc)
    if _should_seed():
        seed_demo_data()


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.origin_list(),
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

api_dependencies = [Depends(require_api_token)]
app.include_router(companies.router, tags=["companies"], dependencies=api_dependencies)
app.include_router(reports.router, tags=["reports"], dependencies=api_dependencies)
app.include_router(comments.router, tags=["comments"], dependencies=api_dependencies)
app.include_router(sample_data.router, tags=["sample-data"], dependencies=api_dependencies)
# Blob downloads authorise by URL signature, not bearer token.
app.include_router(storage.router, tags=["storage"])


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
