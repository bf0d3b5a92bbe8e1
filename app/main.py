import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError
from app.core.config import settings
from app.core.logging import configure_logging
from app.db.session import create_db_and_tables
from app.routers import admin, businesses, cart, comments, community, products, profile, requirements, shared
from app.services.linking import DuplicateLinkError

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.LOG_LEVEL)
    create_db_and_tables()
    logger.info("%s started", settings.PROJECT_NAME)
    yield

app = FastAPI(
    title=settings.PROJECT_NAME,
    version="1.0.0",
    lifespan=lifespan,
    description="Requirement catalog, per-business shopping lists and community sharing"
)

@app.get("/")
def read_root():
    return {"message": f"Welcome to {settings.PROJECT_NAME}. Visit /docs for Swagger UI."}

app.include_router(businesses.router, prefix="/api/v1/businesses", tags=["businesses"])
app.include_router(requirements.router, prefix="/api/v1/requirements", tags=["requirements"])
app.include_router(products.router, prefix="/api/v1/products", tags=["products"])
app.include_router(admin.router, prefix="/api/v1/admin", tags=["admin"])
app.include_router(cart.router, prefix="/api/v1/cart", tags=["cart"])
app.include_router(profile.router, prefix="/api/v1/profile", tags=["profile"])
app.include_router(community.router, prefix="/api/v1/community", tags=["community"])
app.include_router(comments.router, prefix="/api/v1/comments", tags=["comments"])
app.include_router(shared.router, prefix="/api/v1/shared", tags=["shared"])

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

def _internal_error(request: Request, exc: Exception) -> JSONResponse:
    # Full context goes to the log; the caller only learns that the request failed
    logger.error(
        "Unhandled %s on %s %s params=%s",
        type(exc).__name__, request.method, request.url.path, dict(request.path_params),
        exc_info=exc
    )
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})

@app.exception_handler(DuplicateLinkError)
async def duplicate_link_handler(request: Request, exc: DuplicateLinkError):
    return JSONResponse(status_code=exc.status_code, content=exc.body())

@app.exception_handler(SQLAlchemyError)
async def storage_exception_handler(request: Request, exc: SQLAlchemyError):
    return _internal_error(request, exc)

@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    return _internal_error(request, exc)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, log_level=settings.LOG_LEVEL.lower())
