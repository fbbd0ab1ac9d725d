from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from overlaykit.core.config import get_settings
from overlaykit.core.db import Base, engine
from overlaykit.core.errors import register_exception_handlers
from overlaykit.core.logging_config import configure_logging
from overlaykit.api import api_router
from overlaykit.api.routes_realtime import router as realtime_router

# Imported for their table definitions
from overlaykit.models import editor, element, image, overlay, user  # noqa: F401

settings = get_settings()

configure_logging(settings.LOG_LEVEL)

# Create tables on startup
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title=settings.PROJECT_NAME,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(api_router, prefix=settings.API_PREFIX)
app.include_router(realtime_router)

app.mount(
    settings.UPLOAD_URL_PREFIX,
    StaticFiles(directory=settings.UPLOAD_DIR),
    name="uploads",
)


@app.get("/health")
def health():
    return {"status": "ok"}
