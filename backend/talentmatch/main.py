"""FastAPI entrypoint: logging, CORS, error mapping, routers and the stored-file mount."""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from talentmatch.api.errors import register_exception_handlers
from talentmatch.api.routers import candidates, jobs, match, resumes
from talentmatch.core.config import settings
from talentmatch.core.logging_config import configure_logging


configure_logging()


def create_app() -> FastAPI:
    app = FastAPI(title=settings.APP_NAME, version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    for module in (resumes, candidates, jobs, match):
        app.include_router(module.router)

    # Stored resume files, served under STORAGE_PUBLIC_BASE_URL
    app.mount("/files", StaticFiles(directory=str(settings.storage_path), check_dir=False), name="files")
    return app


app = create_app()
