import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from studynotes.config import Settings, get_settings
from studynotes.database import build_engine, build_session_factory
from studynotes.routers import ai, auth
from studynotes.services.ai_service import build_explanation_generator

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = build_engine(settings.database_url)
        app.state.session_factory = build_session_factory(engine)
        app.state.explanation_generator = build_explanation_generator(settings)
        logger.info("Study notes API started (database=%s)", engine.url.render_as_string(hide_password=True))
        try:
            yield
        finally:
            engine.dispose()

    app = FastAPI(title="Study Notes API", version="1.0.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth.router)
    app.include_router(ai.router)

    @app.get("/")
    def root():
        return {"message": "Study Notes API", "docs": "/docs"}

    return app


app = create_app()
