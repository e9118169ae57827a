import os

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from timeline_engine.config import EngineSettings, get_settings
from timeline_engine.handlers.timeline_handler import router as timeline_router
from timeline_engine.logging_config import configure_logging
from timeline_engine.operators.timeline_store import TimelineStore
from timeline_engine.utils.media_probe import FFprobeMediaAnalyzer


def create_app(
    store: TimelineStore | None = None,
    settings: EngineSettings | None = None,
) -> FastAPI:
    """Build the HTTP app around one TimelineStore (a new one by default)."""
    settings = settings or get_settings()
    if store is None:
        store = TimelineStore(
            settings=settings,
            media_analyzer=FFprobeMediaAnalyzer(settings),
        )

    app = FastAPI(title="Timeline Engine")
    app.state.timeline_store = store
    app.include_router(timeline_router)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:3000",
            "http://localhost:5173",
        ],
        allow_origin_regex=r"^null$",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    return app


def run() -> None:
    configure_logging()
    uvicorn.run(
        create_app(),
        host=os.getenv("TIMELINE_HOST", "0.0.0.0"),
        port=int(os.getenv("TIMELINE_PORT", "8000")),
    )


if __name__ == "__main__":
    run()
