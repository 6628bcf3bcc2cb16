from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from censusquote.application import QuoteService, configure_quote_service
from censusquote.infrastructure import (
    ChatClientFactory,
    DuckDBRecordStore,
    InMemoryRecordStore,
    RecordStore,
    slack_client_factory,
)
from censusquote.logging_config import setup_logging
from censusquote.routes import events
from censusquote.settings import Settings


def create_app(
    settings: Settings | None = None,
    *,
    store: RecordStore | None = None,
    chat_factory: ChatClientFactory | None = None,
) -> FastAPI:
    setup_logging()
    settings = settings or Settings.from_env()

    if store is None:
        store = DuckDBRecordStore(settings.store_path) if settings.store_path else InMemoryRecordStore()
    if chat_factory is None:
        chat_factory = slack_client_factory(settings.slack_api_base)
    configure_quote_service(QuoteService(store, chat_factory, settings))

    app = FastAPI(title="Census Quote API", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(events.router, prefix="/api")

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Provide a lightweight landing page for container checks."""
        return JSONResponse(
            {
                "message": "Census Quote API",
                "docs": "/docs",
                "events": "/api/events/census",
            }
        )

    return app
