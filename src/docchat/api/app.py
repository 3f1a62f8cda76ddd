"""
FastAPI application.

Routes are thin: they authenticate, hand the request to the service
objects built at startup (app.state.services) and shape the JSON. Every
DocChatError becomes {"error": message} with the error's status code;
messages of internal errors are replaced with a generic one.

Run:
    uvicorn docchat.api.app:app --port 8000
    # or
    docchat-server
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from docchat import __version__
from docchat.api.routers.chat import router as chat_router
from docchat.api.routers.documents import router as documents_router
from docchat.config import AppConfig
from docchat.errors import DocChatError
from docchat.logging_config import setup_logging
from docchat.services import Services, build_services

logger = logging.getLogger(__name__)


def create_app(services: Optional[Services] = None, config: Optional[AppConfig] = None) -> FastAPI:
    """
    Args:
        services: Pre-built services (tests pass doubles). Built from
            config at startup when omitted.
        config: Used only when services is None.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        if services is None:
            app_config = config or AppConfig()
            setup_logging(app_config.log_level)
            app.state.services = build_services(app_config)
        else:
            app.state.services = services
        logger.info("docchat %s started", __version__)

        yield

        logger.info("docchat shutting down")

    app = FastAPI(
        title="docchat",
        description=(
            "Chat with your uploaded documents. Files are extracted, chunked and "
            "embedded on upload; questions are answered from the best-matching "
            "passages, across all your documents, or with live web search."
        ),
        version=__version__,
        lifespan=lifespan,
    )

    @app.exception_handler(DocChatError)
    async def handle_docchat_error(request: Request, exc: DocChatError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s: %s", request.method, request.url.path, type(exc).__name__, exc)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.user_message})

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok", "version": __version__}

    app.include_router(chat_router)
    app.include_router(documents_router)
    return app


app = create_app()


def main() -> None:
    import uvicorn

    config = AppConfig()
    setup_logging(config.log_level)
    logger.info("Starting docchat API server v%s on port 8000...", __version__)
    uvicorn.run(create_app(config=config), host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
