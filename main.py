import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from openai import AsyncOpenAI

from routes.chat_route import router as chat_router
from services.openai.image_chat import ImageChatService
from utils.errors import ImageChatError
from utils.settings import Settings

BASE_DIR = Path(__file__).resolve().parent
PUBLIC_DIR = BASE_DIR / "public"

LOGGER = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager to initialize the model client once per process
    and attach the service wrapping it to `app.state`.

    A service injected through `create_app` is kept as-is; otherwise the
    settings are read here and a missing API_KEY aborts startup.
    """
    if app.state.image_chat_service is not None:
        yield
        return

    settings = app.state.settings or Settings.from_env()
    app.state.settings = settings
    configure_logging(settings.log_level)

    try:
        client = AsyncOpenAI(api_key=settings.api_key, base_url=settings.api_base_url)
    except Exception as exc:
        raise RuntimeError("Failed to initialize the model client") from exc

    app.state.image_chat_service = ImageChatService(client, settings.model_name)
    LOGGER.info("Model client ready for %s", settings.model_name)

    try:
        yield
    finally:
        app.state.image_chat_service = None
        try:
            await client.close()
        except Exception:  # pylint: disable=broad-exception-caught
            LOGGER.warning("Error while closing the model client", exc_info=True)


async def handle_image_chat_error(request: Request, exc: ImageChatError) -> JSONResponse:
    """Render domain errors as `{"error": ...}` without leaking their detail."""
    return JSONResponse(status_code=exc.status_code, content={"error": exc.public_message})


def create_app(
    image_chat_service: Optional[ImageChatService] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application instance.

    Args:
        image_chat_service: Prebuilt service, mainly for tests; skips client setup.
        settings: Explicit settings; read from the environment at startup when omitted.
    """
    app = FastAPI(title="Image Chat", lifespan=lifespan)
    app.state.image_chat_service = image_chat_service
    app.state.settings = settings

    app.add_exception_handler(ImageChatError, handle_image_chat_error)

    # Serve static assets from the public directory, if it exists.
    if PUBLIC_DIR.exists():
        app.mount("/public", StaticFiles(directory=PUBLIC_DIR), name="public")

    @app.get("/", include_in_schema=False)
    async def serve_index():
        """
        Serve the chat page from the public directory.
        """
        index_path = PUBLIC_DIR / "index.html"
        if not index_path.exists():
            raise HTTPException(status_code=404, detail="Frontend not found")
        return FileResponse(index_path)

    @app.get("/health")
    async def health(request: Request):
        """
        Simple health check reporting whether the model client is ready.
        """
        service = request.app.state.image_chat_service
        return {
            "ok": True,
            "model": service.model if service is not None else None,
            "model_available": service is not None,
        }

    app.include_router(chat_router)

    return app


app = create_app()


def main() -> None:
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    uvicorn.run(
        create_app(settings=settings),
        host=settings.app_host,
        port=settings.app_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
