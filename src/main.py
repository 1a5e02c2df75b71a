from __future__ import annotations

import logging
import os

from fastapi import FastAPI

from src.application.dtos.common_dto import HealthResponse, RootResponse
from src.infrastructure.api.middlewares import add_default_middlewares
from src.infrastructure.api.routes.history_routes import router as history_router
from src.infrastructure.api.routes.selection_routes import router as selection_router


def configure_logging() -> None:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Darkroom History Service",
        version="0.1.0",
        description="""
        ## Darkroom History API

        Stores the non-destructive processing history of each image and copies
        it between images.

        ### Features
        - **History listing**: live operation instances of an image, newest first
        - **Copy & paste**: replace a destination history, or merge into it while
          keeping every multi-instance operation uniquely numbered
        - **Selection**: apply delete, paste and sidecar import to every selected image
        - **Sidecars**: load a history from a JSON sidecar file

        ### Authentication
        All endpoints (except root and health) require authentication via Bearer token
        in the Authorization header:
        ```
        Authorization: Bearer your-jwt-token
        ```

        ### Error Responses
        - **400 Bad Request**: Self-copy, or no destination selected
        - **401 Unauthorized**: Missing or invalid authentication token
        - **404 Not Found**: Nothing to copy
        - **422 Unprocessable Entity**: Validation error or unreadable sidecar
        - **500 Internal Server Error**: Store failure, the image was left unchanged
        """,
        license_info={
            "name": "GPL-3.0-or-later",
            "url": "https://www.gnu.org/licenses/gpl-3.0.html",
        },
    )
    add_default_middlewares(app)

    @app.get(
        "/",
        response_model=RootResponse,
        summary="API Root",
        description="Get basic information about the history API",
        response_description="API information including status and version",
    )
    def root():
        """Get API root information."""
        return {"status": "ok", "service": "darkroom-history", "version": app.version}

    @app.get(
        "/health",
        response_model=HealthResponse,
        summary="Health Check",
        description="Check if the API service is running and healthy",
        response_description="Health status of the API service",
    )
    def health():
        """Check API health status."""
        return {"status": "healthy"}

    app.include_router(history_router)
    app.include_router(selection_router)
    return app


app = create_app()
