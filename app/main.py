"""Main FastAPI application."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app import __version__
from app.api.endpoints import router
from app.api.errors import register_error_handlers
from app.utils.logging import setup_logging

setup_logging()

# Create FastAPI application
app = FastAPI(
    title="Chat Preprocessing Proxy",
    description=(
        "An OpenAI-compatible proxy that normalizes chat message content, "
        "inlines referenced files and accounts tokens before forwarding requests."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {
            "name": "Chat",
            "description": "Chat completion forwarding and token accounting.",
        },
        {
            "name": "Health",
            "description": "Service health monitoring and status checks.",
        },
    ],
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# Include routers
app.include_router(router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
