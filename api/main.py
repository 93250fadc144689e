"""
FastAPI application entrypoint.

Run with `python -m api.main` (binds HOST:PORT, default 0.0.0.0:5000) or
`uvicorn api.main:app`.
"""
import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from api.routes import router, settings

logger = logging.getLogger(__name__)

app = FastAPI(title="FaceTrust Status API", version="1.0.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(router)


def main() -> None:
    import uvicorn

    logging.basicConfig(level=settings.LOG_LEVEL)
    logger.info(f"Server running at http://localhost:{settings.PORT}")
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
