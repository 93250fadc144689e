"""
Configuration for the live face-metrics app and the status server.
"""
from pydantic import BaseModel
import os

class Settings(BaseModel):
    """
    Runtime settings with environment-variable overrides.
    """
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "5000"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    STATUS_MESSAGE: str = os.getenv("STATUS_MESSAGE", "Servidor de reconocimiento facial funcionando")

    CAMERA_INDEX: int = int(os.getenv("CAMERA_INDEX", "0"))
    CAMERA_WIDTH: int | None = (
        int(os.getenv("CAMERA_WIDTH")) if os.getenv("CAMERA_WIDTH") else None
    )
    CAMERA_HEIGHT: int | None = (
        int(os.getenv("CAMERA_HEIGHT")) if os.getenv("CAMERA_HEIGHT") else None
    )
    CAMERA_WARMUP_FRAMES: int = int(os.getenv("CAMERA_WARMUP_FRAMES", "30"))
    DISPLAY_WIDTH: int = int(os.getenv("DISPLAY_WIDTH", "640"))
    DISPLAY_HEIGHT: int = int(os.getenv("DISPLAY_HEIGHT", "480"))

    TICK_MODE: str = os.getenv("TICK_MODE", "interval")
    TICK_INTERVAL: float = float(os.getenv("TICK_INTERVAL", "0.1"))

    DETECTOR_BACKEND: str = os.getenv("DETECTOR_BACKEND", "opencv")
    MODELS_DIR: str | None = os.getenv("MODELS_DIR") or None
    MIN_FACE_SIZE: int = int(os.getenv("MIN_FACE_SIZE", "24"))
    MIN_FACE_CONFIDENCE: float = float(os.getenv("MIN_FACE_CONFIDENCE", "0.0"))
    DETECT_TIMEOUT: float = float(os.getenv("DETECT_TIMEOUT", "5"))

    def __init__(self, **data):
        super().__init__(**data)
        # Normalize TICK_MODE: strip comments/extra words, lower-case, validate
        parts = (self.TICK_MODE or "").strip().split()
        mode = parts[0].lower() if parts else "interval"
        if mode not in ("interval", "frame"):
            mode = "interval"
        object.__setattr__(self, "TICK_MODE", mode)
        # logging accepts WARN/FATAL, uvicorn does not
        level = (self.LOG_LEVEL or "INFO").strip().upper()
        level = {"WARN": "WARNING", "FATAL": "CRITICAL"}.get(level, level)
        object.__setattr__(self, "LOG_LEVEL", level)
