
from facetrust.config import Settings

def test_Settings():
    s = Settings()
    assert s.DISPLAY_WIDTH > 0 and s.TICK_INTERVAL > 0
    # override via env-like behavior (construct new instance)
    s2 = Settings(PORT=8080, TICK_INTERVAL=0.25)
    assert s2.PORT == 8080 and s2.TICK_INTERVAL == 0.25

def test_Settings_normalization():
    assert Settings(TICK_MODE="Frame  # per frame").TICK_MODE == "frame"
    assert Settings(TICK_MODE="bogus").TICK_MODE == "interval"
    assert Settings(TICK_MODE="").TICK_MODE == "interval"
    assert Settings(LOG_LEVEL="debug").LOG_LEVEL == "DEBUG"

def test_Settings_log_level_aliases():
    assert Settings(LOG_LEVEL="warn").LOG_LEVEL == "WARNING"
    assert Settings(LOG_LEVEL=" Fatal ").LOG_LEVEL == "CRITICAL"
    assert Settings(LOG_LEVEL="error").LOG_LEVEL == "ERROR"
