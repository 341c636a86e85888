import logging
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

DEFAULT_TARGETS = (
    '[{"name": "gstatic", "url": "https://www.gstatic.com/generate_204"},'
    ' {"name": "apenwarr", "url": "https://apenwarr.ca"}]'
)

class Settings(BaseSettings):
    APP_TITLE: str = "blip"
    APP_VERSION: str = "0.3.0"

    # Sampling
    TARGETS_JSON: str = DEFAULT_TARGETS
    SAMPLE_INTERVAL_S: float = 1.0
    PROBE_TIMEOUT_S: float = 0.9
    FAIL_ON_HTTP_ERROR: bool = False
    HISTORY_SIZE: int = 60

    # Viewers & chart
    STREAM_BUFFER: int = 16
    CHART_WIDTH_PX: int = 800
    CHART_HEIGHT_PX: int = 600

    LOG_LEVEL: str = "INFO"
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    class Config:
        case_sensitive = False

    @field_validator("SAMPLE_INTERVAL_S", "PROBE_TIMEOUT_S")
    @classmethod
    def _positive_seconds(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be > 0")
        return v

    @field_validator("HISTORY_SIZE", "STREAM_BUFFER", "CHART_WIDTH_PX", "CHART_HEIGHT_PX")
    @classmethod
    def _positive_int(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @model_validator(mode="after")
    def _timeout_below_interval(self) -> "Settings":
        if self.PROBE_TIMEOUT_S >= self.SAMPLE_INTERVAL_S:
            logger.warning(
                "PROBE_TIMEOUT_S (%.2fs) is not below SAMPLE_INTERVAL_S (%.2fs); "
                "a hung target will stretch rounds past the interval",
                self.PROBE_TIMEOUT_S, self.SAMPLE_INTERVAL_S,
            )
        return self

settings = Settings()
