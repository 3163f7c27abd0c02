"""
Engine configuration.

Values come from environment variables (CHUMMER_RULES_*) and are validated
by a pydantic model so a bad value fails at start-up instead of mid-roll.
"""
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, model_validator

logger = logging.getLogger("chummer_rules.settings")

ENV_PREFIX = "CHUMMER_RULES_"
DEFAULT_DATA_DIR = Path(__file__).parent / "modules" / "rules_pkg" / "data"


class EngineSettings(BaseModel):
    data_dir: Path = Field(default=DEFAULT_DATA_DIR, description="Directory holding the effect catalog JSON tables.")
    log_level: str = "INFO"
    min_pool: int = Field(default=1, ge=1)
    max_pool: int = Field(default=30, ge=1)
    max_explosions: int = Field(default=100, ge=0, description="Safety cap on edge rerolls per roll.")
    seed: Optional[int] = Field(None, description="Seed for the dice RNG; unset means nondeterministic.")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def check_pool_range(self) -> "EngineSettings":
        if self.min_pool > self.max_pool:
            raise ValueError(f"min_pool ({self.min_pool}) cannot exceed max_pool ({self.max_pool})")
        return self

    @classmethod
    def from_env(cls, environ=None) -> "EngineSettings":
        """Builds settings from CHUMMER_RULES_* variables, falling back to defaults."""
        environ = os.environ if environ is None else environ
        values = {}
        for field_name in cls.model_fields:
            raw = environ.get(f"{ENV_PREFIX}{field_name.upper()}")
            if raw is not None and raw != "":
                values[field_name] = raw
        return cls(**values)


def configure_logging(settings: EngineSettings) -> None:
    """Sets up root logging for host applications that have not done so."""
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format='%(asctime)s [%(levelname)s] [%(name)s] %(message)s')
    logger.info(f"Logging configured at {logging.getLevelName(level)}")
