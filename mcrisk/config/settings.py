"""mcrisk configuration settings.

Loads configuration from environment variables with sensible defaults.
A local .env file is honoured for development runs.
"""

import os
from dataclasses import dataclass, field
from dotenv import load_dotenv

load_dotenv()

# Iteration bounds enforced on SimulationConfig
MIN_ITERATIONS = 100
MAX_ITERATIONS = 50000

MAX_SEED = 0xFFFFFFFF


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    # Simulation defaults
    default_iterations: int = field(default_factory=lambda: int(os.getenv("MC_DEFAULT_ITERATIONS", "1000")))
    default_seed: int = field(default_factory=lambda: int(os.getenv("MC_DEFAULT_SEED", "0")))
    default_confidence: float = field(default_factory=lambda: float(os.getenv("MC_DEFAULT_CONFIDENCE", "0.90")))

    # Orchestrator behaviour
    progress_interval: int = field(default_factory=lambda: int(os.getenv("MC_PROGRESS_INTERVAL", "10")))
    strict_outputs: bool = field(default_factory=lambda: _env_bool("MC_STRICT_OUTPUTS"))

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    def validate(self) -> None:
        """Validate settings are consistent.

        Raises:
            ValueError: If a setting is out of range.
        """
        if not MIN_ITERATIONS <= self.default_iterations <= MAX_ITERATIONS:
            raise ValueError(
                f"MC_DEFAULT_ITERATIONS must be in [{MIN_ITERATIONS}, {MAX_ITERATIONS}]"
            )
        if not 0 <= self.default_seed <= MAX_SEED:
            raise ValueError("MC_DEFAULT_SEED must be a 32-bit unsigned integer")
        if not 0.0 < self.default_confidence < 1.0:
            raise ValueError("MC_DEFAULT_CONFIDENCE must be in (0, 1)")
        if self.progress_interval < 1:
            raise ValueError("MC_PROGRESS_INTERVAL must be at least 1")


def clamp_iterations(value: int) -> int:
    """Clamp a requested iteration count into the supported range.

    The engine rejects out-of-range counts; callers that prefer clamping
    (e.g. a form field) apply this before building a SimulationConfig.
    """
    return max(MIN_ITERATIONS, min(MAX_ITERATIONS, int(value)))


# Singleton settings instance
settings = Settings()
