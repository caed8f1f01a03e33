"""BelPolSim — Ambient configuration via environment variables.

Only the headless runner and logging read these settings. Scenario rules
(threshold, majority, seat totals) travel inside the game state as
``ElectoralRules`` and are never taken from the environment.
"""

from __future__ import annotations

from pydantic_settings import BaseSettings


class BelpolsimSettings(BaseSettings):
    """Central configuration loaded from environment / .env file."""

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "BELPOLSIM_",
        "extra": "ignore",
    }

    # ── Headless runner ────────────────────────────────────────
    seed: int = 2024
    max_turns: int = 8
    bills_per_term: int = 3

    # ── Logging ────────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: str = "console"


settings = BelpolsimSettings()
