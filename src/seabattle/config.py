"""Match configuration loaded from defaults, environment and CLI flags."""

from __future__ import annotations

import os
import random
from typing import Any, Dict

from pydantic import BaseModel, Field

from seabattle.engine.match import MatchMode
from seabattle.engine.player import DEFAULT_MAX_ATTEMPTS, DEFAULT_MAX_LAYOUTS
from seabattle.telemetry.config import env_flag


class MatchConfig(BaseModel):
    """Settings needed to build a match."""

    player_name: str = "Player"
    opponent_name: str = "Computer"
    mode: MatchMode = MatchMode.HUMAN_VS_COMPUTER
    seed: int | None = None
    computer_delay: float = Field(default=0.5, ge=0.0)
    max_placement_attempts: int = Field(default=DEFAULT_MAX_ATTEMPTS, ge=1)
    max_layouts: int = Field(default=DEFAULT_MAX_LAYOUTS, ge=1)
    reject_repeat_shots: bool = False
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, **overrides: Any) -> "MatchConfig":
        """Construct config from `SEABATTLE_*` env vars; ``None`` overrides are ignored."""

        data: Dict[str, Any] = {}
        text_fields = {
            "player_name": "SEABATTLE_PLAYER_NAME",
            "opponent_name": "SEABATTLE_OPPONENT_NAME",
            "mode": "SEABATTLE_MODE",
            "seed": "SEABATTLE_SEED",
            "computer_delay": "SEABATTLE_COMPUTER_DELAY",
            "max_placement_attempts": "SEABATTLE_MAX_PLACEMENT_ATTEMPTS",
            "max_layouts": "SEABATTLE_MAX_LAYOUTS",
            "log_level": "SEABATTLE_LOG_LEVEL",
        }
        for field, env_name in text_fields.items():
            value = os.getenv(env_name)
            if value:
                data[field] = value.strip()

        reject = env_flag("SEABATTLE_REJECT_REPEAT_SHOTS")
        if reject is not None:
            data["reject_repeat_shots"] = reject

        data.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**data)

    def make_rng(self) -> random.Random:
        return random.Random(self.seed)
