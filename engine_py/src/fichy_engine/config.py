"""
Game configuration and validation.
"""

import os
from typing import Mapping, Optional

from pydantic import BaseModel, Field, field_validator

from .constants import ROOM_CODE_ALPHABET, ROOM_CODE_LENGTH

ENV_PREFIX = "FICHY_"


class GameConfig(BaseModel):
    """Fixed game settings. Read once at startup, never negotiated with clients."""

    starting_chips: int = Field(
        default=20,
        ge=1,
        description="Chips every player starts the game with"
    )
    rounds_per_game: int = Field(
        default=6,
        ge=1,
        le=50,
        description="Number of rounds before the game is over"
    )
    answer_time: float = Field(
        default=60,
        gt=0,
        description="Seconds players have to submit an answer"
    )
    bet_time: float = Field(
        default=45,
        gt=0,
        description="Seconds players have to place their bets"
    )
    min_players: int = Field(
        default=2,
        ge=2,
        description="Minimum number of players required to start"
    )
    max_players: int = Field(
        default=8,
        ge=2,
        description="Maximum number of players allowed in a room"
    )
    code_alphabet: str = Field(
        default=ROOM_CODE_ALPHABET,
        min_length=2,
        description="Characters room codes are drawn from"
    )
    code_length: int = Field(
        default=ROOM_CODE_LENGTH,
        ge=3,
        le=12,
        description="Length of generated room codes"
    )
    question_history_size: int = Field(
        default=100,
        ge=0,
        description="Recently used questions passed to the generator to avoid repeats"
    )
    room_timeout: float = Field(
        default=3600,
        gt=0,
        description="Seconds a room with nobody connected is kept before reaping"
    )
    reap_interval: float = Field(
        default=60,
        gt=0,
        description="Seconds between idle room sweeps"
    )

    @field_validator('max_players')
    @classmethod
    def validate_max_players(cls, v, info):
        """Validate maximum players doesn't go below minimum."""
        min_players = info.data.get('min_players', 2)
        if v < min_players:
            raise ValueError(f'max_players ({v}) must be >= min_players ({min_players})')
        return v

    @field_validator('code_alphabet')
    @classmethod
    def validate_code_alphabet(cls, v):
        if len(set(v)) != len(v):
            raise ValueError('code_alphabet must not repeat characters')
        return v.upper()


# Default configuration instance
default_config = GameConfig()


def create_config(**overrides) -> GameConfig:
    """Create a GameConfig with optional overrides."""
    config_dict = default_config.model_dump()
    config_dict.update(overrides)
    return GameConfig(**config_dict)


def load_config_from_env(environ: Optional[Mapping[str, str]] = None) -> GameConfig:
    """
    Build the game configuration from FICHY_* environment variables.

    Every field of GameConfig can be overridden, e.g. FICHY_ROUNDS_PER_GAME=3.
    Unset variables keep their defaults.
    """
    environ = os.environ if environ is None else environ
    overrides = {}
    for name in GameConfig.model_fields:
        value = environ.get(f"{ENV_PREFIX}{name.upper()}")
        if value is not None and value.strip():
            overrides[name] = value.strip()
    return create_config(**overrides)
