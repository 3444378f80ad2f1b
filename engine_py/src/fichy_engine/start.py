#!/usr/bin/env python3
"""Run the Fichy server under uvicorn, configured from the environment."""

import logging
import os

import uvicorn

from .config import load_config_from_env

logger = logging.getLogger(__name__)


def main():
    port = int(os.getenv("PORT", 8000))
    host = os.getenv("HOST", "0.0.0.0")
    log_level = os.getenv("LOG_LEVEL", "info")

    logging.basicConfig(level=log_level.upper())
    config = load_config_from_env()
    if not os.getenv("ANTHROPIC_API_KEY"):
        logger.warning("ANTHROPIC_API_KEY is not set; every round will use the fallback question")
    logger.info(
        f"Fichy listening on {host}:{port} (/ws, /health): "
        f"{config.rounds_per_game} rounds, {config.answer_time:g}s to answer, {config.bet_time:g}s to bet"
    )

    uvicorn.run(
        "fichy_engine.main:app",
        host=host,
        port=port,
        reload=os.getenv("RELOAD", "false").lower() == "true",
        log_level=log_level.lower()
    )


if __name__ == "__main__":
    main()
