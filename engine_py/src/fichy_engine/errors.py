# engine_py/src/fichy_engine/errors.py

from typing import Optional


class GameError(Exception):
    """Base exception for game-related errors."""
    code = "GAME_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        if code is not None:
            self.code = code
        self.message = message
        super().__init__(f"[{self.code}] {message}")

# Specific error codes
ROOM_NOT_FOUND = "ROOM_NOT_FOUND"
GAME_ALREADY_STARTED = "GAME_ALREADY_STARTED"
ROOM_FULL = "ROOM_FULL"
NOT_HOST = "NOT_HOST"
INSUFFICIENT_PLAYERS = "INSUFFICIENT_PLAYERS"
ALREADY_IN_ROOM = "ALREADY_IN_ROOM"
QUESTION_GENERATION_FAILED = "QUESTION_GENERATION_FAILED"


class RoomNotFound(GameError):
    code = ROOM_NOT_FOUND

    def __init__(self, room_code: str):
        self.room_code = room_code
        super().__init__(f"Room {room_code} not found")


class GameAlreadyStarted(GameError):
    code = GAME_ALREADY_STARTED


class RoomFull(GameError):
    code = ROOM_FULL


class NotHost(GameError):
    """Privileged action by a non-host. The engine drops these silently."""
    code = NOT_HOST


class InsufficientPlayers(GameError):
    code = INSUFFICIENT_PLAYERS


class QuestionGenerationFailed(GameError):
    """Raised by question sources; always recovered with the fallback question."""
    code = QUESTION_GENERATION_FAILED
