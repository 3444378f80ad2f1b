"""Game constants and text normalization helpers"""

from enum import Enum

from .models import Question


class Phase(str, Enum):
    """Room phases, in the order a game walks through them."""
    LOBBY = "lobby"
    ANSWERING = "answering"
    BETTING = "betting"
    RESULTS = "results"
    GAMEOVER = "gameover"


# Room codes skip 0/O and 1/I so they can be read aloud and typed back
ROOM_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
ROOM_CODE_LENGTH = 5
CREATE_ROOM_CODE_ATTEMPTS = 64

NO_ANSWER = "???"
HOUSE_ANSWER_PREFIX = "house_"

MAX_NAME_LENGTH = 20
MAX_ANSWER_LENGTH = 100

FALLBACK_QUESTION = Question(
    question="How many bones are in the adult human body?",
    answer="206",
    hint="Newborns have around 270; several fuse together while growing.",
)


def normalize_name(name: str) -> str:
    """Rejoin key for a player name."""
    return name.strip().lower()


def normalize_answer(text: str) -> str:
    """Grading key: case-insensitive, outer whitespace dropped, inner runs collapsed."""
    return " ".join(text.split()).lower()
