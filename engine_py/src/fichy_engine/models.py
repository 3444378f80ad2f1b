"""Game models and data structures"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class Question:
    question: str
    answer: str
    hint: str = ""


@dataclass
class Player:
    id: str  # connection id, changes on rejoin
    name: str
    chips: int
    connected: bool = True


@dataclass
class PooledAnswer:
    id: str
    text: str
    is_correct: bool
    author_id: Optional[str] = None  # None = house answer


@dataclass
class RoomState:
    code: str
    host_id: Optional[str] = None
    players: Dict[str, Player] = field(default_factory=dict)
    phase: str = "lobby"  # lobby|answering|betting|results|gameover
    round: int = 0
    current_question: Optional[Question] = None
    answers: Dict[str, str] = field(default_factory=dict)  # player_id -> text
    bets: Dict[str, Dict[str, int]] = field(default_factory=dict)  # player_id -> {answer_id: stake}
    answer_pool: Optional[List[PooledAnswer]] = None
    # Deadline bookkeeping: at most one pending timer per room
    pending_timer: Optional[Any] = None
    timer_token: Optional[Tuple[int, str]] = None
    deadline: Optional[float] = None
    last_activity: float = field(default_factory=time.monotonic)

    def touch(self, now: Optional[float] = None):
        self.last_activity = time.monotonic() if now is None else now

    def connected_players(self) -> List[Player]:
        return [p for p in self.players.values() if p.connected]

    def clear_timer(self):
        """Cancel the pending deadline, if any, and forget its token."""
        if self.pending_timer is not None and not self.pending_timer.done():
            self.pending_timer.cancel()
        self.pending_timer = None
        self.timer_token = None
        self.deadline = None
