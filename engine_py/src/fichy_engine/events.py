"""
Wire event models and validation.

Inbound and outbound events are flat JSON objects tagged by ``type``, with
camelCase field names on the wire.
"""

import time
from enum import Enum
from typing import Any, Dict, List, Optional, Union

import orjson
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .constants import MAX_ANSWER_LENGTH, MAX_NAME_LENGTH, Phase


class EventType(str, Enum):
    """Inbound event types."""
    CREATE_ROOM = "createRoom"
    JOIN_ROOM = "joinRoom"
    START_GAME = "startGame"
    SUBMIT_ANSWER = "submitAnswer"
    SUBMIT_BETS = "submitBets"
    NEXT_ROUND = "nextRound"


class OutboundEventType(str, Enum):
    """Outbound event types."""
    ROOM_CREATED = "roomCreated"
    ROOM_JOINED = "roomJoined"
    ROOM_UPDATE = "roomUpdate"
    ERROR = "error"
    PLAYER_REJOINED = "playerRejoined"
    PLAYER_DISCONNECTED = "playerDisconnected"
    NEW_HOST = "newHost"
    ROUND_STARTING = "roundStarting"
    QUESTION_READY = "questionReady"
    ANSWER_RECEIVED = "answerReceived"
    BET_RECEIVED = "betReceived"
    BETTING_PHASE = "bettingPhase"
    ROUND_RESULTS = "roundResults"
    GAME_OVER = "gameOver"


class ErrorCode(str, Enum):
    """Error codes for client events."""
    INVALID_EVENT = "INVALID_EVENT"
    ROOM_NOT_FOUND = "ROOM_NOT_FOUND"
    GAME_ALREADY_STARTED = "GAME_ALREADY_STARTED"
    ROOM_FULL = "ROOM_FULL"
    INSUFFICIENT_PLAYERS = "INSUFFICIENT_PLAYERS"
    ALREADY_IN_ROOM = "ALREADY_IN_ROOM"
    INTERNAL = "INTERNAL"


class WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


# Inbound event models
class BaseEvent(WireModel):
    """Base event model."""
    type: EventType


class RoomEvent(BaseEvent):
    """Any event addressed to an existing room."""
    code: str = Field(..., min_length=1, max_length=12)

    @field_validator('code')
    @classmethod
    def normalize_code(cls, v):
        return v.upper()


class CreateRoomEvent(BaseEvent):
    """Create room event."""
    type: EventType = EventType.CREATE_ROOM
    player_name: str = Field(..., min_length=1, max_length=MAX_NAME_LENGTH)


class JoinRoomEvent(RoomEvent):
    """Join (or rejoin) room event."""
    type: EventType = EventType.JOIN_ROOM
    player_name: str = Field(..., min_length=1, max_length=MAX_NAME_LENGTH)


class StartGameEvent(RoomEvent):
    """Start game event (host only)."""
    type: EventType = EventType.START_GAME


class SubmitAnswerEvent(RoomEvent):
    """Submit answer event."""
    type: EventType = EventType.SUBMIT_ANSWER
    answer: str = Field(default="", max_length=MAX_ANSWER_LENGTH)


class SubmitBetsEvent(RoomEvent):
    """Submit bets event. Stakes are read at settlement, so junk amounts are kept here."""
    type: EventType = EventType.SUBMIT_BETS
    bets: Dict[str, Any] = Field(default_factory=dict)


class NextRoundEvent(RoomEvent):
    """Next round event (host only)."""
    type: EventType = EventType.NEXT_ROUND


# Union type for all inbound events
InboundEvent = Union[
    CreateRoomEvent,
    JoinRoomEvent,
    StartGameEvent,
    SubmitAnswerEvent,
    SubmitBetsEvent,
    NextRoundEvent
]


# Views embedded in outbound events
class PlayerView(WireModel):
    id: str
    name: str
    chips: int
    connected: bool


class RankingEntryView(PlayerView):
    position: int


class PoolEntryView(WireModel):
    """A pooled answer as shown during betting: no correctness, no author."""
    id: str
    text: str


class RevealedAnswerView(PoolEntryView):
    is_correct: bool
    author_id: Optional[str] = None
    author_name: Optional[str] = None


# Outbound event models
class OutboundEvent(WireModel):
    type: OutboundEventType
    timestamp: float = Field(default_factory=time.time)


class RoomCreatedEvent(OutboundEvent):
    type: OutboundEventType = OutboundEventType.ROOM_CREATED
    code: str
    player: PlayerView


class RoomJoinedEvent(OutboundEvent):
    type: OutboundEventType = OutboundEventType.ROOM_JOINED
    code: str
    player: PlayerView
    rejoin: bool = False
    game_state: Optional[Phase] = None


class RoomUpdateEvent(OutboundEvent):
    type: OutboundEventType = OutboundEventType.ROOM_UPDATE
    code: str
    state: Phase
    round: int
    total: int
    players: List[PlayerView]
    host_id: Optional[str] = None


class ErrorEvent(OutboundEvent):
    """Error event, sent only to the connection that caused it."""
    type: OutboundEventType = OutboundEventType.ERROR
    code: ErrorCode
    message: str


class PlayerRejoinedEvent(OutboundEvent):
    type: OutboundEventType = OutboundEventType.PLAYER_REJOINED
    player_name: str


class PlayerDisconnectedEvent(OutboundEvent):
    type: OutboundEventType = OutboundEventType.PLAYER_DISCONNECTED
    player_id: str


class NewHostEvent(OutboundEvent):
    type: OutboundEventType = OutboundEventType.NEW_HOST
    host_id: str


class RoundStartingEvent(OutboundEvent):
    type: OutboundEventType = OutboundEventType.ROUND_STARTING
    round: int
    total: int


class QuestionReadyEvent(OutboundEvent):
    type: OutboundEventType = OutboundEventType.QUESTION_READY
    round: int
    total: int
    question: str
    time_limit: int


class AnswerReceivedEvent(OutboundEvent):
    type: OutboundEventType = OutboundEventType.ANSWER_RECEIVED
    player_id: str
    count: int


class BetReceivedEvent(OutboundEvent):
    type: OutboundEventType = OutboundEventType.BET_RECEIVED
    player_id: str
    count: int


class BettingPhaseEvent(OutboundEvent):
    type: OutboundEventType = OutboundEventType.BETTING_PHASE
    answers: List[PoolEntryView]
    players: List[PlayerView]
    time_limit: int


class RoundResultsEvent(OutboundEvent):
    type: OutboundEventType = OutboundEventType.ROUND_RESULTS
    correct_answer: str
    hint: str
    pool: List[RevealedAnswerView]
    bets: Dict[str, Dict[str, Any]]
    deltas: Dict[str, int]
    players: List[PlayerView]
    round: int
    total: int
    is_last_round: bool


class GameOverEvent(OutboundEvent):
    type: OutboundEventType = OutboundEventType.GAME_OVER
    ranking: List[RankingEntryView]


def parse_inbound_event(data: Any) -> InboundEvent:
    """
    Parse raw event data into appropriate event model.

    Args:
        data: Raw event data from WebSocket

    Returns:
        Parsed event model

    Raises:
        ValueError: If event type is invalid or data is malformed
    """
    if not isinstance(data, dict):
        raise ValueError("Event must be a JSON object")

    event_type = data.get("type")

    if not event_type:
        raise ValueError("Missing event type")

    try:
        event_type = EventType(event_type)
    except ValueError:
        raise ValueError(f"Invalid event type: {event_type}")

    event_map = {
        EventType.CREATE_ROOM: CreateRoomEvent,
        EventType.JOIN_ROOM: JoinRoomEvent,
        EventType.START_GAME: StartGameEvent,
        EventType.SUBMIT_ANSWER: SubmitAnswerEvent,
        EventType.SUBMIT_BETS: SubmitBetsEvent,
        EventType.NEXT_ROUND: NextRoundEvent,
    }

    event_class = event_map.get(event_type)
    if not event_class:
        raise ValueError(f"No handler for event type: {event_type}")

    try:
        return event_class.model_validate(data)
    except Exception as e:
        raise ValueError(f"Invalid event data: {str(e)}")


def serialize_event(event: OutboundEvent) -> str:
    """Render an outbound event as a JSON text frame."""
    return orjson.dumps(event.model_dump(mode="json", by_alias=True)).decode()


def create_error_event(code: ErrorCode, message: str) -> ErrorEvent:
    """Create an error event."""
    return ErrorEvent(code=code, message=message)
