"""
Round state machine for Fichy rooms.

lobby -> answering -> betting -> results -> answering ... -> gameover

All room mutations run synchronously between awaits. The only suspension
point inside a transition is the question request in ``start_round``; any
handler that runs meanwhile sees the room in ``answering`` with no
question yet and ignores itself.
"""

import asyncio
import logging
import math
from typing import Any, Callable, Dict, Optional

from .config import GameConfig, default_config
from .constants import FALLBACK_QUESTION, NO_ANSWER, Phase
from .emitter import Emitter
from .errors import ALREADY_IN_ROOM, GameError, InsufficientPlayers, NotHost, QuestionGenerationFailed
from .events import (
    AnswerReceivedEvent, BetReceivedEvent, BettingPhaseEvent, GameOverEvent,
    NewHostEvent, PlayerDisconnectedEvent, PlayerRejoinedEvent, QuestionReadyEvent,
    RoomCreatedEvent, RoomJoinedEvent, RoundResultsEvent, RoundStartingEvent
)
from .models import Question, RoomState
from .pool import build_answer_pool
from .presence import disconnect_player
from .questions import QuestionHistory, QuestionSource
from .ranking import rank_players
from .registry import RoomRegistry
from .serialization import (
    copy_bets, public_player, public_players, public_pool, public_room_state, revealed_pool
)
from .settlement import apply_deltas, coerce_stake, settle_bets

logger = logging.getLogger(__name__)


class RoundEngine:
    """Drives every room through its phases, owning their deadline timers."""

    def __init__(
        self,
        registry: RoomRegistry,
        question_source: QuestionSource,
        emitter: Emitter,
        config: GameConfig = default_config,
        pool_seed: Optional[int] = None
    ):
        self.registry = registry
        self.question_source = question_source
        self.emitter = emitter
        self.config = config
        self.pool_seed = pool_seed
        self.history = QuestionHistory(config.question_history_size)

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    def create_room(self, connection_id: str, player_name: str) -> RoomState:
        self._ensure_unattached(connection_id)
        room = self.registry.create_room(connection_id, player_name)
        player = room.players[connection_id]
        self.emitter.send(connection_id, RoomCreatedEvent(code=room.code, player=public_player(player)))
        self._broadcast_room_update(room)
        return room

    def join_room(self, code: str, connection_id: str, player_name: str) -> RoomState:
        """
        Join a room, or take back a disconnected seat under the same name.

        Raises:
            RoomNotFound, GameAlreadyStarted, RoomFull: Surfaced to the joiner
        """
        self._ensure_unattached(connection_id)
        result = self.registry.join_room(code, connection_id, player_name)
        room = result.room

        if not result.rejoin:
            self.emitter.send(connection_id, RoomJoinedEvent(code=room.code, player=public_player(result.player)))
            self._broadcast_room_update(room)
            if room.host_id != result.previous_host_id:
                self.emitter.broadcast(room, NewHostEvent(host_id=room.host_id))
            return room

        self.emitter.send(connection_id, RoomJoinedEvent(
            code=room.code,
            player=public_player(result.player),
            rejoin=True,
            game_state=room.phase
        ))
        self._broadcast_room_update(room)
        self.emitter.broadcast(room, PlayerRejoinedEvent(player_name=result.player.name))
        if room.host_id != result.previous_host_id:
            self.emitter.broadcast(room, NewHostEvent(host_id=room.host_id))
        self._replay_round(room, connection_id)
        return room

    def disconnect(self, connection_id: str) -> Optional[RoomState]:
        room = self.registry.find_player_room(connection_id)
        if room is None:
            return None
        new_host = disconnect_player(room, connection_id)
        room.touch()
        self.emitter.broadcast(room, PlayerDisconnectedEvent(player_id=connection_id))
        if new_host:
            self.emitter.broadcast(room, NewHostEvent(host_id=new_host))
        return room

    def _ensure_unattached(self, connection_id: str):
        room = self.registry.find_player_room(connection_id)
        if room is not None:
            raise GameError(f"Already playing in room {room.code}.", ALREADY_IN_ROOM)

    def _replay_round(self, room: RoomState, player_id: str):
        """Bring a rejoining player up to date with the current phase."""
        if room.phase == Phase.ANSWERING and room.current_question is not None:
            self.emitter.send(player_id, QuestionReadyEvent(
                round=room.round,
                total=self.config.rounds_per_game,
                question=room.current_question.question,
                time_limit=self.remaining_time(room)
            ))
        elif room.phase == Phase.BETTING and room.answer_pool is not None:
            self.emitter.send(player_id, BettingPhaseEvent(
                answers=public_pool(room.answer_pool),
                players=public_players(room),
                time_limit=self.remaining_time(room)
            ))

    # ------------------------------------------------------------------
    # Game flow
    # ------------------------------------------------------------------

    async def start_game(self, code: str, player_id: str):
        """
        Host starts the game from the lobby.

        Raises:
            NotHost: Caller is not the host (callers drop it silently)
            InsufficientPlayers: Fewer than ``min_players`` in the room
        """
        room = self.registry.get_room(code)
        if room is None or player_id not in room.players:
            return
        self._require_host(room, player_id)
        if room.phase != Phase.LOBBY:
            return
        if len(room.players) < self.config.min_players:
            raise InsufficientPlayers(f"At least {self.config.min_players} players are needed!")

        logger.info(f"Starting game in room {code} with {len(room.players)} players")
        await self.start_round(room)

    async def next_round(self, code: str, player_id: str):
        """Host moves on from results: another round, or the final ranking."""
        room = self.registry.get_room(code)
        if room is None or player_id not in room.players:
            return
        self._require_host(room, player_id)
        if room.phase != Phase.RESULTS:
            return

        if room.round >= self.config.rounds_per_game:
            self.end_game(room)
        else:
            await self.start_round(room)

    async def start_round(self, room: RoomState):
        room.clear_timer()
        room.round += 1
        round_number = room.round
        room.phase = Phase.ANSWERING
        room.current_question = None
        room.answers = {}
        room.bets = {}
        room.answer_pool = None
        room.touch()
        logger.info(f"Room {room.code}: round {round_number} answering")

        self.emitter.broadcast(room, RoundStartingEvent(round=round_number, total=self.config.rounds_per_game))

        question = await self._draw_question()

        if (self.registry.get_room(room.code) is not room
                or room.round != round_number or room.phase != Phase.ANSWERING):
            logger.info(f"Room {room.code}: discarding question for stale round {round_number}")
            return

        room.current_question = question
        self.emitter.broadcast(room, QuestionReadyEvent(
            round=round_number,
            total=self.config.rounds_per_game,
            question=question.question,
            time_limit=math.ceil(self.config.answer_time)
        ))
        self._arm_deadline(room, self.config.answer_time, self._answer_deadline)

    async def _draw_question(self) -> Question:
        try:
            question = await self.question_source.generate(self.history.snapshot())
            if not isinstance(question, Question) or not question.question or not question.answer:
                raise QuestionGenerationFailed(f"Unusable question: {question!r}")
        except QuestionGenerationFailed as e:
            logger.warning(f"Question generation failed, using fallback: {e.message}")
            return FALLBACK_QUESTION
        except Exception as e:
            logger.exception(f"Question source error, using fallback: {e}")
            return FALLBACK_QUESTION

        self.history.record(question.question)
        return question

    def submit_answer(self, code: str, player_id: str, text: str):
        room = self.registry.get_room(code)
        if room is None or player_id not in room.players:
            return
        if room.phase != Phase.ANSWERING or room.current_question is None:
            return
        if player_id in room.answers:
            return

        room.answers[player_id] = (text or "").strip() or NO_ANSWER
        room.touch()
        self.emitter.broadcast(room, AnswerReceivedEvent(player_id=player_id, count=len(room.answers)))

        if all(pid in room.answers for pid in room.players):
            self.start_betting(room)

    def _answer_deadline(self, room: RoomState):
        for player_id in room.players:
            room.answers.setdefault(player_id, NO_ANSWER)
        self.start_betting(room)

    def start_betting(self, room: RoomState):
        if room.phase != Phase.ANSWERING or room.current_question is None:
            return
        room.clear_timer()
        room.answer_pool = build_answer_pool(room.answers, room.current_question, self.pool_seed)
        room.phase = Phase.BETTING
        logger.info(f"Room {room.code}: round {room.round} betting on {len(room.answer_pool)} answers")

        self.emitter.broadcast(room, BettingPhaseEvent(
            answers=public_pool(room.answer_pool),
            players=public_players(room),
            time_limit=math.ceil(self.config.bet_time)
        ))
        self._arm_deadline(room, self.config.bet_time, self._bet_deadline)

    def submit_bets(self, code: str, player_id: str, bets: Dict[str, Any]):
        room = self.registry.get_room(code)
        if room is None or player_id not in room.players:
            return
        if room.phase != Phase.BETTING or player_id in room.bets:
            return

        room.bets[player_id] = {answer_id: coerce_stake(amount) for answer_id, amount in (bets or {}).items()}
        room.touch()
        self.emitter.broadcast(room, BetReceivedEvent(player_id=player_id, count=len(room.bets)))

        if all(pid in room.bets for pid in room.players):
            self.resolve_round(room)

    def _bet_deadline(self, room: RoomState):
        for player_id in room.players:
            room.bets.setdefault(player_id, {})
        self.resolve_round(room)

    def resolve_round(self, room: RoomState) -> Optional[Dict[str, int]]:
        """
        Settle the round. Only the first call per round has any effect.

        Returns:
            The applied deltas, or None if the room was not in betting
        """
        if room.phase != Phase.BETTING:
            return None
        room.clear_timer()
        room.phase = Phase.RESULTS

        deltas = settle_bets(room.bets, room.answer_pool or [], room.players.keys())
        apply_deltas(room.players, deltas)
        logger.info(f"Room {room.code}: round {room.round} settled {deltas}")

        question = room.current_question or FALLBACK_QUESTION
        self.emitter.broadcast(room, RoundResultsEvent(
            correct_answer=question.answer,
            hint=question.hint,
            pool=revealed_pool(room),
            bets=copy_bets(room),
            deltas=deltas,
            players=public_players(room),
            round=room.round,
            total=self.config.rounds_per_game,
            is_last_round=room.round >= self.config.rounds_per_game
        ))
        return deltas

    def end_game(self, room: RoomState):
        room.clear_timer()
        room.phase = Phase.GAMEOVER
        room.answer_pool = None
        room.answers = {}
        room.bets = {}
        logger.info(f"Room {room.code}: game over")
        self.emitter.broadcast(room, GameOverEvent(ranking=rank_players(room)))

    # ------------------------------------------------------------------
    # Deadlines
    # ------------------------------------------------------------------

    def _arm_deadline(self, room: RoomState, seconds: float, on_expire: Callable[[RoomState], None]):
        room.clear_timer()
        loop = asyncio.get_running_loop()
        token = (room.round, room.phase)
        room.timer_token = token
        room.deadline = loop.time() + seconds
        room.pending_timer = loop.create_task(self._run_deadline(room.code, token, seconds, on_expire))

    async def _run_deadline(self, code: str, token, seconds: float, on_expire: Callable[[RoomState], None]):
        await asyncio.sleep(seconds)
        room = self.registry.get_room(code)
        if room is None or room.timer_token != token or (room.round, room.phase) != token:
            logger.info(f"Room {code}: ignoring stale deadline {token}")
            return
        # Detach first so the next phase's timer does not cancel this task
        room.pending_timer = None
        room.timer_token = None
        room.deadline = None
        logger.info(f"Room {code}: deadline reached in {room.phase.value} (round {room.round})")
        try:
            on_expire(room)
        except Exception as e:
            logger.exception(f"Room {code}: deadline handler failed in {room.phase.value}: {e}")

    def remaining_time(self, room: RoomState) -> int:
        """Whole seconds left before the current deadline fires."""
        if room.deadline is None:
            return 0
        return max(0, math.ceil(room.deadline - asyncio.get_running_loop().time()))

    def _require_host(self, room: RoomState, player_id: str):
        if room.host_id != player_id:
            raise NotHost(f"Only the host can do that in room {room.code}")

    def _broadcast_room_update(self, room: RoomState):
        self.emitter.broadcast(room, public_room_state(room, self.config.rounds_per_game))
