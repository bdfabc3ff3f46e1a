"""
API Service - Business logic layer between API and engine.

The service:
1. Translates API requests to engine calls
2. Manages sessions
3. Parks spells/attacks that are waiting on a selection
4. Formats responses

This layer is framework-agnostic (can be used with FastAPI, Flask, etc.).
Methods that drive the engine are coroutines; every session's parked task
must live on the same event loop as the requests that resume it.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
import asyncio
import logging

from .schemas import (
    # Requests
    AttackRequest,
    ConfirmTargetsRequest,
    CreateSessionRequest,
    EndTurnRequest,
    PlayCardRequest,
    RematchRequest,
    TargetClickRequest,
    # Responses
    ActionResponse,
    CardListResponse,
    ErrorResponse,
    GameStateResponse,
    LegalActionsResponse,
    SessionResponse,
    # Shared
    ActionInfo,
    AttackTargetingInfo,
    BattlefieldCardInfo,
    CardInfo,
    LogEntryInfo,
    PlayerInfo,
    TargetInfo,
    TargetingInfo,
    # Enums
    ErrorCode,
    SessionStatus,
)
from ..card_schema.card_definition import CardDefinition
from ..config import GameRules
from ..engine_core.action import ActionResult
from ..engine_core.state import GameState, GameStatus, Target
from ..games.scifi.cards import CARD_LIBRARY
from ..session import GameSession, SessionManager

logger = logging.getLogger(__name__)


@dataclass
class APIService:
    """
    Main API service.

    Usage:
        service = APIService()

        session = service.create_session(CreateSessionRequest(player_ids=["alice", "bob"]))
        response = await service.play_card(session.session_id, PlayCardRequest(...))
        if not response.completed:
            response = await service.click_target(session.session_id, TargetClickRequest(...))
    """
    session_manager: SessionManager = field(default_factory=SessionManager)

    # =========================================================================
    # Catalog
    # =========================================================================

    def list_cards(self) -> CardListResponse:
        cards = [self._card_info(card) for card in CARD_LIBRARY.values()]
        return CardListResponse(cards=cards, count=len(cards))

    # =========================================================================
    # Sessions
    # =========================================================================

    def create_session(self, request: CreateSessionRequest) -> SessionResponse | ErrorResponse:
        """Create a new game session with a started game."""
        rules = self._rules_for(request)
        try:
            session = self.session_manager.create_session(
                request.player_ids, rules=rules, seed=request.seed
            )
        except ValueError as e:
            return ErrorResponse(error=str(e), error_code=ErrorCode.VALIDATION_ERROR)
        return self._session_to_response(session)

    def get_session(self, session_id: str) -> SessionResponse | ErrorResponse:
        session = self.session_manager.get_session(session_id)
        if not session:
            return self._session_not_found(session_id)
        return self._session_to_response(session)

    def end_session(self, session_id: str, reason: str = "user_ended") -> bool:
        return self.session_manager.end_session(session_id, reason)

    def list_sessions(self) -> list[str]:
        return self.session_manager.list_active_sessions()

    def rematch(
        self, session_id: str, request: RematchRequest | None = None
    ) -> SessionResponse | ErrorResponse:
        seed = request.seed if request else None
        session = self.session_manager.create_rematch(session_id, seed=seed)
        if not session:
            return self._session_not_found(session_id)
        return self._session_to_response(session)

    def get_game_state(self, session_id: str) -> GameStateResponse | ErrorResponse:
        session = self.session_manager.get_session(session_id)
        if not session:
            return self._session_not_found(session_id)
        return self._build_game_state(session_id, session.game)

    def get_legal_actions(self, session_id: str) -> LegalActionsResponse | ErrorResponse:
        session = self.session_manager.get_session(session_id)
        if not session:
            return self._session_not_found(session_id)
        actions = []
        for action in session.engine.legal_actions():
            payload = action.payload
            actions.append(
                ActionInfo(
                    action_type=action.action_type.value,
                    player_id=payload.player_id,
                    card_id=payload.card_id,
                    attacker_instance_id=payload.attacker_instance_id,
                    target=self._target_info(payload.target) if payload.target else None,
                )
            )
        return LegalActionsResponse(
            session_id=session_id,
            current_player_id=session.game.current_player_id,
            actions=actions,
        )

    # =========================================================================
    # Player intents
    # =========================================================================

    async def play_card(
        self, session_id: str, request: PlayCardRequest
    ) -> ActionResponse | ErrorResponse:
        """Play a card; a spell that needs targets returns an open selection."""
        session, error = self._ready_session(session_id)
        if error:
            return error
        task = asyncio.create_task(session.engine.play_card(request.player_id, request.card_id))
        return await self._settle(session, task)

    async def attack(
        self, session_id: str, request: AttackRequest
    ) -> ActionResponse | ErrorResponse:
        """Attack a given target, or open a selection when none is given."""
        session, error = self._ready_session(session_id)
        if error:
            return error

        if request.target is not None:
            try:
                target = self._to_target(request.target)
            except ValueError as e:
                return ErrorResponse(error=str(e), error_code=ErrorCode.INVALID_TARGET)
            result = session.engine.attack_target(
                request.player_id, request.attacker_instance_id, target
            )
            return self._action_response(session, result)

        task = asyncio.create_task(
            session.engine.attack(request.player_id, request.attacker_instance_id)
        )
        return await self._settle(session, task)

    async def end_turn(
        self, session_id: str, request: EndTurnRequest
    ) -> ActionResponse | ErrorResponse:
        session, error = self._ready_session(session_id)
        if error:
            return error
        result = session.engine.end_turn(request.player_id)
        return self._action_response(session, result)

    # =========================================================================
    # Targeting
    # =========================================================================

    async def click_target(
        self, session_id: str, request: TargetClickRequest
    ) -> ActionResponse | ErrorResponse:
        """Toggle a target; attacks resolve on the first legal click."""
        session, error = self._selecting_session(session_id)
        if error:
            return error
        try:
            target = self._to_target(request.target)
        except ValueError as e:
            return ErrorResponse(error=str(e), error_code=ErrorCode.INVALID_TARGET)

        if not session.engine.targeting.handle_target_click(target):
            return self._targeting_response(
                session, success=False, error="Target not accepted", error_code="INVALID_TARGET"
            )
        return await self._settle(session, session.pending_task)

    async def confirm_targets(
        self, session_id: str, request: ConfirmTargetsRequest | None = None
    ) -> ActionResponse | ErrorResponse:
        session, error = self._selecting_session(session_id)
        if error:
            return error

        targets = None
        if request is not None and request.targets is not None:
            try:
                targets = [self._to_target(t) for t in request.targets]
            except ValueError as e:
                return ErrorResponse(error=str(e), error_code=ErrorCode.INVALID_TARGET)

        if not session.engine.targeting.confirm_selection(targets):
            return self._targeting_response(
                session, success=False, error="Selection is not valid", error_code="INVALID_TARGET"
            )
        return await self._settle(session, session.pending_task)

    async def cancel_targeting(self, session_id: str) -> ActionResponse | ErrorResponse:
        session, error = self._selecting_session(session_id)
        if error:
            return error
        session.engine.targeting.cancel_targeting()
        return await self._settle(session, session.pending_task)

    async def _settle(self, session: GameSession, task: asyncio.Task) -> ActionResponse:
        """
        Run the task until it finishes or waits on a selection.

        A task waiting on a selection is parked on the session and resumed
        by the next click/confirm/cancel.
        """
        targeting = session.engine.targeting
        # Engine tasks only suspend on a targeting future, so each yield
        # either advances the task or finds it selecting.
        while not task.done() and not targeting.is_selecting:
            await asyncio.sleep(0)

        if not task.done():
            session.pending_task = task
            return self._targeting_response(session, success=True)

        session.pending_task = None
        return self._action_response(session, task.result())

    # =========================================================================
    # Helpers
    # =========================================================================

    def _ready_session(self, session_id: str) -> tuple[GameSession | None, ErrorResponse | None]:
        session = self.session_manager.get_session(session_id)
        if not session:
            return None, self._session_not_found(session_id)
        if session.pending_task is not None and not session.pending_task.done():
            return None, ErrorResponse(
                error="Finish or cancel targeting first",
                error_code=ErrorCode.TARGETING_ACTIVE,
            )
        return session, None

    def _selecting_session(self, session_id: str) -> tuple[GameSession | None, ErrorResponse | None]:
        session = self.session_manager.get_session(session_id)
        if not session:
            return None, self._session_not_found(session_id)
        if session.pending_task is None or not session.engine.targeting.is_selecting:
            return None, ErrorResponse(
                error="No targeting session is open",
                error_code=ErrorCode.NO_TARGETING,
            )
        return session, None

    def _session_not_found(self, session_id: str) -> ErrorResponse:
        return ErrorResponse(
            error="Session not found",
            error_code=ErrorCode.SESSION_NOT_FOUND,
            details={"session_id": session_id},
        )

    def _rules_for(self, request: CreateSessionRequest) -> GameRules:
        rules = self.session_manager.default_rules or GameRules.from_env()
        overrides = {
            name: getattr(request, name)
            for name in ("starting_health", "starting_energy", "max_energy_cap", "starting_hand_size")
            if getattr(request, name) is not None
        }
        return replace(rules, **overrides) if overrides else rules

    def _session_status(self, session: GameSession) -> SessionStatus:
        if session.game.status == GameStatus.FINISHED:
            return SessionStatus.GAME_OVER
        if session.engine.targeting.is_selecting:
            return SessionStatus.TARGETING
        return SessionStatus.ACTIVE

    def _session_to_response(self, session: GameSession) -> SessionResponse:
        return SessionResponse(
            session_id=session.session_id,
            status=self._session_status(session),
            players=list(session.players),
            created_at=session.created_at,
            rematch_of=session.metadata.get("rematch_of"),
            game_state=self._build_game_state(session.session_id, session.game),
        )

    def _action_response(self, session: GameSession, result: ActionResult) -> ActionResponse:
        if not result.success:
            logger.debug(
                "Session %s: %s (%s)", session.session_id, result.error, result.error_code
            )
        return ActionResponse(
            session_id=session.session_id,
            success=result.success,
            completed=True,
            status=self._session_status(session),
            error=result.error,
            error_code=result.error_code,
            changes=list(result.state_changes),
            game_state=self._build_game_state(session.session_id, session.game),
        )

    def _targeting_response(
        self,
        session: GameSession,
        success: bool,
        error: str | None = None,
        error_code: str | None = None,
    ) -> ActionResponse:
        return ActionResponse(
            session_id=session.session_id,
            success=success,
            completed=False,
            status=self._session_status(session),
            error=error,
            error_code=error_code,
            targeting=self._targeting_info(session),
            game_state=self._build_game_state(session.session_id, session.game),
        )

    def _targeting_info(self, session: GameSession) -> TargetingInfo | None:
        targeting = session.engine.targeting
        if not targeting.is_selecting:
            return None
        context = targeting.context
        selector = targeting.selector
        return TargetingInfo(
            mode=context.mode.value,
            player_id=context.player_id,
            card_id=context.card_id,
            attacker_instance_id=context.attacker_instance_id,
            description=selector.description,
            target_type=selector.target_type.value,
            target_count=selector.target_count,
            selection=[self._target_info(t) for t in targeting.selection],
            legal_targets=[self._target_info(t) for t in targeting.legal_targets()],
        )

    def _build_game_state(self, session_id: str, state: GameState) -> GameStateResponse:
        players = []
        for player_id in state.players:
            player_state = state.get_player_state(player_id)
            battlefield = []
            for card in state.get_battlefield(player_id):
                definition = state.card_library.get(card.card_id)
                battlefield.append(
                    BattlefieldCardInfo(
                        instance_id=card.instance_id,
                        card_id=card.card_id,
                        name=definition.name if definition else card.card_id,
                        card_type=definition.card_type.value if definition else "unknown",
                        attack=definition.attack if definition else None,
                        current_health=card.current_health,
                        max_health=definition.health if definition else None,
                        sapped=card.sapped,
                    )
                )
            players.append(
                PlayerInfo(
                    player_id=player_id,
                    health=player_state.health if player_state else 0,
                    max_health=player_state.max_health if player_state else 0,
                    energy=player_state.energy if player_state else 0,
                    max_energy=player_state.max_energy if player_state else 0,
                    is_current_turn=player_id == state.current_player_id,
                    hand=list(state.get_hand(player_id)),
                    battlefield=battlefield,
                )
            )

        return GameStateResponse(
            session_id=session_id,
            status=state.status.value,
            turn=state.turn,
            current_player_id=state.current_player_id,
            deck_size=len(state.deck),
            graveyard=list(state.graveyard),
            players=players,
            winner_id=state.winner_id,
            game_log=[
                LogEntryInfo(
                    player_id=entry.player_id,
                    action=entry.action,
                    description=entry.description,
                    card_id=entry.card_id,
                    timestamp=entry.timestamp,
                )
                for entry in state.game_log
            ],
        )

    def _card_info(self, card: CardDefinition) -> CardInfo:
        return CardInfo(
            card_id=card.id,
            name=card.name,
            cost=card.cost,
            card_type=card.card_type.value,
            attack=card.attack,
            health=card.health,
            description=card.description,
            rarity=card.rarity,
            has_script=card.spell_effect is not None,
            abilities=[a.trigger.value for a in card.artifact_abilities],
            attack_targeting=(
                AttackTargetingInfo.model_validate(card.attack_targeting)
                if card.attack_targeting else None
            ),
        )

    def _target_info(self, target: Target) -> TargetInfo:
        return TargetInfo(**target.to_dict())

    def _to_target(self, info: TargetInfo) -> Target:
        return Target.from_dict(info.model_dump(mode="json"))
