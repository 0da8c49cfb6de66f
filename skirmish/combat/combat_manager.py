"""
Combat engine.

Drives encounters between the party and the adversaries: initiative, turn
order, action execution, status-effect processing and end-of-combat
detection. All randomness flows through the engine's `DiceRoller`, so a
seeded roller replays a whole encounter exactly.
"""

import threading
from typing import Any, Mapping, Optional, Sequence

from catchery import log_debug, log_warning

from ..character.combatant import Combatant, normalize_combatant
from ..core.constants import (
    ACTION_COOLDOWNS,
    Ability,
    ActionType,
    SessionState,
    Side,
    StatusEffectType,
)
from ..core.dice_parser import DiceNotationError, DiceRoller, get_default_roller
from ..effects.status_effect import StatusTick, tick_status_effects
from .calculations import (
    DEFAULT_ITEM,
    SPELL_TYPES,
    calculate_action,
    resolve_item,
    roll_follow_up_effect,
)
from .combat_session import (
    ActionOutcome,
    ActionRequest,
    CombatSession,
    EngineConfig,
    TurnStart,
)
from .narrative import (
    EnvironmentalFeature,
    extract_environmental_features,
    extract_narrative_elements,
    identify_team_up_opportunities,
    narrate_action,
    narrate_combat_end,
)
from .npc_ai import choose_action

CombatantRecord = Mapping[str, Any] | Combatant


class CombatEngine:
    """Manages the flow of combat for any number of sessions.

    The engine holds no per-session state: every operation receives the
    session it acts upon. Preconditions are checked before anything is
    modified, so a rejected action leaves the session untouched.
    """

    def __init__(
        self,
        dice: Optional[DiceRoller] = None,
        config: Optional[EngineConfig] = None,
    ):
        """Initialize the engine.

        Args:
            dice (Optional[DiceRoller]): The source of every random number.
            config (Optional[EngineConfig]): The engine behaviour.

        """
        self.dice: DiceRoller = dice or get_default_roller()
        self.config: EngineConfig = config or EngineConfig()

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def roll_initiative(self, combatant: Combatant) -> int:
        """Rolls d20 + DEX modifier + half the level + status modifiers."""
        modifier = sum(effect.info.initiative_modifier for effect in combatant.status_effects)
        return (
            self.dice.roll_d20()
            + combatant.modifier(Ability.DEXTERITY)
            + combatant.level // 2
            + modifier
        )

    def initialize_combat(
        self,
        party: Sequence[CombatantRecord],
        adversaries: Sequence[CombatantRecord],
        story_context: str = "",
        session_id: Optional[str] = None,
    ) -> CombatSession:
        """Creates an active session from raw party and adversary records.

        Records are normalized first. Initiative is rolled in input order
        (party first); ties keep that order.

        Args:
            party (Sequence[CombatantRecord]): The party members.
            adversaries (Sequence[CombatantRecord]): The adversaries.
            story_context (str): Free text describing the scene.
            session_id (Optional[str]): Identifier of the session.

        Returns:
            CombatSession: The new session, in the ACTIVE state unless one
            side starts already defeated.

        """
        combatants = [
            normalize_combatant(record, Side.PARTY, index) for index, record in enumerate(party)
        ] + [
            normalize_combatant(record, Side.ADVERSARY, index)
            for index, record in enumerate(adversaries)
        ]
        self._make_ids_unique(combatants)

        for combatant in combatants:
            combatant.initiative = self.roll_initiative(combatant)
        # sorted() is stable, ties keep the input order.
        combatants = sorted(combatants, key=lambda c: c.initiative, reverse=True)

        session = CombatSession(
            combatants=combatants,
            story_context=story_context or "",
            environmental_features=extract_environmental_features(story_context),
            team_up_opportunities=identify_team_up_opportunities(
                [c for c in combatants if c.side == Side.PARTY]
            ),
            narrative_elements=extract_narrative_elements(story_context),
            state=SessionState.ACTIVE,
        )
        if session_id:
            session.id = session_id

        # Start with the first living combatant.
        if combatants and not combatants[0].is_alive():
            self.advance_turn(session)
            session.round = 1

        ended = self.check_combat_end(session)
        if ended is not None:
            self.end_combat(session, ended)

        log_debug(
            "Combat initialized",
            {
                "session": session.id,
                "order": [(c.id, c.initiative) for c in session.combatants],
                "features": [f.name for f in session.environmental_features],
            },
        )
        return session

    @staticmethod
    def _make_ids_unique(combatants: list[Combatant]) -> None:
        seen: set[str] = set()
        for combatant in combatants:
            if combatant.id in seen:
                suffix = 2
                while f"{combatant.id}_{suffix}" in seen:
                    suffix += 1
                new_id = f"{combatant.id}_{suffix}"
                log_warning(
                    f"Duplicate combatant id '{combatant.id}', renamed to '{new_id}'",
                    {"combatant": combatant.name},
                )
                combatant.id = new_id
            seen.add(combatant.id)

    # ------------------------------------------------------------------
    # Turn flow
    # ------------------------------------------------------------------

    def process_status_effects(self, combatant: Combatant) -> StatusTick:
        """Applies periodic damage, skip flags and duration decrements."""
        return tick_status_effects(combatant, self.dice)

    def begin_turn(self, session: CombatSession) -> TurnStart:
        """Starts the turn of the current combatant.

        Status effects are processed once per turn. If they defeat the
        combatant or cost it the turn, the turn passes to the next one.

        Args:
            session (CombatSession): The session.

        Returns:
            TurnStart: What happened while starting the turn.

        """
        current = session.current_combatant
        if not session.is_active or current is None:
            return TurnStart(state=session.state)
        if session.turn_started:
            return TurnStart(combatant_id=current.id, state=session.state)

        session.turn_started = True
        tick = self.process_status_effects(current)
        start = TurnStart(combatant_id=current.id, tick=tick, messages=list(tick.messages))
        session.log.extend(tick.messages)

        if not current.is_alive() or tick.skip_turn:
            start.skipped = True
            if not current.is_alive():
                start.messages.append(f"{current.name} has been defeated!")
                session.log.append(start.messages[-1])
            ended = self.check_combat_end(session)
            if ended is not None:
                self.end_combat(session, ended)
            else:
                self.advance_turn(session)
        start.state = session.state
        return start

    def advance_turn(self, session: CombatSession) -> CombatSession:
        """Moves the turn to the next living combatant.

        The round counter increases when the order wraps around. Once the
        round limit is exceeded the session ends in a draw.
        """
        total = len(session.combatants)
        if total == 0:
            return session
        for step in range(1, total + 1):
            position = session.current_turn + step
            candidate = session.combatants[position % total]
            if candidate.is_alive():
                if position >= total:
                    session.round += 1
                session.current_turn = position % total
                session.turn_started = False
                break

        max_rounds = self.config.max_rounds
        if session.is_active and max_rounds is not None and session.round > max_rounds:
            self.end_combat(session, SessionState.DRAW)
        return session

    def check_combat_end(self, session: CombatSession) -> Optional[SessionState]:
        """Returns the terminal state reached by the session, if any.

        Defeat is checked first: when both sides fall together, the party
        has lost.
        """
        if not session.living(Side.PARTY):
            return SessionState.DEFEAT
        if not session.living(Side.ADVERSARY):
            return SessionState.VICTORY
        return None

    def end_combat(self, session: CombatSession, state: SessionState) -> CombatSession:
        """Moves the session into a terminal state and records the summary."""
        if session.state.is_terminal:
            return session
        session.state = state
        session.log.append(narrate_combat_end(session))
        log_debug(
            "Combat ended",
            {"session": session.id, "state": state.value, "round": session.round},
        )
        return session

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def _reject(
        self,
        session: CombatSession,
        message: str,
        actor_id: Optional[str] = None,
        action_type: Optional[ActionType] = None,
    ) -> ActionOutcome:
        log_debug(message, {"session": session.id, "actor": actor_id})
        return ActionOutcome(
            success=False,
            message=message,
            action_type=action_type,
            actor_id=actor_id,
            state=session.state,
            session=session,
        )

    def _select_feature(
        self, session: CombatSession, extra: dict[str, Any]
    ) -> Optional[EnvironmentalFeature]:
        features = session.environmental_features
        if not features:
            return None
        wanted = str(extra.get("feature") or "").lower()
        for feature in features:
            if wanted and wanted in feature.name.lower():
                return feature
        return features[0]

    def _select_ally(
        self, session: CombatSession, actor: Combatant, extra: dict[str, Any]
    ) -> Optional[Combatant]:
        allies = [c for c in session.living(actor.side) if c.id != actor.id]
        wanted = extra.get("ally_id")
        if wanted is not None:
            return next((c for c in allies if c.id == wanted), None)
        return allies[0] if allies else None

    def _prepare_extra(
        self,
        session: CombatSession,
        actor: Combatant,
        action_type: ActionType,
        extra: dict[str, Any],
    ) -> Optional[str]:
        """Fills in the action parameters derived from the session.

        Returns:
            Optional[str]: Why the action is unavailable, or None.

        """
        item = extra.get("item")
        if item is not None and not isinstance(item, str):
            return f"Items are named by text, got {item!r}"
        if "feature_effect" in extra:
            try:
                extra["feature_effect"] = StatusEffectType(str(extra["feature_effect"]).lower()).value
            except ValueError:
                return f"Unknown status effect '{extra['feature_effect']}'"
        if action_type == ActionType.SPELL and not actor.capabilities.can_cast:
            return f"{actor.name} cannot cast spells"
        if action_type == ActionType.SPECIAL and not actor.capabilities.special_attack:
            return f"{actor.name} has no special ability"
        if action_type == ActionType.ENVIRONMENTAL:
            feature = self._select_feature(session, extra)
            if feature is None:
                return "There is nothing in the environment to exploit"
            extra["feature"] = feature.name
            extra["feature_bonus"] = feature.bonus
            if feature.status_effect is not None:
                extra["feature_effect"] = feature.status_effect.value
        if action_type == ActionType.TEAM_UP:
            ally = self._select_ally(session, actor, extra)
            if ally is None:
                return f"{actor.name} has no ally to coordinate with"
            extra["ally_id"] = ally.id
            extra["ally_name"] = ally.name
            pair = {actor.archetype, ally.archetype}
            for opportunity in session.team_up_opportunities:
                if pair == set(opportunity.members):
                    extra.setdefault("team_up", opportunity.name)
                    extra.setdefault("synergy_bonus", opportunity.damage_bonus)
                    break
        if action_type == ActionType.ITEM and not extra.get("item"):
            extra["item"] = actor.find_healing_item() or (actor.items[0] if actor.items else DEFAULT_ITEM)
        if action_type == ActionType.ATTACK and actor.is_adversary:
            special = actor.capabilities.special_attack
            if special and "special_attack" not in extra:
                extra["special_attack"] = special
        return None

    def _is_hostile(self, action_type: ActionType, extra: dict[str, Any]) -> bool:
        """Whether the action harms its target rather than supporting it."""
        if action_type == ActionType.ITEM:
            return resolve_item(extra.get("item"))[1].damages
        if action_type == ActionType.SPELL:
            spell = SPELL_TYPES.get(str(extra.get("spell_type") or "").lower())
            return spell is None or not spell.heals
        return action_type.needs_target

    def execute_action(
        self,
        session: CombatSession,
        actor_id: str,
        action_type: ActionType | str,
        target_id: Optional[str] = None,
        extra: Optional[dict[str, Any]] = None,
    ) -> ActionOutcome:
        """Executes one action of a combatant.

        Args:
            session (CombatSession): The session.
            actor_id (str): Id of the acting combatant.
            action_type (ActionType | str): The action to execute.
            target_id (Optional[str]): Id of the target. Item, defend and
                healing spell actions default to the actor itself.
            extra (Optional[dict[str, Any]]): Action parameters such as
                "spell_type", "item", "feature" or "ally_id".

        Returns:
            ActionOutcome: The result; on failure the session is unchanged.

        """
        if not session.is_active:
            return self._reject(session, f"Combat is not active ({session.state.display_name})", actor_id)

        if not isinstance(action_type, ActionType):
            try:
                action_type = ActionType.from_string(str(action_type))
            except ValueError:
                return self._reject(session, f"Unknown action type '{action_type}'", actor_id)

        actor = session.get_combatant(actor_id)
        if actor is None:
            return self._reject(session, f"Unknown combatant '{actor_id}'", actor_id, action_type)
        if not actor.is_alive():
            return self._reject(session, f"{actor.name} is defeated and cannot act", actor_id, action_type)

        current = session.current_combatant
        if self.config.strict_turn_order and current is not None and current.id != actor.id:
            return self._reject(
                session, f"It is not {actor.name}'s turn, {current.name} is acting", actor_id, action_type
            )

        remaining = actor.cooldown_remaining(action_type)
        if remaining > 0:
            return self._reject(
                session,
                f"{actor.name} must wait {remaining} more turn(s) before using "
                f"{action_type.display_name.lower()} again",
                actor_id,
                action_type,
            )

        extra = dict(extra or {})
        problem = self._prepare_extra(session, actor, action_type, extra)
        if problem is not None:
            return self._reject(session, problem, actor_id, action_type)

        hostile = self._is_hostile(action_type, extra)
        if target_id is None and not hostile:
            target_id = actor.id
        if target_id is None:
            return self._reject(
                session, f"{action_type.display_name} requires a target", actor_id, action_type
            )
        target = session.get_combatant(target_id)
        if target is None:
            return self._reject(session, f"Unknown target '{target_id}'", actor_id, action_type)
        if not target.is_alive():
            return self._reject(session, f"{target.name} is already defeated", actor_id, action_type)
        if hostile and target.side == actor.side:
            return self._reject(
                session,
                f"{actor.name} cannot {action_type.display_name.lower()} an ally",
                actor_id,
                action_type,
            )

        # Status effects are processed before the actor's first action of
        # the turn; losing the turn to them rejects the action.
        if current is not None and current.id == actor.id and not session.turn_started:
            start = self.begin_turn(session)
            if start.skipped:
                return self._reject(
                    session,
                    " ".join(start.messages) or f"{actor.name} loses the turn",
                    actor_id,
                    action_type,
                )

        try:
            result = calculate_action(action_type, actor, extra, self.dice)
        except DiceNotationError as e:
            log_warning(
                f"Cannot resolve {action_type.display_name.lower()} of {actor.name}: {e}",
                {"session": session.id, "actor": actor.id},
            )
            return self._reject(session, str(e), actor_id, action_type)

        outcome = ActionOutcome(
            success=True,
            message="",
            action_type=action_type,
            actor_id=actor.id,
            target_id=target.id,
            critical=result.critical,
            calculation=result,
            session=session,
        )

        # Damage and healing, clamped to [0, max_hp].
        if result.damage:
            outcome.damage = target.take_damage(result.damage)
        if result.healing:
            outcome.healing = target.heal(result.healing)

        if (
            self.config.enable_follow_up_effects
            and action_type in (ActionType.ATTACK, ActionType.SPECIAL)
            and target.is_alive()
        ):
            follow_up = roll_follow_up_effect(outcome.damage, actor.id, self.dice)
            if follow_up is not None:
                result.target_effects.append(follow_up)

        if target.is_alive():
            for effect in result.target_effects:
                target.add_status_effect(effect)
                outcome.applied_effects.append(effect)
        for effect in result.self_effects:
            actor.add_status_effect(effect)
            outcome.applied_effects.append(effect)
        for kind in result.cleanses:
            if target.remove_status_effect(kind):
                outcome.removed_effects.append(kind)

        # Cooldowns tick down on every action the actor takes.
        for other, turns in list(actor.cooldowns.items()):
            if other != action_type and turns > 0:
                actor.cooldowns[other] = turns - 1
        if ACTION_COOLDOWNS[action_type] > 0:
            actor.cooldowns[action_type] = ACTION_COOLDOWNS[action_type]
        outcome.cooldowns = {k: v for k, v in actor.cooldowns.items() if v > 0}

        actor.turn_count += 1
        actor.last_action = action_type

        outcome.message = narrate_action(
            actor, action_type, target if target.id != actor.id else None, result, extra
        )
        session.log.append(outcome.message)
        if not target.is_alive():
            session.log.append(f"{target.name} has been defeated!")

        ended = self.check_combat_end(session)
        if ended is not None:
            self.end_combat(session, ended)
        else:
            self.advance_turn(session)
        outcome.state = session.state

        log_debug(
            f"{actor.name} used {action_type.value}",
            {
                "session": session.id,
                "target": target.id,
                "damage": outcome.damage,
                "healing": outcome.healing,
                "critical": outcome.critical,
            },
        )
        return outcome

    def execute_request(self, session: CombatSession, request: ActionRequest) -> ActionOutcome:
        """Executes an action described by a request."""
        return self.execute_action(
            session,
            request.actor_id,
            request.action_type,
            request.target_id,
            request.extra,
        )

    def run_adversary_turn(self, session: CombatSession) -> ActionOutcome:
        """Lets the AI pick and execute the action of the current adversary.

        If the chosen action is rejected, the adversary defends instead.
        """
        actor = session.current_combatant
        if not session.is_active or actor is None:
            return self._reject(session, "Combat is not active")
        if not actor.is_adversary:
            return self._reject(session, f"{actor.name} is not an adversary", actor.id)

        start = self.begin_turn(session)
        if start.skipped:
            return self._reject(
                session, " ".join(start.messages) or f"{actor.name} loses the turn", actor.id
            )

        request = choose_action(actor, session, self.dice)
        outcome = self.execute_request(session, request)
        if not outcome.success and session.is_active and request.action_type != ActionType.DEFEND:
            log_warning(
                f"{actor.name} could not {request.action_type.value}: {outcome.message}",
                {"session": session.id},
            )
            outcome = self.execute_action(session, actor.id, ActionType.DEFEND)
        return outcome


class SessionRegistry:
    """Keeps the active sessions by id.

    Operations on one session are serialized by a per-session lock;
    different sessions proceed independently.
    """

    def __init__(self, engine: Optional[CombatEngine] = None):
        self.engine: CombatEngine = engine or CombatEngine()
        self._sessions: dict[str, CombatSession] = {}
        self._locks: dict[str, threading.RLock] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def session_ids(self) -> list[str]:
        with self._lock:
            return list(self._sessions)

    def _session_lock(self, session_id: str) -> threading.RLock:
        with self._lock:
            if session_id not in self._sessions:
                raise KeyError(f"Unknown combat session '{session_id}'")
            return self._locks[session_id]

    def create(
        self,
        party: Sequence[CombatantRecord],
        adversaries: Sequence[CombatantRecord],
        story_context: str = "",
        session_id: Optional[str] = None,
    ) -> CombatSession:
        """Initializes a session and registers it.

        Raises:
            KeyError: If a session with the same id is already registered.

        """
        session = self.engine.initialize_combat(party, adversaries, story_context, session_id)
        with self._lock:
            if session.id in self._sessions:
                raise KeyError(f"Combat session '{session.id}' already exists")
            self._sessions[session.id] = session
            self._locks[session.id] = threading.RLock()
        return session

    def get(self, session_id: str) -> CombatSession:
        """Returns a registered session.

        Raises:
            KeyError: If the session is unknown.

        """
        with self._lock:
            if session_id not in self._sessions:
                raise KeyError(f"Unknown combat session '{session_id}'")
            return self._sessions[session_id]

    def execute(self, session_id: str, request: ActionRequest) -> ActionOutcome:
        """Executes an action in a registered session."""
        try:
            lock = self._session_lock(session_id)
        except KeyError as e:
            return ActionOutcome(
                success=False,
                message=str(e.args[0]),
                action_type=request.action_type,
                actor_id=request.actor_id,
                state=SessionState.PREPARATION,
            )
        with lock:
            return self.engine.execute_request(self._sessions[session_id], request)

    def begin_turn(self, session_id: str) -> TurnStart:
        with self._session_lock(session_id):
            return self.engine.begin_turn(self._sessions[session_id])

    def run_adversary_turn(self, session_id: str) -> ActionOutcome:
        with self._session_lock(session_id):
            return self.engine.run_adversary_turn(self._sessions[session_id])

    def snapshot(self, session_id: str) -> dict[str, Any]:
        """Returns a JSON-compatible copy of a registered session."""
        with self._session_lock(session_id):
            return self._sessions[session_id].snapshot()

    def remove(self, session_id: str) -> Optional[CombatSession]:
        """Unregisters a session, returning it if it was registered."""
        with self._lock:
            self._locks.pop(session_id, None)
            return self._sessions.pop(session_id, None)
