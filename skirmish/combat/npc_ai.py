"""
Decision rules for adversaries.

An adversary picks its action from its archetype role and the state of
the session. Survival comes first once it is badly wounded.
"""

from typing import Any, Optional

from ..character.archetype import AIRole
from ..character.combatant import Combatant
from ..core.constants import ActionType
from ..core.dice_parser import DiceRoller, get_default_roller
from .calculations import DEFAULT_SPELL_TYPE
from .combat_session import ActionRequest, CombatSession

# Below this HP ratio a healer tends to itself.
HEALER_HP_THRESHOLD = 0.4
# Below this HP ratio any adversary tries to survive.
LOW_HP_THRESHOLD = 0.3
# Adversaries below this HP ratio count as wounded for area spells.
WOUNDED_HP_THRESHOLD = 0.5

# =============================================================================
# Support Functions
# =============================================================================


def get_available_actions(adversary: Combatant, session: CombatSession) -> list[ActionType]:
    """
    Lists the actions an adversary could execute right now.

    Args:
        adversary (Combatant): The acting adversary.
        session (CombatSession): The session it fights in.

    Returns:
        list[ActionType]: The actions off cooldown that the adversary is able to use.

    """
    capabilities = adversary.capabilities
    candidates: list[tuple[ActionType, bool]] = [
        (ActionType.ATTACK, True),
        (ActionType.SPELL, capabilities.can_cast),
        (ActionType.SPECIAL, capabilities.special_attack is not None),
        (ActionType.ITEM, adversary.has_healing_item()),
        (ActionType.ENVIRONMENTAL, bool(session.environmental_features)),
        (ActionType.DEFEND, True),
    ]
    return [
        action_type
        for action_type, usable in candidates
        if usable and not adversary.is_on_cooldown(action_type)
    ]


def _request(
    adversary: Combatant,
    action_type: ActionType,
    target: Optional[Combatant] = None,
    **extra: Any,
) -> ActionRequest:
    return ActionRequest(
        action_type=action_type,
        actor_id=adversary.id,
        target_id=target.id if target is not None else None,
        extra=extra,
    )


def _heal_self(adversary: Combatant, available: list[ActionType]) -> Optional[ActionRequest]:
    """Heals the adversary with a spell if it knows one, else with an item."""
    if ActionType.SPELL in available and adversary.capabilities.can_heal:
        return _request(adversary, ActionType.SPELL, adversary, spell_type="healing")
    if ActionType.ITEM in available:
        return _request(adversary, ActionType.ITEM, adversary, item=adversary.find_healing_item())
    return None


def _offensive_spell(
    adversary: Combatant,
    targets: list[Combatant],
    dice: DiceRoller,
    **extra: Any,
) -> ActionRequest:
    spells = adversary.capabilities.offensive_spells or (DEFAULT_SPELL_TYPE,)
    spell_type = dice.choice(spells)
    return _request(adversary, ActionType.SPELL, dice.choice(targets), spell_type=spell_type, **extra)


# =============================================================================
# Decision Rules
# =============================================================================


def _archetype_rule(
    adversary: Combatant,
    targets: list[Combatant],
    available: list[ActionType],
    dice: DiceRoller,
) -> Optional[ActionRequest]:
    role = adversary.capabilities.ai_role
    if role == AIRole.HEALER:
        if adversary.hp_ratio < HEALER_HP_THRESHOLD:
            healing = _heal_self(adversary, available)
            if healing is not None:
                return healing
        elif ActionType.SPELL in available and adversary.capabilities.offensive_spells:
            return _offensive_spell(adversary, targets, dice)
    if role == AIRole.CASTER and ActionType.SPELL in available:
        return _offensive_spell(adversary, targets, dice)
    if role == AIRole.HEAVY and ActionType.SPECIAL in available:
        return _request(adversary, ActionType.SPECIAL, dice.choice(targets))
    return None


def _survival_rule(adversary: Combatant, available: list[ActionType]) -> Optional[ActionRequest]:
    if adversary.hp_ratio >= LOW_HP_THRESHOLD:
        return None
    if ActionType.ITEM in available:
        return _request(adversary, ActionType.ITEM, adversary, item=adversary.find_healing_item())
    return _request(adversary, ActionType.DEFEND)


def _area_spell_rule(
    adversary: Combatant,
    session: CombatSession,
    targets: list[Combatant],
    available: list[ActionType],
    dice: DiceRoller,
) -> Optional[ActionRequest]:
    if ActionType.SPELL not in available:
        return None
    wounded = [
        ally for ally in session.living(adversary.side) if ally.hp_ratio < WOUNDED_HP_THRESHOLD
    ]
    if len(wounded) <= 1:
        return None
    return _offensive_spell(adversary, targets, dice, area=True)


def _default_rule(
    adversary: Combatant,
    targets: list[Combatant],
    available: list[ActionType],
    dice: DiceRoller,
) -> ActionRequest:
    if ActionType.ATTACK in available:
        return _request(adversary, ActionType.ATTACK, dice.choice(targets))
    others = [a for a in available if a not in (ActionType.ATTACK, ActionType.DEFEND)]
    if not others:
        return _request(adversary, ActionType.DEFEND)
    action_type = dice.choice(others)
    if action_type == ActionType.ITEM:
        return _request(adversary, action_type, adversary, item=adversary.find_healing_item())
    if action_type == ActionType.SPELL:
        return _offensive_spell(adversary, targets, dice)
    return _request(adversary, action_type, dice.choice(targets))


# =============================================================================
# Public API
# =============================================================================


def choose_action(
    adversary: Combatant,
    session: CombatSession,
    dice: Optional[DiceRoller] = None,
) -> ActionRequest:
    """
    Chooses the action of an adversary.

    The rules are tried in order, the first one producing a request wins:
    archetype behaviour (healers, casters and heavy hitters), survival
    below 30% HP, area spells when several adversaries are wounded, and
    finally a plain attack against a random living party member.

    Args:
        adversary (Combatant): The acting adversary.
        session (CombatSession): The session it fights in.
        dice (Optional[DiceRoller]): The roller used for random picks.

    Returns:
        ActionRequest: The chosen action; never empty, defend is the last resort.

    """
    dice = dice or get_default_roller()
    targets = session.living(adversary.side.opposite)
    if not targets:
        return _request(adversary, ActionType.DEFEND)
    available = get_available_actions(adversary, session)

    return (
        _archetype_rule(adversary, targets, available, dice)
        or _survival_rule(adversary, available)
        or _area_spell_rule(adversary, session, targets, available, dice)
        or _default_rule(adversary, targets, available, dice)
    )
