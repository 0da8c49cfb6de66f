"""
Class archetypes and the capabilities attached to them.

Every combatant carries an `Archetype` tag. The tag resolves to an
`ArchetypeCapabilities` record, which drives proficiency lookups,
damage formulas, adversary behaviour and narrative flavour.
"""

from typing import Optional

from catchery import log_warning
from pydantic import BaseModel, ConfigDict, Field

from ..core.constants import Ability, DamageType, NiceEnum, SkillAction


class AIRole(NiceEnum):
    """Behaviour rule used by the adversary decision module."""

    NONE = "none"
    HEALER = "healer"
    CASTER = "caster"
    HEAVY = "heavy"


class Archetype(NiceEnum):
    """Class archetype tags."""

    # Party classes.
    FIGHTER = "fighter"
    ROGUE = "rogue"
    WIZARD = "wizard"
    CLERIC = "cleric"
    RANGER = "ranger"
    PALADIN = "paladin"
    MONK = "monk"
    BARD = "bard"
    DRUID = "druid"
    SORCERER = "sorcerer"
    WARLOCK = "warlock"
    BARBARIAN = "barbarian"
    # Adversary kinds.
    PRIEST = "priest"
    MAGE = "mage"
    BOSS = "boss"
    DRAGON = "dragon"
    UNDEAD = "undead"
    SKELETON = "skeleton"
    ZOMBIE = "zombie"
    BRUTE = "brute"
    # Anything else.
    GENERIC = "generic"

    @property
    def capabilities(self) -> "ArchetypeCapabilities":
        return ARCHETYPE_CAPABILITIES[self]

    @staticmethod
    def from_tag(tag: Optional[str]) -> "Archetype":
        """
        Resolves a free-form class tag to an archetype.

        Args:
            tag (Optional[str]): The class name from an external record.

        Returns:
            Archetype: The matching archetype, GENERIC when the tag is
                missing or unknown (unknown tags are logged).

        """
        if not tag:
            return Archetype.GENERIC
        key = str(tag).strip().lower()
        key = _ARCHETYPE_ALIASES.get(key, key)
        try:
            return Archetype(key)
        except ValueError:
            log_warning(
                f"Unknown archetype '{tag}', using generic capabilities",
                {"tag": tag},
            )
            return Archetype.GENERIC


_ARCHETYPE_ALIASES: dict[str, str] = {
    "warrior": "fighter",
    "thief": "rogue",
    "sorceror": "sorcerer",
    "necromancer": "mage",
    "shaman": "priest",
    "ogre": "brute",
    "troll": "brute",
    "orc": "brute",
    "lich": "undead",
    "ghoul": "undead",
}


class ArchetypeCapabilities(BaseModel):
    """The capability record attached to an archetype."""

    model_config = ConfigDict(frozen=True)

    proficiencies: frozenset[SkillAction] = Field(default_factory=frozenset)
    primary_ability: Ability = Field(
        default=Ability.STRENGTH,
        description="Ability driving special attacks and adversary attacks",
    )
    casting_ability: Ability = Field(default=Ability.INTELLIGENCE)
    ai_role: AIRole = Field(default=AIRole.NONE)
    finesse: bool = Field(
        default=False,
        description="Adds the dexterity modifier to attack damage",
    )
    can_cast: bool = Field(default=False)
    spell_types: tuple[str, ...] = Field(default=())
    special_attack: Optional[str] = Field(default=None)
    attack_bonus: int = Field(default=0)
    spell_bonus: int = Field(default=0)
    special_bonus: int = Field(default=0)
    verbs: tuple[str, ...] = Field(default=("strikes",))
    flavor: str = Field(default="")

    @property
    def offensive_spells(self) -> tuple[str, ...]:
        return tuple(s for s in self.spell_types if s != "healing")

    @property
    def can_heal(self) -> bool:
        return self.can_cast and "healing" in self.spell_types


def _skills(*actions: SkillAction) -> frozenset[SkillAction]:
    return frozenset(actions)


ARCHETYPE_CAPABILITIES: dict[Archetype, ArchetypeCapabilities] = {
    Archetype.FIGHTER: ArchetypeCapabilities(
        proficiencies=_skills(SkillAction.ATTACK, SkillAction.DODGE, SkillAction.PARRY),
        special_attack="Second Wind Strike",
        attack_bonus=1,
        verbs=("strikes", "slashes", "cleaves"),
        flavor="with disciplined martial prowess",
    ),
    Archetype.ROGUE: ArchetypeCapabilities(
        proficiencies=_skills(
            SkillAction.DODGE,
            SkillAction.PICK_LOCK,
            SkillAction.DISARM_TRAP,
            SkillAction.SPOT,
            SkillAction.LISTEN,
        ),
        primary_ability=Ability.DEXTERITY,
        finesse=True,
        special_attack="Sneak Attack",
        special_bonus=1,
        verbs=("stabs", "slices", "ambushes"),
        flavor="with deadly precision from the shadows",
    ),
    Archetype.WIZARD: ArchetypeCapabilities(
        proficiencies=_skills(SkillAction.SPELL, SkillAction.SEARCH, SkillAction.CRAFT),
        primary_ability=Ability.INTELLIGENCE,
        ai_role=AIRole.CASTER,
        can_cast=True,
        spell_types=("fireball", "lightning", "ice", "arcane"),
        special_attack="Arcane Surge",
        spell_bonus=2,
        verbs=("blasts", "hexes", "unleashes arcane fury upon"),
        flavor="channeling raw arcane power",
    ),
    Archetype.CLERIC: ArchetypeCapabilities(
        proficiencies=_skills(SkillAction.HEAL, SkillAction.PERSUADE, SkillAction.SPOT),
        primary_ability=Ability.WISDOM,
        casting_ability=Ability.WISDOM,
        ai_role=AIRole.HEALER,
        can_cast=True,
        spell_types=("healing", "divine"),
        special_attack="Divine Favor",
        verbs=("smites", "purges", "judges"),
        flavor="invoking divine light",
    ),
    Archetype.RANGER: ArchetypeCapabilities(
        proficiencies=_skills(
            SkillAction.SPOT, SkillAction.LISTEN, SkillAction.CLIMB, SkillAction.SWIM
        ),
        primary_ability=Ability.DEXTERITY,
        casting_ability=Ability.WISDOM,
        finesse=True,
        special_attack="Volley",
        verbs=("shoots", "pierces", "hunts down"),
        flavor="with a hunter's keen eye",
    ),
    Archetype.PALADIN: ArchetypeCapabilities(
        proficiencies=_skills(SkillAction.ATTACK, SkillAction.PARRY, SkillAction.PERSUADE),
        casting_ability=Ability.CHARISMA,
        can_cast=True,
        spell_types=("divine", "healing"),
        special_attack="Divine Smite",
        verbs=("smites", "strikes", "crusades against"),
        flavor="with righteous conviction",
    ),
    Archetype.MONK: ArchetypeCapabilities(
        proficiencies=_skills(
            SkillAction.ATTACK,
            SkillAction.DODGE,
            SkillAction.BACKFLIP,
            SkillAction.SOMERSAULT,
            SkillAction.CARTWHEEL,
        ),
        primary_ability=Ability.DEXTERITY,
        finesse=True,
        special_attack="Flurry of Blows",
        verbs=("strikes", "kicks", "palms"),
        flavor="with flowing, disciplined movement",
    ),
    Archetype.BARD: ArchetypeCapabilities(
        proficiencies=_skills(
            SkillAction.PERSUADE, SkillAction.DECEIVE, SkillAction.INTIMIDATE
        ),
        primary_ability=Ability.CHARISMA,
        casting_ability=Ability.CHARISMA,
        finesse=True,
        can_cast=True,
        spell_types=("arcane",),
        special_attack="Cutting Words",
        verbs=("mocks", "dazzles", "strikes"),
        flavor="with a flourish and a song",
    ),
    Archetype.DRUID: ArchetypeCapabilities(
        proficiencies=_skills(SkillAction.HEAL, SkillAction.SPOT, SkillAction.LISTEN),
        primary_ability=Ability.WISDOM,
        casting_ability=Ability.WISDOM,
        ai_role=AIRole.HEALER,
        can_cast=True,
        spell_types=("healing", "lightning"),
        special_attack="Wild Strike",
        verbs=("entangles", "mauls", "calls nature upon"),
        flavor="with the fury of the wild",
    ),
    Archetype.SORCERER: ArchetypeCapabilities(
        proficiencies=_skills(SkillAction.SPELL, SkillAction.PERSUADE),
        primary_ability=Ability.CHARISMA,
        casting_ability=Ability.CHARISMA,
        ai_role=AIRole.CASTER,
        can_cast=True,
        spell_types=("fireball", "lightning", "arcane"),
        special_attack="Chaos Bolt",
        verbs=("blasts", "scorches", "overwhelms"),
        flavor="with innate, untamed magic",
    ),
    Archetype.WARLOCK: ArchetypeCapabilities(
        proficiencies=_skills(SkillAction.SPELL, SkillAction.INTIMIDATE),
        primary_ability=Ability.CHARISMA,
        casting_ability=Ability.CHARISMA,
        ai_role=AIRole.CASTER,
        can_cast=True,
        spell_types=("arcane", "necrotic"),
        special_attack="Eldritch Blast",
        verbs=("curses", "blasts", "drains"),
        flavor="drawing on a pact with dark powers",
    ),
    Archetype.BARBARIAN: ArchetypeCapabilities(
        proficiencies=_skills(
            SkillAction.ATTACK, SkillAction.INTIMIDATE, SkillAction.JUMP, SkillAction.CLIMB
        ),
        special_attack="Reckless Attack",
        verbs=("smashes", "crushes", "rages against"),
        flavor="in a furious rage",
    ),
    Archetype.PRIEST: ArchetypeCapabilities(
        primary_ability=Ability.WISDOM,
        casting_ability=Ability.WISDOM,
        ai_role=AIRole.HEALER,
        can_cast=True,
        spell_types=("healing", "divine"),
        verbs=("smites", "condemns"),
        flavor="chanting dark prayers",
    ),
    Archetype.MAGE: ArchetypeCapabilities(
        primary_ability=Ability.INTELLIGENCE,
        ai_role=AIRole.CASTER,
        can_cast=True,
        spell_types=("fireball", "lightning", "ice", "arcane"),
        verbs=("blasts", "hexes"),
        flavor="weaving hostile spells",
    ),
    Archetype.BOSS: ArchetypeCapabilities(
        ai_role=AIRole.HEAVY,
        special_attack="Devastating Strike",
        verbs=("crushes", "devastates", "obliterates"),
        flavor="with overwhelming might",
    ),
    Archetype.DRAGON: ArchetypeCapabilities(
        ai_role=AIRole.HEAVY,
        special_attack="Devastating Strike",
        verbs=("claws", "bites", "tramples"),
        flavor="with ancient draconic fury",
    ),
    Archetype.UNDEAD: ArchetypeCapabilities(
        primary_ability=Ability.CONSTITUTION,
        casting_ability=Ability.CONSTITUTION,
        can_cast=True,
        spell_types=("necrotic",),
        verbs=("claws", "drains", "rends"),
        flavor="with unholy hunger",
    ),
    Archetype.SKELETON: ArchetypeCapabilities(
        primary_ability=Ability.CONSTITUTION,
        casting_ability=Ability.CONSTITUTION,
        can_cast=True,
        spell_types=("necrotic",),
        verbs=("rattles at", "slashes"),
        flavor="with clattering bones",
    ),
    Archetype.ZOMBIE: ArchetypeCapabilities(
        primary_ability=Ability.CONSTITUTION,
        casting_ability=Ability.CONSTITUTION,
        can_cast=True,
        spell_types=("necrotic",),
        verbs=("claws", "bites"),
        flavor="with mindless persistence",
    ),
    Archetype.BRUTE: ArchetypeCapabilities(
        verbs=("bashes", "pummels"),
        flavor="with brute force",
    ),
    Archetype.GENERIC: ArchetypeCapabilities(),
}
