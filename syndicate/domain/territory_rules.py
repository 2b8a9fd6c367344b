from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Tuple
from uuid import UUID

from syndicate.domain.dice import RandomSource, chance, d
from syndicate.models.dc_models import ActionResources, ActionResultModel

CREW_DEFENSE = 10
WEAPONS_DEFENSE = 15
VEHICLES_DEFENSE = 20

MIN_SUCCESS_CHANCE = 5
MAX_SUCCESS_CHANCE = 95

EXTORTION_BASE_CHANCE = 70
CONTESTED_TAKEOVER_BASE_CHANCE = 50
OPEN_TAKEOVER_BASE_CHANCE = 75
COLLECTION_MAX_BASE_CHANCE = 95
COLLECTION_MIN_BASE_CHANCE = 60

INCOME_PERIOD = timedelta(hours=1)
COLLECTION_READY_THRESHOLD = 1000


@dataclass
class ActionOutcome:
    """Result of one rolled territory action.

    ``deltas`` are the resource changes for the acting player on top of the
    committed debit; ``hotspot_changes`` are the new hotspot column values.
    """

    result: ActionResultModel
    deltas: Dict[str, int] = field(default_factory=dict)
    hotspot_changes: Dict[str, Any] = field(default_factory=dict)


def defense_strength(crew: int, weapons: int, vehicles: int) -> int:
    return CREW_DEFENSE * crew + WEAPONS_DEFENSE * weapons + VEHICLES_DEFENSE * vehicles


def strength_adjustment(player_strength: int, opponent_strength: int) -> int:
    """Chance adjustment for the committed strength.

    Args:
        player_strength (int): strength of the committed resources
        opponent_strength (int): defense of the target, 0 when unopposed

    Returns:
        int: percentage points added to the base chance
    """
    if opponent_strength > 0:
        ratio = player_strength / opponent_strength
        if ratio >= 2.0:
            return 20
        if ratio >= 1.5:
            return 15
        if ratio >= 1.0:
            return 10
        if ratio >= 0.75:
            return 5
        if ratio >= 0.5:
            return -5
        if ratio >= 0.25:
            return -10
        return -20

    if player_strength >= 100:
        return 20
    if player_strength >= 75:
        return 15
    if player_strength >= 50:
        return 10
    if player_strength >= 25:
        return 5
    return 0


def success_chance(
    committed: ActionResources, base_chance: int, opponent_strength: int
) -> int:
    player_strength = defense_strength(committed.crew, committed.weapons, committed.vehicles)
    adjusted = base_chance + strength_adjustment(player_strength, opponent_strength)
    return max(MIN_SUCCESS_CHANCE, min(MAX_SUCCESS_CHANCE, adjusted))


def collection_base_chance(pending_collection: int) -> int:
    # larger sums draw more attention
    return max(
        COLLECTION_MIN_BASE_CHANCE,
        COLLECTION_MAX_BASE_CHANCE - pending_collection // 1000,
    )


def takeover_odds(controller_id: Optional[UUID], defense: int) -> Tuple[int, int]:
    """Base chance and opponent strength for a takeover."""
    if controller_id is not None:
        return CONTESTED_TAKEOVER_BASE_CHANCE, defense
    return OPEN_TAKEOVER_BASE_CHANCE, 0


def _loss(rng: RandomSource, committed: int) -> int:
    # nothing committed, nothing to lose
    if committed <= 0:
        return 0
    return min(d(rng, committed) + 1, committed)


def resolve_extortion(
    committed: ActionResources, hotspot_name: str, rng: RandomSource
) -> ActionOutcome:
    """Roll an extortion against an illegal business.

    Args:
        committed (ActionResources): resources sent on the job
        hotspot_name (str): target name used in the message
        rng (RandomSource): injected randomness

    Returns:
        ActionOutcome: result and the player's resource deltas
    """
    result = ActionResultModel()
    probability = success_chance(committed, EXTORTION_BASE_CHANCE, 0)

    if chance(rng, probability):
        result.success = True
        weight = committed.crew + 2 * committed.weapons + 3 * committed.vehicles
        # base * (1 + weight / 20), kept in integers
        result.money_gained = (500 + d(rng, 11) * 100) * (20 + weight) // 20
        if chance(rng, 20):
            if chance(rng, 30):
                result.crew_gained = d(rng, 2) + 1
            if chance(rng, 20):
                result.weapons_gained = d(rng, 2) + 1
            if chance(rng, 5):
                result.vehicles_gained = 1
        result.heat_generated = 5 + d(rng, 6)
        result.respect_gained = 1 + d(rng, 3)
        result.message = (
            f"Extortion successful. You collected ${result.money_gained} from {hotspot_name}."
        )
    else:
        if chance(rng, 30):
            result.crew_lost = _loss(rng, committed.crew)
        if chance(rng, 20) and committed.weapons > 0:
            result.weapons_lost = _loss(rng, committed.weapons)
        if chance(rng, 10) and committed.vehicles > 0:
            result.vehicles_lost = 1
        result.heat_generated = 8 + d(rng, 8)
        result.message = f"Extortion failed. The owners of {hotspot_name} called the police."

    deltas = {
        "money": result.money_gained,
        "crew": result.crew_gained - result.crew_lost,
        "weapons": result.weapons_gained - result.weapons_lost,
        "vehicles": result.vehicles_gained - result.vehicles_lost,
        "respect": result.respect_gained,
        "heat": result.heat_generated,
    }
    return ActionOutcome(result=result, deltas=deltas)


def resolve_takeover(
    committed: ActionResources,
    hotspot_name: str,
    controller_id: Optional[UUID],
    defense: int,
    player_id: UUID,
    rng: RandomSource,
) -> ActionOutcome:
    result = ActionResultModel()
    base_chance, opponent = takeover_odds(controller_id, defense)
    probability = success_chance(committed, base_chance, opponent)

    if chance(rng, probability):
        result.success = True
        result.respect_gained = 3 + d(rng, 3)
        result.influence_gained = 2 + d(rng, 3)
        result.heat_generated = 3 + d(rng, 5)
        result.message = f"Takeover successful! You now control {hotspot_name}."
        # allocations are replaced, not added
        changes = {
            "controller_id": player_id,
            "crew": committed.crew,
            "weapons": committed.weapons,
            "vehicles": committed.vehicles,
        }
        deltas = {
            "respect": result.respect_gained,
            "influence": result.influence_gained,
            "heat": result.heat_generated,
        }
        return ActionOutcome(result=result, deltas=deltas, hotspot_changes=changes)

    if chance(rng, 40):
        result.crew_lost = _loss(rng, committed.crew)
    if chance(rng, 30):
        result.weapons_lost = _loss(rng, committed.weapons)
    if chance(rng, 20) and committed.vehicles > 0:
        result.vehicles_lost = 1
    result.heat_generated = 5 + d(rng, 6)
    result.respect_lost = 1 + d(rng, 2)
    if controller_id is not None:
        result.message = (
            f"Takeover failed. The defenders of {hotspot_name} fought back successfully."
        )
    else:
        result.message = (
            f"Takeover failed. The police intervened before you could secure {hotspot_name}."
        )
    deltas = {
        "crew": -result.crew_lost,
        "weapons": -result.weapons_lost,
        "vehicles": -result.vehicles_lost,
        "heat": result.heat_generated,
        "respect": -result.respect_lost,
    }
    return ActionOutcome(result=result, deltas=deltas)


def resolve_collection(
    committed: ActionResources,
    hotspot_name: str,
    pending_collection: int,
    now: datetime,
    rng: RandomSource,
) -> ActionOutcome:
    result = ActionResultModel()
    probability = success_chance(committed, collection_base_chance(pending_collection), 0)

    if chance(rng, probability):
        result.success = True
        result.money_gained = pending_collection
        result.heat_generated = 1 + d(rng, 3)
        result.message = f"Collection successful. ${result.money_gained} added to your account."
        changes = {"pending_collection": 0, "last_collection_time": now}
        deltas = {"money": result.money_gained, "heat": result.heat_generated}
        return ActionOutcome(result=result, deltas=deltas, hotspot_changes=changes)

    percent_lost = 30 + d(rng, 41)
    result.money_lost = pending_collection * percent_lost // 100
    if chance(rng, 30):
        result.crew_lost = _loss(rng, committed.crew)
    result.heat_generated = 5 + d(rng, 6)
    result.message = f"Collection interrupted by police. ${result.money_lost} was lost."
    # the loss comes out of the hotspot's pending sum, not the player's money
    changes = {"pending_collection": pending_collection - result.money_lost}
    deltas = {"crew": -result.crew_lost, "heat": result.heat_generated}
    return ActionOutcome(result=result, deltas=deltas, hotspot_changes=changes)


def resolve_defense(
    committed: ActionResources, hotspot_name: str, crew: int, weapons: int, vehicles: int
) -> ActionOutcome:
    new_crew = crew + committed.crew
    new_weapons = weapons + committed.weapons
    new_vehicles = vehicles + committed.vehicles
    strength = defense_strength(new_crew, new_weapons, new_vehicles)
    result = ActionResultModel(
        success=True,
        message=f"Defense reinforced for {hotspot_name}. Current defense strength: {strength}",
    )
    changes = {"crew": new_crew, "weapons": new_weapons, "vehicles": new_vehicles}
    return ActionOutcome(result=result, hotspot_changes=changes)


def accrue_income(
    income: int, last_income_time: datetime, now: datetime
) -> Tuple[int, datetime]:
    """Whole-hour income owed since the last accrual.

    The sub-hour remainder is carried forward by advancing the last income
    time by exactly the number of hours paid.

    Args:
        income (int): income per hour
        last_income_time (datetime): when income was last accrued
        now (datetime): current wall-clock time

    Returns:
        Tuple[int, datetime]: accrual and the new last income time
    """
    elapsed = now - last_income_time
    if elapsed < INCOME_PERIOD:
        return 0, last_income_time
    hours = elapsed // INCOME_PERIOD
    return income * hours, last_income_time + hours * INCOME_PERIOD
