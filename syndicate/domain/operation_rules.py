from typing import Dict, Tuple

from syndicate.config import OperationTemplate, PlaceholderRanges
from syndicate.domain.dice import RandomSource, between, chance, d
from syndicate.models.dc_models import (
    OperationRequirements,
    OperationResources,
    OperationResultModel,
    OperationRewards,
    OperationRisks,
    OperationType,
)

MIN_SUCCESS_CHANCE = 5
MAX_SUCCESS_CHANCE = 95
MAX_COMMITMENT = 200

SUCCESS_MESSAGES = {
    OperationType.carjacking: "You successfully stole the vehicles and made a clean getaway.",
    OperationType.goods_smuggling: "The contraband was delivered safely to its destination.",
    OperationType.drug_trafficking: "The product was successfully moved and sold for a substantial profit.",
    OperationType.official_bribing: "The officials have accepted your bribe and will turn a blind eye.",
    OperationType.intelligence_gathering: "Valuable intelligence gathered on rival operations.",
    OperationType.crew_recruitment: "New members have joined your crew.",
}

FAILURE_MESSAGES = {
    OperationType.carjacking: "The police spotted your crew during the theft and intervened.",
    OperationType.goods_smuggling: "The contraband was intercepted at a checkpoint.",
    OperationType.drug_trafficking: "An undercover agent was among the buyers. Your crew barely escaped.",
    OperationType.official_bribing: "The official reported your bribe attempt to the authorities.",
    OperationType.intelligence_gathering: "Your informant provided misleading information.",
    OperationType.crew_recruitment: "The potential recruits were scared off by police presence.",
}


def commitment_percent(committed: int, required: int) -> float:
    if required == 0:
        return 100.0
    return min(MAX_COMMITMENT, committed / required * 100)


def operation_success_chance(
    committed: OperationResources, required: OperationResources, base_rate: int
) -> int:
    """Success chance of an operation given how well it was staffed.

    Over-committing raises the chance by a point per 10% above full staffing;
    under-committing lowers it by a point per 5% below.

    Args:
        committed (OperationResources): resources the player committed at start
        required (OperationResources): the operation's resource cost
        base_rate (int): the operation's base success rate

    Returns:
        int: chance in percent, clamped to [5, 95]
    """
    average = (
        commitment_percent(committed.crew, required.crew)
        + commitment_percent(committed.weapons, required.weapons)
        + commitment_percent(committed.vehicles, required.vehicles)
    ) / 3

    if average > 100:
        adjusted = base_rate + int((average - 100) // 10)
    else:
        adjusted = base_rate - int((100 - average) // 5)
    return max(MIN_SUCCESS_CHANCE, min(MAX_SUCCESS_CHANCE, adjusted))


def resolve_operation(
    operation_type: str,
    committed: OperationResources,
    required: OperationResources,
    base_rate: int,
    rewards: OperationRewards,
    risks: OperationRisks,
    rng: RandomSource,
) -> Tuple[OperationResultModel, Dict[str, int]]:
    """Roll the outcome of a finished operation.

    Returns:
        Tuple[OperationResultModel, Dict[str, int]]: result and resource deltas
    """
    result = OperationResultModel()
    probability = operation_success_chance(committed, required, base_rate)

    if chance(rng, probability):
        result.success = True
        result.money_gained = rewards.money
        result.crew_gained = rewards.crew
        result.weapons_gained = rewards.weapons
        result.vehicles_gained = rewards.vehicles
        result.respect_gained = rewards.respect
        result.influence_gained = rewards.influence
        result.heat_reduced = rewards.heat_reduction
        result.message = f"Operation successful! {success_message(operation_type)}"
        deltas = {
            "money": rewards.money,
            "crew": rewards.crew,
            "weapons": rewards.weapons,
            "vehicles": rewards.vehicles,
            "respect": rewards.respect,
            "influence": rewards.influence,
            "heat": -rewards.heat_reduction,
        }
        return result, deltas

    if risks.crew_loss > 0:
        result.crew_lost = d(rng, risks.crew_loss) + 1
    if risks.weapons_loss > 0:
        result.weapons_lost = d(rng, risks.weapons_loss) + 1
    if risks.vehicles_loss > 0:
        result.vehicles_lost = d(rng, risks.vehicles_loss) + 1
    result.money_lost = risks.money_loss
    result.heat_generated = risks.heat_increase
    result.message = f"Operation failed! {failure_message(operation_type)}"
    deltas = {
        "money": -result.money_lost,
        "crew": -result.crew_lost,
        "weapons": -result.weapons_lost,
        "vehicles": -result.vehicles_lost,
        "heat": result.heat_generated,
    }
    return result, deltas


def cancel_refund(committed: OperationResources) -> OperationResources:
    return OperationResources(
        crew=committed.crew // 2,
        weapons=committed.weapons // 2,
        vehicles=committed.vehicles // 2,
        money=committed.money // 2,
    )


def success_message(operation_type: str) -> str:
    try:
        return SUCCESS_MESSAGES[OperationType(operation_type)]
    except ValueError:
        return "The operation was completed successfully."


def failure_message(operation_type: str) -> str:
    try:
        return FAILURE_MESSAGES[OperationType(operation_type)]
    except ValueError:
        return "The operation failed due to unforeseen complications."


def format_duration(seconds: int) -> str:
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    if hours > 0:
        return f"{hours} hours {minutes} minutes"
    return f"{minutes} minutes"


def placeholder_template(
    ranges: PlaceholderRanges, is_special: bool, serial: int, rng: RandomSource
) -> OperationTemplate:
    """Synthesize an operation when the configured pool has nothing left to offer."""
    types = list(OperationType)
    operation_type = types[d(rng, len(types))]
    label = operation_type.value.replace("_", " ").title()
    kind = "Special" if is_special else "Street"
    return OperationTemplate(
        name=f"{kind} {label} #{serial}",
        description=f"An improvised {label.lower()} job.",
        type=operation_type,
        is_special=is_special,
        requirements=OperationRequirements(),
        resources=OperationResources(
            crew=between(rng, *ranges.crew),
            weapons=between(rng, *ranges.weapons),
            vehicles=between(rng, *ranges.vehicles),
            money=between(rng, *ranges.money),
        ),
        rewards=OperationRewards(
            money=between(rng, *ranges.reward_money),
            respect=between(rng, *ranges.reward_respect),
            influence=between(rng, *ranges.reward_influence),
        ),
        risks=OperationRisks(
            crew_loss=between(rng, *ranges.risk_crew_loss),
            money_loss=between(rng, *ranges.risk_money_loss),
            heat_increase=between(rng, *ranges.risk_heat_increase),
        ),
        duration=between(rng, *ranges.duration),
        success_rate=between(rng, *ranges.success_rate),
    )
