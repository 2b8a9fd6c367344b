from typing import Optional

from syndicate.models.dc_models import OperationRequirements

# (minimum respect + influence, title), highest band first
TITLE_BANDS = [
    (150, "Godfather"),
    (100, "Boss"),
    (80, "Consigliere"),
    (60, "Underboss"),
    (40, "Capo"),
    (20, "Soldier"),
    (0, "Associate"),
]

TITLE_RANKS = {
    "Associate": 1,
    "Soldier": 2,
    "Capo": 3,
    "Underboss": 4,
    "Consigliere": 5,
    "Boss": 6,
    "Godfather": 7,
}

DEFAULT_TITLE = "Associate"


def title_for(respect: int, influence: int) -> str:
    """Rank title for a player's combined respect and influence.

    Args:
        respect (int): current respect
        influence (int): current influence

    Returns:
        str: title of the band the score falls into
    """
    score = respect + influence
    for minimum, title in TITLE_BANDS:
        if score >= minimum:
            return title
    return DEFAULT_TITLE


def title_rank(title: str) -> int:
    return TITLE_RANKS.get(title, 0)


def meets_minimum_title(current: str, required: str) -> bool:
    if not required:
        return True
    return title_rank(current) >= title_rank(required)


def requirement_failure(
    influence: int, heat: int, title: str, requirements: OperationRequirements
) -> Optional[str]:
    """Explain why a player does not meet an operation's requirements.

    Returns:
        Optional[str]: None when every requirement is met
    """
    if requirements.min_influence > 0 and influence < requirements.min_influence:
        return f"requires at least {requirements.min_influence} influence"
    if requirements.max_heat > 0 and heat > requirements.max_heat:
        return f"requires heat of {requirements.max_heat} or less"
    if not meets_minimum_title(title, requirements.min_title):
        return f"requires the title of {requirements.min_title} or higher"
    return None


def title_change_message(title: str) -> str:
    return f"Congratulations! Your criminal influence has earned you the title of {title}."
