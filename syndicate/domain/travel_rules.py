from syndicate.config import TravelConfig


def catch_chance(heat: int, travel: TravelConfig) -> float:
    """Percent chance of being stopped by police on the way."""
    return min(travel.base_catch_chance + heat * travel.heat_multiplier, travel.max_catch_chance)


def travel_fine(money: int, travel: TravelConfig) -> int:
    fine = max(int(money * travel.base_fine_factor), travel.minimum_fine)
    fine = min(fine, int(money * travel.max_fine_percent))
    return min(fine, money)


def heat_reduction(heat: int, travel: TravelConfig) -> int:
    return min(travel.success_heat_reduction, heat)
