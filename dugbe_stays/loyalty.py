from decimal import Decimal

from .pricing import KOBO_PER_NAIRA

POINTS_PER_REWARD = 100
KOBO_PER_POINT_EARNED = 1000 * KOBO_PER_NAIRA
REWARD_VALUE_PER_POINT_KOBO = 10_000 * KOBO_PER_NAIRA

# Highest threshold first; a tier supersedes every tier below it.
TIERS = (
    (1000, "Gold", Decimal("0.15")),
    (500, "Silver", Decimal("0.10")),
    (100, "Bronze", Decimal("0.05")),
)


def _check_points(points):
    if points < 0:
        raise ValueError("loyalty points cannot be negative")


def tier(points):
    """Return the tier name for ``points``, or None below the first threshold."""
    _check_points(points)
    for threshold, name, _ in TIERS:
        if points >= threshold:
            return name
    return None


def discount_rate(points):
    _check_points(points)
    for threshold, _, rate in TIERS:
        if points >= threshold:
            return rate
    return Decimal("0")


def points_to_next_reward(points):
    # An exact multiple of 100 has just reached a reward, so nothing is missing.
    _check_points(points)
    return (POINTS_PER_REWARD - points % POINTS_PER_REWARD) % POINTS_PER_REWARD


def free_nights(points):
    _check_points(points)
    return points // POINTS_PER_REWARD


def reward_value_kobo(points):
    _check_points(points)
    return points * REWARD_VALUE_PER_POINT_KOBO


def loyalty_points_for(amount_kobo):
    """Points earned for a completed stay: one per full NGN 1,000 spent."""
    return max(amount_kobo, 0) // KOBO_PER_POINT_EARNED


def summary(points):
    return {
        "points": points,
        "tier": tier(points),
        "discount_rate": discount_rate(points),
        "points_to_next_reward": points_to_next_reward(points),
        "free_nights": free_nights(points),
        "reward_value_kobo": reward_value_kobo(points),
    }
