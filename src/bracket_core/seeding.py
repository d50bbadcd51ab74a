"""
Round one seeding and bye padding.
"""
from typing import List, Tuple

from .formulas import bracket_size, is_power_of_two
from .models import Participant


def seed_pairing(size: int) -> List[Tuple[int, int]]:
    """
    First round pairs for a bracket of the given size.
    Seed 1 plays seed N, seed 2 plays seed N-1, and so on, in that order.
    """
    if size < 2 or not is_power_of_two(size):
        raise ValueError(f"Bracket size {size} is not a power of 2")
    return [(seed, size + 1 - seed) for seed in range(1, size // 2 + 1)]


def pad_with_byes(participants: List[Participant]) -> List[Participant]:
    """Append BYE entrants, seeded after everyone else, up to the bracket size."""
    padded = list(participants)
    target = bracket_size(len(participants))
    for k in range(1, target - len(participants) + 1):
        padded.append(Participant(
            id=f"bye-{k}",
            name=f"BYE {k}",
            seed=len(participants) + k,
            is_bye=True
        ))
    return padded
