"""
Bracket size and round formulas for double elimination.

For N participants (N a power of 2):
- Winners bracket has log2(N) rounds, halving the match count each round
- Losers bracket has 2 * (log2(N) - 1) rounds, alternating consolidation
  (odd) and merge (even) rounds
- Losers from winners round W drop into losers round 1 if W == 1,
  otherwise into losers round (W - 1) * 2
"""
import math


def is_power_of_two(n: int) -> bool:
    return n > 0 and (n & (n - 1)) == 0


def bracket_size(num_participants: int) -> int:
    """Calculate the bracket size (next power of 2)."""
    if num_participants <= 0:
        raise ValueError(f"Participant count must be at least 1, got {num_participants}")
    return 2 ** math.ceil(math.log2(num_participants))


def _check_bracket_size(size: int):
    if size < 2 or not is_power_of_two(size):
        raise ValueError(f"Bracket size {size} is not a power of 2")


def winners_rounds(size: int) -> int:
    _check_bracket_size(size)
    return int(math.log2(size))


def losers_rounds(size: int) -> int:
    """
    Calculate number of rounds in losers bracket.
    Every winners round after the first feeds one merge round, and each merge
    round after the first is preceded by a consolidation round.
    """
    return 2 * (winners_rounds(size) - 1)


def winners_matches_in_round(size: int, round_num: int) -> int:
    if not 1 <= round_num <= winners_rounds(size):
        raise ValueError(f"Winners round {round_num} does not exist for bracket size {size}")
    return size // 2 ** round_num


def drop_round(wb_round: int) -> int:
    """Losers bracket round that a loser of winners round wb_round enters."""
    if wb_round < 1:
        raise ValueError(f"Winners round must be at least 1, got {wb_round}")
    if wb_round == 1:
        return 1
    return (wb_round - 1) * 2


def losers_matches_in_round(size: int, round_num: int) -> int:
    """
    Number of matches in a losers bracket round.

    For 8 participants:
    - L Round 1 (consolidation): 4 W1 losers pair off -> 2 matches
    - L Round 2 (merge): 2 L1 winners meet 2 W2 losers -> 2 matches
    - L Round 3 (consolidation): 2 L2 winners pair off -> 1 match
    - L Round 4 (merge): L3 winner meets the W3 loser -> 1 match
    """
    if not 1 <= round_num <= losers_rounds(size):
        raise ValueError(f"Losers round {round_num} does not exist for bracket size {size}")
    if round_num == 1:
        return size // 4
    if round_num % 2 == 0:
        return size // 2 ** (round_num // 2 + 1)
    return size // 2 ** ((round_num + 1) // 2 + 1)


def is_merge_round(round_num: int) -> bool:
    return round_num % 2 == 0


def winners_round_name(round_num: int, size: int) -> str:
    """Get the name for a winners bracket round (1-indexed)."""
    participants_in_round = size // 2 ** (round_num - 1)
    if participants_in_round == 2:
        return "Winners Final"
    elif participants_in_round == 4:
        return "Winners Semifinal"
    elif participants_in_round == 8:
        return "Winners Quarterfinal"
    else:
        return f"Winners Round of {participants_in_round}"


def losers_round_name(round_num: int, total_losers_rounds: int) -> str:
    """Get the name for a losers bracket round (1-indexed)."""
    rounds_from_end = total_losers_rounds - round_num
    if rounds_from_end == 0:
        return "Losers Final"
    elif rounds_from_end == 1:
        return "Losers Semifinal"
    else:
        return f"Losers Round {round_num}"
