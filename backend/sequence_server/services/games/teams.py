from itertools import zip_longest
from typing import List, Sequence, TypeVar

# Turn priority within each round of the interleave
RGB_ORDER = ('red', 'green', 'blue')

T = TypeVar('T')


def _team_of(player) -> str:
    if isinstance(player, dict):
        return player.get('team')
    return getattr(player, 'team', None)


def arrange_rgb(players: Sequence[T]) -> List[T]:
    """Interleave players red, green, blue round-robin for fair turn order.

    Join order is kept inside each team; players without a team go last in
    their original order. Works on Player records or plain dicts.
    """
    if not any(_team_of(p) for p in players):
        return list(players)

    buckets = {team: [] for team in RGB_ORDER}
    unassigned = []
    for player in players:
        team = _team_of(player)
        if team in buckets:
            buckets[team].append(player)
        else:
            unassigned.append(player)

    ordered = []
    for round_ in zip_longest(*(buckets[team] for team in RGB_ORDER)):
        ordered.extend(p for p in round_ if p is not None)
    return ordered + unassigned
