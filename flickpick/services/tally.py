from __future__ import annotations

from typing import Dict, List, Sequence

from flickpick.schemas import Movie, VotingResults


def tally(movies: Sequence[Movie], ballots: Sequence[Dict[str, bool]]) -> VotingResults:
    """
    Sort every movie into exactly one bucket, keeping candidate-list order.

    `ballots` are the users' vote maps in join order. A missing vote counts as
    "no". With a single ballot, yes -> both_yes and no -> user1_no.
    """
    out = VotingResults()
    if not ballots:
        return out

    first = ballots[0]
    second = ballots[1] if len(ballots) > 1 else None
    for m in movies:
        yes1 = first.get(m.id, False)
        yes2 = yes1 if second is None else second.get(m.id, False)
        bucket: List[Movie]
        if yes1 and yes2:
            bucket = out.both_yes
        elif not yes1 and not yes2:
            bucket = out.user1_no if second is None else out.both_no
        elif not yes1:
            bucket = out.user1_no
        else:
            bucket = out.user2_no
        bucket.append(m)
    return out
