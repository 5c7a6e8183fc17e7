"""Vote aggregation for a meal request.

Percentages use one decimal place, rounded half away from zero like Postgres
ROUND(numeric, 1), and are 0 when the denominator is 0.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List

from app.modules.meal_requests.schemas import OptionTally, RankedOption


def percentage(part: int, whole: int) -> float:
    if whole <= 0:
        return 0.0
    value = Decimal(part) * 100 / Decimal(whole)
    return float(value.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def _counts(votes: Iterable[dict]) -> Dict[str, Dict[str, int]]:
    counts: Dict[str, Dict[str, int]] = {}
    for vote in votes:
        bucket = counts.setdefault(vote["meal_option_id"], {"yes": 0, "no": 0})
        if vote.get("vote") in bucket:
            bucket[vote["vote"]] += 1
    return counts


def compute_tally(options: Iterable[dict], votes: Iterable[dict]) -> List[OptionTally]:
    """Per-option counts; percentages are of votes cast on that option."""
    counts = _counts(votes)
    tallies = []
    for option in sorted(options, key=lambda o: o["option_order"]):
        c = counts.get(option["id"], {"yes": 0, "no": 0})
        total = c["yes"] + c["no"]
        tallies.append(OptionTally(
            meal_option_id=option["id"],
            option_order=option["option_order"],
            meal_data=option.get("meal_data") or {},
            yes_votes=c["yes"],
            no_votes=c["no"],
            total_votes=total,
            yes_percentage=percentage(c["yes"], total),
            no_percentage=percentage(c["no"], total),
        ))
    return tallies


def rank_options(options: Iterable[dict], votes: Iterable[dict], total_members: int, k: int = 3) -> List[RankedOption]:
    """Top k options by yes votes, then total votes; percentages are of active membership."""
    ranked = []
    for t in compute_tally(options, votes):
        ranked.append(RankedOption(
            meal_option_id=t.meal_option_id,
            option_order=t.option_order,
            meal_data=t.meal_data,
            yes_votes=t.yes_votes,
            no_votes=t.no_votes,
            total_votes=t.total_votes,
            yes_percentage=percentage(t.yes_votes, total_members),
            no_percentage=percentage(t.no_votes, total_members),
            not_voted_percentage=percentage(max(total_members - t.total_votes, 0), total_members),
        ))
    # sorted() is stable, so equal options keep option_order
    ranked = sorted(ranked, key=lambda r: (-r.yes_votes, -r.total_votes))
    return ranked[:k]
