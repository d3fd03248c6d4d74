from __future__ import annotations

import logging
import math
import sys
from dataclasses import dataclass
from typing import Collection, Iterable, List, Optional, Protocol, Sequence, TextIO, Union

from .feedback import PosOnlyFeedback
from .mapping import IdentityMapping


logger = logging.getLogger(__name__)

# Scores at or below this value mean "do not recommend".
MIN_SCORE = -sys.float_info.max


class Recommender(Protocol):
    def predict(self, user_id: int, item_id: int) -> Optional[float]: ...


class Mapping(Protocol):
    @property
    def internal_ids(self) -> List[int]: ...

    def to_original_id(self, internal_id: int) -> str: ...


@dataclass
class WeightedItem:
    item_id: int
    weight: Optional[float]  # None: explicitly not recommendable

    @property
    def recommendable(self) -> bool:
        # NaN and -inf fail this comparison as well
        return self.weight is not None and self.weight > MIN_SCORE


def _sort_key(wi: WeightedItem) -> float:
    # NaN ranks below every real score
    if wi.weight is None or math.isnan(wi.weight):
        return -math.inf
    return wi.weight


def score_items(recommender: Recommender, user_id: int, candidates: Iterable[int]) -> List[WeightedItem]:
    """
    Score every candidate and order them best first.

    The order is a stable ascending sort by score, reversed: items with equal
    scores come out in reverse input order, e.g. [A:0.9, B:0.9, C:0.5] -> [B, A, C].
    """
    scored = [WeightedItem(item_id, recommender.predict(user_id, item_id)) for item_id in candidates]
    scored.sort(key=_sort_key)
    scored.reverse()
    return scored


def format_score(score: float) -> str:
    return repr(float(score))


def predict_items(recommender: Recommender, user_id: int, candidates: Sequence[int]) -> List[int]:
    """Item IDs ordered by predicted score, best first; nothing is filtered out."""
    return [wi.item_id for wi in score_items(recommender, user_id, candidates)]


def predict_items_up_to(recommender: Recommender, user_id: int, max_item_id: int) -> List[int]:
    """
    Rank the items 0 .. max_item_id - 1.

    Note: max_item_id itself is not ranked.
    """
    return predict_items(recommender, user_id, range(max_item_id))


def write_user_predictions(
    recommender: Recommender,
    user_id: int,
    relevant_items: Collection[int],
    ignore_items: Collection[int],
    num_predictions: int,
    user_mapping,
    item_mapping,
    writer: TextIO,
) -> int:
    """
    Write one line 'user<TAB>[item:score,...]' with the top num_predictions items.

    Items in ignore_items and non-recommendable scores are skipped and do not count
    toward num_predictions; a negative num_predictions means no limit.
    Returns the number of items written.
    """
    entries: List[str] = []
    for wi in score_items(recommender, user_id, relevant_items):
        if num_predictions >= 0 and len(entries) >= num_predictions:
            break
        if wi.item_id in ignore_items or not wi.recommendable:
            continue
        entries.append(f"{item_mapping.to_original_id(wi.item_id)}:{format_score(wi.weight)}")

    writer.write(f"{user_mapping.to_original_id(user_id)}\t[{','.join(entries)}]\n")
    return len(entries)


def write_predictions(
    recommender: Recommender,
    train: PosOnlyFeedback,
    relevant_items: Collection[int],
    num_predictions: int,
    user_mapping: Optional[Mapping],
    item_mapping: Optional[Mapping],
    target: Union[str, TextIO],
    relevant_users: Optional[Iterable[int]] = None,
) -> None:
    """
    Write top-num_predictions recommendations for each user, one line per user.

    target is a file path or an open text stream. relevant_users defaults to every
    internal ID known to user_mapping; items each user already has in train are excluded.
    """
    user_mapping = user_mapping if user_mapping is not None else IdentityMapping()
    item_mapping = item_mapping if item_mapping is not None else IdentityMapping()
    if relevant_users is None:
        relevant_users = user_mapping.internal_ids

    if isinstance(target, str):
        with open(target, "w", encoding="utf-8", newline="\n") as writer:
            _write_all(recommender, train, relevant_users, relevant_items, num_predictions,
                       user_mapping, item_mapping, writer)
        logger.info("Wrote predictions to %s", target)
    else:
        _write_all(recommender, train, relevant_users, relevant_items, num_predictions,
                   user_mapping, item_mapping, target)


def _write_all(recommender, train, relevant_users, relevant_items, num_predictions,
               user_mapping, item_mapping, writer) -> None:
    num_users = 0
    for user_id in relevant_users:
        write_user_predictions(
            recommender, user_id, relevant_items, train.items_of(user_id),
            num_predictions, user_mapping, item_mapping, writer,
        )
        num_users += 1
    logger.debug("Wrote predictions for %d users", num_users)
