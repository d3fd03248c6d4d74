from __future__ import annotations

from typing import Dict, Sequence

from .feedback import PosOnlyFeedback
from .prediction import Recommender, predict_items


def evaluate_ranking(
    recommender: Recommender,
    test: PosOnlyFeedback,
    train: PosOnlyFeedback,
    candidate_items: Sequence[int],
    k: int = 10,
) -> Dict[str, float]:
    # Precision@k and recall@k averaged over the users that have test items.
    #
    #    prec@k   = |top_k ∩ test_u| / k
    #    recall@k = |top_k ∩ test_u| / |test_u|
    #
    # top_k is the user's ranking over candidate_items with training items removed,
    # so items the user already has never count as hits or misses.
    if k < 1:
        raise ValueError(f"k must be positive, got {k}")

    prec_sum = 0.0
    recall_sum = 0.0
    num_users = 0
    for user_id in test.all_users:
        relevant = test.items_of(user_id) - train.items_of(user_id)
        if not relevant:
            continue
        seen = train.items_of(user_id)
        ranked = [i for i in predict_items(recommender, user_id, candidate_items) if i not in seen]
        hits = len(relevant.intersection(ranked[:k]))
        prec_sum += hits / k
        recall_sum += hits / len(relevant)
        num_users += 1

    if num_users == 0:
        return {f"prec@{k}": 0.0, f"recall@{k}": 0.0, "num_users": 0}
    return {
        f"prec@{k}": prec_sum / num_users,
        f"recall@{k}": recall_sum / num_users,
        "num_users": num_users,
    }
