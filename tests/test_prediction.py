import io
import math
import sys

from mfrec.feedback import PosOnlyFeedback
from mfrec.mapping import EntityMapping
from mfrec.prediction import (
    predict_items,
    predict_items_up_to,
    score_items,
    write_predictions,
    write_user_predictions,
)

from conftest import TableRecommender


def _mappings(users, items):
    user_mapping, item_mapping = EntityMapping(), EntityMapping()
    for u in users:
        user_mapping.to_internal_id(u)
    for i in items:
        item_mapping.to_internal_id(i)
    return user_mapping, item_mapping


def _write_line(scores, candidates, ignore=(), num_predictions=-1):
    user_mapping, item_mapping = _mappings(["u"], ["A", "B", "C", "D"])
    out = io.StringIO()
    write_user_predictions(
        TableRecommender(scores), 0, candidates, set(ignore), num_predictions,
        user_mapping, item_mapping, out,
    )
    return out.getvalue()


def test_ties_come_out_in_reverse_input_order():
    # A=0, B=1, C=2
    rec = TableRecommender({(0, 0): 0.9, (0, 1): 0.9, (0, 2): 0.5})
    assert predict_items(rec, 0, [0, 1, 2]) == [1, 0, 2]
    assert _write_line(rec.scores, [0, 1, 2]) == "u\t[B:0.9,A:0.9,C:0.5]\n"


def test_num_predictions_caps_output():
    scores = {(0, 0): 0.9, (0, 1): 0.5, (0, 2): 0.1}
    assert _write_line(scores, [0, 1, 2], num_predictions=2) == "u\t[A:0.9,B:0.5]\n"


def test_negative_num_predictions_means_no_limit():
    scores = {(0, 0): 0.1, (0, 1): 0.5, (0, 2): 0.9}
    assert _write_line(scores, [0, 1, 2], num_predictions=-1) == "u\t[C:0.9,B:0.5,A:0.1]\n"


def test_observed_items_skipped_without_using_quota():
    scores = {(0, 0): 0.9, (0, 1): 0.5, (0, 2): 0.1, (0, 3): 0.05}
    line = _write_line(scores, [0, 1, 2, 3], ignore={0}, num_predictions=2)
    assert line == "u\t[B:0.5,C:0.1]\n"


def test_do_not_recommend_scores_are_skipped():
    scores = {
        (0, 0): -sys.float_info.max,
        (0, 1): None,
        (0, 2): -math.inf,
        (0, 3): -2.5,
    }
    assert _write_line(scores, [0, 1, 2, 3], num_predictions=2) == "u\t[D:-2.5]\n"


def test_empty_candidates():
    rec = TableRecommender({})
    assert predict_items(rec, 0, []) == []
    assert _write_line({}, []) == "u\t[]\n"


def test_predict_items_does_not_filter():
    rec = TableRecommender({(0, 0): -sys.float_info.max, (0, 1): 0.3})
    assert predict_items(rec, 0, [0, 1]) == [1, 0]
    assert [wi.recommendable for wi in score_items(rec, 0, [0, 1])] == [True, False]


def test_predict_items_up_to_excludes_max_item_id():
    rec = TableRecommender({(0, 4): 10.0, (0, 2): 1.0})
    ranked = predict_items_up_to(rec, 0, 4)
    assert 4 not in ranked
    assert sorted(ranked) == [0, 1, 2, 3]
    assert ranked[0] == 2


def test_write_predictions_all_users(tmp_path):
    user_mapping, item_mapping = _mappings(["alice", "bob", "carol"], ["x", "y", "z"])
    rec = TableRecommender({
        (0, 0): 0.3, (0, 1): 0.2, (0, 2): 0.1,
        (1, 0): 0.1, (1, 1): 0.2, (1, 2): 0.3,
    })
    # carol (2) has no training feedback at all
    train = PosOnlyFeedback([(0, 0), (1, 2)])
    path = tmp_path / "pred.tsv"

    write_predictions(rec, train, [0, 1, 2], 2, user_mapping, item_mapping, str(path))

    assert path.read_text().splitlines() == [
        "alice\t[y:0.2,z:0.1]",
        "bob\t[y:0.2,x:0.1]",
        "carol\t[z:0.0,y:0.0]",
    ]


def test_write_predictions_selected_users_identity_mapping():
    rec = TableRecommender({(5, 7): 1.5, (5, 8): 2.0})
    out = io.StringIO()
    write_predictions(rec, PosOnlyFeedback(), [7, 8], 1, None, None, out, relevant_users=[5])
    assert out.getvalue() == "5\t[8:2.0]\n"


def test_nan_scores_rank_last_and_are_skipped():
    # A=0 0.5, B=1 nan, C=2 0.9, D=3 0.1
    scores = {(0, 0): 0.5, (0, 1): math.nan, (0, 2): 0.9, (0, 3): 0.1}
    rec = TableRecommender(scores)
    assert predict_items(rec, 0, [0, 1, 2, 3]) == [2, 0, 3, 1]
    assert _write_line(scores, [0, 1, 2, 3]) == "u\t[C:0.9,A:0.5,D:0.1]\n"
