import logging

import pytest
import torch

from mfrec.errors import ConfigurationError
from mfrec.loss import positive_only_loss
from mfrec.model import MF
from mfrec.sgd import SGDOptimizer

from conftest import factors


def _model(feedback, num_iter, seed=5):
    optimizer = SGDOptimizer(learn_rate=0.1, regularization=1e-4, batch_size=2, num_negatives=1, seed=seed)
    return MF(num_factors=4, num_iter=num_iter, optimizer=optimizer, feedback=feedback, seed=seed)


def test_training_lowers_fit(feedback):
    untrained = _model(feedback, num_iter=0).fit()
    trained = _model(feedback, num_iter=200).fit()
    assert trained.compute_fit() < untrained.compute_fit()


def test_training_raises_observed_scores(feedback):
    model = _model(feedback, num_iter=200).fit()
    observed = [model.predict(u, i) for u, i in feedback]
    assert sum(observed) / len(observed) > 0.5


def test_same_seed_same_result(feedback):
    a = _model(feedback, num_iter=5).fit()
    b = _model(feedback, num_iter=5).fit()
    assert torch.equal(a.user_factors, b.user_factors)
    assert torch.equal(a.item_factors, b.item_factors)


def test_iterate_needs_feedback():
    model = MF(num_iter=1, optimizer=SGDOptimizer(seed=0))
    with pytest.raises(ConfigurationError):
        model.fit()


@pytest.mark.parametrize(
    "kwargs", [{"learn_rate": 0.0}, {"batch_size": 0}, {"num_negatives": -1}]
)
def test_invalid_settings(kwargs):
    with pytest.raises(ConfigurationError):
        SGDOptimizer(**kwargs)


def test_loss_on_known_factors(feedback):
    model = MF(num_factors=2, feedback=feedback)
    model.init_model()
    with torch.no_grad():
        model.user_factors.copy_(torch.zeros(3, 2, dtype=torch.float64))
        model.item_factors.copy_(factors(4, 2))

    users = torch.tensor([0, 1])
    pos = torch.tensor([0, 1])
    no_neg = torch.empty((2, 0), dtype=torch.long)
    # zero user factors: every prediction is 0, so each positive costs 1
    assert positive_only_loss(model, users, pos, no_neg).item() == pytest.approx(1.0)

    neg = torch.tensor([[2], [3]])
    assert positive_only_loss(model, users, pos, neg).item() == pytest.approx(1.0)

    reg = positive_only_loss(model, users, pos, no_neg, lambda_=2.0).item()
    assert reg == pytest.approx(1.0 + float(torch.sum(factors(4, 2) ** 2)))


def test_epoch_log_line(feedback, caplog):
    with caplog.at_level(logging.INFO, logger="mfrec.sgd"):
        _model(feedback, num_iter=2).fit()
    messages = [r.getMessage() for r in caplog.records if r.name == "mfrec.sgd"]
    assert len(messages) == 2
    assert messages[0].startswith("Epoch 001 | Train Loss: ")
    assert messages[1].startswith("Epoch 002 | Train Loss: ")
