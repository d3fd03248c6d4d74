import pytest
import torch

from mfrec.feedback import PosOnlyFeedback
from mfrec.model import MF
from mfrec.optimizer import IterativeOptimizer


class CountingOptimizer(IterativeOptimizer):
    def __init__(self):
        self.calls = 0

    def iterate(self, model):
        self.calls += 1

    def compute_fit(self, model):
        return float(self.calls)


class TableRecommender:
    """Scores come from a fixed {(user, item): score} table, 0.0 otherwise."""

    def __init__(self, scores):
        self.scores = scores

    def predict(self, user_id, item_id):
        return self.scores.get((user_id, item_id), 0.0)


@pytest.fixture
def feedback():
    # 3 users, 4 items
    return PosOnlyFeedback([(0, 0), (0, 1), (1, 1), (1, 2), (2, 3), (2, 0)])


@pytest.fixture
def trained_model(feedback):
    model = MF(num_factors=4, num_iter=0, optimizer=CountingOptimizer(), feedback=feedback, seed=7)
    model.fit()
    return model


@pytest.fixture
def counting_optimizer():
    return CountingOptimizer()


def factors(rows, cols, offset=0.0):
    return torch.arange(rows * cols, dtype=torch.float64).reshape(rows, cols) / 10.0 + offset
