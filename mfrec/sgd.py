from __future__ import annotations

import logging
from typing import Optional

import torch
from torch.optim import SGD

from .errors import ConfigurationError
from .loss import positive_only_loss
from .model import MF
from .optimizer import IterativeOptimizer


logger = logging.getLogger(__name__)


class SGDOptimizer(IterativeOptimizer):
    """
    Stochastic gradient descent over random minibatches of observed pairs.
    - Each pass shuffles the pairs with this optimizer's own generator, so a fixed
      seed gives the same visiting order and the same negative samples.
    - Each step:
        sample num_negatives items per positive,
        compute loss over the minibatch,
        backward,
        optimizer step.
    """

    def __init__(
        self,
        learn_rate: float = 0.05,
        regularization: float = 1e-4,
        batch_size: int = 256,
        num_negatives: int = 1,
        seed: Optional[int] = None,
    ) -> None:
        if learn_rate <= 0:
            raise ConfigurationError(f"learn_rate must be positive, got {learn_rate}")
        if batch_size < 1:
            raise ConfigurationError(f"batch_size must be positive, got {batch_size}")
        if num_negatives < 0:
            raise ConfigurationError(f"num_negatives must be non-negative, got {num_negatives}")
        self.learn_rate = learn_rate
        self.regularization = regularization
        self.batch_size = batch_size
        self.num_negatives = num_negatives
        self.generator = torch.Generator()
        if seed is not None:
            self.generator.manual_seed(seed)
        else:
            self.generator.seed()
        self.epoch = 0

    def _observed(self, model: MF) -> torch.Tensor:
        if model.feedback is None:
            raise ConfigurationError("SGDOptimizer needs model.feedback to train on")
        pairs = model.feedback.pairs()
        return torch.tensor(pairs, dtype=torch.long).reshape(-1, 2)

    def iterate(self, model: MF) -> None:
        observed = self._observed(model)
        num_items = model.num_item_rows
        optimizer = SGD(model.parameters(), lr=self.learn_rate)

        order = torch.randperm(observed.shape[0], generator=self.generator)
        shuffled = observed[order]
        running_loss = 0.0
        num_batches = 0

        for start in range(0, shuffled.shape[0], self.batch_size):
            batch = shuffled[start : start + self.batch_size]
            neg_idx = torch.randint(
                num_items, (batch.shape[0], self.num_negatives), generator=self.generator
            )
            optimizer.zero_grad(set_to_none=True)
            loss = positive_only_loss(model, batch[:, 0], batch[:, 1], neg_idx, lambda_=self.regularization)
            loss.backward()
            optimizer.step()
            running_loss += loss.item()
            num_batches += 1

        self.epoch += 1
        epoch_loss = running_loss / max(1, num_batches)
        logger.info("Epoch %03d | Train Loss: %.6f", self.epoch, epoch_loss)

    def compute_fit(self, model: MF) -> float:
        observed = self._observed(model)
        empty = torch.empty((observed.shape[0], 0), dtype=torch.long)
        with torch.no_grad():
            loss = positive_only_loss(model, observed[:, 0], observed[:, 1], empty, lambda_=self.regularization)
        return loss.item()
