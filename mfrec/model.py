from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Optional

import torch
from torch import nn

from .errors import ConfigurationError, ModelCorruptError, ModelStateError
from .feedback import PosOnlyFeedback
from .matrix_io import read_matrix, write_matrix
from .model_file import open_reader, open_writer
from .optimizer import IterativeOptimizer


logger = logging.getLogger(__name__)


class ModelState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    TRAINING = "training"
    READY = "ready"


@dataclass(frozen=True)
class FactorsResized:
    """Emitted by load_model when the file's dimensionality overrides num_factors."""

    old_num_factors: int
    new_num_factors: int


class MF(nn.Module):
    """
    Matrix factorization item recommender, scores approximated by U V^T
    - U (user_factors): (max_user_id + 1, num_factors)
    - V (item_factors): (max_item_id + 1, num_factors)

    The per-iteration update rule comes from an IterativeOptimizer (or a subclass
    overriding iterate/compute_fit). Unknown users or items are predicted as 0.

    state is TRAINING while fit() runs; predict() refuses to read the factors then.
    """

    def __init__(
        self,
        num_factors: int = 10,
        num_iter: int = 30,
        init_mean: float = 0.0,
        init_std_dev: float = 0.1,
        optimizer: Optional[IterativeOptimizer] = None,
        feedback: Optional[PosOnlyFeedback] = None,
        seed: Optional[int] = None,
    ) -> None:
        super().__init__()
        if num_factors < 1:
            raise ConfigurationError(f"num_factors must be positive, got {num_factors}")
        if num_iter < 0:
            raise ConfigurationError(f"num_iter must be non-negative, got {num_iter}")
        if init_std_dev < 0:
            raise ConfigurationError(f"init_std_dev must be non-negative, got {init_std_dev}")

        self.num_factors = num_factors
        self.num_iter = num_iter
        self.init_mean = init_mean
        self.init_std_dev = init_std_dev
        self.optimizer = optimizer
        self.max_user_id = -1
        self.max_item_id = -1
        self.state = ModelState.UNINITIALIZED

        self.generator = torch.Generator()
        if seed is not None:
            self.generator.manual_seed(seed)
        else:
            self.generator.seed()

        self.register_parameter("user_factors", None)
        self.register_parameter("item_factors", None)

        self._feedback: Optional[PosOnlyFeedback] = None
        if feedback is not None:
            self.feedback = feedback

    @property
    def feedback(self) -> Optional[PosOnlyFeedback]:
        return self._feedback

    @feedback.setter
    def feedback(self, feedback: PosOnlyFeedback) -> None:
        self._feedback = feedback
        self.max_user_id = max(self.max_user_id, feedback.max_user_id)
        self.max_item_id = max(self.max_item_id, feedback.max_item_id)

    @property
    def num_user_rows(self) -> int:
        return 0 if self.user_factors is None else self.user_factors.shape[0]

    @property
    def num_item_rows(self) -> int:
        return 0 if self.item_factors is None else self.item_factors.shape[0]

    def _install_factors(self, user_factors: torch.Tensor, item_factors: torch.Tensor) -> None:
        # Both matrices are replaced together so their column counts always agree.
        self.user_factors = nn.Parameter(user_factors)
        self.item_factors = nn.Parameter(item_factors)

    def _gaussian(self, rows: int) -> torch.Tensor:
        m = torch.empty((rows, self.num_factors), dtype=torch.float64)
        if self.init_std_dev == 0:
            return m.fill_(self.init_mean)
        return m.normal_(self.init_mean, self.init_std_dev, generator=self.generator)

    def init_model(self) -> None:
        """
        (Re)allocate both factor matrices with N(init_mean, init_std_dev) entries.

        state is left as it is: fit() moves it to TRAINING and READY around this call.
        """
        self._install_factors(
            self._gaussian(self.max_user_id + 1),
            self._gaussian(self.max_item_id + 1),
        )

    def fit(self) -> "MF":
        """
        Initialize the factors, then run exactly num_iter iterations.

        Named fit rather than train: nn.Module.train only switches the module mode.
        """
        self.init_model()
        self.state = ModelState.TRAINING
        logger.info(
            "Training %s: %d users, %d items, %d factors, %d iterations",
            type(self).__name__, self.max_user_id + 1, self.max_item_id + 1,
            self.num_factors, self.num_iter,
        )
        try:
            for _ in range(self.num_iter):
                self.iterate()
        except BaseException:
            self.state = ModelState.UNINITIALIZED
            raise
        self.state = ModelState.READY
        return self

    def iterate(self) -> None:
        if self.optimizer is None:
            raise ConfigurationError(f"{type(self).__name__} has no optimizer to iterate with")
        self.optimizer.iterate(self)

    def compute_fit(self) -> float:
        if self.optimizer is None:
            raise ConfigurationError(f"{type(self).__name__} has no optimizer to compute the fit")
        return self.optimizer.compute_fit(self)

    def forward(self, user_indices: torch.LongTensor, item_indices: torch.LongTensor) -> torch.Tensor:
        # Compute dot products U[user] · V[item]
        u = self.user_factors[user_indices]  # (batch, k)
        v = self.item_factors[item_indices]  # (batch, k)
        return torch.sum(u * v, dim=1)  # (batch,)

    def can_predict(self, user_id: int, item_id: int) -> bool:
        return 0 <= user_id < self.num_user_rows and 0 <= item_id < self.num_item_rows

    def predict(self, user_id: int, item_id: int) -> float:
        """
        Dot product of the user and item factor rows.

        Returns 0.0 for users or items the model does not know; use can_predict()
        to tell those apart from a genuine zero score.
        """
        if self.state is ModelState.TRAINING:
            raise ModelStateError("factors are being updated; wait for fit() to return")
        if not self.can_predict(user_id, item_id):
            return 0.0
        with torch.no_grad():
            return float(torch.dot(self.user_factors[user_id], self.item_factors[item_id]))

    def save_model(self, path: str) -> None:
        if self.user_factors is None or self.item_factors is None:
            raise ConfigurationError("cannot save a model without factors; train or load it first")
        with open_writer(path, type(self)) as writer:
            write_matrix(writer, self.user_factors)
            write_matrix(writer, self.item_factors)
        logger.info("Saved %s to %s", type(self).__name__, path)

    def load_model(self, path: str) -> Optional[FactorsResized]:
        """
        Replace both factor matrices with the ones stored in `path`.

        Nothing changes unless the whole file parses and the column counts agree.
        If the stored dimensionality differs from num_factors, num_factors follows
        the file and the change is returned as a FactorsResized event.
        """
        with open_reader(path, type(self)) as reader:
            user_factors = read_matrix(reader)
            item_factors = read_matrix(reader)

        user_columns, item_columns = user_factors.shape[1], item_factors.shape[1]
        if user_columns != item_columns:
            raise ModelCorruptError(
                f"Number of user and item factors must match: {user_columns} != {item_columns}",
                user_columns=user_columns,
                item_columns=item_columns,
            )

        event = None
        if self.num_factors != user_columns:
            event = FactorsResized(self.num_factors, user_columns)
            logger.warning("Set num_factors to %d", user_columns)
            self.num_factors = user_columns

        self.max_user_id = user_factors.shape[0] - 1
        self.max_item_id = item_factors.shape[0] - 1
        self._install_factors(user_factors, item_factors)
        self.state = ModelState.READY
        return event
