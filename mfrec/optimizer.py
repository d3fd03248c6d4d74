from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .model import MF


class IterativeOptimizer(ABC):
    """One optimization scheme for the factor matrices of an MF model."""

    @abstractmethod
    def iterate(self, model: "MF") -> None:
        """Run one pass of updates over model.feedback, mutating the factors in place."""

    @abstractmethod
    def compute_fit(self, model: "MF") -> float:
        """Optimization criterion on the training data; lower is better."""
