"""Latent-factor matrix factorization for positive-only item recommendation."""

__version__ = "0.1.0"
