"""
CNN Labeler Model Parameters
==============================
The shared weight tables every graph slot is bound to. One ModelParams
instance is referenced (never copied) by all lookup slots, all hidden
projection slots and the output slot of a builder, and may be shared
read-only by several builders at once.

Weights:
    words          nn.Embedding(vocab_size, word_dim)
                   → bound to every Lookup slot
    hidden_linear  nn.Linear(window_dim, hidden_size, bias=True)
                   → bound to every per-position hidden projection
    olayer_linear  nn.Linear(3 × hidden_size, label_size, bias=False)
                   → bound to the final scoring slot

Usage:
    >>> params = ModelParams.from_hyperparams(config.hyper, seed=13)
    >>> params.check_compatible(config.hyper)   # raises on shape mismatch
"""

from __future__ import annotations

import logging
from typing import Optional

import torch
import torch.nn as nn

from cnnlabeler.config import HyperParams
from cnnlabeler.errors import ParameterMismatchError

logger = logging.getLogger(__name__)


class ModelParams(nn.Module):
    """
    Container for the labeler's weight tables.

    Parameters
    ----------
    vocab_size : int
        Rows of the embedding table.
    word_dim : int
        Embedding width.
    window_dim : int
        Input width of the hidden projection (word_dim × window size).
    hidden_size : int
        Output width of the hidden projection.
    label_size : int
        Number of output scores.
    """

    def __init__(
        self,
        vocab_size: int,
        word_dim: int,
        window_dim: int,
        hidden_size: int,
        label_size: int,
    ):
        super().__init__()

        self.words = nn.Embedding(vocab_size, word_dim)
        self.hidden_linear = nn.Linear(window_dim, hidden_size)
        self.olayer_linear = nn.Linear(3 * hidden_size, label_size, bias=False)

        self._init_weights()

    @classmethod
    def from_hyperparams(
        cls, hyper: HyperParams, seed: Optional[int] = None
    ) -> ModelParams:
        """
        Build freshly initialized parameters sized from ``hyper``.

        Parameters
        ----------
        hyper : HyperParams
            Sizing configuration.
        seed : int or None
            If given, initialization is reproducible and does not disturb
            torch's global RNG state.
        """
        if seed is None:
            params = cls(
                hyper.vocab_size, hyper.word_dim, hyper.window_dim,
                hyper.hidden_size, hyper.label_size,
            )
        else:
            with torch.random.fork_rng(devices=[]):
                torch.manual_seed(seed)
                params = cls(
                    hyper.vocab_size, hyper.word_dim, hyper.window_dim,
                    hyper.hidden_size, hyper.label_size,
                )

        logger.info(f"ModelParams created: {params.n_params / 1e6:.3f}M params")
        return params

    def _init_weights(self) -> None:
        """Xavier-uniform weights, zero bias."""
        nn.init.xavier_uniform_(self.words.weight)
        nn.init.xavier_uniform_(self.hidden_linear.weight)
        nn.init.zeros_(self.hidden_linear.bias)
        nn.init.xavier_uniform_(self.olayer_linear.weight)

    def check_compatible(self, hyper: HyperParams) -> None:
        """
        Verify every weight shape against the configured dimensions.

        Raises
        ------
        ParameterMismatchError
            Listing every disagreeing shape.
        """
        problems = []
        expected = {
            "words": ((hyper.vocab_size, hyper.word_dim), self.words.weight),
            "hidden_linear": (
                (hyper.hidden_size, hyper.window_dim), self.hidden_linear.weight
            ),
            "olayer_linear": (
                (hyper.label_size, hyper.concat_dim), self.olayer_linear.weight
            ),
        }
        for name, (shape, weight) in expected.items():
            if tuple(weight.shape) != shape:
                problems.append(
                    f"{name}: expected {shape}, got {tuple(weight.shape)}"
                )
        if self.hidden_linear.bias is not None and \
                tuple(self.hidden_linear.bias.shape) != (hyper.hidden_size,):
            problems.append(
                f"hidden_linear.bias: expected ({hyper.hidden_size},), "
                f"got {tuple(self.hidden_linear.bias.shape)}"
            )

        if problems:
            raise ParameterMismatchError(
                "Model parameters do not match hyperparameters: "
                + "; ".join(problems)
            )

    @property
    def n_params(self) -> int:
        """Total number of parameters."""
        return sum(p.numel() for p in self.parameters())

    def __repr__(self) -> str:
        return (
            f"ModelParams("
            f"vocab={self.words.num_embeddings}, "
            f"word_dim={self.words.embedding_dim}, "
            f"hidden={self.hidden_linear.out_features}, "
            f"labels={self.olayer_linear.out_features}, "
            f"params={self.n_params / 1e6:.3f}M)"
        )
