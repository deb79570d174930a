"""
CNN Labeler Decoder
=====================
Runs a GraphBuilder over many sentences.

The decoder owns one builder and one ExecutionContext. Before a batch it
establishes capacity for the longest active sentence and re-binds the
parameters once, then runs the sentences one after another, reusing the
same slots.

Usage:
    >>> decoder = Decoder(config, params)
    >>> labels = decoder.decode(features)        # list[int]
    >>> scores = decoder.scores(features)        # (N, label_size) tensor
"""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

import torch
from tqdm import tqdm

from cnnlabeler.config import LabelerConfig
from cnnlabeler.data.feature import Feature
from cnnlabeler.graph.context import ExecutionContext
from cnnlabeler.model.builder import GraphBuilder
from cnnlabeler.model.params import ModelParams

logger = logging.getLogger(__name__)


class Decoder:
    """
    Batch front end over a single GraphBuilder.

    Parameters
    ----------
    config : LabelerConfig
        Full configuration; validated on construction.
    params : ModelParams
        Weights to decode with. Moved to the configured device.
    """

    def __init__(self, config: LabelerConfig, params: ModelParams):
        config.validate()
        self.config = config
        self.device = config.runtime.resolve_device()
        self.params = params.to(self.device)
        self.builder = GraphBuilder(config.hyper)
        self.context = ExecutionContext.from_config(config.runtime)

    def prepare(self, features: Sequence[Feature]) -> None:
        """Grow capacity for the longest sentence and re-bind if needed."""
        needed = max((self.builder.active_length(f) for f in features), default=1)
        needed = max(needed, 1)
        if needed > self.builder.capacity or not self.builder.is_bound:
            self.builder.ensure_capacity(needed)
            self.builder.bind_parameters(self.params)

    def scores(self, features: Iterable[Feature], train: bool = False) -> torch.Tensor:
        """
        Raw label scores for every sentence.

        Returns
        -------
        torch.Tensor
            Shape (N, label_size), one row per feature, in input order.
        """
        features = list(features)
        if not features:
            return torch.empty(0, self.config.hyper.label_size, device=self.device)

        self.prepare(features)
        rows = [
            self.builder.forward(self.context, feature, train=train)
            for feature in tqdm(
                features,
                desc="Decoding",
                unit="sent",
                disable=not self.config.runtime.show_progress,
            )
        ]
        logger.debug(f"Decoded {len(rows)} sentences")
        return torch.stack(rows)

    def decode(self, features: Iterable[Feature]) -> list[int]:
        """Predicted label index for every sentence (eval mode)."""
        scores = self.scores(features)
        if scores.shape[0] == 0:
            return []
        return scores.argmax(dim=-1).tolist()

    def __repr__(self) -> str:
        return f"Decoder({self.builder!r}, device={self.device})"
