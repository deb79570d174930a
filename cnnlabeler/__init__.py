"""
CNN Labeler
============
Forward-only convolutional sentence labeler built from reusable,
capacity-bounded graph slots.

For each sentence the package builds:
    embedding lookup → dropout → window encoder → hidden projection
    → dropout → avg / max / min pooling → concatenation → linear scores

Quick Start:
    >>> from cnnlabeler.config import LabelerConfig
    >>> from cnnlabeler.model import ModelParams, GraphBuilder
    >>> from cnnlabeler.graph import ExecutionContext
    >>> from cnnlabeler.data import Feature
    >>> config = LabelerConfig.for_smoke_test()
    >>> params = ModelParams.from_hyperparams(config.hyper, seed=0)
    >>> builder = GraphBuilder(config.hyper)
    >>> builder.ensure_capacity(8)
    >>> builder.bind_parameters(params)
    >>> builder.forward(ExecutionContext(), Feature.from_ids([3, 1, 4]))

Subpackages:
    - cnnlabeler.data       — Feature (per-sentence token ids)
    - cnnlabeler.graph      — Execution context, node kinds, window encoder
    - cnnlabeler.model      — Model parameters and the graph builder
    - cnnlabeler.evaluation — Batch decoding and label metrics
"""

__version__ = "0.1.0"
