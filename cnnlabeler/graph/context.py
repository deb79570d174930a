"""
Execution Context
==================
Per-pass state shared by every node of one forward pass.

The context carries the train/eval flag explicitly: each node receives
the context as its first argument and reads ``context.train`` from it,
so every dropout slot in a pass observes the same flag. It also holds
the random source used by dropout and an ordered record of the nodes
that ran, which makes the execution order of a pass inspectable.

One context per concurrent sentence. The builder never owns it.

Usage:
    >>> context = ExecutionContext(train=False)
    >>> builder.forward(context, feature)
    >>> [node.kind for node in context.executed][:3]
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

import torch

if TYPE_CHECKING:
    from cnnlabeler.config import RuntimeConfig
    from cnnlabeler.graph.nodes import Node

logger = logging.getLogger(__name__)


class ExecutionContext:
    """
    Mutable state for one forward pass.

    Parameters
    ----------
    train : bool
        Whether stochastic regularization (dropout) is active.
    generator : torch.Generator or None
        Random source for dropout masks. None uses torch's global RNG.
    """

    def __init__(
        self,
        train: bool = False,
        generator: Optional[torch.Generator] = None,
    ):
        self.train = train
        self.generator = generator
        self.executed: list[Node] = []

    @classmethod
    def from_config(cls, runtime: RuntimeConfig) -> ExecutionContext:
        """
        Create a context whose dropout source is seeded from the config.

        A ``None`` seed yields a non-deterministic generator.
        """
        generator = torch.Generator()
        if runtime.seed is None:
            generator.seed()
        else:
            generator.manual_seed(runtime.seed)
        return cls(train=False, generator=generator)

    def reset(self, train: bool) -> None:
        """Start a new pass: set the flag and forget executed nodes."""
        self.train = bool(train)
        self.executed.clear()

    def record(self, node: Node) -> None:
        self.executed.append(node)

    def __repr__(self) -> str:
        mode = "train" if self.train else "eval"
        return f"ExecutionContext({mode}, executed={len(self.executed)})"
