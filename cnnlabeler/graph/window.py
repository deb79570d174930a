"""
Window Encoder
===============
Local-context extractor: position ``i`` is represented by the
concatenation of its own vector and ``context`` neighbours on each side.

    inputs:   x0  x1  x2  x3          (context = 1)
    outputs:  [0 ‖ x0 ‖ x1]
              [x0 ‖ x1 ‖ x2]
              [x1 ‖ x2 ‖ x3]
              [x2 ‖ x3 ‖ 0 ]

Windows that run past either end of the sentence are padded with zero
vectors, so every position gets an output of the same width
``dim × (2·context + 1)`` and a sequence of any length ≥ 1 is accepted.

The encoder owns one ConcatNode slot per position; ``resize`` grows
that collection and never shrinks it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Sequence

import torch

from cnnlabeler.errors import (
    CapacityExceededError,
    MalformedFeatureError,
    UninitializedUseError,
)
from cnnlabeler.graph.nodes import ConcatNode, Node, NodeInput, NodeKind, node_value

if TYPE_CHECKING:
    from cnnlabeler.graph.context import ExecutionContext

logger = logging.getLogger(__name__)


class WindowBuilder(Node):
    """
    Sliding-window context encoder over an ordered sequence.

    ``output`` holds the (length, out_dim) stack of the last pass;
    ``outputs`` holds the per-position slots.
    """

    kind = NodeKind.WINDOW

    def __init__(self):
        super().__init__()
        self.in_dim = 0
        self.context = 0
        self.outputs: list[ConcatNode] = []

    @property
    def capacity(self) -> int:
        return len(self.outputs)

    def resize(self, capacity: int) -> None:
        """Grow the per-position slot collection to ``capacity``."""
        for position in range(len(self.outputs), capacity):
            slot = ConcatNode(position)
            if self.is_initialized:
                slot.init(self.dim)
            self.outputs.append(slot)

    def init(self, dim: int, context: int) -> None:
        """
        Parameters
        ----------
        dim : int
            Width of each input vector.
        context : int
            Neighbours taken on each side of a position.
        """
        if context < 0:
            raise ValueError(f"Window context must be >= 0, got {context}")
        if dim <= 0:
            raise ValueError(f"Window input dim must be positive, got {dim}")
        self.in_dim = dim
        self.context = context
        super().init(dim * (2 * context + 1))
        for slot in self.outputs:
            slot.init(self.dim)

    def forward(
        self, context: ExecutionContext, inputs: Sequence[NodeInput]
    ) -> list[torch.Tensor]:
        if not self.is_initialized:
            raise UninitializedUseError(f"{self!r} used before init()")
        length = len(inputs)
        if length == 0:
            raise MalformedFeatureError("Window encoder received an empty sequence")
        if length > self.capacity:
            raise CapacityExceededError(
                f"Window encoder has {self.capacity} slots, got {length} inputs"
            )

        values = [node_value(x) for x in inputs]
        for value in values:
            self._check_width(value, self.in_dim, "input")
        pad = values[0].new_zeros(self.in_dim)

        for i in range(length):
            window = [
                values[j] if 0 <= j < length else pad
                for j in range(i - self.context, i + self.context + 1)
            ]
            self.outputs[i].forward(context, *window)

        results = [slot.output for slot in self.outputs[:length]]
        self._emit(context, torch.stack(results))
        return results

    def __repr__(self) -> str:
        return (
            f"WindowBuilder(in_dim={self.in_dim}, context={self.context}, "
            f"capacity={self.capacity})"
        )
