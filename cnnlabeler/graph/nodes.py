"""
Graph Node Kinds
=================
The building blocks of a labeler forward pass. Every node follows one
calling convention:

    node.forward(context, *inputs) -> torch.Tensor

where ``context`` is the ExecutionContext of the current pass and each
input is either an upstream node (its ``output`` is read) or a tensor.
The result is stored on ``node.output`` so downstream nodes, and the
caller, can read it after the call returns.

Node kinds (tagged by ``NodeKind``):

    LOOKUP   token id        → embedding row          (shared embedding table)
    DROPOUT  vector          → same-shaped vector     (train-gated)
    LINEAR   vector          → affine map [+ nonlinearity for UniNode]
    POOL     [vectors]       → one vector             (avg / max / min)
    CONCAT   vector, vector… → concatenated vector
    WINDOW   [vectors]       → [context vectors]      (see graph/window.py)

Lifecycle of a node:
    1. set_param(...)  — bind shared weights / rate / capacity
    2. init(dim)       — declare the output width (checked against weights)
    3. forward(...)    — any number of times; overwrites ``output``

Nodes hold references to parameter tensors, never copies.
"""

from __future__ import annotations

import logging
import numbers
from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, Optional, Sequence, Union

import torch
import torch.nn as nn
import torch.nn.functional as F

from cnnlabeler.errors import (
    CapacityExceededError,
    MalformedFeatureError,
    ParameterMismatchError,
    UninitializedUseError,
)

if TYPE_CHECKING:
    from cnnlabeler.graph.context import ExecutionContext

logger = logging.getLogger(__name__)

_ACTIVATIONS = {
    "tanh": torch.tanh,
    "relu": torch.relu,
    "sigmoid": torch.sigmoid,
}


class NodeKind(str, Enum):
    """Tag identifying which variant a node is."""
    LOOKUP = "lookup"
    DROPOUT = "dropout"
    WINDOW = "window"
    POOL = "pool"
    CONCAT = "concat"
    LINEAR = "linear"


NodeInput = Union["Node", torch.Tensor]


def node_value(item: NodeInput) -> torch.Tensor:
    """Return the tensor carried by ``item`` (a node's output or a tensor)."""
    if isinstance(item, Node):
        if item.output is None:
            raise UninitializedUseError(
                f"{item!r} has no output yet; run it before reading it"
            )
        return item.output
    return item


class Node(ABC):
    """
    Base class of every node kind.

    Parameters
    ----------
    position : int or None
        Index of the sentence position this slot is pinned to, for the
        per-position slot collections. None for sentence-level nodes.
    """

    kind: NodeKind

    def __init__(self, position: Optional[int] = None):
        self.position = position
        self.dim = 0
        self.output: Optional[torch.Tensor] = None

    def init(self, dim: int) -> None:
        """Declare the output width of this node."""
        if dim <= 0:
            raise ValueError(f"{type(self).__name__} dim must be positive, got {dim}")
        self.dim = dim

    @property
    def is_initialized(self) -> bool:
        return self.dim > 0

    def _check_ready(self) -> None:
        if not self.is_initialized:
            raise UninitializedUseError(f"{self!r} used before init()")

    def _check_width(self, value: torch.Tensor, expected: int, what: str) -> None:
        if value.dim() != 1 or value.shape[0] != expected:
            raise ParameterMismatchError(
                f"{self!r} expected {what} of width {expected}, "
                f"got shape {tuple(value.shape)}"
            )

    def _emit(self, context: ExecutionContext, value: torch.Tensor) -> torch.Tensor:
        self.output = value
        context.record(self)
        return value

    @abstractmethod
    def forward(self, context: ExecutionContext, *inputs):
        """Compute this node's output from its inputs."""

    def __repr__(self) -> str:
        where = "" if self.position is None else f"position={self.position}, "
        return f"{type(self).__name__}({where}dim={self.dim})"


# =============================================================================
# Lookup
# =============================================================================

class LookupNode(Node):
    """Embedding-row lookup bound to a shared ``nn.Embedding`` table."""

    kind = NodeKind.LOOKUP

    def __init__(self, position: Optional[int] = None):
        super().__init__(position)
        self.param: Optional[nn.Embedding] = None

    def set_param(self, embedding: nn.Embedding) -> None:
        self.param = embedding

    def init(self, dim: int) -> None:
        if self.param is None:
            raise UninitializedUseError(f"{self!r}: set_param() must precede init()")
        if dim != self.param.embedding_dim:
            raise ParameterMismatchError(
                f"Lookup dim {dim} does not match embedding table width "
                f"{self.param.embedding_dim}"
            )
        super().init(dim)

    def forward(self, context: ExecutionContext, token_id: int) -> torch.Tensor:
        self._check_ready()
        if isinstance(token_id, bool) or not isinstance(token_id, numbers.Integral):
            raise MalformedFeatureError(
                f"Token at position {self.position} must be an integer id, "
                f"got {type(token_id).__name__}"
            )
        n_rows = self.param.num_embeddings
        if not 0 <= token_id < n_rows:
            raise MalformedFeatureError(
                f"Token id {token_id} at position {self.position} is outside "
                f"the embedding table [0, {n_rows})"
            )
        return self._emit(context, self.param.weight[int(token_id)])


# =============================================================================
# Dropout
# =============================================================================

class DropoutNode(Node):
    """
    Inverted dropout gated by ``context.train``.

    In eval mode the input passes through unchanged. In train mode each
    dimension is zeroed independently with probability ``rate`` and the
    survivors are scaled by ``1 / (1 - rate)``.
    """

    kind = NodeKind.DROPOUT

    def __init__(self, position: Optional[int] = None):
        super().__init__(position)
        self.rate = 0.0

    def set_param(self, rate: float) -> None:
        if not 0.0 <= rate < 1.0:
            raise ValueError(f"Dropout rate must be in [0, 1), got {rate}")
        self.rate = float(rate)

    def forward(self, context: ExecutionContext, x: NodeInput) -> torch.Tensor:
        self._check_ready()
        value = node_value(x)
        self._check_width(value, self.dim, "input")

        if not context.train or self.rate == 0.0:
            return self._emit(context, value)

        # Drawn on CPU so a CPU generator works for any parameter device
        draws = torch.rand(value.shape, generator=context.generator)
        keep = (draws >= self.rate).to(device=value.device, dtype=value.dtype)
        return self._emit(context, value * keep / (1.0 - self.rate))


# =============================================================================
# Linear / Uni
# =============================================================================

class LinearNode(Node):
    """Affine map through a shared ``nn.Linear``; no activation."""

    kind = NodeKind.LINEAR

    def __init__(self, position: Optional[int] = None):
        super().__init__(position)
        self.param: Optional[nn.Linear] = None

    def set_param(self, linear: nn.Linear) -> None:
        self.param = linear

    def init(self, dim: int) -> None:
        if self.param is None:
            raise UninitializedUseError(f"{self!r}: set_param() must precede init()")
        if dim != self.param.out_features:
            raise ParameterMismatchError(
                f"{type(self).__name__} dim {dim} does not match weight "
                f"output width {self.param.out_features}"
            )
        super().init(dim)

    @property
    def in_dim(self) -> int:
        return 0 if self.param is None else self.param.in_features

    def _activate(self, h: torch.Tensor) -> torch.Tensor:
        return h

    def forward(self, context: ExecutionContext, x: NodeInput) -> torch.Tensor:
        self._check_ready()
        value = node_value(x)
        self._check_width(value, self.in_dim, "input")
        h = F.linear(value, self.param.weight, self.param.bias)
        return self._emit(context, self._activate(h))


class UniNode(LinearNode):
    """Affine map followed by a nonlinearity (the hidden projection)."""

    def __init__(self, position: Optional[int] = None, activation: str = "tanh"):
        super().__init__(position)
        self.set_activation(activation)

    def set_activation(self, name: str) -> None:
        if name not in _ACTIVATIONS:
            raise ValueError(
                f"Unknown activation: '{name}'. "
                f"Choose from: {', '.join(_ACTIVATIONS)}"
            )
        self.activation = name

    def _activate(self, h: torch.Tensor) -> torch.Tensor:
        return _ACTIVATIONS[self.activation](h)


# =============================================================================
# Pooling
# =============================================================================

class PoolNode(Node):
    """
    Reduces an ordered sequence of vectors to one vector.

    ``set_param(capacity)`` sizes the reducer for the longest sequence
    it may be fed; feeding more raises CapacityExceededError.
    """

    kind = NodeKind.POOL

    def __init__(self):
        super().__init__()
        self.capacity = 0

    def set_param(self, capacity: int) -> None:
        if capacity < 0:
            raise ValueError(f"Pool capacity must be >= 0, got {capacity}")
        self.capacity = capacity

    @abstractmethod
    def _reduce(self, stacked: torch.Tensor) -> torch.Tensor:
        """Reduce a (length, dim) tensor along the sequence axis."""

    def forward(
        self, context: ExecutionContext, inputs: Sequence[NodeInput]
    ) -> torch.Tensor:
        self._check_ready()
        if len(inputs) == 0:
            raise MalformedFeatureError(f"{self!r} cannot pool an empty sequence")
        if len(inputs) > self.capacity:
            raise CapacityExceededError(
                f"{self!r} sized for {self.capacity} inputs, got {len(inputs)}"
            )
        values = [node_value(x) for x in inputs]
        for value in values:
            self._check_width(value, self.dim, "input")
        return self._emit(context, self._reduce(torch.stack(values)))


class AvgPoolNode(PoolNode):
    def _reduce(self, stacked: torch.Tensor) -> torch.Tensor:
        return stacked.mean(dim=0)


class MaxPoolNode(PoolNode):
    def _reduce(self, stacked: torch.Tensor) -> torch.Tensor:
        return stacked.max(dim=0).values


class MinPoolNode(PoolNode):
    def _reduce(self, stacked: torch.Tensor) -> torch.Tensor:
        return stacked.min(dim=0).values


# =============================================================================
# Concat
# =============================================================================

class ConcatNode(Node):
    """Concatenates its inputs, in argument order, into one vector."""

    kind = NodeKind.CONCAT

    def forward(self, context: ExecutionContext, *inputs: NodeInput) -> torch.Tensor:
        self._check_ready()
        if not inputs:
            raise ValueError(f"{self!r} needs at least one input")
        joined = torch.cat([node_value(x) for x in inputs], dim=-1)
        self._check_width(joined, self.dim, "concatenation")
        return self._emit(context, joined)
