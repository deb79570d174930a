"""
CNN Labeler Graph Builder
===========================
Builds and runs the forward graph of one sentence.

The builder owns pre-allocated slots (graph nodes pinned to a sentence
position) and reuses them across sentences: each call to ``forward``
overwrites the previous call's slot contents instead of allocating new
nodes.

Graph per sentence (len = active length):

    token_i ──Lookup_i──Dropout(0.2)_i──┐
                                        ├─ WindowBuilder ── ctx_0 … ctx_{len-1}
    (i = 0 … len-1)                     ┘
    ctx_i ──Uni_i (linear + tanh)──Dropout(0.5)_i ──┬── AvgPool ─┐
                                                    ├── MaxPool ─┼─ Concat ── Linear ── scores
                                                    └── MinPool ─┘

Lifecycle:
    1. builder = GraphBuilder(hyper)            — construct once
    2. builder.ensure_capacity(n)               — allocate slots (grow-only)
    3. builder.bind_parameters(params)          — wire slots to weights;
                                                  required after every growth
    4. builder.forward(context, feature, train) — repeatedly, one sentence
                                                  per call

Capacity policy:
    Capacity only grows. ``ensure_capacity(n)`` with ``n`` at or below the
    current capacity is a no-op, and requests above ``max_sentence_length``
    are clamped to it. Growth appends new, unbound slots and leaves the
    existing ones untouched, but marks the builder unbound until
    ``bind_parameters`` runs again.

Length cap:
    Only the first ``max_sentence_length`` tokens of a sentence are
    processed. What happens to the rest is ``HyperParams.truncation``:
    "silent" (default), "warn" or "error". ``truncated_sentences`` and
    ``truncated_tokens`` count truncations in every mode.

Concurrency:
    Not reentrant. Use one builder and one ExecutionContext per
    concurrently processed sentence; a ModelParams may be shared.

Usage:
    >>> builder = GraphBuilder(config.hyper)
    >>> builder.ensure_capacity(64)
    >>> builder.bind_parameters(params)
    >>> scores = builder.forward(ExecutionContext(), feature)
    >>> builder.predicted_label
"""

from __future__ import annotations

import logging
import numbers
from typing import Optional, Sequence

import torch

from cnnlabeler.config import HyperParams
from cnnlabeler.data.feature import Feature
from cnnlabeler.errors import (
    CapacityExceededError,
    MalformedFeatureError,
    UninitializedUseError,
)
from cnnlabeler.graph.context import ExecutionContext
from cnnlabeler.graph.nodes import (
    AvgPoolNode,
    ConcatNode,
    DropoutNode,
    LinearNode,
    LookupNode,
    MaxPoolNode,
    MinPoolNode,
    UniNode,
)
from cnnlabeler.graph.window import WindowBuilder
from cnnlabeler.model.params import ModelParams

logger = logging.getLogger(__name__)


class GraphBuilder:
    """
    Capacity-bounded slot manager and forward orchestrator.

    Parameters
    ----------
    hyper : HyperParams
        Sizing configuration; validated on construction.
    """

    def __init__(self, hyper: HyperParams):
        hyper.validate()
        self.hyper = hyper

        # Per-position slots
        self._word_inputs: list[LookupNode] = []
        self._dropout_after_input: list[DropoutNode] = []
        self._dropout_after_hidden: list[DropoutNode] = []
        self._word_window = WindowBuilder()
        self._hidden: list[UniNode] = []

        # Sentence-level slots
        self._avg_pooling = AvgPoolNode()
        self._max_pooling = MaxPoolNode()
        self._min_pooling = MinPoolNode()
        self._concat = ConcatNode()
        self.neural_output = LinearNode()

        self._params: Optional[ModelParams] = None
        self._bound = False

        self.truncated_sentences = 0
        self.truncated_tokens = 0

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def capacity(self) -> int:
        """Number of allocated per-position slots."""
        return len(self._word_inputs)

    @property
    def is_bound(self) -> bool:
        """True when every slot is wired to the current parameters."""
        return self._bound

    @property
    def params(self) -> Optional[ModelParams]:
        return self._params

    @property
    def output(self) -> Optional[torch.Tensor]:
        """Scores of the last successful forward pass, else None."""
        return self.neural_output.output

    @property
    def predicted_label(self) -> int:
        """Index of the highest score of the last forward pass."""
        if self.output is None:
            raise UninitializedUseError("No successful forward pass to read")
        return int(torch.argmax(self.output).item())

    @property
    def pooled(self) -> tuple[torch.Tensor, torch.Tensor, torch.Tensor]:
        """(avg, max, min) pooled vectors of the last forward pass."""
        return (
            self._avg_pooling.output,
            self._max_pooling.output,
            self._min_pooling.output,
        )

    @property
    def concatenated(self) -> Optional[torch.Tensor]:
        return self._concat.output

    def hidden_outputs(self, length: int) -> list[torch.Tensor]:
        """Post-dropout hidden vectors of the first ``length`` positions."""
        return [node.output for node in self._dropout_after_hidden[:length]]

    # -------------------------------------------------------------------------
    # Capacity
    # -------------------------------------------------------------------------

    def ensure_capacity(self, n: int) -> int:
        """
        Make sure at least ``n`` positions have slots.

        Parameters
        ----------
        n : int
            Requested capacity, >= 1. Clamped to ``max_sentence_length``.

        Returns
        -------
        int
            The capacity after the call.
        """
        if n < 1:
            raise ValueError(f"Capacity must be >= 1, got {n}")
        if n > self.hyper.max_sentence_length:
            logger.debug(
                f"Requested capacity {n} clamped to max_sentence_length "
                f"{self.hyper.max_sentence_length}"
            )
            n = self.hyper.max_sentence_length
        if n <= self.capacity:
            return self.capacity

        old_capacity = self.capacity
        for position in range(old_capacity, n):
            self._word_inputs.append(LookupNode(position))
            self._dropout_after_input.append(DropoutNode(position))
            self._hidden.append(UniNode(position, self.hyper.activation))
            self._dropout_after_hidden.append(DropoutNode(position))
        self._word_window.resize(n)

        for pool in (self._avg_pooling, self._max_pooling, self._min_pooling):
            pool.set_param(n)

        self._bound = False
        logger.info(
            f"GraphBuilder capacity grown {old_capacity} -> {n}; "
            f"parameters must be re-bound"
        )
        return self.capacity

    # -------------------------------------------------------------------------
    # Binding
    # -------------------------------------------------------------------------

    def bind_parameters(self, params: ModelParams) -> None:
        """
        Wire every slot to ``params`` and size every node.

        Shapes are checked against the hyperparameters before any slot
        is modified.

        Raises
        ------
        UninitializedUseError
            If no capacity has been established yet.
        ParameterMismatchError
            If a weight shape disagrees with the hyperparameters.
        """
        if self.capacity == 0:
            raise UninitializedUseError(
                "ensure_capacity() must be called before bind_parameters()"
            )
        params.check_compatible(self.hyper)
        hyper = self.hyper

        for idx in range(self.capacity):
            self._word_inputs[idx].set_param(params.words)
            self._word_inputs[idx].init(hyper.word_dim)
            self._hidden[idx].set_param(params.hidden_linear)
            self._hidden[idx].init(hyper.hidden_size)

        for node in self._dropout_after_input:
            node.init(hyper.word_dim)
            node.set_param(hyper.input_dropout)

        for node in self._dropout_after_hidden:
            node.init(hyper.hidden_size)
            node.set_param(hyper.hidden_dropout)

        self._word_window.init(hyper.word_dim, hyper.word_context)
        self._avg_pooling.init(hyper.hidden_size)
        self._max_pooling.init(hyper.hidden_size)
        self._min_pooling.init(hyper.hidden_size)
        self._concat.init(hyper.concat_dim)
        self.neural_output.set_param(params.olayer_linear)
        self.neural_output.init(hyper.label_size)

        self._params = params
        self._bound = True
        logger.info(f"GraphBuilder bound {self.capacity} positions to {params!r}")

    # -------------------------------------------------------------------------
    # Forward
    # -------------------------------------------------------------------------

    @staticmethod
    def _words(feature: Feature) -> Sequence[int]:
        words = getattr(feature, "words", None)
        if words is None:
            raise MalformedFeatureError(
                f"Expected a Feature with token ids, got {type(feature).__name__}"
            )
        if len(words) == 0:
            raise MalformedFeatureError("Cannot run a forward pass on an empty Feature")
        return words

    def active_length(self, feature: Feature) -> int:
        """Number of tokens of ``feature`` a forward pass will process."""
        return min(len(self._words(feature)), self.hyper.max_sentence_length)

    def _check_tokens(self, words: Sequence[int], length: int) -> None:
        """Reject bad ids among the first ``length`` tokens before any slot runs."""
        n_rows = self._params.words.num_embeddings
        for position, token_id in enumerate(words[:length]):
            if isinstance(token_id, bool) or not isinstance(token_id, numbers.Integral):
                raise MalformedFeatureError(
                    f"Token at position {position} must be an integer id, "
                    f"got {type(token_id).__name__}"
                )
            if not 0 <= token_id < n_rows:
                raise MalformedFeatureError(
                    f"Token id {token_id} at position {position} is outside "
                    f"the embedding table [0, {n_rows})"
                )

    def _resolve_length(self, feature: Feature) -> int:
        words = self._words(feature)
        raw_length = len(words)
        limit = self.hyper.max_sentence_length

        if raw_length > limit and self.hyper.truncation == "error":
            raise CapacityExceededError(
                f"Sentence has {raw_length} tokens, "
                f"max_sentence_length is {limit}"
            )
        length = min(raw_length, limit)
        self._check_tokens(words, length)
        if raw_length <= limit:
            return raw_length

        self.truncated_sentences += 1
        self.truncated_tokens += raw_length - limit
        if self.hyper.truncation == "warn":
            logger.warning(
                f"Sentence truncated from {raw_length} to {limit} tokens; "
                f"{raw_length - limit} tokens ignored"
            )
        return limit

    @torch.no_grad()
    def forward(
        self,
        context: ExecutionContext,
        feature: Feature,
        train: bool = False,
    ) -> torch.Tensor:
        """
        Run the graph on one sentence.

        Parameters
        ----------
        context : ExecutionContext
            Per-pass state; its train flag is set from ``train``.
        feature : Feature
            Token ids of the sentence.
        train : bool
            Enables dropout when True.

        Returns
        -------
        torch.Tensor
            Raw label scores, shape (label_size,). Also readable as
            ``builder.output`` until the next call; None if a call fails.

        Raises
        ------
        UninitializedUseError
            If parameters are not bound, or the sentence needs more slots
            than have been allocated.
        MalformedFeatureError
            If the Feature is empty or holds an invalid token id.
        CapacityExceededError
            If the sentence exceeds the length cap under
            ``truncation="error"``.
        """
        self.neural_output.output = None
        if not self._bound:
            raise UninitializedUseError(
                "forward() called before ensure_capacity() + bind_parameters()"
            )
        words_num = self._resolve_length(feature)
        if words_num > self.capacity:
            raise UninitializedUseError(
                f"Sentence needs {words_num} slots but capacity is "
                f"{self.capacity}; call ensure_capacity() and bind_parameters()"
            )

        context.reset(train)

        for i in range(words_num):
            self._word_inputs[i].forward(context, feature.words[i])

        for i in range(words_num):
            self._dropout_after_input[i].forward(context, self._word_inputs[i])

        self._word_window.forward(context, self._dropout_after_input[:words_num])

        for i in range(words_num):
            self._hidden[i].forward(context, self._word_window.outputs[i])

        for i in range(words_num):
            self._dropout_after_hidden[i].forward(context, self._hidden[i])

        hidden = self._dropout_after_hidden[:words_num]
        self._avg_pooling.forward(context, hidden)
        self._max_pooling.forward(context, hidden)
        self._min_pooling.forward(context, hidden)
        self._concat.forward(
            context, self._avg_pooling, self._max_pooling, self._min_pooling
        )
        return self.neural_output.forward(context, self._concat)

    def __repr__(self) -> str:
        return (
            f"GraphBuilder("
            f"capacity={self.capacity}, bound={self._bound}, "
            f"word_dim={self.hyper.word_dim}, hidden={self.hyper.hidden_size}, "
            f"labels={self.hyper.label_size})"
        )
