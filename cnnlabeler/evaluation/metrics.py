"""
CNN Labeler Evaluation Metrics
================================
Quantitative metrics for a decoded set of sentences.

Metrics:
    1. ACCURACY — fraction of sentences whose predicted label matches gold.
    2. MACRO F1 — unweighted mean of per-label F1, so rare labels count
       as much as frequent ones. Labels never predicted nor present
       contribute 0 rather than raising.
    3. CONFUSION — label_size × label_size counts, rows = gold,
       columns = predicted.

Usage:
    >>> from cnnlabeler.evaluation.metrics import compute_label_metrics
    >>> metrics = compute_label_metrics([0, 1, 2], [0, 2, 2], label_size=3)
    >>> metrics["accuracy"]
    0.666...
"""

from __future__ import annotations

import logging
import time
from typing import Sequence

import numpy as np
from sklearn.metrics import accuracy_score, confusion_matrix, f1_score

logger = logging.getLogger(__name__)


def compute_label_metrics(
    gold: Sequence[int],
    predicted: Sequence[int],
    label_size: int,
) -> dict:
    """
    Score predicted labels against gold labels.

    Parameters
    ----------
    gold : sequence of int
        Gold label per sentence.
    predicted : sequence of int
        Predicted label per sentence, same order.
    label_size : int
        Number of labels; every label must be in ``[0, label_size)``.

    Returns
    -------
    dict
        ``n``, ``accuracy``, ``macro_f1``, ``confusion`` (nested lists) and
        ``predicted_distribution`` (count per label).

    Raises
    ------
    ValueError
        On empty input, length mismatch or out-of-range labels.
    """
    gold_arr = np.asarray(gold, dtype=np.int64)
    pred_arr = np.asarray(predicted, dtype=np.int64)

    if gold_arr.size == 0:
        raise ValueError("Cannot compute metrics on an empty set")
    if gold_arr.shape != pred_arr.shape:
        raise ValueError(
            f"gold ({gold_arr.size}) and predicted ({pred_arr.size}) "
            f"lengths differ"
        )
    for name, arr in (("gold", gold_arr), ("predicted", pred_arr)):
        if arr.min() < 0 or arr.max() >= label_size:
            raise ValueError(
                f"{name} labels must be in [0, {label_size}), "
                f"got range [{arr.min()}, {arr.max()}]"
            )

    labels = list(range(label_size))
    return {
        "n": int(gold_arr.size),
        "accuracy": float(accuracy_score(gold_arr, pred_arr)),
        "macro_f1": float(
            f1_score(
                gold_arr, pred_arr, labels=labels,
                average="macro", zero_division=0,
            )
        ),
        "confusion": confusion_matrix(gold_arr, pred_arr, labels=labels).tolist(),
        "predicted_distribution": np.bincount(
            pred_arr, minlength=label_size
        ).tolist(),
    }


class Timer:
    """
    Wall-clock timer for a decoding run that also reports throughput.

    Usage:
        >>> with Timer("Decoding", n_items=len(features)) as t:
        ...     decoder.decode(features)
        >>> t.per_second    # sentences decoded per second
    """

    def __init__(self, label: str = "decoding", n_items: int = 0):
        self.label = label
        self.n_items = n_items
        self.elapsed: float = 0.0
        self._started_at: float | None = None

    @property
    def per_second(self) -> float:
        """Items per second over the timed block; 0.0 if nothing was timed."""
        if self.elapsed <= 0.0 or self.n_items == 0:
            return 0.0
        return self.n_items / self.elapsed

    def __enter__(self) -> Timer:
        self._started_at = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.elapsed = time.perf_counter() - self._started_at
        if exc_type is None:
            logger.info(
                f"[{self.label}] {self.n_items} sentences in "
                f"{self.elapsed:.3f}s ({self.per_second:.1f}/s)"
            )
