"""
CNN Labeler Evaluator
=======================
Decodes a labelled set of sentences and reports label metrics.

What Gets Measured:
    1. Accuracy and macro F1 against gold labels
    2. Confusion matrix and predicted-label distribution
    3. Decoding wall-clock time
    4. How many sentences were truncated at the length cap

Usage:
    >>> evaluator = Evaluator(Decoder(config, params))
    >>> results = evaluator.evaluate(dev_features)
    >>> results["accuracy"], results["macro_f1"]
"""

from __future__ import annotations

import logging
from typing import Iterable

from cnnlabeler.data.feature import Feature
from cnnlabeler.errors import MalformedFeatureError
from cnnlabeler.evaluation.decoder import Decoder
from cnnlabeler.evaluation.metrics import Timer, compute_label_metrics

logger = logging.getLogger(__name__)


class Evaluator:
    """
    Evaluation pipeline over a Decoder.

    Parameters
    ----------
    decoder : Decoder
        Decoder holding the builder and parameters under evaluation.
    """

    def __init__(self, decoder: Decoder):
        self.decoder = decoder

    def evaluate(self, features: Iterable[Feature]) -> dict:
        """
        Decode ``features`` and score them.

        Parameters
        ----------
        features : iterable of Feature
            Sentences with gold labels.

        Returns
        -------
        dict
            Metrics from ``compute_label_metrics`` plus ``time_seconds``,
            ``sentences_per_second`` and ``truncated_sentences``.

        Raises
        ------
        MalformedFeatureError
            If any feature carries no gold label.
        """
        features = list(features)
        unlabelled = [
            i for i, f in enumerate(features)
            if getattr(f, "label", None) is None
        ]
        if unlabelled:
            raise MalformedFeatureError(
                f"{len(unlabelled)} feature(s) have no gold label "
                f"(first at index {unlabelled[0]})"
            )

        builder = self.decoder.builder
        truncated_before = builder.truncated_sentences

        with Timer("Decoding", n_items=len(features)) as timer:
            predicted = self.decoder.decode(features)

        gold = [f.label for f in features]
        results = compute_label_metrics(
            gold, predicted, self.decoder.config.hyper.label_size
        )
        results["time_seconds"] = timer.elapsed
        results["sentences_per_second"] = timer.per_second
        results["truncated_sentences"] = builder.truncated_sentences - truncated_before

        logger.info(
            f"Evaluated {results['n']} sentences: "
            f"accuracy={results['accuracy']:.4f}, "
            f"macro_f1={results['macro_f1']:.4f}, "
            f"truncated={results['truncated_sentences']}"
        )
        return results
