"""
cnnlabeler.evaluation — Decoding & Metrics
===========================================
Runs the graph builder over whole sets of sentences and measures how
well the predicted labels match gold labels.

Components:
    - decoder.py   — Decoder (one builder + context, batch decoding)
    - metrics.py   — Accuracy, macro F1, confusion matrix, Timer
    - evaluator.py — Evaluator (decode + score + report)

Information Flow:
    Features + ModelParams → Decoder → predicted labels
        → compute_label_metrics(gold, predicted) → results dict
"""

from cnnlabeler.evaluation.metrics import compute_label_metrics, Timer
from cnnlabeler.evaluation.decoder import Decoder
from cnnlabeler.evaluation.evaluator import Evaluator
