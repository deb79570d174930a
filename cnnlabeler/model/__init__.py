"""
cnnlabeler.model — Parameters & Graph Builder
==============================================
This subpackage defines the labeler's weights and the component that
wires them into a per-sentence forward graph.

    ┌─ ModelParams (shared, read-only during forward) ────────┐
    │  words · hidden_linear · olayer_linear                  │
    └─────────────────────────────────────────────────────────┘
                 │ referenced by every bound slot
                 ▼
    ┌─ GraphBuilder ──────────────────────────────────────────┐
    │  ensure_capacity(n)  →  bind_parameters(params)          │
    │  forward(context, feature, train) → label scores         │
    └─────────────────────────────────────────────────────────┘

Components:
    - params.py  — ModelParams (embedding, hidden and output weights)
    - builder.py — GraphBuilder (capacity, binding, forward orchestration)
"""

from cnnlabeler.model.params import ModelParams
from cnnlabeler.model.builder import GraphBuilder
