"""
cnnlabeler.graph — Execution Context & Node Kinds
===================================================
The graph-execution layer the builder orchestrates.

    ┌─ ExecutionContext ─────────────────────────────┐
    │  train flag · dropout generator · exec record  │
    └────────────────────────────────────────────────┘
               │ passed to every node.forward(...)
               ▼
    Lookup → Dropout → Window → Uni → Dropout → Pool ×3 → Concat → Linear

Components:
    - context.py — ExecutionContext (per-pass state)
    - nodes.py   — Node interface, NodeKind tags, all per-vector node kinds
    - window.py  — WindowBuilder (sliding-window context encoder)
"""

from cnnlabeler.graph.context import ExecutionContext
from cnnlabeler.graph.nodes import (
    AvgPoolNode,
    ConcatNode,
    DropoutNode,
    LinearNode,
    LookupNode,
    MaxPoolNode,
    MinPoolNode,
    Node,
    NodeKind,
    PoolNode,
    UniNode,
)
from cnnlabeler.graph.window import WindowBuilder
