"""
cnnlabeler.data — Input Types
==============================
Holds the per-sentence input consumed by the graph builder.

    - **Feature** (`feature.py`):
      One sentence's ordered token ids plus an optional gold label.
      Tokenization and vocabulary building happen upstream.
"""

from cnnlabeler.data.feature import Feature
