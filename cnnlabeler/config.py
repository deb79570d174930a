"""
CNN Labeler Configuration System
==================================
Centralized configuration for the sentence labeler using Python
dataclasses. Every sizing hyperparameter, dropout rate and runtime
setting lives here.

The graph builder, the parameter store and the decoder all read from
the same ``HyperParams`` object, so a dimension is declared exactly
once and every component sizes itself from it.

Usage:
    # Load from YAML file:
    >>> config = LabelerConfig.from_yaml("configs/default.yaml")

    # Create programmatically:
    >>> config = LabelerConfig(
    ...     hyper=HyperParams(word_dim=50, hidden_size=100, label_size=5),
    ...     runtime=RuntimeConfig(seed=13),
    ... )

    # Save to YAML:
    >>> config.to_yaml("configs/my_experiment.yaml")

    # Access nested values:
    >>> config.hyper.window_dim     # 250
    >>> config.hyper.concat_dim     # 300
"""

from __future__ import annotations

import yaml
import torch
import logging
from dataclasses import dataclass, field, asdict
from typing import Optional, Literal
from pathlib import Path

logger = logging.getLogger(__name__)

ACTIVATIONS = ("tanh", "relu", "sigmoid")
TRUNCATION_POLICIES = ("silent", "warn", "error")


# =============================================================================
# Hyperparameters
# =============================================================================

@dataclass
class HyperParams:
    """
    Sizing hyperparameters for the labeler graph.

    Data flow the sizes refer to:
        token ids → embeddings (word_dim)
                  → window concat (window_dim = word_dim × (2·word_context + 1))
                  → hidden projection (hidden_size)
                  → avg ‖ max ‖ min pooling (concat_dim = 3 × hidden_size)
                  → scores (label_size)

    Parameters
    ----------
    word_dim : int
        Dimensionality of each token embedding.

    hidden_size : int
        Output size of the per-position hidden projection, and therefore
        of each of the three pooled vectors.

    label_size : int
        Number of labels; length of the final score vector.

    word_context : int
        Number of neighbours taken on EACH side of a position by the
        window encoder. 0 means every position sees only itself.

    vocab_size : int
        Number of rows of the embedding table. Token ids must fall in
        ``[0, vocab_size)``.

    max_sentence_length : int
        Hard global cap on the number of tokens processed per sentence.
        Tokens past the cap are never looked up.

    input_dropout : float
        Dropout probability applied right after the embedding lookup.

    hidden_dropout : float
        Dropout probability applied right after the hidden projection.

    activation : str
        Nonlinearity of the hidden projection: "tanh", "relu" or "sigmoid".

    truncation : str
        What happens to sentences longer than ``max_sentence_length``:
        - "silent": truncate without notice (default)
        - "warn":   truncate and log a warning
        - "error":  raise CapacityExceededError
        The builder counts truncated sentences and tokens in every mode.
    """
    word_dim: int = 50
    hidden_size: int = 100
    label_size: int = 5
    word_context: int = 2
    vocab_size: int = 10000
    max_sentence_length: int = 1024
    input_dropout: float = 0.2
    hidden_dropout: float = 0.5
    activation: Literal["tanh", "relu", "sigmoid"] = "tanh"
    truncation: Literal["silent", "warn", "error"] = "silent"

    def validate(self) -> None:
        """
        Check that all hyperparameters are valid and consistent.

        Raises
        ------
        ValueError
            If any parameter is invalid.
        """
        for name in ("word_dim", "hidden_size", "label_size", "vocab_size"):
            value = getattr(self, name)
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")
        if self.word_context < 0:
            raise ValueError(
                f"word_context must be >= 0, got {self.word_context}"
            )
        if self.max_sentence_length < 1:
            raise ValueError(
                f"max_sentence_length must be >= 1, "
                f"got {self.max_sentence_length}"
            )
        if not 0.0 <= self.input_dropout < 1.0:
            raise ValueError(
                f"input_dropout must be in [0, 1), got {self.input_dropout}"
            )
        if not 0.0 <= self.hidden_dropout < 1.0:
            raise ValueError(
                f"hidden_dropout must be in [0, 1), got {self.hidden_dropout}"
            )
        if self.activation not in ACTIVATIONS:
            raise ValueError(
                f"Unknown activation: '{self.activation}'. "
                f"Choose from: {', '.join(ACTIVATIONS)}"
            )
        if self.truncation not in TRUNCATION_POLICIES:
            raise ValueError(
                f"Unknown truncation policy: '{self.truncation}'. "
                f"Choose from: {', '.join(TRUNCATION_POLICIES)}"
            )

    @property
    def window_size(self) -> int:
        """Number of positions covered by one window (2·context + 1)."""
        return 2 * self.word_context + 1

    @property
    def window_dim(self) -> int:
        """Width of one window-encoder output vector."""
        return self.word_dim * self.window_size

    @property
    def concat_dim(self) -> int:
        """Width of the avg ‖ max ‖ min concatenation."""
        return 3 * self.hidden_size

    @property
    def total_params_estimate(self) -> int:
        """Parameter count of the matching ModelParams."""
        embedding = self.vocab_size * self.word_dim
        hidden = self.window_dim * self.hidden_size + self.hidden_size
        output = self.concat_dim * self.label_size
        return embedding + hidden + output


# =============================================================================
# Runtime Configuration
# =============================================================================

@dataclass
class RuntimeConfig:
    """
    Settings that affect how a pass runs, not what it computes.

    Parameters
    ----------
    seed : int or None
        Seed for the dropout random source. Same seed = same dropout
        masks in training mode. None draws from a non-deterministic seed.

    device : str
        Device for the parameter store. "auto" picks CUDA, then MPS,
        then CPU.

    show_progress : bool
        Whether the decoder shows a tqdm progress bar.
    """
    seed: Optional[int] = 42
    device: str = "cpu"
    show_progress: bool = True

    def validate(self) -> None:
        """Validate runtime parameters."""
        if self.device not in ("auto", "cpu", "cuda", "mps"):
            raise ValueError(
                f"Unknown device: '{self.device}'. "
                f"Choose from: auto, cpu, cuda, mps"
            )

    def resolve_device(self) -> torch.device:
        """
        Auto-detect the best available device.

        Priority: CUDA > MPS (Apple Silicon) > CPU

        Returns
        -------
        torch.device
            The resolved device.
        """
        if self.device != "auto":
            return torch.device(self.device)

        if torch.cuda.is_available():
            logger.info("Using CUDA device (GPU detected)")
            return torch.device("cuda")
        elif hasattr(torch.backends, "mps") and torch.backends.mps.is_available():
            logger.info("Using MPS device (Apple Silicon detected)")
            return torch.device("mps")
        else:
            logger.info("Using CPU device")
            return torch.device("cpu")


# =============================================================================
# Master Configuration
# =============================================================================

@dataclass
class LabelerConfig:
    """
    Master configuration combining all sub-configurations.

    Usage:
        >>> config = LabelerConfig.from_yaml("configs/default.yaml")
        >>> config = LabelerConfig()
        >>> config.validate()
        >>> config.to_yaml("configs/my_experiment.yaml")
    """
    hyper: HyperParams = field(default_factory=HyperParams)
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)

    def validate(self) -> None:
        """
        Validate all sub-configurations.

        Raises
        ------
        ValueError
            If any parameter is invalid.
        """
        self.hyper.validate()
        self.runtime.validate()

        logger.info(
            f"Config validated: {self.hyper.total_params_estimate / 1e6:.2f}M "
            f"params, {self.hyper.label_size} labels, "
            f"window={self.hyper.window_size}"
        )

    @classmethod
    def from_yaml(cls, path: str | Path) -> LabelerConfig:
        """
        Load configuration from a YAML file.

        Parameters
        ----------
        path : str or Path
            Path to the YAML configuration file.

        Returns
        -------
        LabelerConfig
            Loaded and validated configuration.

        Raises
        ------
        FileNotFoundError
            If the YAML file does not exist.
        yaml.YAMLError
            If the YAML file is malformed.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(
                f"Config file not found: {path}. "
                f"Create one from configs/default.yaml as a template."
            )

        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)

        if raw is None:
            raise ValueError(f"Config file is empty: {path}")

        config = cls(
            hyper=HyperParams(**(raw.get("hyper") or {})),
            runtime=RuntimeConfig(**(raw.get("runtime") or {})),
        )

        config.validate()
        return config

    def to_yaml(self, path: str | Path) -> None:
        """
        Save configuration to a YAML file.

        Creates parent directories if they don't exist.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(
                self.to_dict(),
                f,
                default_flow_style=False,
                sort_keys=False,
                allow_unicode=True,
            )

        logger.info(f"Config saved to {path}")

    def to_dict(self) -> dict:
        """Convert to nested dictionary."""
        return asdict(self)

    @classmethod
    def for_smoke_test(cls) -> LabelerConfig:
        """
        Create a minimal configuration for quick tests.

        Tiny dimensions and a short length cap, no progress bars.
        """
        return cls(
            hyper=HyperParams(
                word_dim=8,
                hidden_size=6,
                label_size=3,
                word_context=1,
                vocab_size=50,
                max_sentence_length=16,
                input_dropout=0.2,
                hidden_dropout=0.5,
                activation="tanh",
                truncation="silent",
            ),
            runtime=RuntimeConfig(
                seed=7,
                device="cpu",
                show_progress=False,
            ),
        )

    def __repr__(self) -> str:
        """Pretty-print the configuration."""
        lines = [
            "LabelerConfig(",
            f"  Params:   {self.hyper.total_params_estimate / 1e6:.2f}M "
            f"(vocab={self.hyper.vocab_size})",
            f"  Dims:     word_dim={self.hyper.word_dim}, "
            f"hidden={self.hyper.hidden_size}, "
            f"labels={self.hyper.label_size}, "
            f"context={self.hyper.word_context}",
            f"  Dropout:  input={self.hyper.input_dropout}, "
            f"hidden={self.hyper.hidden_dropout}",
            f"  Length:   cap={self.hyper.max_sentence_length}, "
            f"truncation={self.hyper.truncation}",
            f"  Runtime:  seed={self.runtime.seed}, "
            f"device={self.runtime.device}",
            ")",
        ]
        return "\n".join(lines)
