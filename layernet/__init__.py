"""LayerNet public API."""

from .core import activations  # noqa: F401
from .core import matrix  # noqa: F401
from .core import types  # noqa: F401
from .core.network import Network, create_network
from .core.types import LayerRole, LayerSpec, NetworkOptions, Sample
from .training.pipelines import load_preset, presets, run_pipeline
from .training.trainer import Trainer, train_batch

__all__ = [
    "LayerRole",
    "LayerSpec",
    "Network",
    "NetworkOptions",
    "Sample",
    "Trainer",
    "activations",
    "create_network",
    "load_preset",
    "matrix",
    "presets",
    "run_pipeline",
    "train_batch",
    "types",
]
