"""Propagation, training loops and config-driven pipelines."""

from .pipelines import build_network, load_preset, presets, read_config_file, run_pipeline
from .propagation import (
    ForwardTrace,
    decode,
    evaluate,
    forward_propagate,
    forward_trace,
    loss_gradient,
    one_hot,
    prepare_dataset,
    prepare_sample,
    sum_squared_residuals,
)
from .trainer import UPDATE_RULES, Trainer, train_batch

__all__ = [
    "ForwardTrace",
    "Trainer",
    "UPDATE_RULES",
    "build_network",
    "decode",
    "evaluate",
    "forward_propagate",
    "forward_trace",
    "load_preset",
    "loss_gradient",
    "one_hot",
    "prepare_dataset",
    "prepare_sample",
    "presets",
    "read_config_file",
    "run_pipeline",
    "sum_squared_residuals",
    "train_batch",
]
