"""Config-driven assembly of data, network and trainer."""

from __future__ import annotations

import json
import logging
import time
from copy import deepcopy
from pathlib import Path
from typing import Dict, List, Mapping, Tuple

import yaml

from ..core.errors import InvalidShape
from ..core.network import Network, create_network
from ..core.types import LayerSpec, NetworkOptions, RunResult, Sample
from ..data.image_set import (
    IMG_SIZE,
    TEST_DATA,
    TRAIN_DATA,
    ImageSetMetadata,
    load_image_frame,
    read_image_set,
    write_fixture_csv,
)
from ..data.stats import get_transform
from ..data.utils import ensure_dir, seed_everything
from ..reporting.artifacts import write_manifest
from ..reporting.metrics import CsvSink, JsonlSink
from ..reporting.plots import PlotAdapter
from .propagation import evaluate, prepare_dataset
from .trainer import Trainer

logger = logging.getLogger(__name__)

_MNIST_LAYERS = [[IMG_SIZE, "input"], [16, "hidden"], [16, "hidden"], [10, "output"]]

_PRESETS: Dict[str, Mapping[str, object]] = {
    "mnist-sigmoid-bias": {
        "data": {
            "source": "csv",
            "reader": "pandas",
            "transform": "normalize",
            "train": {"path": "dataset/mnist_train.csv", "size": 60000},
            "test": {"path": "dataset/mnist_test.csv", "size": 10000},
        },
        "network": {
            "options": {
                "dist_strategy": "he_xavier",
                "dist_spread": 1.0,
                "initial_bias": 0.0,
                "learning_rate": 0.001,
                "node_orientation": "column",
            },
            "layers": _MNIST_LAYERS,
            "activation": "sigmoid",
        },
        "train": {
            "epochs": 1,
            "batch_size": 32,
            "rule": "bias",
            "seed": 0,
            "shuffle": False,
            "run_dir": "runs/mnist-sigmoid-bias",
            "enable_plots": False,
        },
    },
    "mnist-sigmoid-backprop": {
        "data": {
            "source": "csv",
            "reader": "pandas",
            "transform": "normalize",
            "train": {"path": "dataset/mnist_train.csv", "size": 60000},
            "test": {"path": "dataset/mnist_test.csv", "size": 10000},
        },
        "network": {
            "options": {
                "dist_strategy": "xavier",
                "dist_spread": 1.0,
                "initial_bias": 0.0,
                "learning_rate": 0.05,
                "node_orientation": "column",
            },
            "layers": _MNIST_LAYERS,
            "activation": "sigmoid",
        },
        "train": {
            "epochs": 3,
            "batch_size": 16,
            "rule": "backprop",
            "seed": 0,
            "shuffle": True,
            "run_dir": "runs/mnist-sigmoid-backprop",
            "enable_plots": False,
        },
    },
    "fixture-smoke": {
        "data": {
            "source": "fixture",
            "reader": "records",
            "transform": "normalize",
            "train": {"size": 60},
            "test": {"size": 20},
        },
        "network": {
            "options": {
                "dist_strategy": "he_xavier",
                "dist_spread": 1.0,
                "initial_bias": 0.0,
                "learning_rate": 0.1,
                "node_orientation": "column",
            },
            "layers": [[IMG_SIZE, "input"], [12, "hidden"], [10, "output"]],
            "activation": "sigmoid",
        },
        "train": {
            "epochs": 2,
            "batch_size": 10,
            "rule": "backprop",
            "seed": 7,
            "shuffle": False,
            "run_dir": "runs/fixture-smoke",
            "enable_plots": False,
        },
    },
}

_PRESET_DIR = Path(__file__).resolve().parents[1] / "presets"
_REQUIRED_SECTIONS = {"data", "network", "train"}


def read_config_file(path: str | Path) -> Mapping[str, object]:
    """Load a JSON or YAML config file into a mapping."""

    path = Path(path)
    text = path.read_text()
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        data = yaml.safe_load(text) or {}
    elif suffix == ".json":
        data = json.loads(text or "{}")
    else:
        raise ValueError(f"Unsupported config file type: {path.suffix}")
    if not isinstance(data, Mapping):
        raise TypeError(f"Config {path.name} must decode to a mapping")
    return data


def _file_presets() -> Dict[str, Mapping[str, object]]:
    presets: Dict[str, Mapping[str, object]] = {}
    if not _PRESET_DIR.exists():
        return presets
    for file in sorted(_PRESET_DIR.iterdir()):
        if file.suffix.lower() not in {".yaml", ".yml", ".json"}:
            continue
        data = read_config_file(file)
        missing = _REQUIRED_SECTIONS - set(data)
        if missing:
            raise KeyError(f"Preset {file.name} is missing required sections: {', '.join(sorted(missing))}")
        presets[file.stem] = json.loads(json.dumps(data))
    return presets


def presets() -> Mapping[str, Mapping[str, object]]:
    combined: Dict[str, Mapping[str, object]] = {name: deepcopy(cfg) for name, cfg in _PRESETS.items()}
    combined.update(_file_presets())
    return combined


def load_preset(name: str) -> Mapping[str, object]:
    available = presets()
    try:
        return available[name]
    except KeyError as exc:
        raise KeyError(f"Unknown preset: {name}") from exc


def _load_split(
    data_cfg: Mapping[str, object], split: str, run_dir: Path, seed: int
) -> Tuple[List[Sample], Dict[str, object]]:
    split_cfg = dict(data_cfg.get(split) or {})
    source = str(data_cfg.get("source", "csv"))
    size = split_cfg.get("size")
    size = int(size) if size is not None else None
    if source == "fixture":
        rows = size or 100
        path = write_fixture_csv(run_dir / "data" / f"{split}.csv", rows, seed=seed)
        size = rows
    elif source == "csv":
        if "path" not in split_cfg:
            raise KeyError(f"data.{split}.path is required for csv sources")
        path = Path(str(split_cfg["path"]))
    else:
        raise ValueError(f"Unknown data source: {source}")

    reader = str(data_cfg.get("reader", "pandas"))
    if reader == "pandas":
        samples = load_image_frame(path, size)
    elif reader == "records":
        default = TRAIN_DATA if split == "train" else TEST_DATA
        samples = read_image_set(ImageSetMetadata(str(path), size or default.size))
    else:
        raise ValueError(f"Unknown reader: {reader}")
    provenance = {"source": source, "path": str(path), "reader": reader, "records": len(samples)}
    return samples, provenance


def build_network(network_cfg: Mapping[str, object]) -> Network:
    options = NetworkOptions.from_mapping(dict(network_cfg.get("options", {})))
    layers = [LayerSpec.parse(spec) for spec in network_cfg.get("layers", [])]
    if not layers:
        raise InvalidShape("network.layers must list at least one layer")
    return create_network(options, layers)


def _resolve_run_dir(train_cfg: Mapping[str, object]) -> Path:
    if "run_dir" in train_cfg:
        return Path(str(train_cfg["run_dir"]))
    return Path("runs") / time.strftime("%Y%m%d-%H%M%S")


def run_pipeline(config: Mapping[str, object]) -> RunResult:
    """Load data, build the network, train it and write run artifacts."""

    missing = _REQUIRED_SECTIONS - set(config)
    if missing:
        raise KeyError(f"Config is missing required sections: {', '.join(sorted(missing))}")
    data_cfg = dict(config["data"])
    network_cfg = dict(config["network"])
    train_cfg = dict(config["train"])

    seed = int(train_cfg.get("seed", 0))
    epochs = int(train_cfg.get("epochs", 1))
    batch_size = int(train_cfg.get("batch_size", 32))
    rule = str(train_cfg.get("rule", "bias"))
    activation = str(network_cfg.get("activation", "sigmoid"))
    run_dir = ensure_dir(_resolve_run_dir(train_cfg))

    seed_everything(seed)
    train_samples, train_meta = _load_split(data_cfg, "train", run_dir, seed)
    test_samples, test_meta = _load_split(data_cfg, "test", run_dir, seed + 1)

    network = build_network(network_cfg)
    first = network.get_layer(1).nodes
    if first != IMG_SIZE:
        raise InvalidShape(f"The first layer must have {IMG_SIZE} nodes, got {first}")

    orientation = network.options.node_orientation
    transform = get_transform(str(data_cfg.get("transform", "normalize")))
    prepare_dataset(train_samples, orientation, transform)
    prepare_dataset(test_samples, orientation, transform)

    logger.info(
        "Training %s network (%d parameters) on %d samples, testing on %d; rule=%s activation=%s",
        network.node_counts(),
        network.parameter_count(),
        len(train_samples),
        len(test_samples),
        rule,
        activation,
    )

    jsonl = JsonlSink(run_dir / "metrics.jsonl", split="train", seed=seed)
    csv_sink = CsvSink(run_dir / "metrics.csv", split="train")
    plots = PlotAdapter(run_dir, enable_plots=bool(train_cfg.get("enable_plots", False)))
    trainer = Trainer(
        network,
        activation,
        batch_size=batch_size,
        rule=rule,
        callbacks=[jsonl, csv_sink, plots],
    )
    history = trainer.run(
        train_samples,
        epochs,
        test_samples=test_samples,
        seed=seed,
        shuffle=bool(train_cfg.get("shuffle", False)),
    )
    plots.close()

    accuracy = history[-1].get("test_accuracy") if history else None
    if accuracy is None:
        accuracy = evaluate(network, trainer.activation, test_samples)

    safe_config = json.loads(json.dumps(config))
    manifest = write_manifest(
        run_dir / "manifest.json",
        config=safe_config,
        dataset_provenance={"train": train_meta, "test": test_meta},
        network=network.describe(),
    )
    (run_dir / "config.json").write_text(json.dumps(safe_config, indent=2))
    logger.info("Test accuracy: %.2f%%", accuracy * 100.0)

    return RunResult(
        epochs=epochs,
        accuracy=float(accuracy),
        metrics_path=str(jsonl.path),
        manifest_path=manifest,
        history=history,
    )


__all__ = ["build_network", "load_preset", "presets", "read_config_file", "run_pipeline"]
