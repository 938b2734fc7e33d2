"""Command line entry point for LayerNet training runs."""

from __future__ import annotations

import argparse
import json
import logging
import os
from pathlib import Path
from typing import Iterable

from layernet.core.errors import LayerNetError
from layernet.training import pipelines

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger("layernet.cli")


def configure_logging(level: str | None = None) -> None:
    name = (level or os.environ.get("LAYERNET_LOG_LEVEL") or "INFO").upper()
    numeric = getattr(logging, name, None)
    if not isinstance(numeric, int):
        raise SystemExit(f"Unknown log level: {name}")
    logging.basicConfig(level=numeric, format=LOG_FORMAT)


def _format_result(result) -> str:
    payload = {
        "epochs": result.epochs,
        "accuracy": round(result.accuracy, 6),
        "metrics": result.metrics_path,
        "manifest": result.manifest_path,
    }
    return json.dumps(payload, sort_keys=True)


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    preset_names = sorted(pipelines.presets().keys())
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--preset",
        choices=preset_names,
        default="mnist-sigmoid-bias",
        help="Preset configuration to execute",
    )
    parser.add_argument(
        "--config", type=Path, help="Optional JSON/YAML config override"
    )
    parser.add_argument(
        "--list-presets", action="store_true", help="List available presets and exit"
    )
    parser.add_argument("--epochs", type=int, help="Number of passes over the training set")
    parser.add_argument(
        "--seed",
        type=int,
        help="Seed used for weight initialization and shuffling",
    )
    parser.add_argument("--train-csv", help="Path to the training CSV (label + 784 pixels)")
    parser.add_argument("--test-csv", help="Path to the test CSV (label + 784 pixels)")
    parser.add_argument("--train-size", type=int, help="Number of training records to read")
    parser.add_argument("--test-size", type=int, help="Number of test records to read")
    parser.add_argument(
        "--fixture",
        action="store_true",
        help="Train on generated offline digits instead of CSV files",
    )
    parser.add_argument(
        "--enable-plots", action="store_true", help="Enable plotting adapters"
    )
    parser.add_argument(
        "--dump-config", type=Path, help="Dump the resolved config to a JSON file"
    )
    parser.add_argument(
        "--log-level",
        help="Logging level (defaults to $LAYERNET_LOG_LEVEL or INFO)",
    )
    return parser.parse_args(argv)


def _load_override(path: Path) -> dict:
    return dict(pipelines.read_config_file(path))


def _merge(base: dict, override: dict) -> dict:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            base[key] = _merge(dict(base[key]), value)
        else:
            base[key] = value
    return base


def resolve_config(args: argparse.Namespace) -> dict:
    config = json.loads(json.dumps(pipelines.load_preset(args.preset)))

    if args.config:
        override = _load_override(args.config)
        if {"data", "network", "train"} <= set(override.keys()):
            config = json.loads(json.dumps(override))
        else:
            config = _merge(config, override)

    data_cfg = config.setdefault("data", {})
    train_cfg = config.setdefault("train", {})

    if args.fixture:
        data_cfg["source"] = "fixture"
    for split, path, size in (
        ("train", args.train_csv, args.train_size),
        ("test", args.test_csv, args.test_size),
    ):
        split_cfg = data_cfg.setdefault(split, {})
        if path:
            data_cfg["source"] = "csv"
            split_cfg["path"] = path
        if size is not None:
            split_cfg["size"] = int(size)

    if args.epochs is not None:
        train_cfg["epochs"] = int(args.epochs)
    if args.seed is not None:
        train_cfg["seed"] = int(args.seed)
    if args.enable_plots:
        train_cfg["enable_plots"] = True
    return config


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv)
    configure_logging(args.log_level)

    if args.list_presets:
        for name in sorted(pipelines.presets().keys()):
            print(name)
        raise SystemExit(0)

    config = resolve_config(args)

    if args.dump_config:
        args.dump_config.parent.mkdir(parents=True, exist_ok=True)
        args.dump_config.write_text(json.dumps(config, indent=2))

    try:
        result = pipelines.run_pipeline(config)
    except LayerNetError as exc:
        logger.error("Run failed: %s", exc)
        raise SystemExit(f"error: {exc}") from exc

    print(_format_result(result))
    print(f"Accuracy: {result.accuracy * 100.0:.2f}%")


if __name__ == "__main__":
    main()
