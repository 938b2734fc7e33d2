"""Compare the bias-only and backprop update rules on the offline fixture."""

from __future__ import annotations

import argparse
import csv
import json
from pathlib import Path
from statistics import mean, pstdev

from layernet.core import matrix as mx
from layernet.core.network import create_network
from layernet.core.types import NetworkOptions, Sample
from layernet.data import stats
from layernet.data.image_set import IMG_SIZE, fixture_images
from layernet.data.utils import seed_everything
from layernet.training.propagation import prepare_dataset
from layernet.training.trainer import Trainer

RULES = ["bias", "backprop"]


def _fmt_mu_sigma(vals):
    mu = mean(vals)
    sd = pstdev(vals) if len(vals) > 1 else 0.0
    return f"{mu:.4f} ± {sd:.4f}"


def _samples(rows: int, seed: int):
    images, labels = fixture_images(rows, seed=seed)
    samples = [
        Sample(expected_value=int(label), input_values=mx.Matrix(image))
        for image, label in zip(images, labels)
    ]
    return prepare_dataset(samples, "column", stats.normalize)


def train_one(rule: str, seed: int, epochs: int, lr: float, batch: int, rows: int) -> dict:
    seed_everything(seed)
    options = NetworkOptions.from_mapping(
        {"dist_strategy": "he_xavier", "learning_rate": lr, "node_orientation": "column"}
    )
    network = create_network(options, [(IMG_SIZE, "input"), (16, "hidden"), (10, "output")])
    trainer = Trainer(network, "sigmoid", batch_size=batch, rule=rule)
    history = trainer.run(_samples(rows, seed), epochs, test_samples=_samples(rows // 2, seed + 1), seed=seed)
    return {"final_loss": history[-1]["loss"], "final_acc": history[-1]["test_accuracy"]}


def main():
    ap = argparse.ArgumentParser(description=__doc__)
    ap.add_argument("--seeds", nargs="+", type=int, default=[123, 124, 125])
    ap.add_argument("--epochs", type=int, default=3)
    ap.add_argument("--lr", type=float, default=0.01)
    ap.add_argument("--batch", type=int, default=10)
    ap.add_argument("--rows", type=int, default=100)
    ap.add_argument("--out", type=str, default=".artifacts/bench")
    args = ap.parse_args()

    out = Path(args.out)
    out.mkdir(parents=True, exist_ok=True)
    runs = []
    for rule in RULES:
        for s in args.seeds:
            r = train_one(rule, seed=s, epochs=args.epochs, lr=args.lr, batch=args.batch, rows=args.rows)
            runs.append({"rule": rule, "seed": s, **r})
    (out / "results.jsonl").write_text(
        "\n".join(json.dumps(x) for x in runs), encoding="utf-8"
    )

    agg = {}
    for rule in RULES:
        accs = [r["final_acc"] for r in runs if r["rule"] == rule]
        losses = [r["final_loss"] for r in runs if r["rule"] == rule]
        agg[rule] = {
            "n": len(accs),
            "final_acc_mu": mean(accs),
            "final_acc_sd": pstdev(accs) if len(accs) > 1 else 0.0,
            "final_loss_mu": mean(losses),
            "final_loss_sd": pstdev(losses) if len(losses) > 1 else 0.0,
        }
    bias_acc = agg["bias"]["final_acc_mu"]
    for rule in RULES:
        agg[rule]["delta_acc_vs_bias"] = agg[rule]["final_acc_mu"] - bias_acc

    csv_path = out / "bench_rules.csv"
    with csv_path.open("w", newline="", encoding="utf-8") as f:
        w = csv.writer(f)
        w.writerow(
            [
                "rule",
                "seeds",
                "epochs",
                "final_loss_mu",
                "final_loss_sd",
                "final_acc_mu",
                "final_acc_sd",
                "delta_acc_vs_bias",
            ]
        )
        for rule in RULES:
            a = agg[rule]
            w.writerow(
                [
                    rule,
                    a["n"],
                    args.epochs,
                    f"{a['final_loss_mu']:.4f}",
                    f"{a['final_loss_sd']:.4f}",
                    f"{a['final_acc_mu']:.4f}",
                    f"{a['final_acc_sd']:.4f}",
                    f"{a['delta_acc_vs_bias']:.4f}",
                ]
            )

    md_path = out / "bench_rules.md"
    lines = ["### Update rules: bias-only vs backprop (offline fixture)", ""]
    lines.append(
        f"- Seeds: `{args.seeds}`; Epochs: `{args.epochs}`; "
        f"LR: `{args.lr}`; Batch: `{args.batch}`; Rows: `{args.rows}`"
    )
    lines.append("")
    lines.append("| Rule | Final Loss (μ±σ) | Final Acc (μ±σ) | ΔAcc vs bias | Seeds | Epochs |")
    lines.append("|---|---:|---:|---:|---:|---:|")
    for rule in RULES:
        fl = [r["final_loss"] for r in runs if r["rule"] == rule]
        fa = [r["final_acc"] for r in runs if r["rule"] == rule]
        lines.append(
            f"| {rule.upper()} | {_fmt_mu_sigma(fl)} | {_fmt_mu_sigma(fa)} | "
            f"{agg[rule]['delta_acc_vs_bias']:+.4f} | {agg[rule]['n']} | {args.epochs} |"
        )
    md_path.write_text("\n".join(lines), encoding="utf-8")
    print("Wrote:", csv_path, md_path)


if __name__ == "__main__":
    main()
