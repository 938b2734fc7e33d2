"""Headless-safe plotting adapters."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Mapping, Tuple


class PlotAdapter:
    """Collect per-epoch metrics and optionally emit matplotlib figures."""

    def __init__(self, run_dir: str | Path, enable_plots: bool = False):
        self.enable_plots = enable_plots
        self.run_dir = Path(run_dir)
        self._history: Dict[str, List[Tuple[int, float]]] = {}
        if self.enable_plots:
            self.run_dir.mkdir(parents=True, exist_ok=True)

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        if not self.enable_plots:
            return
        for name, value in metrics.items():
            self._history.setdefault(name, []).append((epoch, float(value)))

    def close(self) -> List[Path]:
        if not self.enable_plots or not self._history:
            return []
        import matplotlib

        matplotlib.use("Agg", force=True)
        import matplotlib.pyplot as plt  # imported lazily for headless safety

        written: List[Path] = []
        panels = {
            "loss.png": ("Loss", [n for n in self._history if n == "loss"]),
            "accuracy.png": ("Accuracy", [n for n in self._history if n.endswith("accuracy")]),
        }
        for filename, (label, names) in panels.items():
            if not names:
                continue
            fig, ax = plt.subplots()
            for name in names:
                epochs, values = zip(*self._history[name])
                ax.plot(epochs, values, marker="o", label=name)
            ax.set_xlabel("Epoch")
            ax.set_ylabel(label)
            ax.set_title(f"Training {label}")
            if len(names) > 1:
                ax.legend()
            plot_path = self.run_dir / filename
            fig.savefig(plot_path)
            plt.close(fig)
            written.append(plot_path)
        return written

    __call__ = on_epoch
