"""Headless-safe plotting adapters."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Tuple


class PlotAdapter:
    """Collect per-epoch losses and optionally emit a matplotlib figure."""

    def __init__(self, run_dir: str | Path, enable_plots: bool = False):
        self.enable_plots = enable_plots
        self.run_dir = Path(run_dir)
        self._history: List[Tuple[int, float, Optional[float]]] = []
        if self.enable_plots:
            self.run_dir.mkdir(parents=True, exist_ok=True)

    def on_epoch(self, epoch: int, metrics):
        if not self.enable_plots:
            return
        val = metrics.get("val_loss")
        self._history.append(
            (epoch, float(metrics.get("loss", 0.0)), None if val is None else float(val))
        )

    def close(self) -> Optional[Path]:
        if not self.enable_plots or not self._history:
            return None
        import matplotlib

        matplotlib.use("Agg", force=True)
        import matplotlib.pyplot as plt  # imported lazily for headless safety

        epochs, losses, val_losses = zip(*self._history)
        fig, ax = plt.subplots()
        ax.plot(epochs, losses, label="train")
        if any(v is not None for v in val_losses):
            ax.plot(
                [e for e, v in zip(epochs, val_losses) if v is not None],
                [v for v in val_losses if v is not None],
                label="validation",
            )
            ax.legend()
        ax.set_xlabel("Epoch")
        ax.set_ylabel("Loss")
        ax.set_title("Training Curve")
        plot_path = self.run_dir / "loss.png"
        fig.savefig(plot_path)
        plt.close(fig)
        return plot_path

    __call__ = on_epoch
