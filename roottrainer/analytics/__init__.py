from .plots import plot_round_timeline

__all__ = ["plot_round_timeline"]
