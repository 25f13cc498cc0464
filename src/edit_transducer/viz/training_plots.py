"""
Training Diagnostics Visualization.

Figures for inspecting an EM run and the learned edit model: log-likelihood
per iteration, heatmaps of p(op | input char) including both end-of-string
sentinels, and the per-character entropy of the operation distribution.
"""

import numpy as np
import matplotlib.pyplot as plt
import seaborn as sns
from typing import List, Optional, Sequence, Tuple, Union
from pathlib import Path
from dataclasses import dataclass

from ..core.edit_model import EditOp
from ..core.transducer import EditTransducer, TrainingResults
from ..data.alphabet import CharacterAlphabet

EOS_LABEL = "EOS"
EOS_PRIME_LABEL = "EOS'"


@dataclass
class TrainingPlotConfig:
    """Configuration for training diagnostics figures."""
    figure_size: Tuple[float, float] = (8, 5)
    dpi: int = 150
    font_size: int = 10
    line_width: float = 1.5
    marker_size: float = 4
    colormap: str = 'viridis'
    annotate: bool = True


def setup_plot_style(config: Optional[TrainingPlotConfig] = None) -> None:
    """Apply the package's matplotlib/seaborn style."""
    config = config or TrainingPlotConfig()
    sns.set_theme(style='whitegrid', context='paper')
    plt.rcParams.update({
        'font.size': config.font_size,
        'figure.dpi': config.dpi,
        'savefig.bbox': 'tight'
    })


def input_labels(alphabet: CharacterAlphabet) -> List[str]:
    """Labels for every input code: the alphabet's symbols, then EOS and EOS'."""
    return [repr(symbol)[1:-1] or ' ' for symbol in alphabet] + [EOS_LABEL, EOS_PRIME_LABEL]


def plot_training_history(results: TrainingResults,
                          config: Optional[TrainingPlotConfig] = None,
                          ax: Optional[plt.Axes] = None) -> plt.Figure:
    """Training (and, if recorded, development) log-likelihood per EM iteration.

    Parameters
    ----------
    results : TrainingResults
        Output of ``EditTransducer.train``
    config : Optional[TrainingPlotConfig]
        Figure settings
    ax : Optional[plt.Axes]
        Axes to draw into; a new figure is created when None

    Returns
    -------
    plt.Figure
        The figure holding the plot
    """
    config = config or TrainingPlotConfig()
    if ax is None:
        fig, ax = plt.subplots(figsize=config.figure_size)
    else:
        fig = ax.figure

    iterations = np.arange(results.n_iterations)
    ax.plot(iterations, results.log_likelihoods, marker='o', linewidth=config.line_width,
            markersize=config.marker_size, label='train')

    dev = results.dev_log_likelihoods
    if dev.size and np.any(np.isfinite(dev)):
        ax2 = ax.twinx()
        ax2.plot(iterations, dev, marker='s', color='C1', linewidth=config.line_width,
                 markersize=config.marker_size, label='dev')
        ax2.set_ylabel('Dev log-likelihood')
        if results.best_iteration >= 0:
            ax.axvline(results.best_iteration, color='gray', linestyle='--', linewidth=1,
                       label=f'best (iter {results.best_iteration})')
        handles, labels = ax.get_legend_handles_labels()
        handles2, labels2 = ax2.get_legend_handles_labels()
        ax.legend(handles + handles2, labels + labels2, loc='lower right')
    else:
        ax.legend(loc='lower right')

    ax.set_xlabel('EM iteration')
    ax.set_ylabel('Training log-likelihood')
    status = 'converged' if results.converged else 'iteration cap'
    ax.set_title(f'EM training ({results.n_iterations} iterations, {status})')
    return fig


def plot_edit_probabilities(model: EditTransducer,
                            alphabet: Optional[CharacterAlphabet] = None,
                            config: Optional[TrainingPlotConfig] = None,
                            ax: Optional[plt.Axes] = None) -> plt.Figure:
    """Heatmap of p(op | input char) for every input code, sentinels included."""
    config = config or TrainingPlotConfig()
    alphabet = alphabet or model.alphabet
    edit_model = model.edit_model
    labels = input_labels(alphabet)[:edit_model.input_size + 2]

    table = np.array([[edit_model.op_prob(op, code) for code in range(edit_model.input_size + 2)]
                      for op in EditOp])

    if ax is None:
        width = max(config.figure_size[0], 0.35 * len(labels) + 2)
        fig, ax = plt.subplots(figsize=(width, config.figure_size[1]))
    else:
        fig = ax.figure

    sns.heatmap(table, ax=ax, cmap=config.colormap, vmin=0.0, vmax=1.0,
                annot=config.annotate and len(labels) <= 30, fmt='.2f',
                xticklabels=labels, yticklabels=[op.name for op in EditOp],
                cbar_kws={'label': 'p(op | x)'})
    ax.set_xlabel('Input character')
    ax.set_ylabel('Edit operation')
    ax.set_title('Edit operation probabilities')
    return fig


def plot_op_entropy(model: EditTransducer,
                    alphabet: Optional[CharacterAlphabet] = None,
                    config: Optional[TrainingPlotConfig] = None,
                    ax: Optional[plt.Axes] = None) -> plt.Figure:
    """Bar chart of the entropy of p(op | x) per input code (0 at the sentinels)."""
    config = config or TrainingPlotConfig()
    alphabet = alphabet or model.alphabet
    entropies = model.edit_model.op_entropy()
    labels = input_labels(alphabet)[:len(entropies)]

    if ax is None:
        width = max(config.figure_size[0], 0.3 * len(labels) + 2)
        fig, ax = plt.subplots(figsize=(width, config.figure_size[1]))
    else:
        fig = ax.figure

    palette = sns.color_palette(config.colormap, len(labels))
    ax.bar(np.arange(len(labels)), entropies, color=palette)
    ax.axhline(np.log(len(EditOp)), color='gray', linestyle='--', linewidth=1, label='uniform')
    ax.set_xticks(np.arange(len(labels)))
    ax.set_xticklabels(labels)
    ax.set_xlabel('Input character')
    ax.set_ylabel('Entropy (nats)')
    ax.set_title('Uncertainty of the edit operation')
    ax.legend(loc='upper right')
    return fig


def save_figure(fig: plt.Figure,
                path: Union[str, Path],
                formats: Optional[Sequence[str]] = None,
                dpi: int = 300) -> List[Path]:
    """Save a figure in one or more formats.

    With ``formats`` the suffix of ``path`` is replaced by each format in
    turn; otherwise ``path`` is written as given.

    Returns
    -------
    List[Path]
        Written files
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    targets = [path.with_suffix(f'.{fmt}') for fmt in formats] if formats else [path]
    for target in targets:
        fig.savefig(target, dpi=dpi, bbox_inches='tight')
    return targets
