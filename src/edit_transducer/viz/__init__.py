"""
Edit Transducer Visualization Module.

Diagnostics figures for EM training runs and learned edit models.

Modules:
- training_plots: log-likelihood history, edit probability heatmaps, op entropy
"""

from .training_plots import (
    TrainingPlotConfig,
    setup_plot_style,
    input_labels,
    plot_training_history,
    plot_edit_probabilities,
    plot_op_entropy,
    save_figure
)

__all__ = [
    'TrainingPlotConfig',
    'setup_plot_style',
    'input_labels',
    'plot_training_history',
    'plot_edit_probabilities',
    'plot_op_entropy',
    'save_figure'
]
