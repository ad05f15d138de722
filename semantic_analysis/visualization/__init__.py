"""
Visualization boundary: plot series from a similarity file and the PNG renderer.
"""

from .plot import PlotData, load_plot_data, render_scatter_plot, truncate_sentence

__all__ = ['PlotData', 'load_plot_data', 'render_scatter_plot', 'truncate_sentence']
