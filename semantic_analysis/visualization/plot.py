"""
Scatter plot of pairwise sentence similarity read back from a similarity file.
"""

import csv
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Union

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from util.logging import logger
from ..core.errors import OutputWriteError, PathError, PlotDataError

LABEL_LENGTH = 30
X_MARGIN = 50
IMAGE_WIDTH_PX = 1600
IMAGE_HEIGHT_PX = 900
DPI = 100


@dataclass
class PlotData:
    x_positions: List[float] = field(default_factory=list)
    y_values: List[float] = field(default_factory=list)
    words: List[str] = field(default_factory=list)
    pair_labels: List[str] = field(default_factory=list)
    document_similarity: float = 0.0


def truncate_sentence(sentence: str, max_length: int = LABEL_LENGTH) -> str:
    if not sentence or len(sentence) <= max_length:
        return sentence
    return sentence[:max_length]


def load_plot_data(csv_path: Union[str, Path]) -> PlotData:
    """
    Read a similarity file into plot series.

    Raises:
        PathError: the file does not exist
        PlotDataError: no row could be parsed
    """
    csv_path = Path(csv_path)
    if not csv_path.is_file():
        raise PathError(f"CSV file not found at {csv_path}")

    data = PlotData()
    with open(csv_path, "r", encoding="utf-8-sig", newline="") as f:
        lines = f.read().splitlines()

    for line in lines[1:]:
        if not line.strip():
            continue

        if line.startswith("Document_Similarity"):
            value = line.split("-->", 1)[1].strip() if "-->" in line else ""
            try:
                data.document_similarity = float(value)
            except ValueError:
                logger.warning(f"Unreadable document similarity line: {line}")
            continue

        fields = next(csv.reader([line]))
        if len(fields) < 6:
            continue

        index1 = fields[0].strip("[] ")
        index2 = fields[1].strip("[] ")
        word1 = fields[2]
        try:
            x_position = float(fields[4])
            similarity = float(fields[5])
        except ValueError:
            continue

        data.x_positions.append(x_position)
        data.y_values.append(similarity)
        data.words.append(f"{truncate_sentence(word1)}...")
        data.pair_labels.append(f"[{index1},{index2}]: {round(similarity, 2)}")

    if not data.x_positions:
        raise PlotDataError(f"No valid data points found in CSV file {csv_path}")

    return data


def render_scatter_plot(data: PlotData, output_path: Union[str, Path]) -> Path:
    """Draw every pair as a labelled point and save a 1600x900 PNG."""
    output_path = Path(output_path)

    x_min = min(data.x_positions) - X_MARGIN
    x_max = max(data.x_positions) + X_MARGIN

    fig, ax = plt.subplots(figsize=(IMAGE_WIDTH_PX / DPI, IMAGE_HEIGHT_PX / DPI), dpi=DPI)
    try:
        ax.scatter(data.x_positions, data.y_values, color="blue", s=40, zorder=3)
        for x, y, label in zip(data.x_positions, data.y_values, data.pair_labels):
            ax.annotate(label, (x, y), textcoords="offset points", xytext=(0, 10),
                        ha="center", fontsize=8, color="black")

        ax.axhline(0, color="black", alpha=0.5, linewidth=1, linestyle="--")
        ax.set_xlabel("X Axis")
        ax.set_ylabel("Cosine Similarity (-1 to 1)")
        ax.set_xlim(x_min, x_max)
        ax.set_ylim(-1.1, 1.1)
        ax.set_title(f"Document Similarity: {data.document_similarity:.4f}", fontsize=14, fontweight="bold")

        output_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(output_path, format="png")
    except OSError as e:
        raise OutputWriteError(f"Error saving plot '{output_path}': {e}") from e
    finally:
        plt.close(fig)

    logger.log_operation("visualization.save", "success", {"path": str(output_path), "points": len(data.x_positions)})
    return output_path
