"""PNG renderings of a quote and of the census age mix."""
from __future__ import annotations

import io

from matplotlib.figure import Figure

from censusquote.core.quote import AgeBand, AgeBandStats
from censusquote.core.schema import QuoteTable

TITLE = "Base Plan Rates"
SUBTITLE = "Monthly rates per $1000 of benefit that are\nused to calculate the illustrated premiums above"
TITLE_COLOR = "#0777d0"
QUOTE_COLUMNS = ["Age Range", "Small", "Significant", "Major"]


def _to_png(fig: Figure) -> bytes:
    buffer = io.BytesIO()
    fig.savefig(buffer, format="png", bbox_inches="tight")
    return buffer.getvalue()


def render_quote_image(table: QuoteTable) -> bytes:
    # called from worker threads, so stay off pyplot
    fig = Figure(figsize=(4.2, 2.6), dpi=150)
    ax = fig.add_subplot()
    ax.axis("off")
    fig.text(0.04, 0.96, TITLE, fontsize=12, fontweight="bold", color=TITLE_COLOR, ha="left", va="top")
    fig.text(0.04, 0.85, SUBTITLE, fontsize=6, ha="left", va="top")

    cells = [[row.age_range, row.small, row.significant, row.major] for row in table.rows()]
    grid = ax.table(cellText=cells, colLabels=QUOTE_COLUMNS, cellLoc="center", loc="lower center")
    grid.auto_set_font_size(False)
    grid.set_fontsize(8)
    grid.scale(1, 1.4)
    return _to_png(fig)


def render_distribution_chart(stats: AgeBandStats) -> bytes:
    fig = Figure(figsize=(2.5, 2.5), dpi=100)
    ax = fig.add_subplot()
    fractions = [stats.fraction(band) for band in AgeBand]
    labels = [
        f"{band.label}\n{fraction * 100:.2f}%" if fraction else ""
        for band, fraction in zip(AgeBand, fractions)
    ]
    ax.pie(fractions, labels=labels, startangle=90, counterclock=False, textprops={"fontsize": 7})
    ax.set_aspect("equal")
    return _to_png(fig)
