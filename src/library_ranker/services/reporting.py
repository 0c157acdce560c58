"""Leaderboard rendering and export for Library Ranker."""

from __future__ import annotations

import csv
import json
from dataclasses import asdict
from pathlib import Path

from tabulate import tabulate

from library_ranker.services.ranking_service import RankedItem

LEADERBOARD_COLUMNS = [
    "rank",
    "item_id",
    "title",
    "media_type",
    "rating",
    "match_count",
    "rating_deviation",
    "provisional",
]


def render_leaderboard(ranked: list[RankedItem], tablefmt: str = "github") -> str:
    """Format standings as a text table."""
    headers = ["Rank", "Title", "Type", "Rating", "Matches", "RD", "Provisional"]
    rows = [
        [
            r.rank,
            r.title or r.item_id,
            r.media_type,
            r.rating,
            r.match_count,
            r.rating_deviation,
            "yes" if r.provisional else "",
        ]
        for r in ranked
    ]
    return tabulate(rows, headers=headers, tablefmt=tablefmt, floatfmt=".1f")


def export_leaderboard(ranked: list[RankedItem], path: str | Path) -> Path:
    """Write standings to CSV or JSON, chosen by file suffix.

    Raises:
        ValueError: If the suffix is neither .csv nor .json.
    """
    output = Path(path)
    suffix = output.suffix.lower()
    if suffix not in (".csv", ".json"):
        msg = f"Unsupported export format '{suffix}'; use .csv or .json"
        raise ValueError(msg)

    output.parent.mkdir(parents=True, exist_ok=True)
    if suffix == ".json":
        with output.open("w", encoding="utf-8") as f:
            json.dump([asdict(r) for r in ranked], f, indent=2)
        return output

    with output.open("w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(LEADERBOARD_COLUMNS)
        for r in ranked:
            writer.writerow(
                [
                    r.rank,
                    r.item_id,
                    r.title,
                    r.media_type,
                    f"{r.rating:.1f}",
                    r.match_count,
                    f"{r.rating_deviation:.2f}",
                    r.provisional,
                ]
            )
    return output
