#!/usr/bin/env python
"""Simulate a user ranking a library with a hidden preference order.

Each decision is drawn from the Elo expectation between the items' hidden
scores, so the simulated user is consistent but noisy. Prints how well the
learned standings agree with the hidden order as comparisons accumulate.

Uses an in-memory store unless LIBRARY_RANKER_DATABASE_URL is set.
"""

import asyncio
import os
import random
from itertools import combinations
from pathlib import Path

from dotenv import load_dotenv

from library_ranker.core.config import DATABASE_URL_ENV, RankerConfig
from library_ranker.ranking import calculate_expected_outcome
from library_ranker.services import RankingService
from library_ranker.services.reporting import export_leaderboard, render_leaderboard
from library_ranker.services.selection import InsufficientItems
from library_ranker.services.storage import DBStore, MemoryStore

load_dotenv()

USER = "simulated"
SEED = 2026
LIBRARY_SIZE = 24
COMPARISONS = 400
REPORT_EVERY = 50
OUTPUT_DIR = Path("./runs/simulation")


def kendall_agreement(hidden: dict[str, float], learned: dict[str, float]) -> float:
    """Fraction of item pairs ordered the same way by both scorings."""
    pairs = list(combinations(hidden, 2))
    agree = sum(
        1 for a, b in pairs if (hidden[a] - hidden[b]) * (learned[a] - learned[b]) > 0
    )
    return agree / len(pairs)


async def main() -> None:
    """Run the simulation."""
    rng = random.Random(SEED)  # noqa: S311
    database_url = os.environ.get(DATABASE_URL_ENV)
    store = DBStore(database_url) if database_url else MemoryStore()
    service = RankingService(store, RankerConfig(seed=SEED))

    try:
        await service.reset_system(USER, confirm=True)
        await service.initialize_system(USER)

        media_types = ["movie", "tv", "anime"]
        hidden: dict[str, float] = {}
        for i in range(LIBRARY_SIZE):
            item = await service.add_item(
                USER,
                media_id=f"sim:{i}",
                media_type=media_types[i % len(media_types)],
                title=f"Title {i:02d}",
            )
            hidden[item.id] = rng.gauss(1500, 250)

        print(f"Simulating {COMPARISONS} comparisons over {LIBRARY_SIZE} items...")
        for n in range(1, COMPARISONS + 1):
            pair = await service.select_next_pair(USER)
            if isinstance(pair, InsufficientItems):
                raise RuntimeError(f"Library too small: {pair.available} items")

            a, b = pair.ids
            if rng.random() < calculate_expected_outcome(hidden[a], hidden[b]):
                await service.record_comparison(USER, a, b)
            else:
                await service.record_comparison(USER, b, a)

            if n % REPORT_EVERY == 0:
                learned = {item.id: item.rating for item in await store.list_items(USER)}
                agreement = kendall_agreement(hidden, learned)
                print(f"  {n:4d} comparisons: pair agreement {agreement:.3f}")

        ranked = await service.get_ranked_items(USER, limit=LIBRARY_SIZE)
        print()
        print(render_leaderboard(ranked))

        path = export_leaderboard(ranked, OUTPUT_DIR / "standings.csv")
        print(f"\nStandings written to: {path}")
    finally:
        await store.close()


if __name__ == "__main__":
    asyncio.run(main())
