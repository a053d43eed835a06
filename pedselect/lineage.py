"""Глубина родословной: сколько предков записано в пределах g поколений."""
from __future__ import annotations
import logging
from typing import Iterable

from tqdm import tqdm

from .errors import CohortLookupError
from .pedigree import Pedigree

LOGGER = logging.getLogger(__name__)


def ancestor_count(
    pedigree: Pedigree,
    ind,
    max_generations: int,
    include_placeholders: bool = False,
) -> int:
    """Число различных предков не дальше ``max_generations`` шагов вверх.

    Сама особь не считается; предок, достижимый несколькими путями, – один раз.
    Фиктивные партнёры из ремонта не считаются записанными предками.
    """
    if ind not in pedigree:
        raise CohortLookupError([ind])
    seen = {ind}
    frontier = [ind]
    for _ in range(max_generations):
        nxt = []
        for child in frontier:
            for p in pedigree.parents(child):
                if p is None or p in seen:
                    continue
                if pedigree.is_placeholder(p) and not include_placeholders:
                    continue
                seen.add(p)
                nxt.append(p)
        if not nxt:
            break
        frontier = nxt
    return len(seen) - 1


def expected_ancestors(generations: int) -> int:
    """2 + 4 + … + 2^g."""
    return 2 ** (generations + 1) - 2


def full_depth_filter(pedigree: Pedigree, ids: Iterable, generations: int = 2) -> list:
    """Оставляет id, у которых записаны все предки до ``generations`` включительно."""
    target = expected_ancestors(generations)
    kept, unknown = [], []
    for ind in tqdm(list(ids), desc="lineage", disable=None):
        if ind not in pedigree:
            unknown.append(ind)
        elif ancestor_count(pedigree, ind, generations) == target:
            kept.append(ind)
    if unknown:
        LOGGER.warning("%d id(s) absent from pedigree, dropped: %s", len(unknown), unknown[:20])
    LOGGER.info("Full-depth (%d generations) filter kept %d ids", generations, len(kept))
    return kept
