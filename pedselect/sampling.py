"""
Стратифицированная по регионам выборка из очищенного от родственников набора.

Квоты: поровну или пропорционально численности региона, округление методом
наибольших остатков (при равных остатках +1 получает меньший код региона),
так что сумма квот всегда равна запрошенному итогу.
"""
from __future__ import annotations
import logging
import math
from typing import Hashable, Iterable, Literal, Mapping

import numpy as np
import pandas as pd

from .errors import DuplicateIdError, QuotaShortfallError, QuotaSumError

LOGGER = logging.getLogger(__name__)


def region_population(region_of: Mapping | pd.Series) -> dict:
    """Численность по регионам (id без региона не считаются)."""
    regions = pd.Series(region_of, dtype="object").dropna().astype(int)
    return regions.value_counts().sort_index().to_dict()


def allocate_quotas(
    total: int,
    weights: Mapping[Hashable, float],
    method: Literal["proportional", "equal"] = "proportional",
) -> dict:
    if total < 0:
        raise ValueError(f"Total must be non-negative, got {total}")
    regions = sorted(weights)
    if method == "equal":
        w = {r: 1.0 for r in regions}
    elif method == "proportional":
        w = {r: float(weights[r]) for r in regions}
        negative = [r for r in regions if w[r] < 0]
        if negative:
            raise ValueError(f"Negative region weights: {negative}")
    else:
        raise ValueError(f"Unknown allocation method: {method!r}")

    weight_sum = sum(w.values())
    if weight_sum <= 0:
        raise ValueError("Region weights sum to zero")

    exact = {r: total * w[r] / weight_sum for r in regions}
    quotas = {r: int(math.floor(exact[r])) for r in regions}
    left = total - sum(quotas.values())
    by_remainder = sorted(regions, key=lambda r: (-(exact[r] - quotas[r]), r))
    for r in by_remainder[:left]:
        quotas[r] += 1

    if sum(quotas.values()) != total:
        raise QuotaSumError(f"Quotas {quotas} do not sum to {total}")
    LOGGER.info("Quotas (%s, total %d): %s", method, total, quotas)
    return quotas


def stratified_sample(
    pruned_ids: Iterable,
    region_of: Mapping,
    quotas: Mapping[Hashable, int],
    seed: int | None = 0,
    allow_shortfall: bool = False,
) -> pd.DataFrame:
    """Случайная выборка без возвращения по каждому региону.

    Регионы перебираются по возрастанию кода, пул региона – в порядке
    ``pruned_ids``; при одинаковом ``seed`` результат воспроизводим.
    Возвращает ``DataFrame{id, region}`` в порядке регион → порядок вытягивания.
    """
    ids = list(pruned_ids)
    index = pd.Index(ids, dtype=object)
    dup = index[index.duplicated()].unique().tolist()
    if dup:
        raise DuplicateIdError("Duplicate ids in pruned set", dup)

    order = sorted(quotas)
    pools = {r: [] for r in order}
    no_region, other_region = 0, 0
    for ind in ids:
        region = region_of.get(ind)
        if region is None or pd.isna(region):
            no_region += 1
        elif region in pools:
            pools[region].append(ind)
        else:
            other_region += 1
    if no_region or other_region:
        LOGGER.warning("Ineligible for sampling: %d without region, %d outside quota regions",
                       no_region, other_region)

    shortfall = {r: (quotas[r], len(pools[r])) for r in order if len(pools[r]) < quotas[r]}
    if shortfall:
        if not allow_shortfall:
            raise QuotaShortfallError(shortfall)
        LOGGER.warning("Quota shortfall, taking whole pool: %s", shortfall)

    rng = np.random.default_rng(seed)
    rows = []
    for r in order:
        pool = pools[r]
        n = min(int(quotas[r]), len(pool))
        if n == 0:
            continue
        for k in rng.choice(len(pool), size=n, replace=False):
            rows.append((pool[k], r))

    LOGGER.info("🎲  Sampled %d ids from %d regions (seed=%s)", len(rows), len(order), seed)
    return pd.DataFrame(rows, columns=["id", "region"])
