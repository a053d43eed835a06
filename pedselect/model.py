"""
Конвейер отбора кандидатов на WGS:

    ремонт родословной → (фильтр глубины) → матрица родства →
    прунинг (greedy | milp) → квоты по регионам → стратифицированная выборка

Каждый этап получает результат предыдущего и ничего не меняет на месте.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Iterable, Literal, Mapping

import pandas as pd

from .errors import InputDataError, QuotaSumError
from .kinship import compute_kinship
from .lineage import full_depth_filter
from .pedigree import Pedigree, RepairStats, repair_pedigree
from .pruning import prune
from .sampling import allocate_quotas, region_population, stratified_sample

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
LOGGER = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.0625  # двоюродные сибсы, 1/16
DEFAULT_SEED = 0


@dataclass(frozen=True)
class SelectionResult:
    repair_stats: RepairStats
    kinship: pd.DataFrame
    pruned_ids: list
    candidates: pd.DataFrame
    quotas: dict | None = None
    dropped_ids: dict = field(default_factory=dict)  # причина → id


def _region_lookup(repaired: pd.DataFrame, regions) -> pd.Series:
    if isinstance(regions, pd.Series):
        return regions
    if regions is not None:
        return pd.Series(regions, dtype="object")
    if "region" in repaired.columns:
        return repaired.set_index("id")["region"]
    raise InputDataError("No region lookup given and individuals have no 'region' column")


def select_candidates(
    individuals: pd.DataFrame,
    regions: Mapping | pd.Series | None = None,
    *,
    cohort_ids: Iterable | None = None,
    threshold: float = DEFAULT_THRESHOLD,
    solver: Literal["greedy", "milp"] = "greedy",
    total: int | None = None,
    quotas: Mapping[int, int] | None = None,
    allocation: Literal["proportional", "equal"] = "proportional",
    seed: int | None = DEFAULT_SEED,
    min_generations: int | None = None,
    time_limit: float | None = None,
    external_names: Mapping | None = None,
) -> SelectionResult:
    if quotas is not None and total is not None and sum(quotas.values()) != total:
        raise QuotaSumError(
            f"Quotas {dict(quotas)} sum to {sum(quotas.values())}, not total {total}"
        )

    LOGGER.info("📦  Repairing pedigree …")
    repaired, stats = repair_pedigree(individuals)
    pedigree = Pedigree.from_frame(repaired)
    region_of = _region_lookup(repaired, regions)

    if cohort_ids is None:
        cohort = region_of.dropna().index.tolist()
    else:
        cohort = list(cohort_ids)
    dropped: dict = {}

    if min_generations:
        LOGGER.info("🌳  Lineage-depth filter (%d generations) …", min_generations)
        kept = full_depth_filter(pedigree, cohort, min_generations)
        kept_set = set(kept)
        dropped["lineage_depth"] = [i for i in cohort if i not in kept_set]
        cohort = kept

    LOGGER.info("🔍  Building kinship matrix …")
    matrix = compute_kinship(pedigree, cohort, on_missing="drop")
    dropped["not_in_pedigree"] = list(matrix.attrs["missing_ids"])

    pruned = prune(matrix, threshold, solver=solver, time_limit=time_limit)

    if quotas is None and total is not None:
        quotas = allocate_quotas(total, region_population(region_of), allocation)
    if quotas is not None:
        candidates = stratified_sample(pruned, region_of, quotas, seed=seed)
    else:
        LOGGER.info("No total or quotas given; all pruned ids are candidates")
        candidates = pd.DataFrame({"id": pruned, "region": [region_of.get(i) for i in pruned]})

    if external_names is not None:
        candidates["external_sample_name"] = candidates["id"].map(external_names)

    return SelectionResult(
        repair_stats=stats,
        kinship=matrix,
        pruned_ids=pruned,
        candidates=candidates,
        quotas=dict(quotas) if quotas is not None else None,
        dropped_ids=dropped,
    )
