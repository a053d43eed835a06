"""
Прунинг родственников: подмножество когорты, где ни одна пара не родственнее порога.

Два решателя с одним контрактом:
    * greedy – удаляем особь с наибольшим числом «слишком близких» соседей
    * milp   – максимальное независимое множество графа родства (PuLP + CBC)

Ребро графа (i, j) есть, только если f(i,j) − порог > KINSHIP_EPS
(пары ровно на пороге остаются).
"""
from __future__ import annotations
import logging
from typing import Literal

import numpy as np
import pandas as pd
import pulp
from numba import njit
from tqdm import tqdm

from .errors import InputDataError, RelatednessCheckError
from .kinship import KINSHIP_EPS

LOGGER = logging.getLogger(__name__)


def _check_square(matrix: pd.DataFrame) -> None:
    if not matrix.index.equals(matrix.columns):
        raise InputDataError("Kinship matrix rows and columns differ")


def relatedness_graph(matrix: pd.DataFrame, threshold: float) -> np.ndarray:
    """Булева матрица смежности (диагональ – False)."""
    _check_square(matrix)
    adj = (matrix.to_numpy(dtype=np.float64) - threshold) > KINSHIP_EPS
    np.fill_diagonal(adj, False)
    return adj


def prune(
    matrix: pd.DataFrame,
    threshold: float,
    solver: Literal["greedy", "milp"] = "greedy",
    time_limit: float | None = None,
) -> list:
    """Id, оставшиеся после прунинга, в порядке строк матрицы.

    ``greedy`` при равенстве степеней удаляет особь с меньшим индексом.
    ``milp`` максимизирует размер набора; среди наборов одного размера
    предпочитаются меньшие индексы через веса ``1 + (n − i)/(n(n+1))``.
    Наборы с равной суммой весов (например, {0, 3} и {1, 2}) не упорядочены
    лексикографически: выбор за CBC, он повторяется для того же входа.
    """
    adj = relatedness_graph(matrix, threshold)
    LOGGER.info("✂️  Pruning %d ids at threshold %.4g (%s), %d related pairs …",
                adj.shape[0], threshold, solver, int(adj.sum()) // 2)

    if solver == "greedy":
        keep = _solve_greedy(adj)
    elif solver == "milp":
        keep = _solve_milp(adj, time_limit)
    else:
        raise ValueError(f"Unknown solver: {solver!r}")

    ids = matrix.index[keep].tolist()
    check_unrelated(matrix, ids, threshold)
    LOGGER.info("✅  Kept %d of %d ids", len(ids), adj.shape[0])
    return ids


# --------------------------------------------------------------------------- #
# 1. Greedy
# --------------------------------------------------------------------------- #
@njit(cache=True)
def _greedy_removal_order(adj: np.ndarray) -> np.ndarray:
    n = adj.shape[0]
    degree = np.zeros(n, dtype=np.int64)
    for i in range(n):
        for j in range(n):
            if adj[i, j]:
                degree[i] += 1
    active = np.ones(n, dtype=np.bool_)
    removed = np.empty(n, dtype=np.int64)
    k = 0
    while True:
        # строгое ">" – при равенстве берётся меньший индекс
        best = -1
        best_degree = 0
        for i in range(n):
            if active[i] and degree[i] > best_degree:
                best = i
                best_degree = degree[i]
        if best < 0:
            break
        active[best] = False
        removed[k] = best
        k += 1
        for j in range(n):
            if adj[best, j]:
                degree[j] -= 1
    return removed[:k]


def _solve_greedy(adj: np.ndarray) -> np.ndarray:
    keep = np.ones(adj.shape[0], dtype=bool)
    keep[_greedy_removal_order(adj)] = False
    return keep


# --------------------------------------------------------------------------- #
# 2. MILP
# --------------------------------------------------------------------------- #
def _solve_milp(adj: np.ndarray, time_limit: float | None = None) -> np.ndarray:
    n = adj.shape[0]
    keep = np.ones(n, dtype=bool)
    rows, cols = np.nonzero(np.triu(adj, k=1))
    if rows.size == 0:
        return keep

    # изолированные вершины берём без переменных
    linked = np.union1d(rows, cols).tolist()
    LOGGER.info("🧮  Building MILP: %d variables, %d edge constraints …",
                len(linked), rows.size)
    prob = pulp.LpProblem("max_unrelated_set", pulp.LpMaximize)
    x = pulp.LpVariable.dicts("x", linked, lowBound=0, upBound=1, cat="Binary")

    # бонус < 1 в сумме: мощность важнее, затем меньшая сумма индексов;
    # при равной сумме выбирает CBC
    bonus = 1.0 / (n * (n + 1))
    prob += pulp.lpSum((1.0 + (n - i) * bonus) * x[i] for i in linked)

    for i, j in tqdm(zip(rows.tolist(), cols.tolist()), total=rows.size,
                     desc="edges", disable=rows.size < 10_000):
        prob += x[i] + x[j] <= 1

    LOGGER.info("🚀  Solving MILP (CBC) …")
    prob.solve(pulp.PULP_CBC_CMD(msg=False, timeLimit=time_limit))
    LOGGER.info("Status: %s, objective = %.3f",
                pulp.LpStatus[prob.status], pulp.value(prob.objective))
    greedy = _solve_greedy(adj)
    if prob.status != pulp.LpStatusOptimal:
        LOGGER.warning("CBC returned no solution (%s); using greedy",
                       pulp.LpStatus[prob.status])
        return greedy

    for i in linked:
        keep[i] = x[i].value() is not None and x[i].value() > 0.5

    # при остановке по времени решение может уступать жадному
    if greedy.sum() > keep.sum():
        LOGGER.warning("MILP incumbent (%d) smaller than greedy (%d); using greedy",
                       keep.sum(), greedy.sum())
        return greedy
    return keep


# --------------------------------------------------------------------------- #
# Проверка результата
# --------------------------------------------------------------------------- #
def max_offdiag_kinship(matrix: pd.DataFrame, ids: list | None = None) -> float:
    """Максимум f(i,j), i ≠ j, по ``ids``; для менее чем двух id – 0.0."""
    return _worst_pair(matrix, ids)[1]


def _worst_pair(matrix: pd.DataFrame, ids: list | None) -> tuple:
    sub = matrix if ids is None else matrix.loc[ids, ids]
    values = sub.to_numpy(dtype=np.float64).copy()
    if values.shape[0] < 2:
        return None, 0.0
    np.fill_diagonal(values, -np.inf)
    i, j = np.unravel_index(np.argmax(values), values.shape)
    return (sub.index[i], sub.columns[j]), float(values[i, j])


def check_unrelated(matrix: pd.DataFrame, ids: list, threshold: float) -> None:
    """``RelatednessCheckError`` с худшей парой, если порог превышен."""
    pair, worst = _worst_pair(matrix, ids)
    if pair is not None and worst - threshold > KINSHIP_EPS:
        raise RelatednessCheckError(pair, worst, threshold)
