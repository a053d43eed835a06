"""
Коэффициент родства (kinship, коанцестри) f(a,b) по родословной.

    f(i,i) = 0.5 · (1 + f(отец, мать)),   для основателя 0.5
    f(i,j) = 0.5 · (f(отец_i, j) + f(мать_i, j)),   i позже j в топ. порядке

Два подхода:
* табличный – один проход по порядку «родители раньше детей» замыкания
  когорты по предкам (``compute_kinship``). В таблице живут только строки
  когорты и предков, у которых ещё остались необработанные дети; строка
  освобождается после последнего ребёнка и переиспользуется;
* расчёт f(a,b) с мемоизацией через явный стек (``kinship_fn``) – для
  точечных запросов и перекрёстной проверки.
"""
from __future__ import annotations
import logging
from typing import Iterable, Literal

import numpy as np
import pandas as pd
from numba import njit

from .errors import CohortLookupError, DuplicateIdError
from .pedigree import Pedigree

LOGGER = logging.getLogger(__name__)

# все сравнения с порогом делаются с этим допуском
KINSHIP_EPS = 1e-9


@njit(cache=True)
def _assign_slots(parent: np.ndarray, release_at: np.ndarray):
    # slot[i] – строка таблицы для i; строка родителя возвращается в пул
    # после обработки его последнего ребёнка (release_at)
    n = parent.shape[0]
    slot = np.empty(n, dtype=np.int64)
    free = np.empty(n, dtype=np.int64)
    n_free = 0
    n_slots = 0
    for i in range(n):
        if n_free > 0:
            n_free -= 1
            slot[i] = free[n_free]
        else:
            slot[i] = n_slots
            n_slots += 1
        p = parent[i, 0]
        q = parent[i, 1]
        if p >= 0 and release_at[p] == i:
            free[n_free] = slot[p]
            n_free += 1
        if q >= 0 and q != p and release_at[q] == i:
            free[n_free] = slot[q]
            n_free += 1
    return slot, n_slots


@njit(cache=True)
def _kinship_rows(parent: np.ndarray, slot: np.ndarray, release_at: np.ndarray,
                  n_slots: int) -> np.ndarray:
    # parent[i] = (отец, мать) как индексы < i, -1 – неизвестен
    n = parent.shape[0]
    K = np.zeros((n_slots, n_slots), dtype=np.float64)
    live = np.zeros(n_slots, dtype=np.bool_)
    for i in range(n):
        si = slot[i]
        p = parent[i, 0]
        q = parent[i, 1]
        sp = slot[p] if p >= 0 else -1
        sq = slot[q] if q >= 0 else -1
        for s in range(n_slots):
            if not live[s]:
                continue
            kp = K[sp, s] if sp >= 0 else 0.0
            kq = K[sq, s] if sq >= 0 else 0.0
            K[si, s] = 0.5 * (kp + kq)
            K[s, si] = K[si, s]
        if sp >= 0 and sq >= 0:
            K[si, si] = 0.5 * (1.0 + K[sp, sq])
        else:
            K[si, si] = 0.5
        live[si] = True
        if p >= 0 and release_at[p] == i:
            live[sp] = False
        if q >= 0 and release_at[q] == i:
            live[sq] = False
    return K


def _parent_array(pedigree: Pedigree, order: list) -> np.ndarray:
    idx = {ind: k for k, ind in enumerate(order)}
    parent = np.full((len(order), 2), -1, dtype=np.int64)
    for k, ind in enumerate(order):
        father, mother = pedigree.parents(ind)
        if father is not None:
            parent[k, 0] = idx[father]
        if mother is not None:
            parent[k, 1] = idx[mother]
    return parent


def _release_positions(parent: np.ndarray, keep: np.ndarray) -> np.ndarray:
    """Позиция последнего ребёнка; для особей когорты – n (не освобождаются)."""
    n = parent.shape[0]
    release_at = np.full(n, -1, dtype=np.int64)
    for k in range(n):
        for p in parent[k]:
            if p >= 0:
                release_at[p] = k
    release_at[keep] = n
    return release_at


def compute_kinship(
    pedigree: Pedigree,
    cohort_ids: Iterable,
    on_missing: Literal["drop", "raise"] = "drop",
) -> pd.DataFrame:
    """Матрица родства когорты (index = columns = id в порядке входа).

    Предки берутся из всей родословной, но в памяти одновременно держатся
    только «живые» строки (``attrs["live_rows"]``), а в ответ попадает
    подматрица ``cohort × cohort``.
    Отсутствующие в родословной id перечисляются в ``attrs["missing_ids"]``
    (или ``CohortLookupError`` при ``on_missing="raise"``).
    """
    cohort = list(cohort_ids)
    index = pd.Index(cohort, dtype=object)
    dup = index[index.duplicated()].unique().tolist()
    if dup:
        raise DuplicateIdError("Duplicate ids in cohort", dup)

    missing = [i for i in cohort if i not in pedigree]
    if missing:
        if on_missing == "raise":
            raise CohortLookupError(missing)
        if on_missing != "drop":
            raise ValueError(f"Unknown on_missing policy: {on_missing!r}")
        LOGGER.warning("%d cohort id(s) absent from pedigree, dropped: %s",
                       len(missing), missing[:20])
        cohort = [i for i in cohort if i in pedigree]

    # предки появляются непосредственно перед первым потомком
    order = pedigree.depth_first_order(cohort)
    pos = {ind: k for k, ind in enumerate(order)}
    sel = np.fromiter((pos[i] for i in cohort), dtype=np.int64, count=len(cohort))

    parent = _parent_array(pedigree, order)
    release_at = _release_positions(parent, sel)
    slot, n_slots = _assign_slots(parent, release_at)
    LOGGER.info("🧬  Kinship over %d individuals (%d in cohort, %d live rows) …",
                len(order), len(cohort), n_slots)
    table = _kinship_rows(parent, slot, release_at, n_slots)

    rows = slot[sel]
    sub = table[np.ix_(rows, rows)]  # копия
    del table

    matrix = pd.DataFrame(sub, index=pd.Index(cohort, name="id"), columns=cohort)
    matrix.attrs["missing_ids"] = missing
    matrix.attrs["live_rows"] = int(n_slots)
    return matrix


def kinship_fn(pedigree: Pedigree):
    """Возвращает f(a, b) с мемоизацией.

    Раскрываются родители особи с бо́льшим номером поколения: она не может
    быть предком другой. Вычисление идёт по явному стеку, глубина
    родословной не ограничена стеком вызовов Python.
    """
    depth = pedigree.generation_depth
    cache: dict = {}

    def _key(a, b):
        if depth[a] < depth[b] or (depth[a] == depth[b] and str(a) > str(b)):
            return b, a
        return a, b

    def _terms(key):
        # (константа, множитель, зависимости)
        a, b = key
        father, mother = pedigree.parents(a)
        if a == b:
            if father is None or mother is None:
                return 0.5, 0.0, []
            return 0.5, 0.5, [_key(father, mother)]
        deps = [_key(par, b) for par in (father, mother) if par is not None]
        return 0.0, 0.5, deps

    def f(a, b) -> float:
        for ind in (a, b):
            if ind not in pedigree:
                raise CohortLookupError([ind])
        root = _key(a, b)
        stack = [root]
        while stack:
            key = stack[-1]
            if key in cache:
                stack.pop()
                continue
            const, factor, deps = _terms(key)
            todo = [d for d in deps if d not in cache]
            if todo:
                stack.extend(todo)
                continue
            cache[key] = const + factor * sum(cache[d] for d in deps)
            stack.pop()
        return cache[root]

    return f


def inbreeding(matrix: pd.DataFrame) -> pd.Series:
    """F = 2·f(i,i) − 1."""
    return pd.Series(2.0 * np.diag(matrix.to_numpy()) - 1.0, index=matrix.index, name="F")
