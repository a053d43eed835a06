"""
Родословная: ремонт исходных записей и неизменяемая «арена» особей.

Ремонт (``repair_pedigree``) работает на таблице записей
``{id, father_id, mother_id, sex, birth_place?, birth_year?}``:
    * родители, на которых есть ссылки, но нет записей, добавляются как основатели;
    * пол приводится к роли (отец → M, мать → F), число исправлений считается;
    * у «полуоснователей» (известен один родитель) достраивается фиктивный партнёр.

После ремонта строится ``Pedigree`` – словари id → отец / мать / пол.
Ссылки на родителей – только ключи, не объекты.
"""
from __future__ import annotations
import logging
from collections import defaultdict, deque
from dataclasses import dataclass
from functools import cached_property
from itertools import chain
from typing import Dict, Hashable, Iterable, List, Mapping, Tuple

import numpy as np
import pandas as pd

from .errors import (
    CohortLookupError,
    DataIntegrityError,
    DuplicateIdError,
    InputDataError,
    PedigreeCycleError,
    SexConflictError,
)

LOGGER = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("id", "father_id", "mother_id", "sex")
OPTIONAL_COLUMNS = ("birth_place", "birth_year", "region")
MISSING_MARKERS = {"", "0"}  # "0" – пропуск в формате PED

SEX_CODES = {
    "m": "M", "male": "M", "1": "M",
    "f": "F", "female": "F", "2": "F",
}

ORIGIN_RECORD = "record"
ORIGIN_PARENT = "parent"
ORIGIN_PLACEHOLDER = "placeholder"


@dataclass(frozen=True)
class RepairStats:
    added_parents: int
    placeholders: int
    sex_corrections: int
    corrected_ids: Tuple[Hashable, ...] = ()


def clean_id(value):
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    if isinstance(value, str):
        value = value.strip()
        return None if value in MISSING_MARKERS else value
    # int-id, прочитанный как float из-за NaN в колонке
    if isinstance(value, (float, np.floating)) and float(value).is_integer():
        return int(value)
    if isinstance(value, np.integer):
        return int(value)
    return value


def normalise_sex(value) -> str:
    """M / F / U из любых принятых кодировок."""
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return "U"
    if isinstance(value, (float, np.floating)) and float(value).is_integer():
        value = int(value)
    return SEX_CODES.get(str(value).strip().lower(), "U")


def _fresh_ids(existing: set, n: int) -> list:
    if n == 0:
        return []
    if existing and all(
        isinstance(i, (int, np.integer)) and not isinstance(i, bool) for i in existing
    ):
        start = max(existing) + 1
        return list(range(start, start + n))
    out, k = [], 0
    while len(out) < n:
        candidate = f"_ph{k}"
        if candidate not in existing:
            out.append(candidate)
        k += 1
    return out


def repair_pedigree(records: pd.DataFrame) -> tuple[pd.DataFrame, RepairStats]:
    """Возвращает отремонтированную таблицу и статистику ремонта.

    Существующие записи и связи никогда не удаляются. Id, используемый и как
    отец, и как мать, – ошибка целостности (``SexConflictError``).
    """
    absent = [c for c in REQUIRED_COLUMNS if c not in records.columns]
    if absent:
        raise InputDataError("Individual records lack required columns", absent)

    columns = list(REQUIRED_COLUMNS) + [c for c in OPTIONAL_COLUMNS if c in records.columns]
    ped = records[columns].copy()
    for col in ("id", "father_id", "mother_id"):
        ped[col] = pd.Series([clean_id(v) for v in ped[col]], index=ped.index, dtype=object)

    empty = ped.index[ped["id"].isna()].tolist()
    if empty:
        raise InputDataError("Records without an id at rows", empty)
    dup = ped.loc[ped["id"].duplicated(), "id"].unique().tolist()
    if dup:
        raise DuplicateIdError("Duplicate individual ids", dup)

    ped["sex"] = ped["sex"].map(normalise_sex)
    ped["origin"] = ORIGIN_RECORD

    fathers = list(dict.fromkeys(ped["father_id"].dropna()))
    mothers = list(dict.fromkeys(ped["mother_id"].dropna()))
    mother_set = set(mothers)
    both = [i for i in fathers if i in mother_set]
    if both:
        raise SexConflictError("Ids used both as father and as mother", both)

    # пол по роли приоритетнее записанного
    wrong_f = ped["id"].isin(fathers) & (ped["sex"] != "M")
    wrong_m = ped["id"].isin(mothers) & (ped["sex"] != "F")
    corrected = tuple(ped.loc[wrong_f | wrong_m, "id"])
    ped.loc[wrong_f, "sex"] = "M"
    ped.loc[wrong_m, "sex"] = "F"

    known = set(ped["id"])
    new_rows: List[dict] = []
    for role, sex in ((fathers, "M"), (mothers, "F")):
        for pid in role:
            if pid not in known:
                known.add(pid)
                new_rows.append({"id": pid, "father_id": None, "mother_id": None,
                                 "sex": sex, "origin": ORIGIN_PARENT})
    added_parents = len(new_rows)

    half = ped["father_id"].isna() ^ ped["mother_id"].isna()
    fresh = _fresh_ids(known, int(half.sum()))
    for idx, new_id in zip(ped.index[half], fresh):
        role, sex = ("father_id", "M") if ped.at[idx, "father_id"] is None else ("mother_id", "F")
        ped.at[idx, role] = new_id
        new_rows.append({"id": new_id, "father_id": None, "mother_id": None,
                         "sex": sex, "origin": ORIGIN_PLACEHOLDER})

    if new_rows:
        ped = pd.concat([ped, pd.DataFrame(new_rows)], ignore_index=True)

    stats = RepairStats(
        added_parents=added_parents,
        placeholders=len(fresh),
        sex_corrections=len(corrected),
        corrected_ids=corrected,
    )
    LOGGER.info(
        "Pedigree repair: +%d parents, +%d placeholders, %d sex corrections",
        stats.added_parents, stats.placeholders, stats.sex_corrections,
    )
    return ped.reset_index(drop=True), stats


class Pedigree:
    """Неизменяемая родословная: id → (отец, мать), пол, фиктивные особи."""

    def __init__(
        self,
        father: Mapping,
        mother: Mapping,
        sex: Mapping | None = None,
        placeholders: Iterable = (),
        validate: bool = True,
    ):
        self._father: Dict = dict(father)
        self._mother: Dict = {i: mother.get(i) for i in self._father}
        self._sex: Dict = dict(sex or {})
        self._placeholders = frozenset(placeholders)

        dangling = [
            p for p in dict.fromkeys(chain(self._father.values(), self._mother.values()))
            if p is not None and p not in self._father
        ]
        if dangling:
            raise DataIntegrityError(
                "Parent ids without a record (run repair_pedigree first)", dangling
            )
        if validate:
            self.topological_order()

    @classmethod
    def from_frame(cls, frame: pd.DataFrame, validate: bool = True) -> "Pedigree":
        ids = frame["id"].tolist()
        father = dict(zip(ids, (clean_id(v) for v in frame["father_id"])))
        mother = dict(zip(ids, (clean_id(v) for v in frame["mother_id"])))
        sex = dict(zip(ids, frame["sex"])) if "sex" in frame else {}
        placeholders = (
            frame.loc[frame["origin"] == ORIGIN_PLACEHOLDER, "id"].tolist()
            if "origin" in frame else ()
        )
        return cls(father, mother, sex, placeholders, validate=validate)

    # ------------------------------------------------------------------ #
    def __len__(self) -> int:
        return len(self._father)

    def __contains__(self, ind) -> bool:
        return ind in self._father

    def __iter__(self):
        return iter(self._father)

    @property
    def ids(self) -> list:
        return list(self._father)

    def parents(self, ind) -> Tuple:
        return self._father[ind], self._mother[ind]

    def sex(self, ind) -> str:
        return self._sex.get(ind, "U")

    def is_founder(self, ind) -> bool:
        return self._father[ind] is None and self._mother[ind] is None

    def is_placeholder(self, ind) -> bool:
        return ind in self._placeholders

    # ------------------------------------------------------------------ #
    def ancestor_closure(self, ids: Iterable) -> list:
        """``ids`` плюс все их предки, в порядке обнаружения."""
        ids = list(ids)
        missing = [i for i in ids if i not in self._father]
        if missing:
            raise CohortLookupError(missing)
        seen = dict.fromkeys(ids)
        stack = list(reversed(ids))
        while stack:
            ind = stack.pop()
            for p in self.parents(ind):
                if p is not None and p not in seen:
                    seen[p] = None
                    stack.append(p)
        return list(seen)

    def topological_order(self, ids: Iterable | None = None) -> list:
        """Замыкание по предкам, упорядоченное так, что родители идут раньше детей.

        Снятие слоёв по Кану; при равенстве сохраняется порядок замыкания.
        """
        nodes = self.ancestor_closure(self._father if ids is None else ids)
        pending: Dict = {}
        children = defaultdict(list)
        for ind in nodes:
            known = [p for p in self.parents(ind) if p is not None]
            pending[ind] = len(known)
            for p in known:
                children[p].append(ind)

        queue = deque(ind for ind in nodes if pending[ind] == 0)
        order = []
        while queue:
            ind = queue.popleft()
            order.append(ind)
            for child in children[ind]:
                pending[child] -= 1
                if pending[child] == 0:
                    queue.append(child)

        if len(order) < len(nodes):
            stuck = [ind for ind in nodes if pending[ind] > 0]
            raise PedigreeCycleError("Pedigree contains a directed loop; unplaced ids", stuck)
        return order

    def depth_first_order(self, ids: Iterable) -> list:
        """Замыкание ``ids`` по предкам в порядке обхода в глубину (post-order).

        Родители идут раньше детей, а предок встаёт прямо перед первым
        потомком, которому он нужен, – так меньше одновременно «живых» особей.
        """
        ids = list(ids)
        missing = [i for i in ids if i not in self._father]
        if missing:
            raise CohortLookupError(missing)
        done: Dict = {}
        on_path = set()
        for root in ids:
            stack = [(root, False)]
            while stack:
                ind, expanded = stack.pop()
                if expanded:
                    on_path.discard(ind)
                    done[ind] = None
                    continue
                if ind in done:
                    continue
                if ind in on_path:
                    raise PedigreeCycleError("Pedigree contains a directed loop through", [ind])
                on_path.add(ind)
                stack.append((ind, True))
                for p in reversed(self.parents(ind)):
                    if p is not None and p not in done:
                        stack.append((p, False))
        return list(done)

    @cached_property
    def generation_depth(self) -> Dict[Hashable, int]:
        """Поколение: основатели – 0, иначе 1 + max(поколение родителей)."""
        depth: Dict = {}
        for ind in self.topological_order():
            known = [p for p in self.parents(ind) if p is not None]
            depth[ind] = 1 + max(depth[p] for p in known) if known else 0
        return depth
