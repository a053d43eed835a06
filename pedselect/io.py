"""
Табличный обмен данными (CSV).

    individuals.csv : id, father_id, mother_id, sex, birth_place?, birth_year?
    regions.csv     : id, region (1..6, может быть пустым)
    kinship.csv     : квадратная таблица, заголовок строки/столбца – id
    pruned_ids.txt  : id по одному на строку (сами id, не позиции)
    candidates.csv  : id, external_sample_name, region
"""
from __future__ import annotations
from pathlib import Path
from typing import Iterable

import numpy as np
import pandas as pd

from .errors import DataIntegrityError, InputDataError
from .pedigree import clean_id

ID_COLUMNS = ("id", "father_id", "mother_id")
CANDIDATE_COLUMNS = ["id", "external_sample_name", "region"]


def read_individuals(path: str | Path) -> pd.DataFrame:
    return pd.read_csv(path, dtype={c: str for c in ID_COLUMNS}, keep_default_na=True)


def read_regions(path: str | Path) -> pd.Series:
    """id → код региона (nullable Int64)."""
    frame = pd.read_csv(path, dtype={"id": str})
    absent = [c for c in ("id", "region") if c not in frame.columns]
    if absent:
        raise InputDataError("Region lookup lacks required columns", absent)
    # те же правила, что и при ремонте родословной
    frame["id"] = frame["id"].map(clean_id)
    empty = frame.index[frame["id"].isna()].tolist()
    if empty:
        raise InputDataError("Region lookup rows without an id", empty)
    dup = frame.loc[frame["id"].duplicated(), "id"].unique().tolist()
    if dup:
        raise DataIntegrityError("Duplicate ids in region lookup", dup)
    return frame.set_index("id")["region"].astype("Int64")


def write_kinship(matrix: pd.DataFrame, path: str | Path) -> None:
    matrix.to_csv(path, index=True, index_label="id", float_format="%.17g")


def read_kinship(path: str | Path) -> pd.DataFrame:
    """Перечитывает матрицу; столбцы сопоставляются со строками по заголовку."""
    frame = pd.read_csv(path, index_col=0, dtype={"id": str})
    frame.index = frame.index.astype(str)
    frame.columns = frame.columns.astype(str)
    if set(frame.index) != set(frame.columns) or len(frame.index) != len(frame.columns):
        stray = sorted(set(frame.index) ^ set(frame.columns))
        raise DataIntegrityError("Kinship matrix headers do not match", stray)
    frame = frame.loc[:, frame.index]
    values = frame.to_numpy(dtype=np.float64)
    bad = np.argwhere(values != values.T)
    if bad.size:
        i, j = bad[0]
        raise DataIntegrityError("Kinship matrix is not symmetric", [(frame.index[i], frame.index[j])])
    frame.index.name = "id"
    return frame


def write_id_list(ids: Iterable, path: str | Path) -> None:
    Path(path).write_text("".join(f"{i}\n" for i in ids))


def read_id_list(path: str | Path) -> list:
    return [line.strip() for line in Path(path).read_text().splitlines() if line.strip()]


def write_candidates(candidates: pd.DataFrame, path: str | Path) -> None:
    out = candidates.copy()
    if "external_sample_name" not in out.columns:
        out["external_sample_name"] = None
    out[CANDIDATE_COLUMNS].to_csv(path, index=False)
