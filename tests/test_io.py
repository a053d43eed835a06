import numpy as np
import pandas as pd
import pytest

from pedselect.errors import DataIntegrityError, InputDataError
from pedselect.io import (
    read_id_list,
    read_individuals,
    read_kinship,
    read_regions,
    write_candidates,
    write_id_list,
    write_kinship,
)


def test_kinship_reload_is_matched_by_header(tmp_path):
    ids = ["10", "2", "x"]
    K = pd.DataFrame([[0.5, 0.25, 0.0], [0.25, 0.625, 0.1], [0.0, 0.1, 0.5]],
                     index=ids, columns=ids)
    path = tmp_path / "kinship.csv"
    write_kinship(K, path)

    # переставленные столбцы в файле
    raw = pd.read_csv(path, dtype={"id": str})
    raw[["id", "x", "10", "2"]].to_csv(path, index=False)

    back = read_kinship(path)
    assert back.index.tolist() == ids
    assert back.columns.tolist() == ids
    assert np.array_equal(back.to_numpy(), K.to_numpy())


def test_asymmetric_kinship_rejected(tmp_path):
    path = tmp_path / "bad.csv"
    path.write_text("id,a,b\na,0.5,0.1\nb,0.2,0.5\n")
    with pytest.raises(DataIntegrityError):
        read_kinship(path)
    path.write_text("id,a,c\na,0.5,0\nb,0,0.5\n")
    with pytest.raises(DataIntegrityError):
        read_kinship(path)


def test_id_list_keeps_real_ids(tmp_path):
    path = tmp_path / "pruned_ids.txt"
    write_id_list(["007", "12", "A-3"], path)
    assert path.read_text() == "007\n12\nA-3\n"
    assert read_id_list(path) == ["007", "12", "A-3"]


def test_tables(tmp_path):
    (tmp_path / "individuals.csv").write_text(
        "id,father_id,mother_id,sex,birth_place\n007,,,M,\n008,007,,F,Lima\n"
    )
    (tmp_path / "regions.csv").write_text("id,region\n007,3\n008,\n")
    ind = read_individuals(tmp_path / "individuals.csv")
    assert ind["id"].tolist() == ["007", "008"]
    assert ind.loc[1, "father_id"] == "007"

    regions = read_regions(tmp_path / "regions.csv")
    assert regions["007"] == 3
    assert pd.isna(regions["008"])

    out = tmp_path / "candidates.csv"
    write_candidates(pd.DataFrame({"id": ["007"], "region": [3]}), out)
    assert out.read_text().splitlines()[0] == "id,external_sample_name,region"


def test_region_ids_cleaned_like_pedigree_ids(tmp_path):
    path = tmp_path / "regions.csv"
    path.write_text("id,region\n 007 ,3\n008\t,1\n")
    regions = read_regions(path)
    assert regions.index.tolist() == ["007", "008"]
    assert regions["007"] == 3

    path.write_text("id,region\n007,3\n 007,1\n")
    with pytest.raises(DataIntegrityError) as err:
        read_regions(path)
    assert err.value.ids == ["007"]

    path.write_text("id,region\n007,3\n0,1\n")
    with pytest.raises(InputDataError):
        read_regions(path)
