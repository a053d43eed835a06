"""Мини‑родословные для юнит‑тестов."""
import pandas as pd

# A × B → C, D (полные сибсы)
nuclear = pd.DataFrame(
    [
        {"id": "A", "father_id": None, "mother_id": None, "sex": "M"},
        {"id": "B", "father_id": None, "mother_id": None, "sex": "F"},
        {"id": "C", "father_id": "A", "mother_id": "B", "sex": "F"},
        {"id": "D", "father_id": "A", "mother_id": "B", "sex": "M"},
    ]
)

# D × C → E (инбредный), плюс двоюродные через второго партнёра
inbred = pd.concat(
    [
        nuclear,
        pd.DataFrame(
            [
                {"id": "E", "father_id": "D", "mother_id": "C", "sex": "M"},
                {"id": "W", "father_id": None, "mother_id": None, "sex": "F"},
                {"id": "H", "father_id": None, "mother_id": None, "sex": "M"},
                {"id": "G", "father_id": "D", "mother_id": "W", "sex": "F"},
                {"id": "J", "father_id": "H", "mother_id": "C", "sex": "M"},
                {"id": "K", "father_id": "J", "mother_id": "G", "sex": "F"},
                {"id": "L", "father_id": "E", "mother_id": "K", "sex": "M"},
            ]
        ),
    ],
    ignore_index=True,
)

# G1 – мать P1 и P2 от неизвестных отцов; A и B – их дети
half_sibs = pd.DataFrame(
    [
        {"id": "G1", "father_id": None, "mother_id": None, "sex": "F"},
        {"id": "P1", "father_id": None, "mother_id": "G1", "sex": "F"},
        {"id": "P2", "father_id": None, "mother_id": "G1", "sex": "F"},
        {"id": "A",  "father_id": None, "mother_id": "P1", "sex": "M"},
        {"id": "B",  "father_id": None, "mother_id": "P2", "sex": "F"},
    ]
)

# X с полным набором бабушек и дедушек
grandparents = pd.DataFrame(
    [
        {"id": 1, "father_id": None, "mother_id": None, "sex": 1},
        {"id": 2, "father_id": None, "mother_id": None, "sex": 2},
        {"id": 3, "father_id": None, "mother_id": None, "sex": 1},
        {"id": 4, "father_id": None, "mother_id": None, "sex": 2},
        {"id": 5, "father_id": 1, "mother_id": 2, "sex": 1},
        {"id": 6, "father_id": 3, "mother_id": 4, "sex": 2},
        {"id": 7, "father_id": 5, "mother_id": 6, "sex": 1},
    ]
)


def families(n_families: int = 6, n_children: int = 3, n_regions: int = 3):
    """Независимые семьи из полных сибсов; семья k – в регионе (k−1) % n_regions + 1."""
    rows, regions = [], {}
    for k in range(1, n_families + 1):
        rows.append({"id": f"F{k}", "father_id": None, "mother_id": None, "sex": "M"})
        rows.append({"id": f"M{k}", "father_id": None, "mother_id": None, "sex": "F"})
        for c in range(1, n_children + 1):
            cid = f"{k}_{c}"
            rows.append({"id": cid, "father_id": f"F{k}", "mother_id": f"M{k}", "sex": "U"})
            regions[cid] = (k - 1) % n_regions + 1
    return pd.DataFrame(rows), regions


def chain(n: int):
    """Прямая линия g0 → g1 → … → gn; у каждого g_k мать – новая основательница s_k."""
    rows = [{"id": "g0", "father_id": None, "mother_id": None, "sex": "M"}]
    for k in range(1, n + 1):
        rows.append({"id": f"s{k}", "father_id": None, "mother_id": None, "sex": "F"})
        rows.append({"id": f"g{k}", "father_id": f"g{k - 1}", "mother_id": f"s{k}", "sex": "M"})
    return pd.DataFrame(rows)
