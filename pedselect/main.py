#!/usr/bin/env python3
"""
CLI‑обёртка: родословная + регионы → kinship.csv, pruned_ids.txt, candidates.csv.

Примеры:
    python -m pedselect.main --data_dir data --solver greedy --total 120
    python -m pedselect.main --data_dir data --solver milp --threshold 0.03125 \
        --allocation equal --total 60 --seed 7 --out_dir out
"""
from __future__ import annotations
import argparse
from pathlib import Path

from .io import read_individuals, read_regions, write_candidates, write_id_list, write_kinship
from .model import DEFAULT_SEED, DEFAULT_THRESHOLD, select_candidates


def _parse(argv=None):
    p = argparse.ArgumentParser("pedselect")
    p.add_argument("--data_dir", default="data",
                   help="директорий с individuals.csv и regions.csv")
    p.add_argument("--solver", choices=["greedy", "milp"], default="greedy")
    p.add_argument("--threshold", type=float, default=DEFAULT_THRESHOLD,
                   help="пары с kinship строго выше порога считаются родственными")
    p.add_argument("--total", type=int, default=None,
                   help="размер итоговой выборки; без него – все после прунинга")
    p.add_argument("--allocation", choices=["proportional", "equal"], default="proportional")
    p.add_argument("--seed", type=int, default=DEFAULT_SEED)
    p.add_argument("--min_generations", type=int, default=None,
                   help="оставить только пробандов с полной глубиной родословной")
    p.add_argument("--time_limit", type=float, default=None,
                   help="лимит времени CBC, с")
    p.add_argument("--out_dir", default=".")
    return p.parse_args(argv)


def main(argv=None):
    args = _parse(argv)
    data_dir = Path(args.data_dir)

    result = select_candidates(
        read_individuals(data_dir / "individuals.csv"),
        read_regions(data_dir / "regions.csv"),
        threshold=args.threshold,
        solver=args.solver,
        total=args.total,
        allocation=args.allocation,
        seed=args.seed,
        min_generations=args.min_generations,
        time_limit=args.time_limit,
    )

    out = Path(args.out_dir)
    out.mkdir(parents=True, exist_ok=True)
    write_kinship(result.kinship, out / "kinship.csv")
    write_id_list(result.pruned_ids, out / "pruned_ids.txt")
    write_candidates(result.candidates, out / "candidates.csv")
    print(f"✅  Saved {len(result.candidates)} candidates → {out / 'candidates.csv'}")


if __name__ == "__main__":
    main()
