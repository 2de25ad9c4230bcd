from __future__ import annotations

import argparse
import logging
from typing import List, Optional

from ..gradcheck import check_sequence_lstm


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Check SequenceLSTM gradients against central finite differences")
    ap.add_argument("--N", type=int, default=2)
    ap.add_argument("--T", type=int, default=3)
    ap.add_argument("--D", type=int, default=4)
    ap.add_argument("--H", type=int, default=5)
    ap.add_argument("--seed", type=int, default=0)
    ap.add_argument("--step", type=float, default=1e-5)
    ap.add_argument("--tol", type=float, default=1e-4)
    ap.add_argument("--verbose", action="store_true")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)
    errs = check_sequence_lstm(N=args.N, T=args.T, D=args.D, H=args.H, seed=args.seed, h=args.step)
    worst = 0.0
    for name, err in errs.items():
        status = "ok" if err <= args.tol else "FAIL"
        print(f"{name}: rel_error={err:.3e} {status}")
        worst = max(worst, err)
    return 0 if worst <= args.tol else 1


if __name__ == "__main__":
    raise SystemExit(main())
