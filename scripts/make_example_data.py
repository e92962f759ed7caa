"""Write synthetic session<N>/test<N> files for trying out the pipeline.

Usage: python scripts/make_example_data.py output_dir [n_sessions] [--format npz|pkl]
"""

from pathlib import Path
import sys
import argparse
import logging

repo_root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(repo_root / "src"))

from steinmetz.io import save_session
from steinmetz.synthetic import synthetic_session

MICE = ("Cori", "Forssmann", "Hench", "Lederberg")


def main(argv=None):
    p = argparse.ArgumentParser(description="Write synthetic session files")
    p.add_argument("out_dir", type=Path)
    p.add_argument("n_sessions", type=int, nargs="?", default=6)
    p.add_argument("--format", choices=["npz", "pkl"], default="npz")
    p.add_argument("--n-trials", type=int, default=120)
    args = p.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")

    args.out_dir.mkdir(parents=True, exist_ok=True)
    for n in range(1, args.n_sessions + 1):
        s = synthetic_session(
            session_id=n,
            n_trials=args.n_trials,
            n_neurons=20 + 5 * n,
            mouse_name=MICE[(n - 1) * len(MICE) // args.n_sessions],
            random_state=n,
        )
        path = save_session(s, args.out_dir / f"session{n}.{args.format}")
        logging.info("Wrote %s (%d trials, %d neurons)", path, s.n_trials, s.n_neurons)

    # Two test sets drawn from the first and last sessions' neuron sets
    for i, sid in enumerate((1, args.n_sessions), start=1):
        t = synthetic_session(
            session_id=sid,
            n_trials=100,
            n_neurons=20 + 5 * sid,
            mouse_name=MICE[(sid - 1) * len(MICE) // args.n_sessions],
            random_state=1000 + sid,
        )
        path = save_session(t, args.out_dir / f"test{i}.{args.format}")
        logging.info("Wrote %s (from session %d)", path, sid)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
