"""Simple CLI to inspect a session file and produce a JSON summary + a PNG.

Usage: python scripts/inspect_session.py path/to/session1.npz outputs/
"""

import sys
from pathlib import Path
import json
import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt

repo_root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(repo_root / "src"))

from steinmetz.io import load_session
from steinmetz.summary import session_overview


def main(argv):
    if len(argv) < 3:
        print("Usage: inspect_session.py path/to/session.npz output_dir")
        return 2
    path = Path(argv[1])
    outdir = Path(argv[2])
    outdir.mkdir(parents=True, exist_ok=True)

    session = load_session(str(path))
    row = session_overview([session]).reset_index().iloc[0]
    summary = {k: (v.item() if hasattr(v, "item") else v) for k, v in row.items()}
    summary["brain_areas"] = session.brain_areas
    # Write JSON summary
    with (outdir / f"{path.stem}_summary.json").open("w") as f:
        json.dump(summary, f, indent=2)

    # Histogram of total spikes per neuron over the whole session
    counts = sum(t.spks.sum(axis=1) for t in session.trials)
    plt.figure(figsize=(6, 4))
    plt.hist(counts, bins=50)
    plt.xlabel("Total spikes per neuron")
    plt.ylabel("Count")
    plt.title(f"Spikes per neuron ({summary.get('n_neurons')})")
    plt.tight_layout()
    plt.savefig(outdir / f"{path.stem}_spike_counts_hist.png", dpi=120)
    plt.close()
    print("Wrote", outdir)
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv))
