"""Synthetic sessions with the same shape as the real recordings.

Used by the test-suite and by `scripts/make_example_data.py` so the
pipeline can be exercised without the real data files. Success
probability grows with |contrast difference| and successful trials get a
small post-stimulus rate bump, so the classifiers have something to find.
"""
from typing import Optional, Sequence
import numpy as np
from .session import Session, Trial

CONTRAST_LEVELS = (0.0, 0.25, 0.5, 1.0)
AREAS = ("VISp", "MOs", "CA1", "root", "LS", "ACA")


def synthetic_session(
    session_id: int = 1,
    n_trials: int = 100,
    n_neurons: int = 30,
    n_bins: int = 40,
    mouse_name: str = "Cori",
    date_exp: str = "2016-12-14",
    areas: Optional[Sequence[str]] = None,
    random_state: int = 0,
) -> Session:
    rng = np.random.RandomState(random_state)
    areas = list(areas) if areas is not None else list(AREAS[: 1 + session_id % len(AREAS)])
    brain_area = [areas[i % len(areas)] for i in range(n_neurons)]
    base_rate = rng.uniform(0.2, 0.6, size=n_neurons)
    time = np.arange(n_bins) * 0.01 + 0.005

    trials = []
    for _ in range(n_trials):
        cl = float(rng.choice(CONTRAST_LEVELS))
        cr = float(rng.choice(CONTRAST_LEVELS))
        p_success = 0.55 + 0.35 * abs(cl - cr)
        success = rng.rand() < p_success
        rate = np.tile(base_rate[:, None], (1, n_bins))
        if success:
            rate[:, n_bins // 4:] *= 1.6
        spks = rng.poisson(rate).astype(float)
        trials.append(Trial(
            contrast_left=cl,
            contrast_right=cr,
            feedback_type=1 if success else -1,
            spks=spks,
            time=time.copy(),
        ))
    return Session(
        trials=trials,
        brain_area=brain_area,
        mouse_name=mouse_name,
        date_exp=date_exp,
        session_id=session_id,
    )
