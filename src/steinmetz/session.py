"""Session dataclasses for the steinmetz analysis

A Session is one recording day for one mouse: a fixed set of neurons
(each labelled with a brain area) and a list of Trials, each holding the
stimulus contrasts, the feedback outcome and a neurons x time-bins matrix
of spike counts.
"""
from dataclasses import dataclass, field
from typing import List, Optional
import numpy as np


@dataclass
class Trial:
    contrast_left: float
    contrast_right: float
    feedback_type: int
    spks: np.ndarray
    time: Optional[np.ndarray] = None

    @property
    def contrast_diff(self) -> float:
        return float(self.contrast_left - self.contrast_right)

    @property
    def success(self) -> bool:
        return int(self.feedback_type) == 1


@dataclass
class Session:
    trials: List[Trial]
    brain_area: List[str]
    mouse_name: str
    date_exp: str
    session_id: int = 0
    source_path: Optional[str] = field(default=None, compare=False)

    @property
    def n_trials(self) -> int:
        return len(self.trials)

    @property
    def n_neurons(self) -> int:
        return len(self.brain_area)

    @property
    def n_bins(self) -> int:
        if not self.trials:
            return 0
        return int(np.asarray(self.trials[0].spks).shape[1])

    @property
    def brain_areas(self) -> List[str]:
        # unique labels, first-seen order
        return list(dict.fromkeys(self.brain_area))

    def validate(self) -> "Session":
        """Check that trial matrices agree in shape with the neuron labels.

        Raises ValueError on the first inconsistency found.
        """
        n_bins = None
        for i, t in enumerate(self.trials):
            spks = np.asarray(t.spks)
            if spks.ndim != 2:
                raise ValueError(
                    f"session {self.session_id} trial {i + 1}: spks must be 2-D, got shape {spks.shape}"
                )
            if spks.shape[0] != self.n_neurons:
                raise ValueError(
                    f"session {self.session_id} trial {i + 1}: {spks.shape[0]} neuron rows "
                    f"but {self.n_neurons} brain_area labels"
                )
            if n_bins is None:
                n_bins = spks.shape[1]
            elif spks.shape[1] != n_bins:
                raise ValueError(
                    f"session {self.session_id} trial {i + 1}: {spks.shape[1]} time bins, expected {n_bins}"
                )
            if int(t.feedback_type) not in (-1, 1):
                raise ValueError(
                    f"session {self.session_id} trial {i + 1}: feedback_type must be 1 or -1, got {t.feedback_type}"
                )
        return self
