"""I/O helpers for loading per-session recording files.

Each session (or held-out test set) is stored as one record with the keys
`contrast_left`, `contrast_right`, `feedback_type`, `mouse_name`,
`date_exp`, `brain_area` and `spks` (plus optional `time` and
`session_id`). Records are read either from a pickle (`.pkl`) or from a
numpy archive (`.npz`, loaded with `allow_pickle=True`), and normalized
into the dataclasses in `session.py`.
"""
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence
import logging
import pickle
import re
import numpy as np
from .session import Session, Trial

logger = logging.getLogger(__name__)

REQUIRED_KEYS = (
    "contrast_left",
    "contrast_right",
    "feedback_type",
    "mouse_name",
    "date_exp",
    "brain_area",
    "spks",
)
SUFFIXES = (".pkl", ".npz")

_SUCCESS_STRINGS = {"success", "succeeded", "correct", "hit", "1", "true"}
_FAILURE_STRINGS = {"failure", "failed", "incorrect", "miss", "-1", "0", "false"}


def parse_feedback_type(raw: Any) -> np.ndarray:
    """Normalize a feedback vector to a 1-D int array of 1 (success) / -1 (failure).

    Accepts the native 1/-1 coding, 1/0 coding, booleans and strings or
    bytes such as "success"/"failure". Anything else raises ValueError.
    """
    arr = np.asarray(raw).flatten()
    if arr.size == 0:
        return np.array([], dtype=int)

    out = []
    for v in arr:
        if isinstance(v, (bytes, str)):
            s = v.decode() if isinstance(v, bytes) else v
            s = s.strip().lower()
            if s in _SUCCESS_STRINGS:
                out.append(1)
            elif s in _FAILURE_STRINGS:
                out.append(-1)
            else:
                raise ValueError(f"Unrecognized feedback value: {v!r}")
            continue
        if isinstance(v, (bool, np.bool_)):
            out.append(1 if v else -1)
            continue
        try:
            num = float(v)
        except (TypeError, ValueError):
            raise ValueError(f"Unrecognized feedback value: {v!r}")
        if num == 1:
            out.append(1)
        elif num in (-1, 0):
            out.append(-1)
        else:
            raise ValueError(f"Unrecognized feedback value: {v!r}")
    return np.array(out, dtype=int)


def _as_scalar_str(x: Any) -> str:
    """MATLAB/R exports often wrap scalars in 0-d or 1-element arrays."""
    if isinstance(x, np.ndarray):
        x = x.flatten()
        x = x[0] if x.size else ""
    if isinstance(x, bytes):
        x = x.decode()
    return str(x)


def _split_spks(spks: Any, n_trials: int) -> List[np.ndarray]:
    """Return a list of per-trial 2-D (neurons x bins) count matrices."""
    if isinstance(spks, np.ndarray) and spks.dtype != object and spks.ndim == 3:
        mats = [spks[i] for i in range(spks.shape[0])]
    else:
        mats = [np.asarray(m, dtype=float) for m in spks]
    if len(mats) != n_trials:
        raise ValueError(f"spks holds {len(mats)} trials but feedback_type has {n_trials}")
    out = []
    for m in mats:
        m = np.asarray(m, dtype=float)
        if m.ndim == 1:
            # a single neuron exported as a vector
            m = m[np.newaxis, :]
        out.append(m)
    return out


def _split_time(time: Any, n_trials: int) -> List[Optional[np.ndarray]]:
    if time is None:
        return [None] * n_trials
    if isinstance(time, np.ndarray) and time.dtype != object and time.ndim == 1:
        # one shared bin-centre vector
        return [time.astype(float)] * n_trials
    items = [np.asarray(t, dtype=float).flatten() for t in time]
    if len(items) != n_trials:
        raise ValueError(f"time holds {len(items)} trials but feedback_type has {n_trials}")
    return items


def _read_record(path: Path) -> Dict[str, Any]:
    suffix = path.suffix.lower()
    if suffix == ".npz":
        with np.load(path, allow_pickle=True) as npz:
            return {k: npz[k] for k in npz.files}
    if suffix == ".pkl":
        with path.open("rb") as f:
            try:
                obj = pickle.load(f)
            except ModuleNotFoundError:
                # pickles written by older numpy builds reference 'numpy._core'
                f.seek(0)

                class RenamingUnpickler(pickle.Unpickler):
                    def find_class(self, module, name):
                        if module.startswith("numpy._core"):
                            module = module.replace("numpy._core", "numpy.core")
                        return super().find_class(module, name)

                obj = RenamingUnpickler(f).load()
        if isinstance(obj, Session):
            return {"__session__": obj}
        if not isinstance(obj, Mapping):
            raise ValueError(f"{path}: expected a mapping record, got {type(obj).__name__}")
        return dict(obj)
    raise ValueError(f"Unsupported session file type: {path.suffix} ({path})")


def _session_id_from_stem(stem: str) -> int:
    m = re.search(r"(\d+)$", stem)
    return int(m.group(1)) if m else 0


def record_to_session(record: Dict[str, Any], session_id: int = 0) -> Session:
    """Convert a raw record (dict of arrays) into a validated `Session`."""
    missing = [k for k in REQUIRED_KEYS if k not in record]
    if missing:
        raise ValueError(f"Session record missing keys: {missing}")

    feedback = parse_feedback_type(record["feedback_type"])
    n_trials = feedback.size
    contrast_left = np.asarray(record["contrast_left"], dtype=float).flatten()
    contrast_right = np.asarray(record["contrast_right"], dtype=float).flatten()
    if contrast_left.size != n_trials or contrast_right.size != n_trials:
        raise ValueError(
            f"contrast vectors ({contrast_left.size}, {contrast_right.size}) "
            f"do not match {n_trials} feedback values"
        )
    spks = _split_spks(record["spks"], n_trials)
    times = _split_time(record.get("time"), n_trials)

    trials = [
        Trial(
            contrast_left=float(contrast_left[i]),
            contrast_right=float(contrast_right[i]),
            feedback_type=int(feedback[i]),
            spks=spks[i],
            time=times[i],
        )
        for i in range(n_trials)
    ]
    brain_area = [_as_scalar_str(a) for a in np.asarray(record["brain_area"]).flatten()]

    session = Session(
        trials=trials,
        brain_area=brain_area,
        mouse_name=_as_scalar_str(record["mouse_name"]),
        date_exp=_as_scalar_str(record["date_exp"]),
        session_id=int(session_id),
    )
    return session.validate()


def session_to_record(session: Session) -> Dict[str, Any]:
    """Inverse of `record_to_session`; used for writing files."""
    record = {
        "contrast_left": np.array([t.contrast_left for t in session.trials], dtype=float),
        "contrast_right": np.array([t.contrast_right for t in session.trials], dtype=float),
        "feedback_type": np.array([t.feedback_type for t in session.trials], dtype=int),
        "mouse_name": session.mouse_name,
        "date_exp": session.date_exp,
        "brain_area": np.array(session.brain_area, dtype=object),
        "spks": np.stack([np.asarray(t.spks) for t in session.trials]) if session.trials else np.empty((0, 0, 0)),
        "session_id": int(session.session_id),
    }
    if session.trials and session.trials[0].time is not None:
        record["time"] = np.stack([np.asarray(t.time) for t in session.trials])
    return record


def load_session(path: str, session_id: Optional[int] = None) -> Session:
    """Load one session (or test) file into a `Session`.

    The session id comes from `session_id` if given, otherwise from the
    record's own `session_id` field, otherwise from the trailing digits of
    the file name (`session7.npz` -> 7).
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Session file not found: {path}")

    record = _read_record(p)
    if "__session__" in record:
        session = record["__session__"].validate()
        if session_id is not None:
            session.session_id = int(session_id)
        session.source_path = str(p)
        return session

    if session_id is None:
        if "session_id" in record:
            session_id = int(np.asarray(record["session_id"]).flatten()[0])
        else:
            session_id = _session_id_from_stem(p.stem)

    session = record_to_session(record, session_id=session_id)
    session.source_path = str(p)
    logger.debug(
        "Loaded %s: session %d, %d trials, %d neurons",
        p.name, session.session_id, session.n_trials, session.n_neurons,
    )
    return session


def save_session(session: Session, path: str) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    record = session_to_record(session)
    if p.suffix.lower() == ".npz":
        np.savez(p, **record)
    elif p.suffix.lower() == ".pkl":
        with p.open("wb") as f:
            pickle.dump(record, f)
    else:
        raise ValueError(f"Unsupported session file type: {p.suffix} ({p})")
    return p


def find_session_files(data_dir: str, prefix: str = "session") -> List[Path]:
    """List `<prefix><N>.pkl|.npz` files sorted by N.

    When both a .pkl and a .npz exist for the same N the .pkl wins.
    """
    d = Path(data_dir)
    pattern = re.compile(rf"^{re.escape(prefix)}(\d+)$")
    found: Dict[int, Path] = {}
    for p in sorted(d.iterdir()) if d.is_dir() else []:
        if p.suffix.lower() not in SUFFIXES:
            continue
        m = pattern.match(p.stem)
        if not m:
            continue
        n = int(m.group(1))
        if n in found and found[n].suffix.lower() == ".pkl":
            continue
        found[n] = p
    return [found[n] for n in sorted(found)]


def load_sessions(data_dir: str, prefix: str = "session") -> List[Session]:
    files = find_session_files(data_dir, prefix=prefix)
    if not files:
        raise FileNotFoundError(f"No {prefix}<N>.pkl/.npz files found in {data_dir}")
    sessions = [load_session(str(p)) for p in files]
    logger.info("Loaded %d %s files from %s", len(sessions), prefix, data_dir)
    return sessions


def load_test_sessions(data_dir: str, session_ids: Optional[Sequence[int]] = None) -> List[Session]:
    """Load held-out `test<N>` files.

    `session_ids` assigns, in file order, the recording session each test
    file was drawn from. Without it the ids come from the files themselves.
    Returns an empty list when the directory has no test files.
    """
    files = find_session_files(data_dir, prefix="test")
    if not files:
        logger.info("No test<N> files in %s", data_dir)
        return []
    if session_ids is not None and len(session_ids) != len(files):
        raise ValueError(
            f"{len(session_ids)} test session ids given for {len(files)} test files"
        )
    out = []
    for i, p in enumerate(files):
        sid = None if session_ids is None else int(session_ids[i])
        out.append(load_session(str(p), session_id=sid))
    logger.info("Loaded %d test files from %s", len(out), data_dir)
    return out
