import pickle
import sys
import types
import numpy as np
import pytest
from steinmetz.io import (
    parse_feedback_type,
    load_session,
    load_sessions,
    load_test_sessions,
    save_session,
    find_session_files,
)


def test_parse_native_coding():
    assert parse_feedback_type(np.array([1, -1, 1])).tolist() == [1, -1, 1]


def test_parse_zero_one_and_bool():
    assert parse_feedback_type([1, 0, 0]).tolist() == [1, -1, -1]
    assert parse_feedback_type(np.array([True, False])).tolist() == [1, -1]


def test_parse_strings_and_bytes():
    assert parse_feedback_type(["success", "Failure"]).tolist() == [1, -1]
    assert parse_feedback_type(b"success").tolist() == [1]


def test_parse_nested_array():
    assert parse_feedback_type(np.array([[1], [-1]])).tolist() == [1, -1]


def test_parse_empty():
    assert parse_feedback_type(np.array([])).size == 0


def test_parse_rejects_unknown():
    with pytest.raises(ValueError):
        parse_feedback_type([1, 2])
    with pytest.raises(ValueError):
        parse_feedback_type(["maybe"])


@pytest.mark.parametrize("suffix", [".npz", ".pkl"])
def test_save_and_load_session(tmp_path, session, suffix):
    path = save_session(session, tmp_path / f"session3{suffix}")
    loaded = load_session(str(path))
    assert loaded.session_id == 3
    assert loaded.n_trials == session.n_trials
    assert loaded.n_neurons == session.n_neurons
    assert loaded.brain_area == session.brain_area
    assert loaded.mouse_name == session.mouse_name
    assert [t.feedback_type for t in loaded.trials] == [t.feedback_type for t in session.trials]
    np.testing.assert_array_equal(loaded.trials[5].spks, session.trials[5].spks)


def test_load_record_with_trial_list(tmp_path):
    rng = np.random.RandomState(0)
    record = {
        "contrast_left": [0.5, 0.0],
        "contrast_right": [0.0, 1.0],
        "feedback_type": [1, -1],
        "mouse_name": "Lederberg",
        "date_exp": "2017-12-05",
        "brain_area": ["VISp", "VISp", "MOs"],
        "spks": [rng.poisson(0.1, size=(3, 40)), rng.poisson(0.1, size=(3, 40))],
    }
    p = tmp_path / "session12.pkl"
    with p.open("wb") as f:
        pickle.dump(record, f)
    s = load_session(str(p))
    # id falls back to the digits in the file name
    assert s.session_id == 12
    assert s.n_bins == 40
    assert s.brain_areas == ["VISp", "MOs"]
    assert s.trials[1].contrast_diff == -1.0
    assert s.trials[0].time is None


def test_load_rejects_shape_mismatch(tmp_path):
    record = {
        "contrast_left": [0.5],
        "contrast_right": [0.0],
        "feedback_type": [1],
        "mouse_name": "Cori",
        "date_exp": "2016-12-14",
        "brain_area": ["VISp", "MOs"],
        "spks": np.zeros((1, 3, 40)),
    }
    p = tmp_path / "session1.pkl"
    with p.open("wb") as f:
        pickle.dump(record, f)
    with pytest.raises(ValueError):
        load_session(str(p))


def test_load_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_session(str(tmp_path / "session99.npz"))


def test_unsupported_suffix(tmp_path, session):
    with pytest.raises(ValueError):
        save_session(session, tmp_path / "session1.rds")


def test_find_and_load_sessions_in_order(tmp_path, sessions):
    # write out of order to check numeric sorting (session10 after session2)
    for s, n in zip(sessions, (10, 2, 1)):
        s.session_id = n
        save_session(s, tmp_path / f"session{n}.npz")
    (tmp_path / "notes.txt").write_text("ignore me")
    files = find_session_files(str(tmp_path))
    assert [p.stem for p in files] == ["session1", "session2", "session10"]
    loaded = load_sessions(str(tmp_path))
    assert [s.session_id for s in loaded] == [1, 2, 10]


def test_load_sessions_empty_dir(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_sessions(str(tmp_path))


def test_load_test_sessions_assigns_ids(tmp_path, sessions):
    save_session(sessions[0], tmp_path / "test1.npz")
    save_session(sessions[1], tmp_path / "test2.npz")
    loaded = load_test_sessions(str(tmp_path), session_ids=[1, 18])
    assert [s.session_id for s in loaded] == [1, 18]
    with pytest.raises(ValueError):
        load_test_sessions(str(tmp_path), session_ids=[1])


def test_load_test_sessions_none_present(tmp_path):
    assert load_test_sessions(str(tmp_path)) == []


def _legacy_record(record):
    return record


class _LegacyPickled:
    """Pickles as a call into a module path only older numpy builds provide."""

    def __init__(self, record):
        self.record = record

    def __reduce__(self):
        return _legacy_record, (self.record,)


def test_load_pickle_with_legacy_numpy_module_path(tmp_path, monkeypatch):
    legacy = types.ModuleType("numpy._core._steinmetz_legacy")
    legacy.build = _legacy_record
    monkeypatch.setattr(_legacy_record, "__module__", legacy.__name__)
    monkeypatch.setattr(_legacy_record, "__qualname__", "build")
    monkeypatch.setitem(sys.modules, legacy.__name__, legacy)
    record = {
        "contrast_left": [0.25, 0.0],
        "contrast_right": [0.0, 0.5],
        "feedback_type": [1, -1],
        "mouse_name": "Forssmann",
        "date_exp": "2017-11-01",
        "brain_area": ["VISp", "CA1"],
        "spks": [[[0, 1, 2], [1, 0, 0]], [[0, 0, 1], [2, 1, 0]]],
    }
    p = tmp_path / "session4.pkl"
    p.write_bytes(pickle.dumps(_LegacyPickled(record)))

    # only the renamed path resolves now, so the first load attempt fails
    monkeypatch.delitem(sys.modules, legacy.__name__)
    monkeypatch.setitem(sys.modules, "numpy.core._steinmetz_legacy", legacy)
    s = load_session(str(p))
    assert s.session_id == 4
    assert s.mouse_name == "Forssmann"
    assert s.n_bins == 3
    assert [t.feedback_type for t in s.trials] == [1, -1]
    np.testing.assert_array_equal(s.trials[1].spks, [[0, 0, 1], [2, 1, 0]])


def test_load_pickled_session_object(tmp_path, session):
    p = tmp_path / "session4.pkl"
    with p.open("wb") as f:
        pickle.dump(session, f)
    s = load_session(str(p), session_id=9)
    assert s.session_id == 9
    assert s.source_path == str(p)
    assert s.n_trials == session.n_trials
    np.testing.assert_array_equal(s.trials[0].spks, session.trials[0].spks)
    # without an explicit id the pickled one is kept
    assert load_session(str(p)).session_id == session.session_id
