import pytest
from steinmetz.synthetic import synthetic_session


@pytest.fixture
def session():
    return synthetic_session(session_id=3, n_trials=60, n_neurons=12, n_bins=40, random_state=3)


@pytest.fixture
def sessions():
    return [
        synthetic_session(session_id=1, n_trials=80, n_neurons=10, mouse_name="Cori", random_state=1),
        synthetic_session(session_id=2, n_trials=80, n_neurons=14, mouse_name="Cori", random_state=2),
        synthetic_session(session_id=3, n_trials=80, n_neurons=18, mouse_name="Hench", random_state=3),
    ]
