import pytest

ENV_VARS = [
    "ALEO_NETWORK_URL", "ALEO_NETWORK", "MASTER_PRIVATE_KEY", "MASTER_ADDRESS",
    "ROOM_MANAGER_PROGRAM", "DEFAULT_FEE", "PRIVATE_FEE", "DEFAULT_BIG_BLIND",
    "DEFAULT_SMALL_BLIND", "DEFAULT_MIN_STACK", "DEFAULT_SEATS", "DEFAULT_PLAYER_BET",
    "DEFAULT_FUNDING_AMOUNT", "BET_RULE", "CHECK_PRECONDITIONS",
    "POLL_MAX_ATTEMPTS", "POLL_INITIAL_DELAY", "POLL_MAX_DELAY", "POLL_BACKOFF_FACTOR",
    "QUERY_MAX_ATTEMPTS", "QUERY_INITIAL_DELAY", "QUERY_MAX_DELAY", "QUERY_BACKOFF_FACTOR",
    "TX_BUILDER",
]


@pytest.fixture
def env(monkeypatch):
    """Start from an empty roomchain environment and restore it afterwards."""
    # setenv first so monkeypatch also removes whatever load_dotenv adds.
    for name in ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return monkeypatch
