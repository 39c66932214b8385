import os
import pytest
from datetime import datetime, timezone
from unittest.mock import MagicMock

from pinkit.api import PinboardApi
from pinkit.models import Pin, Tag, Snapshot
from pinkit.store import SnapshotStore


@pytest.fixture
def sample_pin_records():
    """Raw posts/all records as sent by the service."""
    return [
        {
            "href": "https://danielkeep.github.io/tlborm/book/README.html",
            "description": "The Little Book of Rust Macros",
            "extended": "",
            "meta": "c2dd1a7b9a3ff4a8f0d2dc9a4d0a9d1f",
            "hash": "0d5f1f1fd0a1b6f7b2a51a0e1b2e4d3c",
            "time": "2017-05-22T17:46:54Z",
            "shared": "yes",
            "toread": "no",
            "tags": "Rust macros",
        },
        {
            "href": "http://tbaggery.com/2011/08/08/effortless-ctags-with-git.html",
            "description": "tbaggery - Effortless Ctags with Git",
            "extended": "Keep tags fresh with git hooks",
            "meta": "9a1e6f2c",
            "hash": "4b7c2d1e",
            "time": "2017-10-09T07:59:36Z",
            "shared": "no",
            "toread": "yes",
            "tags": "git ctags vim",
        },
        {
            "href": "https://docs.python.org/3/library/datetime.html",
            "description": "datetime — Basic date and time types",
            "extended": "",
            "meta": "11aa22bb",
            "hash": "33cc44dd",
            "time": "2018-01-15T12:00:00Z",
            "shared": "yes",
            "toread": "no",
            "tags": "python stdlib",
        },
    ]


@pytest.fixture
def sample_pins(sample_pin_records):
    return [Pin.from_api(r) for r in sample_pin_records]


@pytest.fixture
def sample_tags():
    return [
        Tag("Rust", 12),
        Tag("macros", 3),
        Tag("git", 7),
        Tag("Lumia920", 2),
        Tag("python", 40),
    ]


@pytest.fixture
def sample_snapshot(sample_pins, sample_tags):
    return Snapshot(
        pins=sample_pins,
        tags=sample_tags,
        synced_at=datetime(2020, 1, 1, 12, 0, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def cache_dir(tmp_path):
    return tmp_path / "cache"


@pytest.fixture
def store(cache_dir):
    return SnapshotStore(cache_dir)


def make_response(payload=None, status_code=200, json_error=None, text=""):
    """Build a mock requests.Response."""
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = payload
    return response


@pytest.fixture
def session():
    """A mock requests.Session; set session.get.return_value per test."""
    mock_session = MagicMock()
    mock_session.headers = {}
    return mock_session


@pytest.fixture
def api(session):
    return PinboardApi("user:SECRET", session=session, timeout=5)


@pytest.fixture
def clean_pinkit_env(monkeypatch, tmp_path):
    """
    Fixture to create a clean pinkit environment without affecting real config.

    Removes PINKIT_ environment variables and sets HOME to a temp directory.
    """
    for key in list(os.environ.keys()):
        if key.startswith("PINKIT_"):
            monkeypatch.delenv(key, raising=False)

    mock_home = tmp_path / "home"
    mock_home.mkdir()
    monkeypatch.setenv("HOME", str(mock_home))
    monkeypatch.chdir(tmp_path)

    return tmp_path
