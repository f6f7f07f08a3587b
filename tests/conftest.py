"""
Pytest fixtures and test configuration for chronolog client tests.
"""

import pytest

from chronolog.storage.local import LocalStore
from chronolog.types import ContentType, FieldDefinition, FieldType

from client_helpers import make_note


@pytest.fixture(autouse=True)
def chronolog_home(tmp_path, monkeypatch):
    """Keep credentials, data and logs out of the real home directory."""
    home = tmp_path / "home"
    monkeypatch.setenv("CHRONOLOG_HOME", str(home))
    monkeypatch.delenv("CHRONOLOG_BACKEND_URL", raising=False)
    monkeypatch.delenv("CHRONOLOG_AUTH_TOKEN", raising=False)
    return home


@pytest.fixture
def store(tmp_path):
    return LocalStore(tmp_path / "store" / "data.json")


@pytest.fixture
def mood_type():
    return ContentType(
        id="mood",
        name="Mood",
        fields=(
            FieldDefinition(id="level", name="Level", type=FieldType.NUMBER),
            FieldDefinition(id="tone", name="Tone", type=FieldType.DROPDOWN, options=("up", "down")),
        ),
    )


@pytest.fixture
def note():
    return make_note
