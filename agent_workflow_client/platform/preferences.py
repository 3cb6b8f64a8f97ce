"""User preference persistence.

Preferences are opaque key/value pairs loaded at start and saved on change.
The streaming core only ever sees the resulting values.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel, ValidationError

from agent_workflow_client.platform.observability import get_logger

logger = get_logger(__name__)

INPUT_PREFERENCES_KEY = "config.inputbox"
ENABLED_TEAM_MEMBERS_KEY = "config.enabledTeamMembers"


class PreferencesStore(Protocol):
    """Key/value store for user preferences."""

    def load(self, key: str) -> Any | None:
        """Return the stored value, or None if the key is unset."""
        ...

    def save(self, key: str, value: Any) -> None:
        """Store a JSON-serializable value."""
        ...


class InMemoryPreferencesStore:
    """Process-local preferences, lost on exit."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = dict(initial or {})

    def load(self, key: str) -> Any | None:
        return self._values.get(key)

    def save(self, key: str, value: Any) -> None:
        self._values[key] = value


class JsonFilePreferencesStore:
    """Preferences kept in a single JSON document on disk."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def load(self, key: str) -> Any | None:
        return self._read().get(key)

    def save(self, key: str, value: Any) -> None:
        values = self._read()
        values[key] = value
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self._path.parent, prefix=f".{self._path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(values, f, indent=2)
            os.replace(tmp_path, self._path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    def _read(self) -> dict[str, Any]:
        try:
            content = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        try:
            values = json.loads(content)
        except json.JSONDecodeError:
            logger.warning("ignoring unreadable preferences file", path=str(self._path))
            return {}
        if not isinstance(values, dict):
            logger.warning("ignoring preferences file that is not an object", path=str(self._path))
            return {}
        return values


class InputPreferences(BaseModel):
    """Toggles forwarded with every chat request."""

    deep_thinking_mode: bool = False
    search_before_planning: bool = False


def load_input_preferences(store: PreferencesStore) -> InputPreferences:
    """Load the input toggles, falling back to defaults on missing or invalid data."""
    value = store.load(INPUT_PREFERENCES_KEY)
    if value is None:
        return InputPreferences()
    try:
        return InputPreferences.model_validate(value)
    except ValidationError:
        logger.warning("ignoring invalid input preferences", key=INPUT_PREFERENCES_KEY)
        return InputPreferences()


def save_input_preferences(store: PreferencesStore, preferences: InputPreferences) -> None:
    store.save(INPUT_PREFERENCES_KEY, preferences.model_dump())


def load_enabled_team_members(store: PreferencesStore) -> list[str] | None:
    """Load the saved team selection, or None if there is none."""
    value = store.load(ENABLED_TEAM_MEMBERS_KEY)
    if not isinstance(value, list) or not all(isinstance(name, str) for name in value):
        return None
    return value


def save_enabled_team_members(store: PreferencesStore, names: list[str]) -> None:
    store.save(ENABLED_TEAM_MEMBERS_KEY, list(names))
