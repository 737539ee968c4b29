"""Respondent identity for scoring actions.

Each scoring action is attributed to a named respondent. The current name
lives in an explicit ``SessionContext``; when it is empty the context asks an
injected ``IdentityProvider`` (a prompt in an interactive client). A
``PreferenceStore`` remembers the last professional name and role between
sessions.
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path

from portage.scoring.responses import IdentityMissingError

logger = logging.getLogger(__name__)

LAST_PROFESSIONAL_NAME_KEY = "last_prof_name"
LAST_PROFESSIONAL_ROLE_KEY = "last_prof_role"


class IdentityProvider(ABC):
    """Synchronous source of a respondent name."""

    @abstractmethod
    def resolve(self) -> str | None:
        """Ask for a name.

        Returns:
            The name given, or None if the user declined
        """
        pass


class StaticIdentityProvider(IdentityProvider):
    """Provider answering with a fixed name (None simulates a decline)."""

    def __init__(self, name: str | None) -> None:
        self.name = name
        self.calls = 0

    def resolve(self) -> str | None:
        self.calls += 1
        return self.name


class PreferenceStore(ABC):
    """Small key-value store for user preferences."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        pass


class InMemoryPreferenceStore(PreferenceStore):
    """Preference store kept in process memory."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value


class JsonFilePreferenceStore(PreferenceStore):
    """Preference store backed by a JSON file.

    A missing or unreadable file behaves as an empty store.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable preferences file {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str) -> str | None:
        value = self._read().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self.path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")


class SessionContext:
    """Who is scoring in the current editing session."""

    def __init__(
        self,
        identity_provider: IdentityProvider | None = None,
        preferences: PreferenceStore | None = None,
    ) -> None:
        self.identity_provider = identity_provider
        self.preferences = preferences or InMemoryPreferenceStore()
        self.respondent_name = self.preferences.get(LAST_PROFESSIONAL_NAME_KEY) or ""
        self.professional_role = self.preferences.get(LAST_PROFESSIONAL_ROLE_KEY) or ""

    @property
    def has_identity(self) -> bool:
        return bool(self.respondent_name.strip())

    def resolve_respondent(self) -> str:
        """Return the current respondent, prompting if there is none.

        A name obtained from the provider becomes the session respondent.

        Raises:
            IdentityMissingError: If no provider is available or it declined
        """
        if self.has_identity:
            return self.respondent_name.strip()

        if self.identity_provider is None:
            raise IdentityMissingError("No respondent identified for this session")

        name = (self.identity_provider.resolve() or "").strip()
        if not name:
            raise IdentityMissingError("Respondent identification was declined")

        self.set_respondent(name)
        return self.respondent_name

    def set_respondent(self, name: str) -> None:
        """Change the respondent; a new non-empty name is remembered."""
        name = name.strip()
        if name and name != self.respondent_name:
            self.preferences.set(LAST_PROFESSIONAL_NAME_KEY, name)
        self.respondent_name = name

    def set_role(self, role: str) -> None:
        """Change the role; a new non-empty role is remembered."""
        role = role.strip()
        if role and role != self.professional_role:
            self.preferences.set(LAST_PROFESSIONAL_ROLE_KEY, role)
        self.professional_role = role
