import json
import logging
import os
from pathlib import Path
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class RefreshTokenStorage(Protocol):
    def load(self) -> Optional[str]:
        ...

    def save(self, token: str) -> None:
        ...

    def clear(self) -> None:
        ...


class MemoryRefreshTokenStorage:
    def __init__(self) -> None:
        self._token: Optional[str] = None

    def load(self) -> Optional[str]:
        return self._token

    def save(self, token: str) -> None:
        self._token = token

    def clear(self) -> None:
        self._token = None


class FileRefreshTokenStorage:
    def __init__(self, path: str | os.PathLike) -> None:
        self.path = Path(path).expanduser()

    def load(self) -> Optional[str]:
        try:
            data = json.loads(self.path.read_text())
        except FileNotFoundError:
            return None
        except (OSError, ValueError):
            logger.warning("Ignoring unreadable refresh token file %s", self.path)
            return None
        token = data.get("refresh_token") if isinstance(data, dict) else None
        return token or None

    def save(self, token: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as handle:
            json.dump({"refresh_token": token}, handle)
        os.replace(tmp_path, self.path)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


class TokenManager:
    def __init__(self, storage: Optional[RefreshTokenStorage] = None) -> None:
        self._access_token: Optional[str] = None
        self.storage = storage or MemoryRefreshTokenStorage()

    @property
    def access_token(self) -> Optional[str]:
        return self._access_token

    @access_token.setter
    def access_token(self, token: Optional[str]) -> None:
        self._access_token = token

    @property
    def refresh_token(self) -> Optional[str]:
        return self.storage.load()

    @refresh_token.setter
    def refresh_token(self, token: Optional[str]) -> None:
        if token:
            self.storage.save(token)
        else:
            self.storage.clear()

    def set_tokens(self, access_token: str, refresh_token: str) -> None:
        self.access_token = access_token
        self.refresh_token = refresh_token

    def clear(self) -> None:
        self._access_token = None
        self.storage.clear()
