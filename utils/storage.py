import json
import logging
import os
import platform
import time
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class TokenRecord:
    """HubSpot OAuth token record

    Attributes:
        access_token: Bearer token for API calls
        refresh_token: Token used to obtain a new access token
        expires_in: Lifetime of the access token in seconds (None = non-expiring)
        created_at: Unix time the token was issued (None = use file mtime)
        token_type: Token type reported by the provider
    """
    access_token: str
    refresh_token: str
    expires_in: Optional[int] = None
    created_at: Optional[float] = None
    token_type: Optional[str] = None

    @classmethod
    def from_response(cls, data: Dict[str, Any], issued_at: Optional[float] = None) -> "TokenRecord":
        """Build a record from a token endpoint response, stamping its issue time

        Raises:
            KeyError: If the response lacks access_token or refresh_token
            ValueError, TypeError: If expires_in is not a number
        """
        expires_in = data.get("expires_in")
        return cls(
            access_token=data["access_token"],
            refresh_token=data["refresh_token"],
            expires_in=int(expires_in) if expires_in is not None else None,
            created_at=issued_at if issued_at is not None else time.time(),
            token_type=data.get("token_type"),
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenRecord":
        """Load from the persisted JSON shape

        Raises:
            KeyError, TypeError, ValueError: If the data is not a complete record
        """
        expires_in = data.get("expires_in")
        created_at = data.get("created_at")
        return cls(
            access_token=data["access_token"],
            refresh_token=data["refresh_token"],
            expires_in=int(expires_in) if expires_in is not None else None,
            created_at=float(created_at) if created_at is not None else None,
            token_type=data.get("token_type"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage"""
        return {key: value for key, value in asdict(self).items() if value is not None}


class TokenStorage:
    """Token record held in memory and mirrored to a JSON file

    The file is read once at construction; afterwards the in-memory record
    is authoritative and every save/clear writes through to disk.
    """

    def __init__(self, token_file: Optional[str] = None, clock: Callable[[], float] = time.time):
        if token_file is None:
            from settings import TOKEN_FILE
            token_file = TOKEN_FILE
        self.token_path = Path(token_file)
        self._clock = clock
        self._tokens: Optional[TokenRecord] = None
        self.load_tokens()

    def _ensure_secure_directory(self):
        """Create parent directory with secure permissions"""
        parent_dir = self.token_path.parent
        if not parent_dir.exists():
            parent_dir.mkdir(parents=True, exist_ok=True)
            # Set directory permissions to 700 on Unix-like systems
            if platform.system() != "Windows":
                os.chmod(parent_dir, 0o700)

    def load_tokens(self) -> Optional[TokenRecord]:
        """Load the token record from disk into memory

        A missing or unreadable file leaves the store empty; errors are
        logged, never raised.
        """
        logger.info(f"Checking for tokens at: {self.token_path}")
        if not self.token_path.exists():
            logger.info(f"No token file found at: {self.token_path}")
            self._tokens = None
            return None

        try:
            data = json.loads(self.token_path.read_text())
            self._tokens = TokenRecord.from_dict(data)
        except (json.JSONDecodeError, OSError, KeyError, TypeError, ValueError, AttributeError) as e:
            logger.error(f"Failed to parse token file {self.token_path}: {e!r}")
            self._tokens = None
            return None

        logger.info(
            f"Loaded HubSpot tokens from: {self.token_path}, "
            f"access_token present: {bool(self._tokens.access_token)}"
        )
        return self._tokens

    def save_tokens(self, record: TokenRecord) -> None:
        """Persist a token record and make it the current one

        The in-memory record only changes once the file write succeeded.

        Raises:
            OSError: If the file cannot be written
        """
        self._ensure_secure_directory()

        # Write next to the target and swap it in so readers never see half a file
        tmp_path = self.token_path.with_name(self.token_path.name + ".tmp")
        tmp_path.write_text(json.dumps(record.to_dict(), indent=2))
        if platform.system() != "Windows":
            os.chmod(tmp_path, 0o600)
        os.replace(tmp_path, self.token_path)

        self._tokens = record
        logger.info(f"HubSpot tokens saved to: {self.token_path}")

    def get_tokens(self) -> Optional[TokenRecord]:
        """Get the current token record"""
        return self._tokens

    def clear_tokens(self) -> None:
        """Remove stored tokens from memory and disk"""
        self._tokens = None
        try:
            self.token_path.unlink()
            logger.info(f"Removed HubSpot tokens file: {self.token_path}")
        except FileNotFoundError:
            pass

    def has_tokens(self) -> bool:
        return self._tokens is not None

    def get_access_token(self) -> Optional[str]:
        if not self._tokens:
            return None
        return self._tokens.access_token or None

    def get_refresh_token(self) -> Optional[str]:
        if not self._tokens:
            return None
        return self._tokens.refresh_token or None

    def _issued_at(self) -> Optional[float]:
        """Issue time of the current token, falling back to the file's mtime"""
        if self._tokens and self._tokens.created_at is not None:
            return self._tokens.created_at
        try:
            return self.token_path.stat().st_mtime
        except OSError:
            return None

    def token_age(self) -> Optional[float]:
        """Seconds since the current token was issued, or None if unknown"""
        issued_at = self._issued_at()
        if issued_at is None:
            return None
        return self._clock() - issued_at

    def is_valid(self) -> bool:
        """Check for a present, unexpired access token

        A token is expired once its age is strictly greater than expires_in.
        Tokens without expiry metadata never expire.
        """
        if not self._tokens or not self._tokens.access_token:
            logger.debug("No access token available")
            return False

        if self._tokens.expires_in is not None:
            age = self.token_age()
            if age is not None and age > self._tokens.expires_in:
                logger.info(f"Token expired: age={round(age)}s, expires_in={self._tokens.expires_in}s")
                return False

        logger.debug("Token is valid")
        return True

    def needs_refresh(self, threshold_seconds: float = 300) -> bool:
        """Check if the access token expires in less than ``threshold_seconds``

        Always False without a refresh token or without expiry metadata.
        """
        if not self._tokens or not self._tokens.refresh_token:
            return False

        if self._tokens.expires_in is None:
            return False

        age = self.token_age()
        if age is None:
            return False

        time_until_expiry = self._tokens.expires_in - age
        if time_until_expiry < threshold_seconds:
            logger.info(f"Token expires soon ({round(time_until_expiry)}s)")
            return True
        return False

    def get_status(self) -> Dict[str, Any]:
        """Get token status without exposing secrets"""
        if not self._tokens:
            return {
                "has_tokens": False,
                "is_expired": True,
                "needs_refresh": False,
                "expires_at": None,
                "time_until_expiry": "No tokens",
                "token_file": str(self.token_path),
            }

        status: Dict[str, Any] = {
            "has_tokens": True,
            "is_expired": not self.is_valid(),
            "needs_refresh": self.needs_refresh(),
            "expires_at": None,
            "time_until_expiry": "Does not expire",
            "token_file": str(self.token_path),
        }

        issued_at = self._issued_at()
        if self._tokens.expires_in is None or issued_at is None:
            return status

        expires_at = issued_at + self._tokens.expires_in
        status["expires_at"] = datetime.fromtimestamp(expires_at).isoformat()

        remaining = int(expires_at - self._clock())
        if remaining <= 0:
            minutes_since = -remaining // 60
            status["time_until_expiry"] = f"{minutes_since // 60}h {minutes_since % 60}m ago"
        else:
            hours = remaining // 3600
            minutes = (remaining % 3600) // 60
            status["time_until_expiry"] = f"{hours}h {minutes}m" if hours > 0 else f"{minutes}m"
            status["expires_in_seconds"] = remaining
        return status

    @property
    def token_file(self) -> Path:
        """Get the token file path"""
        return self.token_path
