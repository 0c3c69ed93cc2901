"""
Supabase sign-in with a cached, refreshable session.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import keyring
import pendulum
import requests
from keyring.errors import KeyringError, PasswordDeleteError

from ..domain.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


KEYRING_SERVICE_NAME = "dealflow"

# Refresh a little before the token actually expires.
EXPIRY_MARGIN_SECONDS = 60


class SupabaseAuthenticator:
    """
    Signs in against the Supabase auth endpoint and keeps the session.

    1. ``sign_in`` exchanges email and password for a session
    2. The session is stored in the OS keyring (plaintext file as fallback)
    3. ``get_access_token`` returns the cached token, refreshing it with the
       refresh token once it is about to expire
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        cache_file: Path | None = None,
        timeout: int = 30,
    ):
        """
        Initialize the authenticator.

        Args:
            url: Supabase project URL
            api_key: Project anon key
            cache_file: Optional path to the plaintext session cache
            timeout: Request timeout in seconds
        """
        self.url = url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

        self.cache_file = cache_file or Path.home() / ".dealflow_session.json"
        self._key_identifier = self.url
        self._keyring_supported = True
        self._cache_backend = "keyring"
        self._insecure_storage_warning: Optional[str] = None
        self.session = self._load_session()

    @property
    def cache_backend(self) -> str:
        """Return the active cache backend (keyring or file)."""
        return self._cache_backend

    @property
    def insecure_storage_warning(self) -> Optional[str]:
        """Provide a warning message when the session falls back to plaintext storage."""
        return self._insecure_storage_warning

    def _load_session(self) -> Optional[Dict[str, Any]]:
        """Load the session from keyring or disk if it exists."""
        serialized = self._load_from_keyring()
        if serialized is None:
            serialized = self._load_from_file()

        if not serialized:
            return None

        try:
            return json.loads(serialized)
        except ValueError as exc:
            logger.warning("Could not deserialize session cache: %s", exc)
            return None

    def _load_from_keyring(self) -> Optional[str]:
        if not self._keyring_supported:
            return None

        try:
            return keyring.get_password(KEYRING_SERVICE_NAME, self._key_identifier)
        except KeyringError as exc:  # pragma: no cover - environment dependent
            self._handle_keyring_failure(f"reading credentials failed: {exc}")
            return None

    def _load_from_file(self) -> Optional[str]:
        if self.cache_file.exists():
            try:
                with open(self.cache_file, "r", encoding="utf-8") as file_handle:
                    return file_handle.read()
            except OSError as exc:
                logger.warning("Could not load session cache file %s: %s", self.cache_file, exc)
        return None

    def _save_session(self, session: Dict[str, Any]) -> None:
        """Save the session to the configured backend."""
        self.session = session
        serialized = json.dumps(session)

        if self._keyring_supported and self._save_to_keyring(serialized):
            return

        self._save_to_file(serialized)

    def _save_to_keyring(self, serialized: str) -> bool:
        try:
            keyring.set_password(KEYRING_SERVICE_NAME, self._key_identifier, serialized)
            self._cache_backend = "keyring"
            return True
        except KeyringError as exc:  # pragma: no cover - environment dependent
            self._handle_keyring_failure(f"writing credentials failed: {exc}")
            return False

    def _save_to_file(self, serialized: str) -> None:
        try:
            self.cache_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.cache_file, "w", encoding="utf-8") as file_handle:
                file_handle.write(serialized)
            self.cache_file.chmod(0o600)
        except OSError as exc:
            logger.warning("Could not save session cache to %s: %s", self.cache_file, exc)

    def _handle_keyring_failure(self, reason: str) -> None:
        if self._keyring_supported:
            logger.warning(
                "Secure credential storage unavailable (%s). Falling back to plaintext cache.",
                reason,
            )
        self._keyring_supported = False
        self._cache_backend = "file"
        if not self._insecure_storage_warning:
            self._insecure_storage_warning = (
                f"Secure credential storage unavailable ({reason}). "
                f"Falling back to plaintext cache at {self.cache_file}."
            )

    def _token_request(self, grant_type: str, payload: Dict[str, str]) -> Dict[str, Any]:
        try:
            response = requests.post(
                f"{self.url}/auth/v1/token",
                params={"grant_type": grant_type},
                headers={"apikey": self.api_key, "Content-Type": "application/json"},
                json=payload,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as exc:
            raise AuthenticationError(f"Could not reach Supabase auth: {exc}") from exc

        try:
            body = response.json()
        except ValueError:
            body = {}

        if not response.ok or "access_token" not in body:
            error = body.get("error_description") or body.get("msg") or response.reason
            raise AuthenticationError(f"Authentication failed: {error}")

        return body

    def _is_fresh(self, session: Dict[str, Any]) -> bool:
        expires_at = session.get("expires_at")
        if expires_at is None:
            return False
        return pendulum.now("UTC").int_timestamp < int(expires_at) - EXPIRY_MARGIN_SECONDS

    def sign_in(self, email: str, password: str) -> str:
        """
        Sign in with email and password.

        Returns:
            Access token string

        Raises:
            AuthenticationError: If the credentials are rejected
        """
        session = self._token_request("password", {"email": email, "password": password})
        self._save_session(session)
        logger.info("Signed in as %s", email)
        return session["access_token"]

    def get_access_token(self, force_refresh: bool = False) -> str:
        """
        Get a valid access token from the cached session.

        Args:
            force_refresh: Refresh even if the cached token has not expired

        Returns:
            Access token string

        Raises:
            AuthenticationError: If there is no session or it cannot be refreshed
        """
        session = self.session
        if not session:
            raise AuthenticationError("Not signed in. Run `dealflow login` first.")

        if not force_refresh and self._is_fresh(session):
            return session["access_token"]

        refresh_token = session.get("refresh_token")
        if not refresh_token:
            raise AuthenticationError("Session expired. Run `dealflow login` again.")

        refreshed = self._token_request("refresh_token", {"refresh_token": refresh_token})
        self._save_session(refreshed)
        return refreshed["access_token"]

    def clear_cache(self) -> None:
        """Forget the stored session (sign in again next time)."""
        if self.cache_file.exists():
            self.cache_file.unlink()
        try:
            keyring.delete_password(KEYRING_SERVICE_NAME, self._key_identifier)
        except PasswordDeleteError:
            logger.debug("No session stored in keyring for %s", self._key_identifier)
        except KeyringError as exc:  # pragma: no cover - environment dependent
            logger.warning("Could not remove credentials from keyring: %s", exc)
        self.session = None
