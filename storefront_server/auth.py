"""Authentication manager for the storefront API."""

import json
import os
from pathlib import Path
from typing import Optional
import logging

from .models import SessionData

logger = logging.getLogger(__name__)


class AuthManager:
    """
    Manages the bearer token and its persistence.

    The stored token is the only signal of "authenticated". The cart code reads
    it through ``is_authenticated()`` and ``get_token()`` and never writes it.
    """

    def __init__(self, session_file: Optional[str] = None, token: Optional[str] = None) -> None:
        """
        Initialize the authentication manager.

        Args:
            session_file: Path to store session data. Defaults to ~/.storefront_session.json
            token: Bearer token to start with (e.g. from STOREFRONT_TOKEN); overrides the saved one
        """
        if session_file is None:
            session_file = str(Path.home() / ".storefront_session.json")
        self.session_file = session_file
        self.session: SessionData = self._load_session()

        if token:
            logger.info("Using bearer token from configuration")
            self.session = SessionData(token=token)
            self._save_session()

    def _load_session(self) -> SessionData:
        """Load session data from file if it exists."""
        if os.path.exists(self.session_file):
            try:
                with open(self.session_file, "r") as f:
                    data = json.load(f)
                    session = SessionData(**data)
                    if session.token:
                        logger.info(f"Loaded existing session from {self.session_file}")
                    return session
            except (json.JSONDecodeError, ValueError, TypeError) as e:
                # If file is corrupted, start fresh
                logger.warning(f"Could not load session: {e}")
        return SessionData()

    def _save_session(self) -> None:
        """Save session data to file."""
        try:
            with open(self.session_file, "w") as f:
                json.dump(self.session.model_dump(), f, default=str)
            # Set restrictive permissions on session file
            os.chmod(self.session_file, 0o600)
        except OSError as e:
            logger.error(f"Could not save session: {e}")

    def save_session(self, token: str, user_email: Optional[str] = None, user_id: Optional[str] = None) -> None:
        """
        Save authentication session.

        Args:
            token: Bearer token from a successful login
            user_email: User's email address
            user_id: User's ID
        """
        self.session = SessionData(token=token, user_email=user_email, user_id=user_id)
        self._save_session()
        logger.info(f"Session saved to {self.session_file}")

    def get_session(self) -> SessionData:
        """Get current session data."""
        return self.session

    def clear_session(self) -> None:
        """Clear the current session."""
        self.session = SessionData()
        if os.path.exists(self.session_file):
            try:
                os.remove(self.session_file)
                logger.info("Session cleared")
            except OSError as e:
                logger.warning(f"Could not delete session file: {e}")

    def is_authenticated(self) -> bool:
        """Check if there's a stored token."""
        return bool(self.session.token)

    def get_token(self) -> Optional[str]:
        """Get the bearer token, if any."""
        return self.session.token
