"""
Runtime configuration for MediPortal.

Values are taken from environment variables first and then from Streamlit secrets
(`.streamlit/secrets.toml`), falling back to the defaults below. Leaving `DATABASE_URL`
unset runs the app in offline mode, with fixture-seeded collections and no remote store.
"""
# mediportal/config.py

import os
from dataclasses import dataclass
from typing import Optional

import streamlit as st
from streamlit.errors import StreamlitAPIException

DEFAULT_DATABASE_NAME = "mediportal"
DEFAULT_STORE_FILE = "session.json"
DEFAULT_KEY_FILE = "secret.key"


@dataclass(frozen=True)
class Settings:
    database_url: Optional[str] = None
    database_name: str = DEFAULT_DATABASE_NAME
    store_file: str = DEFAULT_STORE_FILE
    key_file: str = DEFAULT_KEY_FILE

    @property
    def offline(self) -> bool:
        return not self.database_url


def _secret(key: str) -> Optional[str]:
    try:
        value = st.secrets.get(key)
    except (FileNotFoundError, StreamlitAPIException):
        # No secrets file present.
        return None
    return str(value) if value is not None else None


def _setting(key: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(key)
    if value:
        return value
    return _secret(key) or default


def load_settings() -> Settings:
    """Builds the settings from the environment and Streamlit secrets."""
    return Settings(
        database_url=_setting("DATABASE_URL"),
        database_name=_setting("DATABASE_NAME", DEFAULT_DATABASE_NAME),
        store_file=_setting("MEDIPORTAL_STORE_FILE", DEFAULT_STORE_FILE),
        key_file=_setting("MEDIPORTAL_KEY_FILE", DEFAULT_KEY_FILE),
    )
