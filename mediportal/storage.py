"""
This module provides the local durable store used to keep a session across restarts.

`LocalStore` behaves like a browser's local storage: a handful of string keys, each
holding a JSON-serialisable value, visible to one client only. Every client gets its own
namespace inside a single file encrypted with Fernet, so the signed-in user and the auth
principal survive a reload of the page but are neither shared between browsers nor
readable on disk.
"""
# mediportal/storage.py

import json
import threading
import uuid
from typing import Any, Dict, MutableMapping, Optional

from cryptography.fernet import Fernet, InvalidToken

from mediportal.encryption import get_encryptor

STORE_FILE = 'session.json'
DEFAULT_CLIENT = 'local'
CLIENT_PARAM = 'client'

# Streamlit sessions share one process, so writes to the file are serialised.
_file_lock = threading.Lock()


def client_id(params: MutableMapping[str, str]) -> str:
    """Returns the id of the browser the app is talking to, assigning one if needed.

    The id travels in the page's query parameters, so it survives a reload of the tab
    while a new visitor without it starts with a fresh, empty namespace.

    Args:
        params (MutableMapping): The page's query parameters (`st.query_params`).

    Returns:
        str: The client id.
    """
    current = params.get(CLIENT_PARAM)
    if current:
        return current
    new_id = uuid.uuid4().hex
    params[CLIENT_PARAM] = new_id
    return new_id


class LocalStore:
    """An encrypted key-value namespace for one client."""

    def __init__(self, path: str = STORE_FILE, encryptor: Optional[Fernet] = None,
                 client: str = DEFAULT_CLIENT):
        """Initializes the store and loads any items previously saved for the client.

        Args:
            path (str): The file the items are persisted to.
            encryptor (Fernet, optional): The cipher to use. Defaults to the one built
                                          from the application's key file.
            client (str): The namespace within the file that belongs to this client.
        """
        self.path = path
        self.client = client
        self._encryptor = encryptor or get_encryptor()
        self._items = dict(self._load().get(client, {}))

    def _load(self) -> Dict[str, Dict[str, Any]]:
        """Loads and decrypts every client's items from disk.

        Returns:
            dict: The saved namespaces, or an empty dictionary if the file doesn't exist or is corrupt.
        """
        try:
            with open(self.path, 'r') as f:
                encrypted_data = f.read()
            if not encrypted_data:
                return {}
            decrypted_data = self._encryptor.decrypt(encrypted_data.encode()).decode()
            namespaces = json.loads(decrypted_data)
            if not isinstance(namespaces, dict):
                return {}
            return {k: v for k, v in namespaces.items() if isinstance(v, dict)}
        except FileNotFoundError:
            return {}
        except (InvalidToken, json.JSONDecodeError) as e:
            print(f"Warning: Could not read session store ({e!r}). Starting with an empty session.")
            return {}

    def _save(self):
        """Writes this client's items back, leaving other clients' namespaces as they are on disk."""
        with _file_lock:
            namespaces = self._load()
            if self._items:
                namespaces[self.client] = self._items
            else:
                namespaces.pop(self.client, None)
            encrypted_data = self._encryptor.encrypt(json.dumps(namespaces).encode())
            with open(self.path, 'w') as f:
                f.write(encrypted_data.decode())

    def get_item(self, key: str) -> Optional[Any]:
        return self._items.get(key)

    def set_item(self, key: str, value: Any):
        self._items[key] = value
        self._save()

    def remove_item(self, key: str):
        if self._items.pop(key, None) is not None:
            self._save()
