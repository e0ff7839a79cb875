"""
This module handles the encryption key used for MediPortal's local session store.

It uses the `cryptography` library (specifically Fernet symmetric encryption) so that the
persisted session (`session.json`), which holds the signed-in user and their medical record,
is not readable at rest. The module is responsible for:
- Generating a secret key if one does not already exist.
- Storing and loading the secret key from the configured key file.
- Building the Fernet instance the session store encrypts with.

Security Note: the key file is critical. It must be kept secure and should not be
committed to version control.
"""
# mediportal/encryption.py

from cryptography.fernet import Fernet

KEY_FILE = "secret.key"


def write_key(path: str = KEY_FILE) -> bytes:
    """Generates a new Fernet key and saves it to the given file.

    Returns:
        bytes: The generated key.
    """
    key = Fernet.generate_key()
    with open(path, "wb") as key_file:
        key_file.write(key)
    return key


def load_key(path: str = KEY_FILE) -> bytes:
    """Loads the Fernet key from the given file.

    Returns:
        bytes: The encryption key.
    """
    with open(path, "rb") as key_file:
        return key_file.read()


def get_encryptor(path: str = KEY_FILE) -> Fernet:
    """Returns a Fernet instance, generating and saving a key on first run."""
    try:
        key = load_key(path)
    except FileNotFoundError:
        print(f"Encryption key not found. Generating a new one at '{path}'...")
        key = write_key(path)
    return Fernet(key)


if __name__ == '__main__':
    get_encryptor()
    print(f"Encryption key is available in '{KEY_FILE}'.")
