"""
Credential storage in a single pretty-printed JSON file.

The whole collection lives in memory for the life of the process and is
re-serialized to disk after every successful mutation. There is no
locking: two processes saving the same file race, and the last flush
wins.
"""

from __future__ import annotations
import contextlib
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterator, Optional, Union

from .errors import ConflictError, NotFoundError, StoreIOError, ValidationError
from .models import Credential, generate_id, normalize, normalize_name, utcnow
from .validation import validate_credential

logger = logging.getLogger(__name__)

STORE_VERSION = 1
DIR_MODE = 0o700
FILE_MODE = 0o600


class CredentialStore:
    """
    JSON-backed credential collection.

    Names are the natural key and are compared case-insensitively:
    every write stores the lowercased name and every lookup lowercases
    its argument.
    """

    def __init__(self, path: Union[Path, str, None] = None):
        """
        Initialize credential store.

        Args:
            path: Path to the JSON file. Defaults to the configured
                store path (``~/.ssh-cred-manager/credentials.json``).

        Raises:
            StoreIOError: the directory cannot be created or an existing
                file cannot be read or parsed
        """
        if path is None:
            from ..config import get_settings
            path = get_settings().resolved_store_path()
        self.path = Path(path).expanduser()
        self._credentials: list[Credential] = []

        self._ensure_dir()
        self._load()

    @classmethod
    def open(cls, path: Union[Path, str, None] = None) -> CredentialStore:
        """Load-or-initialize the store at ``path``."""
        return cls(path)

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def _ensure_dir(self) -> None:
        directory = self.path.parent
        if directory.exists():
            return
        try:
            directory.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
        except OSError as e:
            raise StoreIOError(
                f"cannot create credential directory {directory}: {e}", directory
            ) from e
        logger.debug(f"Created credential directory {directory}")

    def _load(self) -> None:
        """Read the backing file; a missing file is an empty store."""
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            self._credentials = []
            logger.debug(f"No credential file at {self.path}, starting empty")
            return
        except (OSError, UnicodeDecodeError) as e:
            raise StoreIOError(f"failed to read {self.path}: {e}", self.path) from e

        if not text.strip():
            self._credentials = []
            return

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise StoreIOError(f"malformed credential file {self.path}: {e}", self.path) from e

        # Older files hold a bare array of records
        if isinstance(data, list):
            records = data
        elif isinstance(data, dict):
            records = data.get("credentials")
        else:
            raise StoreIOError(f"unexpected content in {self.path}", self.path)

        # "credentials" must be present; a missing key is not an empty store
        if not isinstance(records, list):
            raise StoreIOError(
                f"unexpected content in {self.path}: \"credentials\" must be a list", self.path
            )

        credentials = []
        for i, record in enumerate(records):
            try:
                credentials.append(Credential.from_dict(record))
            except (AttributeError, KeyError, TypeError, ValueError, ValidationError) as e:
                raise StoreIOError(
                    f"bad credential record #{i + 1} in {self.path}: {e}", self.path
                ) from e

        self._credentials = credentials
        logger.debug(f"Loaded {len(credentials)} credentials from {self.path}")

    def _write(self, credentials: list[Credential]) -> None:
        """
        Replace the backing file with ``credentials``.

        Writes a temp file beside the target and renames it over the
        old one, so a failed write leaves the previous content intact.
        """
        payload = {
            "version": STORE_VERSION,
            "credentials": [c.to_dict() for c in credentials],
        }
        tmp_path: Optional[str] = None
        try:
            fd, tmp_path = tempfile.mkstemp(
                prefix=".credentials-", suffix=".tmp", dir=str(self.path.parent)
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=4)
                f.write("\n")
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_path, FILE_MODE)
            os.replace(tmp_path, self.path)
        except OSError as e:
            if tmp_path:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_path)
            raise StoreIOError(f"failed to write {self.path}: {e}", self.path) from e

    def _commit(self, credentials: list[Credential]) -> None:
        """Flush, then adopt ``credentials`` as the in-memory state."""
        self._write(credentials)
        self._credentials = credentials

    def _index_of(self, name: str) -> Optional[int]:
        key = normalize_name(name)
        for i, cred in enumerate(self._credentials):
            if normalize_name(cred.name) == key:
                return i
        return None

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def list_credentials(self) -> list[Credential]:
        """All credentials in storage (insertion) order."""
        return [c.clone() for c in self._credentials]

    def get_credential(self, name: str) -> Credential:
        """
        Get credential by name.

        Raises:
            NotFoundError: no credential has that name
        """
        idx = self._index_of(name)
        if idx is None:
            raise NotFoundError(name)
        return self._credentials[idx].clone()

    def find_credentials_by_name(self, query: str) -> list[Credential]:
        """Case-insensitive substring search on name, in storage order."""
        query = (query or "").lower()
        return [c.clone() for c in self._credentials if query in c.name.lower()]

    def exists(self, name: str, *exclude: str) -> bool:
        """
        Check whether ``name`` is taken, ignoring any name in ``exclude``.

        ``exists(new, current)`` answers "is ``new`` free for the record
        I'm editing".
        """
        key = normalize_name(name)
        if key in {normalize_name(ex) for ex in exclude}:
            return False
        return self._index_of(key) is not None

    def count(self) -> int:
        return len(self._credentials)

    def __len__(self) -> int:
        return len(self._credentials)

    def __iter__(self) -> Iterator[Credential]:
        return iter(self.list_credentials())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.exists(name)

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def save_credential(self, cred: Credential) -> Credential:
        """
        Create a credential, or replace the one with the same name.

        A replaced record keeps its position, ``id`` and ``created_at``.

        Returns:
            The stored (normalized) credential

        Raises:
            ValidationError: credential fails validation; nothing changes
            StoreIOError: flush failed; nothing changes
        """
        cred = normalize(cred)
        validate_credential(cred)

        now = utcnow()
        credentials = list(self._credentials)
        idx = self._index_of(cred.name)

        if idx is None:
            stored = cred.clone(
                id=cred.id or generate_id(),
                created_at=cred.created_at or now,
                updated_at=cred.updated_at or now,
            )
            credentials.append(stored)
            action = "Added"
        else:
            existing = credentials[idx]
            stored = cred.clone(
                id=existing.id or cred.id or generate_id(),
                created_at=existing.created_at or cred.created_at or now,
                updated_at=now,
            )
            credentials[idx] = stored
            action = "Replaced"

        self._commit(credentials)
        logger.info(f"{action} credential '{stored.name}'")
        return stored.clone()

    def update_credential(self, name: str, cred: Credential) -> Credential:
        """
        Replace the fields of credential ``name`` with those of ``cred``.

        A changed name gets the same uniqueness check as a rename.

        Raises:
            ValidationError: ``cred`` fails validation
            NotFoundError: no credential named ``name``
            ConflictError: ``cred.name`` belongs to a different credential
        """
        cred = normalize(cred)
        validate_credential(cred)

        idx = self._index_of(name)
        if idx is None:
            raise NotFoundError(name)

        other = self._index_of(cred.name)
        if other is not None and other != idx:
            raise ConflictError(cred.name)

        existing = self._credentials[idx]
        stored = cred.clone(
            id=existing.id,
            created_at=existing.created_at,
            updated_at=utcnow(),
        )

        credentials = list(self._credentials)
        credentials[idx] = stored
        self._commit(credentials)

        if normalize_name(existing.name) != stored.name:
            logger.info(f"Updated credential '{existing.name}' (now '{stored.name}')")
        else:
            logger.info(f"Updated credential '{stored.name}'")
        return stored.clone()

    def delete_credential(self, name: str) -> None:
        """
        Remove credential by name. Order of the rest is preserved.

        Raises:
            NotFoundError: no credential named ``name``
        """
        idx = self._index_of(name)
        if idx is None:
            raise NotFoundError(name)

        credentials = list(self._credentials)
        removed = credentials.pop(idx)
        self._commit(credentials)
        logger.info(f"Deleted credential '{removed.name}'")

    def rename_credential(self, old_name: str, new_name: str) -> Credential:
        """
        Change only the name of a credential.

        Raises:
            ValidationError: ``new_name`` is empty
            ConflictError: ``new_name`` is used by a different credential
            NotFoundError: no credential named ``old_name``
        """
        new_key = normalize_name(new_name)
        if not new_key:
            raise ValidationError("new name cannot be empty", field="name")

        if self.exists(new_key, old_name):
            raise ConflictError(new_key)

        idx = self._index_of(old_name)
        if idx is None:
            raise NotFoundError(old_name)

        credentials = list(self._credentials)
        renamed = credentials[idx].clone(name=new_key, updated_at=utcnow())
        credentials[idx] = renamed
        self._commit(credentials)

        logger.info(f"Renamed credential '{old_name}' to '{new_key}'")
        return renamed.clone()

    def clear_all_credentials(self) -> None:
        """Wipe every credential. Irrecoverable."""
        self._commit([])
        logger.warning(f"Cleared all credentials in {self.path}")
