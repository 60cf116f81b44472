"""Isolation Store - Imperative Shell.

This module handles persistence of each person's isolation snapshot.
Uses Google Cloud Firestore.

All I/O is contained here; the merge and housekeeping logic is in the
core module.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

from google.cloud import firestore

from isolation_engine.core.isolation import (
    IsolationInfo,
    isolation_info_to_dict,
    parse_isolation_info,
)


logger = logging.getLogger(__name__)


# Default collection name for storing isolation records
DEFAULT_COLLECTION = "isolation_records"


@dataclass
class IsolationStoreConfig:
    """Configuration for the isolation store.

    Attributes:
        project_id: GCP project ID (None for default)
        database: Firestore database name (None for default database)
        collection: Firestore collection name
    """
    project_id: str | None = None
    database: str | None = None
    collection: str = DEFAULT_COLLECTION


@dataclass(frozen=True)
class RecordChange:
    """What to write back after reading a record in a transaction.

    Attributes:
        save: New snapshot to store (None leaves the record as it is)
        delete: Delete the record instead
    """
    save: IsolationInfo | None = None
    delete: bool = False


class StoreError(Exception):
    """Raised when a stored record cannot be read or written."""


class IsolationStore:
    """Persists isolation snapshots to Firestore, one document per person.

    This is part of the imperative shell - it handles database I/O.

    Document structure:
    {
        "isolationInfo": {"indexCaseInfo": {...}, "contactCaseInfo": {...}},
        "updated_at": <timestamp>
    }
    """

    def __init__(self, config: IsolationStoreConfig | None = None) -> None:
        """Initialize isolation store.

        Args:
            config: Store configuration
        """
        self.config = config or IsolationStoreConfig()
        self._client: firestore.Client | None = None

    @property
    def client(self) -> firestore.Client:
        """Lazy initialization of Firestore client."""
        if self._client is None:
            kwargs = {}
            if self.config.project_id:
                kwargs['project'] = self.config.project_id
            if self.config.database:
                kwargs['database'] = self.config.database
            self._client = firestore.Client(**kwargs)
        return self._client

    def _get_doc_ref(self, person_id: str) -> Any:
        """Get reference to a person's isolation document."""
        return self.client.collection(self.config.collection).document(person_id)

    def _parse(self, person_id: str, doc: Any) -> IsolationInfo | None:
        if not doc.exists:
            logger.info("No isolation record found for %s", person_id)
            return None

        data = doc.to_dict() or {}
        try:
            return parse_isolation_info(data.get("isolationInfo", {}))
        except (KeyError, TypeError, ValueError) as e:
            logger.error("Corrupt isolation record for %s: %s", person_id, str(e))
            raise StoreError(f"Corrupt isolation record: {e}") from e

    def load(self, person_id: str) -> IsolationInfo | None:
        """Fetch a person's stored isolation snapshot.

        This method performs database I/O.

        Args:
            person_id: Person identifier

        Returns:
            The stored snapshot, or None if nothing is stored

        Raises:
            StoreError: If the record cannot be read or is corrupt
        """
        logger.info("Loading isolation record for %s", person_id)

        try:
            doc = self._get_doc_ref(person_id).get()
        except Exception as e:
            logger.error("Failed to load isolation record for %s: %s", person_id, str(e))
            raise StoreError(f"Failed to load isolation record: {e}") from e

        return self._parse(person_id, doc)

    def update(
        self,
        person_id: str,
        step: Callable[[IsolationInfo | None], RecordChange],
    ) -> RecordChange:
        """Read, change and write a person's record as one transaction.

        This method performs database I/O. `step` receives the stored
        snapshot and returns the change to write. Firestore reruns the
        transaction when the record changed underneath it, so `step` may
        be called more than once and must not have side effects beyond
        its return value.

        Args:
            person_id: Person identifier
            step: Decides the change from the stored snapshot

        Returns:
            The change that was committed

        Raises:
            StoreError: If the record is corrupt or the transaction fails
        """
        logger.info("Updating isolation record for %s", person_id)
        doc_ref = self._get_doc_ref(person_id)

        @firestore.transactional
        def run(transaction: Any) -> RecordChange:
            stored = self._parse(person_id, doc_ref.get(transaction=transaction))
            change = step(stored)
            if change.delete:
                transaction.delete(doc_ref)
            elif change.save is not None:
                transaction.set(doc_ref, {
                    "isolationInfo": isolation_info_to_dict(change.save),
                    "updated_at": datetime.now(timezone.utc),
                })
            return change

        try:
            change = run(self.client.transaction())
        except StoreError:
            raise
        except Exception as e:
            logger.error("Failed to update isolation record for %s: %s", person_id, str(e))
            raise StoreError(f"Failed to update isolation record: {e}") from e

        if change.delete:
            logger.info("Deleted isolation record for %s", person_id)
        elif change.save is not None:
            logger.info("Saved isolation record for %s", person_id)
        return change

    def list_person_ids(self) -> list[str]:
        """List every person with a stored record.

        Returns:
            Person identifiers (empty if the collection cannot be read)
        """
        try:
            refs = self.client.collection(self.config.collection).list_documents()
            return [ref.id for ref in refs]
        except Exception as e:
            logger.error("Failed to list isolation records: %s", str(e))
            return []
