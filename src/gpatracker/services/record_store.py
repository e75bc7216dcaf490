from typing import List, Protocol

from gpatracker.config.settings import settings
from gpatracker.core.records import SemesterRecord


class RecordStoreError(Exception):
    pass


class RecordStore(Protocol):
    def list_records(self, uid: str) -> List[SemesterRecord]:
        ...

    def list_all_records(self) -> List[SemesterRecord]:
        ...

    def upsert_record(self, record: SemesterRecord) -> SemesterRecord:
        ...


def record_store_from_settings() -> RecordStore:
    backend = settings.record_store
    if backend == "firestore":
        from gpatracker.services.firestore_service import FirestoreService

        return FirestoreService.from_settings()
    if backend == "appwrite":
        from gpatracker.services.appwrite_service import AppwriteService

        return AppwriteService.from_settings()
    raise RecordStoreError(f"Unsupported record store backend: {backend}")
