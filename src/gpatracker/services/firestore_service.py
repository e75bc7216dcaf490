from datetime import datetime, timezone
import logging
from typing import Any, Dict, List, Optional

try:
    from google.api_core.exceptions import GoogleAPICallError
    from google.cloud import firestore
except ModuleNotFoundError as exc:
    raise ModuleNotFoundError(
        "Missing dependency 'google-cloud-firestore'. Install the project with pip install -e ."
    ) from exc

from gpatracker.config.settings import settings
from gpatracker.core.records import SemesterRecord
from gpatracker.services.record_store import RecordStoreError


logger = logging.getLogger(__name__)

RECORDS_COLLECTION = "semester_records"


class FirestoreServiceError(RecordStoreError):
    pass


def record_document_id(year: str, semester: str) -> str:
    """Deterministic id for the (year, semester) slot under a user."""
    return f"{year}__{semester}".replace("/", "-")


class FirestoreService:
    def __init__(self, project_id: str, client: Optional[Any] = None) -> None:
        if client is None:
            if not project_id:
                raise FirestoreServiceError("Missing FIREBASE_PROJECT_ID in environment")
            client = firestore.Client(project=project_id)
        self.db = client

    @classmethod
    def from_settings(cls) -> "FirestoreService":
        return cls(settings.firebase_project_id)

    def _records_ref(self, uid: str):
        return self.db.collection("users").document(uid).collection(RECORDS_COLLECTION)

    @staticmethod
    def _to_record(doc) -> SemesterRecord:
        data = doc.to_dict() or {}
        data["id"] = doc.id
        return SemesterRecord.from_document(data)

    @staticmethod
    def _sort_key(record: SemesterRecord) -> datetime:
        return record.created_at or datetime.min.replace(tzinfo=timezone.utc)

    def list_records(self, uid: str) -> List[SemesterRecord]:
        try:
            docs = self._records_ref(uid).stream()
            records = [self._to_record(doc) for doc in docs]
        except GoogleAPICallError as exc:
            raise FirestoreServiceError(str(exc)) from exc
        records.sort(key=self._sort_key)
        return records

    def list_all_records(self) -> List[SemesterRecord]:
        try:
            docs = self.db.collection_group(RECORDS_COLLECTION).stream()
            records = [self._to_record(doc) for doc in docs]
        except GoogleAPICallError as exc:
            raise FirestoreServiceError(str(exc)) from exc
        logger.debug("Fetched %d semester records across all users", len(records))
        return records

    def upsert_record(self, record: SemesterRecord) -> SemesterRecord:
        now = record.updated_at or datetime.now(timezone.utc)
        ref = self._records_ref(record.user_id).document(record_document_id(record.year, record.semester))
        try:
            snap = ref.get()
            existing: Dict = (snap.to_dict() or {}) if snap.exists else {}
            payload = {
                "user_id": record.user_id,
                "year": record.year,
                "semester": record.semester,
                "gpa": record.gpa,
                "courses": [course.to_dict() for course in record.courses],
                "created_at": existing.get("created_at") or record.created_at or now,
                "updated_at": now,
            }
            ref.set(payload)
        except GoogleAPICallError as exc:
            raise FirestoreServiceError(str(exc)) from exc

        logger.info(
            "Upserted semester record %s/%s for user %s",
            record.year,
            record.semester,
            record.user_id,
        )
        return SemesterRecord.from_document({**payload, "id": ref.id})
