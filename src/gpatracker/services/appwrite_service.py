from datetime import datetime, timezone
import json
import logging
from typing import Dict, List, Optional

from appwrite.client import Client
from appwrite.exception import AppwriteException
from appwrite.id import ID
from appwrite.query import Query
from appwrite.services.databases import Databases

from gpatracker.config.settings import settings
from gpatracker.core.records import SemesterRecord
from gpatracker.services.record_store import RecordStoreError


logger = logging.getLogger(__name__)


class AppwriteServiceError(RecordStoreError):
    pass


class AppwriteService:
    PAGE_SIZE = 100

    def __init__(
        self,
        endpoint: str,
        project_id: str,
        api_key: str,
        database_id: str,
        semester_records_collection_id: str,
    ) -> None:
        if not endpoint:
            raise AppwriteServiceError("Missing APPWRITE_ENDPOINT in environment")
        if not project_id:
            raise AppwriteServiceError("Missing APPWRITE_PROJECT_ID in environment")
        if not api_key:
            raise AppwriteServiceError("Missing APPWRITE_API_KEY in environment")
        if not database_id:
            raise AppwriteServiceError("Missing APPWRITE_DATABASE_ID in environment")

        self.database_id = database_id
        self.semester_records_collection_id = semester_records_collection_id

        client = Client()
        client.set_endpoint(endpoint.rstrip("/"))
        client.set_project(project_id)
        client.set_key(api_key)

        self.db = Databases(client)

    @classmethod
    def from_settings(cls) -> "AppwriteService":
        return cls(
            endpoint=settings.appwrite_endpoint,
            project_id=settings.appwrite_project_id,
            api_key=settings.appwrite_api_key,
            database_id=settings.appwrite_database_id,
            semester_records_collection_id=settings.appwrite_semester_records_collection_id,
        )

    @staticmethod
    def _to_iso(value: datetime) -> str:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat()

    def _list_documents(self, collection_id: str, queries: List[str]) -> List[Dict]:
        try:
            result = self.db.list_documents(self.database_id, collection_id, queries=queries)
            return list(result.get("documents", []))
        except AppwriteException as exc:
            raise AppwriteServiceError(str(exc)) from exc

    def _list_all_documents(self, collection_id: str, queries: List[str]) -> List[Dict]:
        documents: List[Dict] = []
        cursor: Optional[str] = None
        while True:
            page_queries = [*queries, Query.limit(self.PAGE_SIZE)]
            if cursor:
                page_queries.append(Query.cursor_after(cursor))
            page = self._list_documents(collection_id, page_queries)
            documents.extend(page)
            if len(page) < self.PAGE_SIZE:
                return documents
            cursor = page[-1]["$id"]

    def _create_document(self, collection_id: str, data: Dict, document_id: Optional[str] = None) -> Dict:
        try:
            return self.db.create_document(
                self.database_id,
                collection_id,
                document_id or ID.unique(),
                data,
            )
        except AppwriteException as exc:
            raise AppwriteServiceError(str(exc)) from exc

    def _update_document(self, collection_id: str, document_id: str, data: Dict) -> Dict:
        try:
            return self.db.update_document(self.database_id, collection_id, document_id, data)
        except AppwriteException as exc:
            raise AppwriteServiceError(str(exc)) from exc

    def _find_first(self, collection_id: str, queries: List[str]) -> Optional[Dict]:
        docs = self._list_documents(collection_id, [*queries, Query.limit(1)])
        if not docs:
            return None
        return docs[0]

    @staticmethod
    def _to_record(doc: Dict) -> SemesterRecord:
        row = dict(doc)
        if not row.get("created_at"):
            row["created_at"] = row.get("$createdAt")
        if not row.get("updated_at"):
            row["updated_at"] = row.get("$updatedAt")
        return SemesterRecord.from_document(row)

    def list_records(self, uid: str) -> List[SemesterRecord]:
        docs = self._list_all_documents(
            self.semester_records_collection_id,
            [
                Query.equal("user_id", [uid]),
                Query.order_asc("$createdAt"),
            ],
        )
        return [self._to_record(doc) for doc in docs]

    def list_all_records(self) -> List[SemesterRecord]:
        docs = self._list_all_documents(self.semester_records_collection_id, [])
        logger.debug("Fetched %d semester records across all users", len(docs))
        return [self._to_record(doc) for doc in docs]

    def upsert_record(self, record: SemesterRecord) -> SemesterRecord:
        now = record.updated_at or datetime.now(timezone.utc)
        payload = {
            "user_id": record.user_id,
            "year": record.year,
            "semester": record.semester,
            "gpa": record.gpa,
            "courses": json.dumps([course.to_dict() for course in record.courses]),
            "updated_at": self._to_iso(now),
        }

        existing = self._find_first(
            self.semester_records_collection_id,
            [
                Query.equal("user_id", [record.user_id]),
                Query.equal("year", [record.year]),
                Query.equal("semester", [record.semester]),
            ],
        )
        if existing:
            payload["created_at"] = existing.get("created_at") or existing.get("$createdAt") or self._to_iso(now)
            doc = self._update_document(self.semester_records_collection_id, existing["$id"], payload)
        else:
            payload["created_at"] = self._to_iso(record.created_at or now)
            doc = self._create_document(self.semester_records_collection_id, payload)

        logger.info(
            "Upserted semester record %s/%s for user %s",
            record.year,
            record.semester,
            record.user_id,
        )
        return self._to_record(doc)
