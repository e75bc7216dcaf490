import json
import unittest
from datetime import datetime, timezone

from appwrite.exception import AppwriteException

from gpatracker.core.grades import Course
from gpatracker.core.records import SemesterRecord
from gpatracker.services.appwrite_service import AppwriteService, AppwriteServiceError
from gpatracker.services.record_store import RecordStoreError


class FakeDatabases:
    """Minimal in-memory stand-in for appwrite.services.databases.Databases."""

    def __init__(self):
        self.documents = {}
        self.counter = 0
        self.fail = False
        self.list_calls = 0

    def _check(self):
        if self.fail:
            raise AppwriteException("Server Error", 500)

    def list_documents(self, database_id, collection_id, queries=None):
        self._check()
        self.list_calls += 1
        rows = [doc for doc in self.documents.values()]
        limit = None
        cursor = None
        for raw in queries or []:
            query = json.loads(raw)
            method = query.get("method")
            if method == "equal":
                rows = [row for row in rows if row.get(query["attribute"]) in query["values"]]
            elif method == "limit":
                limit = query["values"][0]
            elif method == "cursorAfter":
                cursor = query["values"][0]
        if cursor is not None:
            ids = [row["$id"] for row in rows]
            rows = rows[ids.index(cursor) + 1:]
        if limit is not None:
            rows = rows[:limit]
        return {"total": len(rows), "documents": [dict(row) for row in rows]}

    def create_document(self, database_id, collection_id, document_id, data):
        self._check()
        self.counter += 1
        doc_id = f"doc{self.counter:04d}"
        doc = {"$id": doc_id, "$createdAt": "2024-09-01T00:00:00.000+00:00", **data}
        self.documents[doc_id] = doc
        return dict(doc)

    def update_document(self, database_id, collection_id, document_id, data):
        self._check()
        doc = self.documents[document_id]
        doc.update(data)
        return dict(doc)


class AppwriteServiceTests(unittest.TestCase):
    def setUp(self):
        self.service = AppwriteService(
            endpoint="https://appwrite.example.com/v1/",
            project_id="project",
            api_key="key",
            database_id="db",
            semester_records_collection_id="semester_records",
        )
        self.fake = FakeDatabases()
        self.service.db = self.fake

    def _record(self, uid="u1", semester="Fall", gpa=3.5):
        return SemesterRecord(
            user_id=uid,
            year="Freshman",
            semester=semester,
            gpa=gpa,
            courses=[Course("Calculus 1", "B+", 3)],
            updated_at=datetime(2024, 9, 10, tzinfo=timezone.utc),
        )

    def test_missing_configuration(self):
        with self.assertRaises(AppwriteServiceError):
            AppwriteService("", "p", "k", "db", "semester_records")
        with self.assertRaises(AppwriteServiceError):
            AppwriteService("https://x", "p", "k", "", "semester_records")

    def test_upsert_creates_then_updates(self):
        created = self.service.upsert_record(self._record(gpa=3.0))
        self.assertEqual(created.id, "doc0001")
        stored = self.fake.documents["doc0001"]
        self.assertEqual(json.loads(stored["courses"]), [{"name": "Calculus 1", "grade": "B+", "creditHours": 3}])

        updated = self.service.upsert_record(self._record(gpa=3.5))
        self.assertEqual(updated.id, "doc0001")
        self.assertEqual(updated.gpa, 3.5)
        self.assertEqual(updated.created_at, created.created_at)
        self.assertEqual(len(self.fake.documents), 1)

    def test_list_records_filters_by_user(self):
        self.service.upsert_record(self._record("u1", "Fall"))
        self.service.upsert_record(self._record("u1", "Spring"))
        self.service.upsert_record(self._record("u2", "Fall"))
        records = self.service.list_records("u1")
        self.assertEqual(sorted(r.semester for r in records), ["Fall", "Spring"])
        self.assertTrue(all(r.courses == [Course("Calculus 1", "B+", 3)] for r in records))

    def test_list_all_records_pages(self):
        self.service.PAGE_SIZE = 2
        for index in range(5):
            self.service.upsert_record(self._record(f"u{index}"))
        self.fake.list_calls = 0
        records = self.service.list_all_records()
        self.assertEqual(len(records), 5)
        self.assertEqual(self.fake.list_calls, 3)

    def test_created_at_falls_back_to_system_field(self):
        self.fake.documents["legacy"] = {
            "$id": "legacy",
            "$createdAt": "2023-02-01T00:00:00.000+00:00",
            "user_id": "u9",
            "year": "Freshman",
            "semester": "Fall",
            "gpa": 2.0,
            "courses": "[]",
        }
        record = self.service.list_records("u9")[0]
        self.assertEqual(record.created_at, datetime(2023, 2, 1, tzinfo=timezone.utc))

    def test_errors_are_wrapped(self):
        self.fake.fail = True
        with self.assertRaises(AppwriteServiceError) as ctx:
            self.service.list_all_records()
        self.assertIsInstance(ctx.exception, RecordStoreError)
        self.assertIsInstance(ctx.exception.__cause__, AppwriteException)


if __name__ == "__main__":
    unittest.main()
