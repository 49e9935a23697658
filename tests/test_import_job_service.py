from __future__ import annotations

import unittest
import uuid
from unittest.mock import AsyncMock, MagicMock

from app.services.import_job_service import ImportJobService, Page
from uploads.errors import ImportJobNotFoundError, StorageError, StoragePathError


class TestPage(unittest.TestCase):
    def test_total_pages_rounds_up(self) -> None:
        self.assertEqual(Page(page=1, limit=20, total=41).total_pages, 3)
        self.assertEqual(Page(page=1, limit=20, total=40).total_pages, 2)
        self.assertEqual(Page(page=1, limit=20, total=0).total_pages, 0)


class TestImportJobService(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.repository = AsyncMock()
        self.blob_store = AsyncMock()
        self.service = ImportJobService(
            repository=self.repository,
            blob_store=self.blob_store,
            signed_url_ttl_seconds=900,
        )

    async def test_missing_job_raises_not_found(self) -> None:
        self.repository.get_job.return_value = None

        with self.assertRaises(ImportJobNotFoundError):
            await self.service.get_job(uuid.uuid4(), "tenant-1")

    async def test_list_translates_page_to_offset(self) -> None:
        self.repository.list_jobs.return_value = ([], 45)

        _, page = await self.service.list_jobs("tenant-1", page=3, limit=20, sort_by="file_name", sort_order="ASC")

        self.repository.list_jobs.assert_awaited_once_with(
            "tenant-1",
            status=None,
            limit=20,
            offset=40,
            sort_by="file_name",
            descending=False,
        )
        self.assertEqual(page, Page(page=3, limit=20, total=45))

    async def test_unknown_sort_field_falls_back_to_created_at(self) -> None:
        self.repository.list_jobs.return_value = ([], 0)

        await self.service.list_jobs("tenant-1", sort_by="tenant_id")

        kwargs = self.repository.list_jobs.await_args.kwargs
        self.assertEqual(kwargs["sort_by"], "created_at")
        self.assertTrue(kwargs["descending"])

    async def test_rows_require_an_existing_job(self) -> None:
        self.repository.get_job.return_value = None

        with self.assertRaises(ImportJobNotFoundError):
            await self.service.get_data_rows(uuid.uuid4(), "tenant-1")

        self.repository.get_data_rows.assert_not_awaited()

    async def test_file_url_uses_configured_ttl(self) -> None:
        self.repository.get_job.return_value = MagicMock(storage_path="file_imports/tenant-1/a.csv")
        self.blob_store.signed_url.return_value = "https://signed"

        url = await self.service.get_file_url(uuid.uuid4(), "tenant-1")

        self.assertEqual(url, "https://signed")
        self.blob_store.signed_url.assert_awaited_once_with("file_imports/tenant-1/a.csv", 900)

    async def test_file_url_outside_import_bucket_is_refused(self) -> None:
        for storage_path in ("certificates/tenant-1/a.pdf", "file_imports/../invoices/a.pdf"):
            with self.subTest(storage_path=storage_path):
                self.repository.get_job.return_value = MagicMock(storage_path=storage_path)

                with self.assertRaises(StoragePathError):
                    await self.service.get_file_url(uuid.uuid4(), "tenant-1")

        self.blob_store.signed_url.assert_not_awaited()

    async def test_storage_errors_propagate(self) -> None:
        self.repository.get_job.return_value = MagicMock(storage_path="file_imports/tenant-1/a.csv")
        self.blob_store.signed_url.side_effect = StorageError("down")

        with self.assertRaises(StorageError):
            await self.service.get_file_url(uuid.uuid4(), "tenant-1")


if __name__ == "__main__":
    unittest.main()
