"""
Unit tests for degrees service layer.

These tests cover:
- Single and bulk upload
- Draft update and delete
- Two-step batch confirmation and revert
- University scoping (foreign records look missing)
"""

from unittest.mock import AsyncMock, patch

import pytest

from diploma_api.modules.degrees.models import DegreeStatus
from diploma_api.modules.degrees.service import (
    BulkUploadRejectedError,
    DegreeServiceError,
    DocumentUpload,
    DomainMismatchError,
    NotFoundOrForeignError,
    StateConflictError,
    UniversityNotVerifiedError,
    ValidationError,
    bulk_upload,
    confirm_batch,
    delete_draft,
    get_degree,
    get_many,
    revert_batch,
    update_draft,
    upload_single,
)

SERVICE = "diploma_api.modules.degrees.service"


class TestUploadSingle:
    """Tests for upload_single."""

    @pytest.mark.asyncio
    async def test_upload_creates_draft(
        self, mock_db, admin_ctx, verified_university, valid_fields, make_degree
    ):
        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.UniversityRepository") as mock_uni_repo,
        ):
            mock_uni_repo.get_by_id = AsyncMock(return_value=verified_university)
            mock_repo.create = AsyncMock(return_value=make_degree(7))

            result = await upload_single(mock_db, admin_ctx, valid_fields)

            assert result.id == 7
            data = mock_repo.create.call_args.args[1]
            assert data["status"] == DegreeStatus.DRAFT
            assert data["student_email"] == "alice@foo.edu"
            assert data["university_id"] == 1
            assert data["file_path"] is None

    @pytest.mark.asyncio
    async def test_upload_reports_every_invalid_field(
        self, mock_db, admin_ctx, verified_university
    ):
        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.UniversityRepository") as mock_uni_repo,
        ):
            mock_uni_repo.get_by_id = AsyncMock(return_value=verified_university)
            mock_repo.create = AsyncMock()

            with pytest.raises(ValidationError) as exc_info:
                await upload_single(mock_db, admin_ctx, {"major": "Physics"})

            fields = {error.field for error in exc_info.value.errors}
            assert fields == {"degree_type", "graduation_date", "student_email"}
            assert exc_info.value.status_code == 400
            mock_repo.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_upload_rejects_foreign_domain(
        self, mock_db, admin_ctx, verified_university, valid_fields
    ):
        valid_fields["student_email"] = "alice@foo.edu.evil.com"

        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.UniversityRepository") as mock_uni_repo,
        ):
            mock_uni_repo.get_by_id = AsyncMock(return_value=verified_university)
            mock_repo.create = AsyncMock()

            with pytest.raises(DomainMismatchError) as exc_info:
                await upload_single(mock_db, admin_ctx, valid_fields)

            assert exc_info.value.error_code == "DOMAIN_MISMATCH"
            mock_repo.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_upload_requires_verified_university(
        self, mock_db, admin_ctx, unverified_university, valid_fields
    ):
        with patch(f"{SERVICE}.UniversityRepository") as mock_uni_repo:
            mock_uni_repo.get_by_id = AsyncMock(return_value=unverified_university)

            with pytest.raises(UniversityNotVerifiedError):
                await upload_single(mock_db, admin_ctx, valid_fields)

    @pytest.mark.asyncio
    async def test_upload_with_document_stores_path(
        self, mock_db, admin_ctx, verified_university, valid_fields, make_degree
    ):
        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.UniversityRepository") as mock_uni_repo,
            patch(f"{SERVICE}.save_document", new_callable=AsyncMock) as mock_save,
        ):
            mock_uni_repo.get_by_id = AsyncMock(return_value=verified_university)
            mock_repo.create = AsyncMock(return_value=make_degree(1, file_path="degrees/x.pdf"))
            mock_save.return_value = "degrees/x.pdf"

            await upload_single(
                mock_db,
                admin_ctx,
                valid_fields,
                DocumentUpload(filename="diploma.pdf", content=b"%PDF-1.4 data"),
            )

            mock_save.assert_awaited_once_with("diploma.pdf", b"%PDF-1.4 data")
            assert mock_repo.create.call_args.args[1]["file_path"] == "degrees/x.pdf"

    @pytest.mark.asyncio
    async def test_upload_rejects_non_pdf_document(
        self, mock_db, admin_ctx, verified_university, valid_fields
    ):
        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.UniversityRepository") as mock_uni_repo,
        ):
            mock_uni_repo.get_by_id = AsyncMock(return_value=verified_university)
            mock_repo.create = AsyncMock()

            with pytest.raises(ValidationError) as exc_info:
                await upload_single(
                    mock_db,
                    admin_ctx,
                    valid_fields,
                    DocumentUpload(filename="diploma.docx", content=b"PK\x03\x04"),
                )

            assert exc_info.value.errors[0].field == "file"
            mock_repo.create.assert_not_called()


class TestBulkUpload:
    """Tests for bulk_upload."""

    @pytest.mark.asyncio
    async def test_bulk_upload_creates_all_rows(self, mock_db, admin_ctx, verified_university):
        content = (
            b"degreeType,major,graduationDate,studentEmail\n"
            b"BSc,Physics,2024-06-01,a@foo.edu\n"
            b"MSc,Chemistry,2024-06-01,b@foo.edu\n"
        )

        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.UniversityRepository") as mock_uni_repo,
        ):
            mock_uni_repo.get_by_id = AsyncMock(return_value=verified_university)
            mock_repo.bulk_create = AsyncMock(return_value=2)

            created = await bulk_upload(mock_db, admin_ctx, content)

            assert created == 2
            rows = mock_repo.bulk_create.call_args.args[1]
            assert [row["student_email"] for row in rows] == ["a@foo.edu", "b@foo.edu"]
            assert all(row["status"] == DegreeStatus.DRAFT for row in rows)

    @pytest.mark.asyncio
    async def test_bulk_upload_rejects_whole_batch(self, mock_db, admin_ctx, verified_university):
        content = (
            b"degreeType,major,graduationDate,studentEmail\n"
            b"BSc,Physics,2024-06-01,a@foo.edu\n"
            b"BSc,Physics,2024-06-01,b@bar.edu\n"
            b"BSc,Physics,2024-06-01,A@foo.edu\n"
        )

        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.UniversityRepository") as mock_uni_repo,
        ):
            mock_uni_repo.get_by_id = AsyncMock(return_value=verified_university)
            mock_repo.bulk_create = AsyncMock()

            with pytest.raises(BulkUploadRejectedError) as exc_info:
                await bulk_upload(mock_db, admin_ctx, content)

            assert [error.row for error in exc_info.value.row_errors] == [2, 3]
            assert "No degrees were created" in exc_info.value.message
            mock_repo.bulk_create.assert_not_called()

    @pytest.mark.asyncio
    async def test_bulk_upload_missing_column(self, mock_db, admin_ctx, verified_university):
        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.UniversityRepository") as mock_uni_repo,
        ):
            mock_uni_repo.get_by_id = AsyncMock(return_value=verified_university)
            mock_repo.bulk_create = AsyncMock()

            with pytest.raises(ValidationError) as exc_info:
                await bulk_upload(mock_db, admin_ctx, b"major,studentEmail\nPhysics,a@foo.edu\n")

            assert "Missing required column" in exc_info.value.message
            mock_repo.bulk_create.assert_not_called()

    @pytest.mark.asyncio
    async def test_bulk_upload_header_only(self, mock_db, admin_ctx, verified_university):
        with patch(f"{SERVICE}.UniversityRepository") as mock_uni_repo:
            mock_uni_repo.get_by_id = AsyncMock(return_value=verified_university)

            with pytest.raises(ValidationError, match="no data rows"):
                await bulk_upload(
                    mock_db, admin_ctx, b"degreeType,major,graduationDate,studentEmail\n"
                )


class TestLookup:
    """Tests for get_degree and get_many."""

    @pytest.mark.asyncio
    async def test_foreign_degree_looks_missing(self, mock_db, admin_ctx):
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=None)

            with pytest.raises(NotFoundOrForeignError) as exc_info:
                await get_degree(mock_db, admin_ctx, 99)

            mock_repo.get_by_id.assert_awaited_once_with(mock_db, 99, admin_ctx.university_id)
            assert exc_info.value.status_code == 404
            assert exc_info.value.message == "Degree 99 not found"

    @pytest.mark.asyncio
    async def test_get_many_requires_every_id(self, mock_db, admin_ctx, make_degree):
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_many = AsyncMock(return_value=[make_degree(1), make_degree(3)])

            with pytest.raises(NotFoundOrForeignError) as exc_info:
                await get_many(mock_db, admin_ctx, [1, 2, 3, 4])

            assert exc_info.value.degree_ids == [2, 4]

    @pytest.mark.asyncio
    async def test_get_many_dedupes_ids(self, mock_db, admin_ctx, make_degree):
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_many = AsyncMock(return_value=[make_degree(1), make_degree(2)])

            result = await get_many(mock_db, admin_ctx, [1, 2, 1])

            assert len(result) == 2
            mock_repo.get_many.assert_awaited_once_with(mock_db, [1, 2], 1)


class TestDraftManagement:
    """Tests for update_draft and delete_draft."""

    @pytest.mark.asyncio
    async def test_update_merges_partial_fields(self, mock_db, admin_ctx, make_degree):
        degree = make_degree(1)

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=degree)
            mock_repo.update = AsyncMock(return_value=degree)

            await update_draft(mock_db, admin_ctx, 1, {"major": " Physics ", "degree_type": ""})

            mock_repo.update.assert_awaited_once_with(mock_db, degree, {"major": "Physics"})

    @pytest.mark.asyncio
    async def test_update_with_nothing_to_change(self, mock_db, admin_ctx, make_degree):
        degree = make_degree(1)

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=degree)
            mock_repo.update = AsyncMock()

            result = await update_draft(mock_db, admin_ctx, 1, {})

            assert result is degree
            mock_repo.update.assert_not_called()

    @pytest.mark.asyncio
    async def test_update_new_email_checked_against_domain(
        self, mock_db, admin_ctx, make_degree, verified_university
    ):
        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.UniversityRepository") as mock_uni_repo,
        ):
            mock_repo.get_by_id = AsyncMock(return_value=make_degree(1))
            mock_repo.update = AsyncMock()
            mock_uni_repo.get_by_id = AsyncMock(return_value=verified_university)

            with pytest.raises(DomainMismatchError):
                await update_draft(mock_db, admin_ctx, 1, {"student_email": "alice@bar.edu"})

            mock_repo.update.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status",
        [DegreeStatus.PENDING_CONFIRMATION, DegreeStatus.SUBMITTED, DegreeStatus.LINKED],
    )
    async def test_update_non_draft_conflicts(self, mock_db, admin_ctx, make_degree, status):
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=make_degree(5, status))
            mock_repo.update = AsyncMock()

            with pytest.raises(StateConflictError) as exc_info:
                await update_draft(mock_db, admin_ctx, 5, {"major": "Physics"})

            assert exc_info.value.status_code == 409
            assert exc_info.value.offending == {5: status.value}
            mock_repo.update.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete_draft_removes_document(self, mock_db, admin_ctx, make_degree):
        degree = make_degree(3, file_path="degrees/abc.pdf")

        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.delete_document", new_callable=AsyncMock) as mock_delete_doc,
        ):
            mock_repo.get_by_id = AsyncMock(return_value=degree)
            mock_repo.delete_degree = AsyncMock()

            await delete_draft(mock_db, admin_ctx, 3)

            mock_repo.delete_degree.assert_awaited_once_with(mock_db, degree)
            mock_delete_doc.assert_awaited_once_with("degrees/abc.pdf")

    @pytest.mark.asyncio
    async def test_delete_submitted_conflicts(self, mock_db, admin_ctx, make_degree):
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=make_degree(3, DegreeStatus.SUBMITTED))
            mock_repo.delete_degree = AsyncMock()

            with pytest.raises(StateConflictError):
                await delete_draft(mock_db, admin_ctx, 3)

            mock_repo.delete_degree.assert_not_called()


class TestConfirmation:
    """Tests for confirm_batch and revert_batch."""

    @pytest.mark.asyncio
    async def test_step_one_moves_drafts(self, mock_db, admin_ctx, make_degree):
        degrees = [make_degree(1), make_degree(2)]

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_many = AsyncMock(return_value=degrees)
            mock_repo.update_status_many = AsyncMock(return_value=2)

            result = await confirm_batch(mock_db, admin_ctx, [1, 2], step=1)

            assert result == [1, 2]
            mock_repo.update_status_many.assert_awaited_once_with(
                mock_db,
                [1, 2],
                1,
                DegreeStatus.DRAFT,
                DegreeStatus.PENDING_CONFIRMATION,
            )
            mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_step_two_moves_pending(self, mock_db, admin_ctx, make_degree):
        degrees = [make_degree(1, DegreeStatus.PENDING_CONFIRMATION)]

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_many = AsyncMock(return_value=degrees)
            mock_repo.update_status_many = AsyncMock(return_value=1)

            await confirm_batch(mock_db, admin_ctx, [1], step=2)

            args = mock_repo.update_status_many.call_args.args
            assert args[3:] == (DegreeStatus.PENDING_CONFIRMATION, DegreeStatus.SUBMITTED)

    @pytest.mark.asyncio
    async def test_mixed_batch_changes_nothing(self, mock_db, admin_ctx, make_degree):
        """One non-draft record rejects the whole step-1 batch."""
        degrees = [
            make_degree(1),
            make_degree(2, DegreeStatus.SUBMITTED),
            make_degree(3),
        ]

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_many = AsyncMock(return_value=degrees)
            mock_repo.update_status_many = AsyncMock()

            with pytest.raises(StateConflictError) as exc_info:
                await confirm_batch(mock_db, admin_ctx, [1, 2, 3], step=1)

            assert exc_info.value.offending == {2: "submitted"}
            mock_repo.update_status_many.assert_not_called()
            mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_step_two_on_drafts_conflicts(self, mock_db, admin_ctx, make_degree):
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_many = AsyncMock(return_value=[make_degree(1)])
            mock_repo.update_status_many = AsyncMock()

            with pytest.raises(StateConflictError):
                await confirm_batch(mock_db, admin_ctx, [1], step=2)

            mock_repo.update_status_many.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_id_changes_nothing(self, mock_db, admin_ctx, make_degree):
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_many = AsyncMock(return_value=[make_degree(1)])
            mock_repo.update_status_many = AsyncMock()

            with pytest.raises(NotFoundOrForeignError):
                await confirm_batch(mock_db, admin_ctx, [1, 500], step=1)

            mock_repo.update_status_many.assert_not_called()

    @pytest.mark.asyncio
    async def test_concurrent_change_rolls_back(self, mock_db, admin_ctx, make_degree):
        degrees = [make_degree(1), make_degree(2)]

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_many = AsyncMock(return_value=degrees)
            mock_repo.update_status_many = AsyncMock(return_value=1)

            with pytest.raises(StateConflictError):
                await confirm_batch(mock_db, admin_ctx, [1, 2], step=1)

            mock_db.rollback.assert_awaited_once()
            mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_step(self, mock_db, admin_ctx):
        with pytest.raises(ValidationError):
            await confirm_batch(mock_db, admin_ctx, [1], step=3)

    @pytest.mark.asyncio
    async def test_revert_moves_pending_to_draft(self, mock_db, admin_ctx, make_degree):
        degrees = [make_degree(1, DegreeStatus.PENDING_CONFIRMATION)]

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_many = AsyncMock(return_value=degrees)
            mock_repo.update_status_many = AsyncMock(return_value=1)

            result = await revert_batch(mock_db, admin_ctx, [1])

            assert result == [1]
            args = mock_repo.update_status_many.call_args.args
            assert args[3:] == (DegreeStatus.PENDING_CONFIRMATION, DegreeStatus.DRAFT)

    @pytest.mark.asyncio
    async def test_revert_submitted_conflicts(self, mock_db, admin_ctx, make_degree):
        degrees = [
            make_degree(1, DegreeStatus.PENDING_CONFIRMATION),
            make_degree(2, DegreeStatus.SUBMITTED),
        ]

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_many = AsyncMock(return_value=degrees)
            mock_repo.update_status_many = AsyncMock()

            with pytest.raises(StateConflictError) as exc_info:
                await revert_batch(mock_db, admin_ctx, [1, 2])

            assert isinstance(exc_info.value, DegreeServiceError)
            mock_repo.update_status_many.assert_not_called()
