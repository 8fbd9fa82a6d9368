"""
Tests for the card applications service layer.

These tests cover:
- Application submission (validation, defaults, duplicates, attachments)
- Lookup by student id
- Approve / reject decisions and their error cases
"""

import io
from unittest.mock import patch
from uuid import uuid4

import pytest
from fastapi import UploadFile

from app.core.storage import FileTooLargeError, LocalFileStorage
from app.modules.card_applications import repository
from app.modules.card_applications.models import ApplicationStatus
from app.modules.card_applications.schemas import CardApplicationCreate
from app.modules.card_applications.service import (
    ApplicationNotFoundError,
    CannotDecideApplicationError,
    DuplicateApplicationError,
    InvalidActionError,
    MissingFilterError,
    MissingRequiredFieldsError,
    TooManyDocumentsError,
    admin_decide_application,
    admin_get_pending_applications,
    get_application_by_student_id,
    get_approved_applications,
    submit_application,
)


def _submission(**overrides) -> CardApplicationCreate:
    values = {
        "student_id": "S1",
        "first_name": "Ada",
        "last_name": "Lovelace",
        "email": "ada@example.com",
        "trx_id": "T1",
        "amount": "500",
    }
    values.update(overrides)
    return CardApplicationCreate(**values)


def _upload(name: str, content: bytes = b"file-bytes") -> UploadFile:
    return UploadFile(file=io.BytesIO(content), filename=name)


def _stored_files(storage: LocalFileStorage) -> list:
    return [path for path in storage.root.rglob("*") if path.is_file()]


class TestSubmitApplication:
    """Tests for submit_application function."""

    @pytest.mark.asyncio
    async def test_submit_success_applies_defaults(self, db_session, storage):
        result = await submit_application(db_session, storage, _submission(amount=None))

        assert result.student_id == "S1"
        assert result.name == "Ada Lovelace"
        assert result.status == ApplicationStatus.PENDING

        stored = await repository.get_by_id(db_session, result.id)
        assert stored.card_type == "student"
        assert stored.program == "Not Specified"
        assert stored.amount == "0"
        assert stored.request_type == "new"
        assert stored.payment_status == "Pending"

    @pytest.mark.asyncio
    async def test_submit_stores_attachments_as_references(self, db_session, storage):
        result = await submit_application(
            db_session,
            storage,
            _submission(),
            photo=_upload("me.png"),
            gd_copy=_upload("gd.pdf"),
            documents=[_upload("a.pdf"), _upload("b.pdf")],
        )

        stored = await repository.get_by_id(db_session, result.id)
        assert stored.photo.startswith("photo/")
        assert stored.gd_copy.startswith("gdCopy/")
        assert stored.old_id_image is None
        assert len(stored.documents) == 2
        assert all(ref.startswith("documents/") for ref in stored.documents)
        assert await storage.exists(stored.photo)

    @pytest.mark.asyncio
    async def test_missing_fields_are_all_named(self, db_session, storage):
        with pytest.raises(MissingRequiredFieldsError) as exc_info:
            await submit_application(
                db_session, storage, _submission(student_id="  ", trx_id=None)
            )

        assert exc_info.value.fields == ["studentId", "trxId"]
        assert exc_info.value.message == "Missing required fields: studentId, trxId"
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_too_many_documents(self, db_session, storage):
        documents = [_upload(f"doc{i}.pdf") for i in range(6)]

        with pytest.raises(TooManyDocumentsError):
            await submit_application(db_session, storage, _submission(), documents=documents)

        assert _stored_files(storage) == []

    @pytest.mark.asyncio
    async def test_second_pending_application_for_student_conflicts(self, db_session, storage):
        await submit_application(db_session, storage, _submission())

        with pytest.raises(DuplicateApplicationError) as exc_info:
            await submit_application(db_session, storage, _submission(trx_id="T2"))

        assert "Student ID S1" in exc_info.value.message
        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_reused_trx_id_conflicts(self, db_session, storage):
        await submit_application(db_session, storage, _submission())

        with pytest.raises(DuplicateApplicationError) as exc_info:
            await submit_application(db_session, storage, _submission(student_id="S2"))

        assert "TRX ID T1" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_trx_id_of_approved_application_conflicts(self, db_session, storage):
        result = await submit_application(db_session, storage, _submission())
        await admin_decide_application(db_session, result.id, "approve", uuid4())

        with pytest.raises(DuplicateApplicationError):
            await submit_application(db_session, storage, _submission(student_id="S2"))

    @pytest.mark.asyncio
    async def test_student_can_reapply_after_rejection(self, db_session, storage):
        first = await submit_application(db_session, storage, _submission())
        await admin_decide_application(db_session, first.id, "reject", uuid4())

        second = await submit_application(db_session, storage, _submission(trx_id="T2"))

        assert second.id != first.id

    @pytest.mark.asyncio
    async def test_insert_race_maps_to_conflict_and_discards_files(self, db_session, storage):
        """A TRX ID committed between the pre-check and the insert."""
        await submit_application(db_session, storage, _submission())

        with patch(
            "app.modules.card_applications.service._check_duplicates", return_value=None
        ):
            with pytest.raises(DuplicateApplicationError):
                await submit_application(
                    db_session,
                    storage,
                    _submission(student_id="S2"),
                    photo=_upload("late.png"),
                )

        assert _stored_files(storage) == []
        assert len(await admin_get_pending_applications(db_session)) == 1

    @pytest.mark.asyncio
    async def test_oversized_file_rejects_submission(self, db_session, tmp_path):
        small = LocalFileStorage(str(tmp_path / "small"), max_file_size=4)

        with pytest.raises(FileTooLargeError):
            await submit_application(
                db_session,
                small,
                _submission(),
                photo=_upload("ok.png", b"1234"),
                gd_copy=_upload("big.pdf", b"123456789"),
            )

        assert _stored_files(small) == []
        assert await admin_get_pending_applications(db_session) == []

    @pytest.mark.asyncio
    async def test_file_part_without_filename_is_ignored(self, db_session, storage):
        result = await submit_application(
            db_session, storage, _submission(), photo=_upload("", b"")
        )

        stored = await repository.get_by_id(db_session, result.id)
        assert stored.photo is None


class TestLookup:
    """Tests for get_application_by_student_id and get_approved_applications."""

    @pytest.mark.asyncio
    async def test_pending_application_is_found(self, db_session, storage):
        await submit_application(db_session, storage, _submission())

        detail = await get_application_by_student_id(db_session, " S1 ")

        assert detail.stage == "pending"
        assert detail.status == ApplicationStatus.PENDING

    @pytest.mark.asyncio
    async def test_approved_application_is_found(self, db_session, storage):
        result = await submit_application(db_session, storage, _submission())
        await admin_decide_application(db_session, result.id, "approve", uuid4())

        detail = await get_application_by_student_id(db_session, "S1")

        assert detail.stage == "approved"
        assert detail.payment_status == "Approved"
        assert detail.approved_at is not None

    @pytest.mark.asyncio
    async def test_pending_preferred_over_older_rejection(self, db_session, storage):
        first = await submit_application(db_session, storage, _submission())
        await admin_decide_application(db_session, first.id, "reject", uuid4(), "bad photo")
        second = await submit_application(db_session, storage, _submission(trx_id="T2"))

        detail = await get_application_by_student_id(db_session, "S1")

        assert detail.id == second.id

    @pytest.mark.asyncio
    async def test_approved_lookup_by_email_ignores_case(self, db_session, storage):
        result = await submit_application(
            db_session, storage, _submission(email="Ada@Example.com")
        )
        await admin_decide_application(db_session, result.id, "approve", uuid4())

        approved = await get_approved_applications(db_session, email=" ada@EXAMPLE.com ")

        assert [app.student_id for app in approved] == ["S1"]
        assert approved[0].email == "ada@example.com"

    @pytest.mark.asyncio
    async def test_unknown_student(self, db_session):
        with pytest.raises(ApplicationNotFoundError):
            await get_application_by_student_id(db_session, "nobody")

    @pytest.mark.asyncio
    async def test_approved_list_requires_filter(self, db_session):
        with pytest.raises(MissingFilterError):
            await get_approved_applications(db_session, student_id="  ", email=None)


class TestDecideApplication:
    """Tests for admin_decide_application function."""

    @pytest.mark.asyncio
    async def test_approve_removes_from_pending(self, db_session, storage):
        result = await submit_application(db_session, storage, _submission())

        response = await admin_decide_application(db_session, result.id, "approve", uuid4())

        assert response.status == ApplicationStatus.APPROVED
        assert await admin_get_pending_applications(db_session) == []
        approved = await get_approved_applications(db_session, student_id="S1")
        assert len(approved) == 1
        assert approved[0].payment_status == "Approved"

    @pytest.mark.asyncio
    async def test_approve_twice_is_idempotent(self, db_session, storage):
        result = await submit_application(db_session, storage, _submission())
        await admin_decide_application(db_session, result.id, "approve", uuid4())

        again = await admin_decide_application(db_session, result.id, "APPROVE", uuid4())

        assert again.status == ApplicationStatus.APPROVED
        assert again.message == "Application already approved."
        assert len(await get_approved_applications(db_session, student_id="S1")) == 1

    @pytest.mark.asyncio
    async def test_reject_with_reason(self, db_session, storage):
        result = await submit_application(db_session, storage, _submission())
        admin_id = uuid4()

        response = await admin_decide_application(
            db_session, result.id, "reject", admin_id, reason="bad photo"
        )

        assert response.status == ApplicationStatus.REJECTED
        stored = await repository.get_by_id(db_session, result.id)
        assert stored.status == ApplicationStatus.REJECTED
        assert stored.rejection_reason == "bad photo"
        assert stored.reviewed_by == admin_id

    @pytest.mark.asyncio
    async def test_reject_without_reason(self, db_session, storage):
        result = await submit_application(db_session, storage, _submission())

        await admin_decide_application(db_session, result.id, "reject", uuid4(), reason="  ")

        stored = await repository.get_by_id(db_session, result.id)
        assert stored.rejection_reason is None

    @pytest.mark.asyncio
    async def test_invalid_action_is_checked_before_lookup(self, db_session):
        with patch("app.modules.card_applications.service.repository") as mock_repo:
            with pytest.raises(InvalidActionError) as exc_info:
                await admin_decide_application(db_session, uuid4(), "archive", uuid4())

            mock_repo.get_by_id.assert_not_called()

        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_application(self, db_session):
        with pytest.raises(ApplicationNotFoundError):
            await admin_decide_application(db_session, uuid4(), "approve", uuid4())

    @pytest.mark.asyncio
    async def test_rejected_application_cannot_be_approved(self, db_session, storage):
        result = await submit_application(db_session, storage, _submission())
        await admin_decide_application(db_session, result.id, "reject", uuid4())

        with pytest.raises(CannotDecideApplicationError) as exc_info:
            await admin_decide_application(db_session, result.id, "approve", uuid4())

        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_approved_application_cannot_be_rejected(self, db_session, storage):
        result = await submit_application(db_session, storage, _submission())
        await admin_decide_application(db_session, result.id, "approve", uuid4())

        with pytest.raises(CannotDecideApplicationError):
            await admin_decide_application(db_session, result.id, "reject", uuid4())
