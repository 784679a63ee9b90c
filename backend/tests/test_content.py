import pytest

from oncoshare.enums import ContentStatus
from oncoshare.exceptions import NotFound, Unauthorized, UpstreamFailure, ValidationFailed
from oncoshare.models import Document
from oncoshare.services import content_status
from oncoshare.services.content_service import FilePayload, document_service, video_service
from tests.conftest import session_for


def pdf(name="guide.pdf"):
    return FilePayload(filename=name, content=b"%PDF-1.7", content_type="application/pdf")


class TestStatusRules:
    def test_uploads_start_pending(self):
        assert content_status.INITIAL_STATUS is ContentStatus.PENDING

    def test_every_status_pair_is_reachable(self):
        for current in ContentStatus:
            for target in ContentStatus:
                assert content_status.can_transition(current, target)

    def test_parse_status(self):
        assert content_status.parse_status(" Verified ") is ContentStatus.VERIFIED
        with pytest.raises(ValidationFailed):
            content_status.parse_status("approved")

    @pytest.mark.asyncio
    async def test_only_admin_may_transition(self, make_document, category, user, admin):
        document = await make_document(user, category)
        with pytest.raises(Unauthorized):
            content_status.apply_transition(document, ContentStatus.VERIFIED, session_for(user))
        with pytest.raises(Unauthorized):
            content_status.apply_transition(document, ContentStatus.VERIFIED, None)
        assert content_status.apply_transition(document, "verified", session_for(admin)) is True
        assert content_status.apply_transition(document, "verified", session_for(admin)) is False


class TestUploadVisibilityAndReview:
    @pytest.mark.asyncio
    async def test_pending_until_verified(self, db, storage, category, user, admin):
        owner = session_for(user)
        document = await document_service.upload(
            db, owner, {"title": "Mammography basics", "category_id": category.id, "journal": "JCO", "year": 2023},
            pdf(),
        )
        assert document.status == ContentStatus.PENDING
        assert document.user_id == user.id
        assert document.journal == "JCO"

        items, total = await document_service.list_items(db, owner)
        assert [d.id for d in items] == [document.id] and total == 1
        items, _ = await document_service.list_items(db, session_for(admin))
        assert [d.id for d in items] == [document.id]
        items, total = await document_service.list_items(db, None)
        assert items == [] and total == 0
        with pytest.raises(NotFound):
            await document_service.get(db, None, document.id)

        await document_service.set_status(db, session_for(admin), document.id, ContentStatus.VERIFIED)
        items, _ = await document_service.list_items(db, None)
        assert [d.id for d in items] == [document.id]
        assert (await document_service.get(db, None, document.id)).id == document.id

    @pytest.mark.asyncio
    async def test_upload_key_layout(self, db, storage, category, user):
        document = await document_service.upload(
            db, session_for(user), {"title": "Guide", "category_id": category.id}, pdf("my guide (v2).pdf")
        )
        [path] = storage.uploads
        assert path.startswith(f"user_{user.id}/documents/")
        assert path.endswith("-my_guide__v2_.pdf")
        assert document.file_url == storage.public_url(path)
        assert storage.path_from_url(document.file_url) == path

    @pytest.mark.asyncio
    async def test_video_upload_with_thumbnail(self, db, storage, category, user):
        thumb = FilePayload(filename="cover.jpg", content=b"jpeg", content_type="image/jpeg")
        video = await video_service.upload(
            db, session_for(user), {"title": "Chemo diary", "category_id": category.id, "duration": "12:30"},
            FilePayload(filename="diary.mp4", content=b"mp4", content_type="video/mp4"),
            thumbnail=thumb,
        )
        assert video.duration == "12:30"
        assert storage.uploads[0].startswith(f"user_{user.id}/videos/")
        assert storage.uploads[1].startswith(f"user_{user.id}/thumbnails/")
        assert video.thumbnail_url == storage.public_url(storage.uploads[1])

    @pytest.mark.asyncio
    async def test_upload_validation(self, db, storage, category, user):
        owner = session_for(user)
        with pytest.raises(Unauthorized):
            await document_service.upload(db, None, {"title": "x", "category_id": category.id}, pdf())
        with pytest.raises(ValidationFailed):
            await document_service.upload(db, owner, {"title": "  ", "category_id": category.id}, pdf())
        with pytest.raises(ValidationFailed):
            await document_service.upload(db, owner, {"title": "x"}, pdf())
        with pytest.raises(NotFound):
            await document_service.upload(db, owner, {"title": "x", "category_id": 999}, pdf())
        with pytest.raises(ValidationFailed):
            await document_service.upload(
                db, owner, {"title": "x", "category_id": category.id}, FilePayload("empty.pdf", b"")
            )
        assert storage.uploads == []

    @pytest.mark.asyncio
    async def test_storage_failure_creates_no_row(self, db, storage, category, user):
        storage.fail_uploads = True
        with pytest.raises(UpstreamFailure):
            await document_service.upload(db, session_for(user), {"title": "x", "category_id": category.id}, pdf())
        _, total = await document_service.list_items(db, session_for(user))
        assert total == 0

    @pytest.mark.asyncio
    async def test_owner_sees_own_rejected_items_only(self, db, make_document, category, user, other_user):
        mine = await make_document(user, category, title="Mine", status=ContentStatus.REJECTED)
        await make_document(other_user, category, title="Theirs", status=ContentStatus.REJECTED)
        published = await make_document(other_user, category, title="Published", status=ContentStatus.VERIFIED)

        items, _ = await document_service.list_items(db, session_for(user))
        assert {d.id for d in items} == {mine.id, published.id}
        items, _ = await document_service.list_items(db, session_for(user), owner_id=user.id)
        assert [d.id for d in items] == [mine.id]

    @pytest.mark.asyncio
    async def test_list_filters_and_paging(self, db, make_document, category, user, admin):
        for n in range(3):
            await make_document(user, category, title=f"Radiation notes {n}", status=ContentStatus.VERIFIED)
        await make_document(user, category, title="Diet plan", status=ContentStatus.PENDING)

        admin_session = session_for(admin)
        _, total = await document_service.list_items(db, admin_session, search="radiation")
        assert total == 3
        _, total = await document_service.list_items(db, admin_session, status="pending")
        assert total == 1
        page, total = await document_service.list_items(db, admin_session, page=2, page_size=3)
        assert total == 4 and len(page) == 1

    @pytest.mark.asyncio
    async def test_search_wildcards_match_literally(self, db, make_document, category, user):
        literal = await make_document(user, category, title="100% survival stories", status=ContentStatus.VERIFIED)
        await make_document(user, category, title="1000 survivors", status=ContentStatus.VERIFIED)
        await make_document(user, category, title="Side effects", status=ContentStatus.VERIFIED)

        items, _ = await document_service.list_items(db, None, search="100%")
        assert [d.id for d in items] == [literal.id]
        _, total = await document_service.list_items(db, None, search="_")
        assert total == 0


class TestMetadataEdits:
    @pytest.mark.asyncio
    async def test_edit_keeps_verified_status(self, db, make_document, category, user):
        document = await make_document(user, category, status=ContentStatus.VERIFIED)
        updated = await document_service.update_metadata(
            db, session_for(user), document.id, {"title": "Updated guide", "status": "pending", "user_id": 99}
        )
        assert updated.title == "Updated guide"
        assert updated.status == ContentStatus.VERIFIED
        assert updated.user_id == user.id

    @pytest.mark.asyncio
    async def test_only_owner_or_admin_edits(self, db, make_document, category, user, other_user, admin):
        document = await make_document(user, category, status=ContentStatus.VERIFIED)
        with pytest.raises(Unauthorized):
            await document_service.update_metadata(db, session_for(other_user), document.id, {"title": "Mine now"})
        updated = await document_service.update_metadata(db, session_for(admin), document.id, {"year": 2020})
        assert updated.year == 2020

    @pytest.mark.asyncio
    async def test_annotate(self, db, make_document, category, user):
        document = await make_document(user, category)
        [annotated] = await document_service.annotate(db, [document])
        assert annotated["category_name"] == "Breast Cancer"
        assert annotated["author_name"] == "Alice"
        assert annotated["comment_count"] == 0

    @pytest.mark.asyncio
    async def test_content_outlives_author_row(self, db, make_document, category, user):
        document = await make_document(user, category, status=ContentStatus.VERIFIED)
        await db.delete(user)
        await db.commit()
        fetched = await db.get(Document, document.id)
        assert fetched.user_id == user.id
        [annotated] = await document_service.annotate(db, [fetched])
        assert annotated["author_name"] is None
