from datetime import date

import pytest

from chore_calendar.attachments import Attachment, AttachmentPipeline
from chore_calendar.errors import UploadFailedError, UploadNotConfiguredError, ValidationError
from chore_calendar.schemas import CommentCreate

from .fakes import FakeImageHost

DAY = date(2025, 2, 5)
PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.fixture()
def pipeline(comment_repo, image_host) -> AttachmentPipeline:
    return AttachmentPipeline(comment_repo, image_host, max_bytes=1024)


def photo(data: bytes = PNG, content_type: str = "image/png") -> Attachment:
    return Attachment(data=data, content_type=content_type, filename="dinner.png")


class TestCommentValidation:
    @pytest.mark.parametrize("text", ["", "   "])
    def test_empty_comment_without_photo_is_rejected(self, pipeline, image_host, text):
        with pytest.raises(ValidationError):
            pipeline.create(CommentCreate(date=DAY, text=text))
        assert image_host.calls == []
        assert pipeline.list() == []

    def test_text_only_comment_has_no_photo(self, pipeline, image_host):
        stored = pipeline.create(CommentCreate(date=DAY, name="Adam", text=" Great tacos "))
        assert stored["text"] == "Great tacos"
        assert stored["photo_url"] is None
        assert stored["name"] == "Adam"
        assert image_host.calls == []
        assert pipeline.list() == [stored]

    def test_anonymous_suppresses_name(self, pipeline):
        stored = pipeline.create(CommentCreate(date=DAY, name="Mike", anonymous=True, text="hi"))
        assert stored["anonymous"] is True
        assert stored["name"] is None

    def test_blank_name_becomes_none(self, pipeline):
        stored = pipeline.create(CommentCreate(date=DAY, name="   ", text="hi"))
        assert stored["name"] is None

    def test_oversized_photo_rejected_before_upload(self, pipeline, image_host):
        with pytest.raises(ValidationError):
            pipeline.create(CommentCreate(date=DAY), photo(data=b"x" * 1025))
        assert image_host.calls == []
        assert pipeline.list() == []

    def test_photo_at_size_limit_is_accepted(self, pipeline):
        stored = pipeline.create(CommentCreate(date=DAY), photo(data=b"x" * 1024))
        assert stored["photo_url"]

    @pytest.mark.parametrize("content_type", ["application/pdf", "text/plain", "image/svg+xml", ""])
    def test_non_image_rejected_before_upload(self, pipeline, image_host, content_type):
        with pytest.raises(ValidationError):
            pipeline.create(CommentCreate(date=DAY, text="see file"), photo(content_type=content_type))
        assert image_host.calls == []

    def test_empty_photo_rejected(self, pipeline, image_host):
        with pytest.raises(ValidationError):
            pipeline.create(CommentCreate(date=DAY), photo(data=b""))
        assert image_host.calls == []


class TestUpload:
    def test_photo_only_comment_stores_returned_url(self, pipeline, image_host):
        stored = pipeline.create(CommentCreate(date=DAY), photo())
        assert stored["text"] == ""
        assert stored["photo_url"] == "https://img.example.test/1/dinner.png"
        assert image_host.calls == [(PNG, "dinner.png", "image/png")]

    def test_content_type_parameters_are_ignored_for_checks(self, pipeline, image_host):
        pipeline.create(CommentCreate(date=DAY), photo(content_type="image/JPEG; charset=binary"))
        assert len(image_host.calls) == 1

    def test_failed_upload_persists_nothing(self, comment_repo):
        pipeline = AttachmentPipeline(comment_repo, FakeImageHost(fail=True))
        with pytest.raises(UploadFailedError):
            pipeline.create(CommentCreate(date=DAY, text="with text too"), photo())
        assert pipeline.list() == []

    def test_unexpected_host_error_becomes_upload_failure(self, comment_repo):
        class BrokenHost(FakeImageHost):
            def upload(self, data, *, filename, content_type):
                raise RuntimeError("boom")

        pipeline = AttachmentPipeline(comment_repo, BrokenHost())
        with pytest.raises(UploadFailedError):
            pipeline.create(CommentCreate(date=DAY), photo())
        assert pipeline.list() == []

    def test_unconfigured_host_rejects_photo(self, comment_repo):
        pipeline = AttachmentPipeline(comment_repo, None)
        with pytest.raises(UploadNotConfiguredError):
            pipeline.create(CommentCreate(date=DAY, text="look"), photo())
        assert pipeline.list() == []

    def test_unconfigured_host_still_accepts_text(self, comment_repo):
        pipeline = AttachmentPipeline(comment_repo, None)
        stored = pipeline.create(CommentCreate(date=DAY, text="no photo"))
        assert stored["photo_url"] is None


class TestListing:
    def test_most_recent_first(self, pipeline):
        first = pipeline.create(CommentCreate(date=DAY, text="one"))
        second = pipeline.create(CommentCreate(date=date(2025, 2, 1), text="two"))
        third = pipeline.create(CommentCreate(date=DAY, text="three"))
        assert [c["id"] for c in pipeline.list()] == [third["id"], second["id"], first["id"]]
