import pytest

from jobchat.schemas.attachment import AttachmentSource, PickedAttachment
from jobchat.schemas.chat import MessageType
from jobchat.services import attachment_uploader
from jobchat.services.attachment_uploader import (
    AttachmentUploader,
    classify_source,
    image_extension,
    local_path,
)


@pytest.fixture
def photo(tmp_path):
    path = tmp_path / "photo.png"
    path.write_bytes(b"\x89PNG fake")
    return path


@pytest.fixture
def resume(tmp_path):
    path = tmp_path / "resume.pdf"
    path.write_bytes(b"%PDF-1.7 fake")
    return path


@pytest.mark.parametrize(
    "source,kind",
    [
        (AttachmentSource.CAMERA, MessageType.IMAGE),
        (AttachmentSource.LIBRARY, MessageType.IMAGE),
        (AttachmentSource.FILE_PICKER, MessageType.FILE),
    ],
)
def test_classify_source(source, kind):
    picked = PickedAttachment(local_uri="/tmp/x", source=source)
    assert classify_source(picked) == kind
    assert picked.kind == kind


def test_image_extension():
    assert image_extension("image/png") == "png"
    assert image_extension("image/gif") == "gif"
    assert image_extension("image/webp") == "webp"
    assert image_extension("image/heic") == "jpg"


def test_local_path_accepts_file_uris():
    assert local_path("file:///var/tmp/a%20b.pdf") == "/var/tmp/a b.pdf"
    assert local_path("/var/tmp/a.pdf") == "/var/tmp/a.pdf"


@pytest.mark.anyio
async def test_upload_image_posts_multipart(api, portal, photo):
    outcome = await AttachmentUploader(api).upload_image(photo.as_uri(), "image/png")

    assert outcome.ok
    assert outcome.result.remote_url == "https://cdn.portal.test/image/1"
    assert outcome.result.mime_type == "image/png"
    [request] = portal.requests_to("POST", "/api/chats/upload-image")
    assert b'name="image"; filename="chat-image.png"' in request["content"]
    assert b"\x89PNG fake" in request["content"]


@pytest.mark.anyio
async def test_upload_document_defaults(api, portal, resume):
    outcome = await AttachmentUploader(api).upload_document(str(resume))

    assert outcome.ok
    assert outcome.result.mime_type == "application/octet-stream"
    [request] = portal.requests_to("POST", "/api/chats/upload-document")
    assert b'name="file"; filename="document"' in request["content"]


@pytest.mark.anyio
async def test_upload_dispatches_on_source(api, portal, resume):
    picked = PickedAttachment(
        local_uri=str(resume),
        mime_type="application/pdf",
        file_name="resume.pdf",
        source=AttachmentSource.FILE_PICKER,
    )

    outcome = await AttachmentUploader(api).upload(picked)

    assert outcome.ok
    assert outcome.result.remote_url == "https://cdn.portal.test/doc/1"
    assert portal.requests_to("POST", "/api/chats/upload-image") == []


@pytest.mark.anyio
async def test_server_error_is_returned_as_message(api, portal, photo):
    portal.upload_error = (413, "Image too large")

    outcome = await AttachmentUploader(api).upload_image(str(photo), "image/png")

    assert not outcome.ok
    assert outcome.error == "Image too large"
    assert len(portal.requests_to("POST", "/api/chats/upload-image")) == 1


@pytest.mark.anyio
async def test_missing_file_never_reaches_the_network(api, portal, tmp_path):
    outcome = await AttachmentUploader(api).upload_image(str(tmp_path / "gone.jpg"))

    assert outcome.error == "File not found"
    assert portal.requests == []


@pytest.mark.anyio
async def test_unreadable_file_is_reported_not_raised(api, portal, resume, monkeypatch):
    def denied(path):
        raise PermissionError(13, "Permission denied", path)

    monkeypatch.setattr(attachment_uploader, "_read_file", denied)

    image = await AttachmentUploader(api).upload_image(str(resume))
    document = await AttachmentUploader(api).upload_document(str(resume))

    assert image.error == "Could not read file"
    assert document.error == "Could not read file"
    assert portal.requests == []
