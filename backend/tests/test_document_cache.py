import base64
import os
from pathlib import Path
from urllib.parse import urlparse

import pytest

from jobchat.errors import MalformedDataUri
from jobchat.services.document_cache import DocumentCache, decode_data_uri, extension_for_mime


def _data_uri(mime: str, payload: bytes) -> str:
    return f"data:{mime};base64,{base64.b64encode(payload).decode()}"


def _path_from_uri(uri: str) -> Path:
    assert uri.startswith("file://")
    return Path(urlparse(uri).path)


@pytest.mark.parametrize(
    "mime,ext",
    [
        ("application/pdf", "pdf"),
        ("application/msword", "doc"),
        ("application/vnd.openxmlformats-officedocument.wordprocessingml.document", "doc"),
        ("application/vnd.openxmlformats-officedocument.spreadsheetml.sheet", "xls"),
        ("text/plain", "bin"),
    ],
)
def test_extension_for_mime(mime, ext):
    assert extension_for_mime(mime) == ext


@pytest.mark.parametrize(
    "bad",
    [
        "",
        "https://cdn.test/file.pdf",
        "data:application/pdf,plain",
        "data:;base64,AAAA",
        "data:application/pdf;base64,",
        "data:application/pdf;base64,@@not-base64@@",
    ],
)
def test_decode_rejects_malformed(bad):
    with pytest.raises(MalformedDataUri):
        decode_data_uri(bad)


def test_decode_returns_mime_and_bytes():
    mime, payload = decode_data_uri(_data_uri("application/pdf", b"%PDF-1.7"))
    assert mime == "application/pdf"
    assert payload == b"%PDF-1.7"


@pytest.mark.anyio
async def test_materialize_round_trips_bytes(tmp_path):
    payload = bytes(range(256)) * 4
    cache = DocumentCache(str(tmp_path))

    uri = await cache.materialize(_data_uri("application/pdf", payload))

    path = _path_from_uri(uri)
    assert path.parent == tmp_path.resolve()
    assert path.name.startswith("chat-doc-")
    assert path.suffix == ".pdf"
    assert path.read_bytes() == payload


@pytest.mark.anyio
async def test_materialize_uses_unique_names(tmp_path):
    cache = DocumentCache(str(tmp_path))
    uri = _data_uri("application/msword", b"doc")

    first = await cache.materialize(uri)
    second = await cache.materialize(uri)

    assert first != second
    assert len(os.listdir(tmp_path)) == 2


@pytest.mark.anyio
async def test_remote_urls_bypass_cache(tmp_path):
    cache = DocumentCache(str(tmp_path))
    url = "https://cdn.test/cv.pdf"

    assert await cache.resolve(url) == url
    assert os.listdir(tmp_path) == []


@pytest.mark.anyio
async def test_open_document_reports_malformed_input_without_raising(tmp_path, opener):
    cache = DocumentCache(str(tmp_path))

    opened = await cache.open_document("not a document", opener)

    assert opened is False
    assert opener.opened == []


@pytest.mark.anyio
async def test_open_document_opens_decoded_file(tmp_path, opener):
    cache = DocumentCache(str(tmp_path))

    opened = await cache.open_document(_data_uri("application/pdf", b"%PDF"), opener)

    assert opened is True
    assert len(opener.opened) == 1
    assert _path_from_uri(opener.opened[0]).read_bytes() == b"%PDF"
