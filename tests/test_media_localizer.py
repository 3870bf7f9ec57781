from pathlib import Path

import httpx
import pytest

from dochub.core.media import MediaLocalizer, is_absolute_url
from dochub.errors import (
    DirectoryCreateError,
    DownloadError,
    InvalidProtocolError,
    InvalidUrlError,
)
from tests.support.notion_fakes import FakeMediaHost


@pytest.mark.parametrize("url", ["https://x/y.png", "http://x/y.png"])
def test_validate_accepts_http_and_https(url):
    assert MediaLocalizer().validate(url) == url


def test_validate_rejects_relative_and_foreign_schemes():
    localizer = MediaLocalizer()

    with pytest.raises(InvalidUrlError):
        localizer.validate("not-a-url")
    with pytest.raises(InvalidProtocolError) as excinfo:
        localizer.validate("ftp://x/y.png")
    assert excinfo.value.meta["scheme"] == "ftp"


def test_validate_rejects_urls_httpx_cannot_parse():
    with pytest.raises(InvalidUrlError):
        MediaLocalizer().validate("https://cdn.exa\tmple/x.png")


def test_filename_uses_index_and_default_extension():
    localizer = MediaLocalizer()

    assert localizer.filename("https://cdn.example/photo.jpg", 0) == "photo_0.jpg"
    assert localizer.filename("https://cdn.example/photo.jpg", 1) == "photo_1.jpg"
    assert localizer.filename("https://cdn.example/assets/diagram", 2) == "diagram_2.png"
    assert localizer.filename("https://cdn.example/", 3) == "image_3.png"
    assert (
        localizer.filename("https://cdn.example/my%20pic.PNG?sig=abc", 4) == "my_pic_4.png"
    )


def test_is_absolute_url():
    assert is_absolute_url("https://cdn.example/a.png")
    assert is_absolute_url("ftp://cdn.example/a.png")
    assert not is_absolute_url("/images/a.png")
    assert not is_absolute_url("images/a.png")


@pytest.mark.asyncio
async def test_download_writes_body_and_creates_directory(tmp_path: Path) -> None:
    host = FakeMediaHost()
    target_dir = tmp_path / "nested" / "images"
    localizer = MediaLocalizer(target_dir, transport=host.transport)

    local_path = await localizer.download("https://cdn.example/photo.jpg", "photo_0.jpg")

    assert Path(local_path) == target_dir / "photo_0.jpg"
    assert Path(local_path).read_bytes() == b"bytes:https://cdn.example/photo.jpg"
    assert host.requested == ["https://cdn.example/photo.jpg"]


@pytest.mark.asyncio
async def test_download_failure_status_raises(tmp_path: Path) -> None:
    host = FakeMediaHost(failing=("https://cdn.example/broken.png",))
    localizer = MediaLocalizer(tmp_path, transport=host.transport)

    with pytest.raises(DownloadError) as excinfo:
        await localizer.download("https://cdn.example/broken.png", "broken_0.png")

    assert excinfo.value.status_code == 500
    assert not (tmp_path / "broken_0.png").exists()


@pytest.mark.asyncio
async def test_download_transport_error_raises(tmp_path: Path) -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    localizer = MediaLocalizer(tmp_path, transport=httpx.MockTransport(_handler))

    with pytest.raises(DownloadError) as excinfo:
        await localizer.download("https://cdn.example/a.png", "a_0.png")

    assert excinfo.value.status_code is None
    assert isinstance(excinfo.value.cause, httpx.ConnectError)


def test_ensure_directory_reports_failures(tmp_path: Path) -> None:
    blocker = tmp_path / "file"
    blocker.write_text("not a directory")
    localizer = MediaLocalizer(blocker / "images")

    with pytest.raises(DirectoryCreateError):
        localizer.ensure_directory()

    MediaLocalizer(tmp_path / "a" / "b").ensure_directory()
    MediaLocalizer(tmp_path / "a" / "b").ensure_directory()
    assert (tmp_path / "a" / "b").is_dir()


def test_document_path_with_prefix_and_relative(tmp_path: Path) -> None:
    prefixed = MediaLocalizer(tmp_path, "/images/")
    relative = MediaLocalizer(tmp_path / "images", root=tmp_path)

    assert prefixed.to_document_path(tmp_path / "photo_0.jpg") == "/images/photo_0.jpg"
    assert (
        relative.to_document_path(tmp_path / "images" / "photo_0.jpg")
        == "images/photo_0.jpg"
    )
