import httpx
import pytest

from live_interview.api.gateway import InterviewGateway, NetworkError
from live_interview.session.schemas import Clip


def _gateway(handler) -> InterviewGateway:
    return InterviewGateway(
        base_url="http://interview.test",
        timeout=5,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_poll_ready_only_accepts_literal_true() -> None:
    bodies = iter([b"true", b"false", b'"true"', b"1"])
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, content=next(bodies), headers={"content-type": "application/json"})

    async with _gateway(handler) as gw:
        results = [await gw.poll_ready() for _ in range(4)]

    assert results == [True, False, False, False]
    assert seen[0].method == "GET"
    assert seen[0].url.path == "/question"
    assert seen[0].headers["cache-control"] == "no-cache"


@pytest.mark.asyncio
async def test_poll_non_2xx_raises_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="busy")

    async with _gateway(handler) as gw:
        with pytest.raises(NetworkError) as exc_info:
            await gw.poll_ready()

    assert exc_info.value.status_code == 503
    assert exc_info.value.url == "/question"


@pytest.mark.asyncio
async def test_poll_undecodable_body_raises_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>")

    async with _gateway(handler) as gw:
        with pytest.raises(NetworkError, match="undecodable"):
            await gw.poll_ready()


@pytest.mark.asyncio
async def test_transport_error_raises_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _gateway(handler) as gw:
        with pytest.raises(NetworkError) as exc_info:
            await gw.check("interUpload0.mp4")

    assert exc_info.value.status_code is None
    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_upload_sends_multipart_file_field() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, text="ok")

    clip = Clip(data=b"\x1aE\xdf\xa3webm-bytes", mime_type="video/webm", fragment_count=2)
    async with _gateway(handler) as gw:
        await gw.upload_clip(clip, "recording.webm")

    request = seen[0]
    body = request.content
    assert request.method == "POST"
    assert request.url.path == "/uploadInterview"
    assert request.headers["content-type"].startswith("multipart/form-data")
    assert b'name="file"' in body
    assert b'filename="recording.webm"' in body
    assert b"Content-Type: video/webm" in body
    assert clip.data in body


@pytest.mark.asyncio
async def test_upload_rejection_raises_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(413, text="too large")

    async with _gateway(handler) as gw:
        with pytest.raises(NetworkError, match="413"):
            await gw.upload_clip(Clip(data=b"x"), "recording.webm")


@pytest.mark.asyncio
async def test_check_posts_to_artifact_path() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(204)

    async with _gateway(handler) as gw:
        await gw.check("interUpload0.mp4")

    assert seen[0].method == "POST"
    assert seen[0].url.path == "/check/interUpload0.mp4"


@pytest.mark.asyncio
async def test_fetch_audio_returns_bytes() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/audio"
        return httpx.Response(200, content=b"ID3audio", headers={"content-type": "audio/mpeg"})

    async with _gateway(handler) as gw:
        audio = await gw.fetch_audio("/audio")

    assert audio == b"ID3audio"
