import json
import re

import httpx
import pytest

from app.client.stream_loader import DEFAULT_TOTAL_SIZE, StreamLoader

API = "http://api.test/api/v1"
MEDIA = "http://media.test/stream"
_RANGE = re.compile(r"bytes=(\d+)-(\d+)")


class FakeBackend:
    """Answers the stream-url call and serves ranged bytes from `payload`."""

    def __init__(self, payload: bytes, *, report_length: bool = True) -> None:
        self.payload = payload
        self.report_length = report_length
        self.url_calls = 0
        self.ranges = []
        self.fail_ranges = set()
        self.fail_url_refresh = False
        self.on_chunk = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/videos/stream-url"):
            self.url_calls += 1
            if self.url_calls > 1 and self.fail_url_refresh:
                return httpx.Response(500)
            assert request.headers["authorization"] == "Bearer tok"
            assert json.loads(request.content) == {"videoId": "vid-1"}
            return httpx.Response(200, json={"signedUrl": f"{MEDIA}?token=t{self.url_calls}", "expiresIn": 300})

        if request.method == "HEAD":
            headers = {"content-length": str(len(self.payload))} if self.report_length else {}
            return httpx.Response(200, headers=headers)

        start, end = map(int, _RANGE.match(request.headers["range"]).groups())
        self.ranges.append((start, end, request.url.params.get("token")))
        if self.on_chunk is not None:
            self.on_chunk(start)
        if (start, end) in self.fail_ranges:
            return httpx.Response(500)
        return httpx.Response(206, content=self.payload[start:end + 1])

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


class StepClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.mark.anyio
async def test_loads_all_chunks_in_order():
    backend = FakeBackend(bytes(range(256)) * 4)  # 1024 bytes
    progress = []
    async with backend.client() as client:
        loader = StreamLoader(
            API, "vid-1", "tok", chunk_size=300, client=client,
            on_progress=lambda loaded, total: progress.append((loaded, total)),
        )
        sink = bytearray()
        loaded = await loader.load(sink)

    assert loaded == 1024
    assert bytes(sink) == backend.payload
    assert [(s, e) for s, e, _ in backend.ranges] == [(0, 299), (300, 599), (600, 899), (900, 1023)]
    assert progress[-1] == (1024, 1024)


@pytest.mark.anyio
async def test_list_sink_receives_chunks():
    backend = FakeBackend(b"abcdefghij")
    async with backend.client() as client:
        loader = StreamLoader(API, "vid-1", "tok", chunk_size=4, client=client)
        chunks = []
        await loader.load(chunks)
    assert chunks == [b"abcd", b"efgh", b"ij"]


@pytest.mark.anyio
async def test_default_size_when_origin_is_silent():
    backend = FakeBackend(b"", report_length=False)
    async with backend.client() as client:
        loader = StreamLoader(API, "vid-1", "tok", client=client)
        loader.signed_url = MEDIA
        assert await loader.fetch_total_size() == DEFAULT_TOTAL_SIZE


@pytest.mark.anyio
async def test_failed_chunk_is_skipped():
    backend = FakeBackend(b"0123456789")
    backend.fail_ranges = {(4, 7)}
    async with backend.client() as client:
        loader = StreamLoader(API, "vid-1", "tok", chunk_size=4, client=client)
        sink = bytearray()
        loaded = await loader.load(sink)

    assert bytes(sink) == b"012389"
    assert loaded == 6


@pytest.mark.anyio
async def test_signed_url_renewed_when_stale():
    backend = FakeBackend(b"0123456789")
    clock = StepClock()
    backend.on_chunk = lambda start: setattr(clock, "now", clock.now + 150)
    async with backend.client() as client:
        loader = StreamLoader(
            API, "vid-1", "tok", chunk_size=2, client=client, url_refresh_interval=240, clock=clock
        )
        await loader.load(bytearray())

    tokens = [t for _, _, t in backend.ranges]
    # each chunk advances the clock 150s, so the URL is renewed before every second chunk
    assert tokens == ["t1", "t1", "t2", "t2", "t3"]
    assert backend.url_calls == 3


@pytest.mark.anyio
async def test_failed_renewal_keeps_current_url():
    backend = FakeBackend(b"0123")
    backend.fail_url_refresh = True
    clock = StepClock()
    backend.on_chunk = lambda start: setattr(clock, "now", clock.now + 300)
    async with backend.client() as client:
        loader = StreamLoader(API, "vid-1", "tok", chunk_size=2, client=client, clock=clock)
        sink = bytearray()
        await loader.load(sink)

    assert bytes(sink) == b"0123"
    assert [t for _, _, t in backend.ranges] == ["t1", "t1"]


@pytest.mark.anyio
async def test_abort_stops_before_next_chunk():
    backend = FakeBackend(b"0123456789")
    async with backend.client() as client:
        loader = StreamLoader(API, "vid-1", "tok", chunk_size=2, client=client)
        backend.on_chunk = lambda start: loader.abort() if start == 2 else None
        sink = bytearray()
        await loader.load(sink)

    assert loader.aborted
    assert bytes(sink) == b"0123"
    assert len(backend.ranges) == 2


@pytest.mark.anyio
async def test_unauthorized_url_request_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"detail": "Token d'accès requis"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        loader = StreamLoader(API, "vid-1", "bad", client=client)
        with pytest.raises(httpx.HTTPStatusError):
            await loader.load(bytearray())


def test_rejects_non_positive_chunk_size():
    with pytest.raises(ValueError):
        StreamLoader(API, "vid-1", "tok", chunk_size=0)
