"""Tests for blob storage backends."""

import json

import httpx
import pytest

from driversync.services.blob_storage import (
    HttpBlobStore,
    LocalBlobStore,
    safe_blob_path,
)


class TestSafeBlobPath:

    @pytest.mark.parametrize("name", ["photo.png", "pods/order-1/photo.png", "a\\b.png"])
    def test_accepts_relative_paths(self, name):
        assert not safe_blob_path(name).is_absolute()

    @pytest.mark.parametrize("name", ["", "   ", "/etc/passwd", "../x.png", "pods/../../x.png"])
    def test_rejects_unsafe_paths(self, name):
        with pytest.raises(ValueError):
            safe_blob_path(name)


class TestLocalBlobStore:

    @pytest.mark.asyncio
    async def test_put_writes_file_with_random_suffix(self, tmp_path):
        store = LocalBlobStore(tmp_path, public_base_url="https://cdn.example/blobs/")

        ref = await store.put("pods/order-1/photo.png", b"\x89PNG", content_type="image/png")

        assert ref.pathname.startswith("pods/order-1/photo-")
        assert ref.pathname.endswith(".png")
        assert ref.url == f"https://cdn.example/blobs/{ref.pathname}"
        assert ref.size == 4
        assert (tmp_path / ref.pathname).read_bytes() == b"\x89PNG"

    @pytest.mark.asyncio
    async def test_repeated_uploads_do_not_collide(self, tmp_path):
        store = LocalBlobStore(tmp_path)

        first = await store.put("sig.png", b"1", content_type="image/png")
        second = await store.put("sig.png", b"2", content_type="image/png")

        assert first.pathname != second.pathname

    @pytest.mark.asyncio
    async def test_exact_name_without_suffix(self, tmp_path):
        store = LocalBlobStore(tmp_path, add_random_suffix=False)

        ref = await store.put("sig.png", b"1", content_type="image/png")

        assert ref.pathname == "sig.png"
        assert ref.url == "/blobs/sig.png"

    @pytest.mark.asyncio
    async def test_traversal_rejected(self, tmp_path):
        store = LocalBlobStore(tmp_path / "blobs")
        with pytest.raises(ValueError):
            await store.put("../escape.png", b"x", content_type="image/png")
        assert not (tmp_path / "escape.png").exists()


class TestHttpBlobStore:

    @pytest.mark.asyncio
    async def test_put_sends_bytes_and_headers(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["headers"] = request.headers
            seen["body"] = request.content
            return httpx.Response(
                200,
                json={"url": "https://blob.example/pods/p-1.png", "pathname": "pods/p-1.png"},
            )

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        store = HttpBlobStore("https://blob.example/api/", token="tkn", client=client)

        ref = await store.put("pods/p.png", b"abc", content_type="image/png")
        await client.aclose()

        assert seen["method"] == "PUT"
        assert seen["url"] == "https://blob.example/api/pods/p.png"
        assert seen["headers"]["authorization"] == "Bearer tkn"
        assert seen["headers"]["x-content-type"] == "image/png"
        assert seen["headers"]["x-access"] == "public"
        assert seen["body"] == b"abc"
        assert ref.url == "https://blob.example/pods/p-1.png"
        assert ref.pathname == "pods/p-1.png"

    @pytest.mark.asyncio
    async def test_http_error_raises(self):
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda r: httpx.Response(503, text="busy"))
        )
        store = HttpBlobStore("https://blob.example/api", client=client)

        with pytest.raises(httpx.HTTPStatusError):
            await store.put("p.png", b"abc", content_type="image/png")
        await client.aclose()

    @pytest.mark.asyncio
    async def test_response_without_url_raises(self):
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(
                lambda r: httpx.Response(200, content=json.dumps({"ok": True}).encode(),
                                         headers={"content-type": "application/json"})
            )
        )
        store = HttpBlobStore("https://blob.example/api", client=client)

        with pytest.raises(ValueError):
            await store.put("p.png", b"abc", content_type="image/png")
        await client.aclose()
