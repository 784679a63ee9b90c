import json

import httpx
import pytest

from oncoshare.exceptions import UpstreamFailure
from oncoshare.services.storage_service import StorageService, object_key


def make_storage(handler, calls):
    def recording(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return handler(request)

    return StorageService(
        base_url="https://storage.test/",
        api_key="service-key",
        bucket="T2T",
        timeout=5,
        transport=httpx.MockTransport(recording),
    )


class TestObjectKeys:
    def test_key_layout(self):
        assert object_key(7, "videos", "My clip (1).mp4", timestamp_ms=1700000000000) == \
            "user_7/videos/1700000000000-My_clip__1_.mp4"

    def test_path_from_url(self):
        storage = StorageService(base_url="https://storage.test", api_key="k", bucket="T2T")
        url = storage.public_url("user_7/videos/1-a.mp4")
        assert url == "https://storage.test/storage/v1/object/public/T2T/user_7/videos/1-a.mp4"
        assert storage.path_from_url(url) == "user_7/videos/1-a.mp4"
        assert storage.path_from_url("https://elsewhere.org/storage/v1/object/public/T2T/a.png") is None
        assert storage.path_from_url("https://storage.test/storage/v1/object/public/other/a.png") is None
        assert storage.path_from_url(None) is None


class TestUpload:
    @pytest.mark.asyncio
    async def test_request_shape(self):
        calls = []
        storage = make_storage(lambda request: httpx.Response(200, json={"Key": "T2T/x"}), calls)

        url = await storage.upload("user_1/documents/1-guide.pdf", b"%PDF", "application/pdf")

        [request] = calls
        assert request.method == "POST"
        assert str(request.url) == "https://storage.test/storage/v1/object/T2T/user_1/documents/1-guide.pdf"
        assert request.headers["x-upsert"] == "false"
        assert request.headers["authorization"] == "Bearer service-key"
        assert request.headers["apikey"] == "service-key"
        assert request.headers["content-type"] == "application/pdf"
        assert request.content == b"%PDF"
        assert url == storage.public_url("user_1/documents/1-guide.pdf")

    @pytest.mark.asyncio
    async def test_rejected_upload_raises(self):
        storage = make_storage(lambda request: httpx.Response(409, json={"error": "Duplicate"}), [])
        with pytest.raises(UpstreamFailure) as failure:
            await storage.upload("user_1/documents/1-guide.pdf", b"%PDF")
        assert failure.value.details == {"path": "user_1/documents/1-guide.pdf"}

    @pytest.mark.asyncio
    async def test_unreachable_store_raises(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        storage = make_storage(refuse, [])
        with pytest.raises(UpstreamFailure):
            await storage.upload("user_1/documents/1-guide.pdf", b"%PDF")


class TestRemove:
    @pytest.mark.asyncio
    async def test_request_shape(self):
        calls = []
        storage = make_storage(lambda request: httpx.Response(200, json=[]), calls)

        await storage.remove(["user_1/videos/1-a.mp4", "user_1/thumbnails/1-a.jpg"])

        [request] = calls
        assert request.method == "DELETE"
        assert str(request.url) == "https://storage.test/storage/v1/object/T2T"
        assert json.loads(request.content) == {
            "prefixes": ["user_1/videos/1-a.mp4", "user_1/thumbnails/1-a.jpg"],
        }

    @pytest.mark.asyncio
    async def test_missing_object_counts_as_removed(self):
        storage = make_storage(lambda request: httpx.Response(404, json={"error": "not_found"}), [])
        await storage.remove(["user_1/videos/1-a.mp4"])

    @pytest.mark.asyncio
    async def test_server_error_raises(self):
        storage = make_storage(lambda request: httpx.Response(500), [])
        with pytest.raises(UpstreamFailure) as failure:
            await storage.remove(["user_1/videos/1-a.mp4"])
        assert failure.value.details == {"paths": ["user_1/videos/1-a.mp4"]}

    @pytest.mark.asyncio
    async def test_nothing_to_remove_makes_no_request(self):
        calls = []
        storage = make_storage(lambda request: httpx.Response(200), calls)
        await storage.remove([])
        assert calls == []
