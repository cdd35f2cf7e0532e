import asyncio

import pytest
from minio.error import S3Error

from cloudbox.core.minio import MinioBlobStore
from cloudbox.utils.exceptions import BlobNotFoundError, FileOperationError, FileTooLargeError


def s3_error(code):
    return S3Error(
        code=code,
        message=f"{code} raised by stub",
        resource="/cloudbox-files/object",
        request_id="request-id",
        host_id="host-id",
        response=None,
    )


class StubResponse:
    def __init__(self, data):
        self.data = data
        self.closed = False
        self.released = False

    def stream(self, amt):
        for start in range(0, len(self.data), amt):
            yield self.data[start:start + amt]

    def close(self):
        self.closed = True

    def release_conn(self):
        self.released = True


class StubMinio:
    """Records objects in memory; raises `failure` from every call when set"""

    def __init__(self):
        self.buckets = set()
        self.objects = {}
        self.metadata = {}
        self.responses = []
        self.failure = None

    def _check(self):
        if self.failure:
            raise s3_error(self.failure)

    def bucket_exists(self, bucket_name):
        self._check()
        return bucket_name in self.buckets

    def make_bucket(self, bucket_name):
        self._check()
        self.buckets.add(bucket_name)

    def put_object(self, bucket_name, object_name, data, length, content_type=None, metadata=None):
        self._check()
        self.objects[object_name] = data.read(length)
        self.metadata[object_name] = dict(metadata or {}, content_type=content_type)

    def get_object(self, bucket_name, object_name):
        self._check()
        if object_name not in self.objects:
            raise s3_error("NoSuchKey")
        response = StubResponse(self.objects[object_name])
        self.responses.append(response)
        return response

    def stat_object(self, bucket_name, object_name):
        self._check()
        if object_name not in self.objects:
            raise s3_error("NoSuchKey")
        return object_name

    def remove_object(self, bucket_name, object_name):
        self._check()
        self.objects.pop(object_name, None)


async def chunks(*parts):
    for part in parts:
        yield part


async def collect(iterator):
    return b"".join([chunk async for chunk in iterator])


@pytest.fixture
def stub():
    return StubMinio()


@pytest.fixture
def store(stub):
    store = MinioBlobStore("localhost:9000", "access", "secret", "cloudbox-files", chunk_size=4)
    store.client = stub
    return store


def test_ensure_ready_creates_bucket(store, stub):
    asyncio.run(store.ensure_ready())
    assert stub.buckets == {"cloudbox-files"}
    asyncio.run(store.ensure_ready())
    assert stub.buckets == {"cloudbox-files"}


def test_put_stream_delete(store, stub):
    blob = asyncio.run(store.put(chunks(b"hello ", b"world"), "my report.txt", "text/plain"))
    assert blob.size == 11
    assert blob.name.endswith("-my_report.txt")
    assert stub.objects[blob.path] == b"hello world"
    assert stub.metadata[blob.path] == {"original-filename": "my_report.txt", "content_type": "text/plain"}

    content = asyncio.run(store.stream(blob.path))
    assert asyncio.run(collect(content)) == b"hello world"
    assert stub.responses[0].closed and stub.responses[0].released

    assert asyncio.run(store.exists(blob.path))
    asyncio.run(store.delete(blob.path))
    assert blob.path not in stub.objects


def test_put_enforces_cap(store, stub):
    with pytest.raises(FileTooLargeError):
        asyncio.run(store.put(chunks(b"12345", b"678901"), "big.bin", max_size=10))
    assert stub.objects == {}

    blob = asyncio.run(store.put(chunks(b"12345", b"67890"), "ok.bin", max_size=10))
    assert blob.size == 10


def test_missing_object_maps_to_not_found(store):
    with pytest.raises(BlobNotFoundError):
        asyncio.run(store.stream("missing"))
    with pytest.raises(BlobNotFoundError):
        asyncio.run(store.delete("missing"))
    assert asyncio.run(store.exists("missing")) is False


def test_other_errors_map_to_operation_failure(store, stub):
    blob = asyncio.run(store.put(chunks(b"data"), "a.txt"))
    stub.failure = "AccessDenied"

    with pytest.raises(FileOperationError):
        asyncio.run(store.ensure_ready())
    with pytest.raises(FileOperationError):
        asyncio.run(store.put(chunks(b"data"), "b.txt"))
    with pytest.raises(FileOperationError):
        asyncio.run(store.stream(blob.path))
    with pytest.raises(FileOperationError):
        asyncio.run(store.exists(blob.path))
    with pytest.raises(FileOperationError):
        asyncio.run(store.delete(blob.path))
    assert blob.path in stub.objects
