import asyncio
import re

import pytest

from cloudbox.core.storage import LocalBlobStore, generate_storage_name, sanitize_filename
from cloudbox.utils.exceptions import BlobNotFoundError, FileTooLargeError


async def chunks(*parts):
    for part in parts:
        yield part


async def collect(iterator):
    return b"".join([chunk async for chunk in iterator])


@pytest.fixture
def store(tmp_path):
    return LocalBlobStore(str(tmp_path / "blobs"), chunk_size=4)


@pytest.mark.parametrize(
    "filename, expected",
    [
        ("report.pdf", "report.pdf"),
        ("my report (1).txt", "my_report__1_.txt"),
        ("../../etc/passwd", "passwd"),
        ("C:\\Users\\me\\photo.jpg", "photo.jpg"),
        ("..", "file"),
        ("", "file"),
        (None, "file"),
        (".hidden", "hidden"),
        ("résumé.doc", "r_sum_.doc"),
    ],
)
def test_sanitize_filename(filename, expected):
    assert sanitize_filename(filename) == expected


def test_sanitize_filename_keeps_extension_of_long_names():
    name = sanitize_filename("a" * 300 + ".txt")
    assert len(name) == 100
    assert name.endswith(".txt")


def test_generate_storage_name():
    names = {generate_storage_name("x.txt") for _ in range(50)}
    assert len(names) == 50
    for name in names:
        assert re.fullmatch(r"\d{13,}-[A-Za-z0-9_-]{21}-x\.txt", name)


def test_put_stream_delete(store):
    blob = asyncio.run(store.put(chunks(b"hello ", b"world"), "greeting.txt"))
    assert blob.size == 11
    assert blob.path == blob.name
    assert blob.name.endswith("-greeting.txt")
    assert asyncio.run(store.exists(blob.path))

    content = asyncio.run(store.stream(blob.path))
    assert asyncio.run(collect(content)) == b"hello world"

    asyncio.run(store.delete(blob.path))
    assert not asyncio.run(store.exists(blob.path))
    with pytest.raises(BlobNotFoundError):
        asyncio.run(store.delete(blob.path))


def test_put_enforces_cap(store):
    blob = asyncio.run(store.put(chunks(b"12345", b"67890"), "ok.bin", max_size=10))
    assert blob.size == 10

    with pytest.raises(FileTooLargeError):
        asyncio.run(store.put(chunks(b"12345", b"678901"), "big.bin", max_size=10))
    assert sorted(p.name for p in store.root.iterdir()) == [blob.name]


def test_missing_blob(store):
    asyncio.run(store.ensure_ready())
    with pytest.raises(BlobNotFoundError):
        asyncio.run(store.stream("1-abc-missing.txt"))
    assert not asyncio.run(store.exists("1-abc-missing.txt"))


def test_keys_cannot_escape_root(store, tmp_path):
    asyncio.run(store.ensure_ready())
    outside = tmp_path / "secret.txt"
    outside.write_bytes(b"secret")

    for key in ("../secret.txt", str(outside), "nested/../../secret.txt"):
        with pytest.raises(BlobNotFoundError):
            asyncio.run(store.stream(key))
        with pytest.raises(BlobNotFoundError):
            asyncio.run(store.delete(key))
    assert outside.exists()
