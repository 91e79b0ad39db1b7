import bz2
import contextlib
import io
import itertools
import os

import pytest
import requests

from sparkwalk import datasets
from sparkwalk.config import WalkthroughSettings
from sparkwalk.datasets import (
    SchemaError,
    TransferError,
    derive_schema,
    ensure_local,
    prime_datasets,
)
from tests.conftest import FakeSession, make_response

URL = "http://example.test/2008.csv.bz2"


class FailingRaw(io.BytesIO):
    """Returns one chunk, then drops the connection."""

    def __init__(self, first_chunk: bytes):
        super().__init__()
        self._first = first_chunk
        self._served = False

    def read(self, size=-1):
        if not self._served:
            self._served = True
            return self._first
        raise ConnectionResetError("connection reset by peer")


# ensure_local

def test_ensure_local_downloads_missing_file(tmp_path):
    target = tmp_path / "data" / "2008.csv.bz2"
    session = FakeSession({URL: make_response(b"archive-bytes", url=URL)})

    result = ensure_local(URL, str(target), session=session)

    assert result == str(target)
    assert target.read_bytes() == b"archive-bytes"
    assert session.calls == [URL]


def test_ensure_local_skips_network_when_file_exists(tmp_path):
    target = tmp_path / "2008.csv.bz2"
    target.write_bytes(b"already here")
    session = FakeSession(error=AssertionError("network must not be touched"))

    ensure_local(URL, str(target), session=session)

    assert session.calls == []
    assert target.read_bytes() == b"already here"


def test_ensure_local_is_idempotent(tmp_path):
    target = tmp_path / "2008.csv.bz2"
    session = FakeSession({URL: make_response(b"archive-bytes", url=URL)})

    ensure_local(URL, str(target), session=session)
    ensure_local(URL, str(target), session=session)
    ensure_local(URL, str(target), session=session)

    assert session.calls == [URL]


def test_ensure_local_unreachable_host_leaves_nothing(tmp_path):
    target = tmp_path / "2008.csv.bz2"
    session = FakeSession(error=requests.ConnectionError("no route to host"))

    with pytest.raises(TransferError) as excinfo:
        ensure_local(URL, str(target), session=session)

    assert isinstance(excinfo.value.__cause__, requests.ConnectionError)
    assert not target.exists()
    assert os.listdir(tmp_path) == []


def test_ensure_local_http_error_leaves_nothing(tmp_path):
    target = tmp_path / "2008.csv.bz2"
    session = FakeSession({URL: make_response(b"not found", status_code=404, url=URL)})

    with pytest.raises(TransferError):
        ensure_local(URL, str(target), session=session)

    assert not target.exists()
    assert os.listdir(tmp_path) == []


def test_ensure_local_interrupted_transfer_leaves_no_partial_file(tmp_path):
    target = tmp_path / "2008.csv.bz2"
    response = make_response(url=URL, raw=FailingRaw(b"first half of the archive"))
    session = FakeSession({URL: response})

    with pytest.raises(TransferError):
        ensure_local(URL, str(target), session=session, chunk_size=8)

    assert not target.exists()
    assert os.listdir(tmp_path) == []


def test_ensure_local_empty_body_is_a_transfer_error(tmp_path):
    target = tmp_path / "2008.csv.bz2"
    session = FakeSession({URL: make_response(b"", url=URL)})

    with pytest.raises(TransferError):
        ensure_local(URL, str(target), session=session)

    assert not target.exists()


def test_ensure_local_failed_move_leaves_nothing(tmp_path, monkeypatch):
    target = tmp_path / "2008.csv.bz2"
    session = FakeSession({URL: make_response(b"archive-bytes", url=URL)})

    def read_only_replace(src, dst):
        raise PermissionError(13, "Permission denied", dst)

    monkeypatch.setattr(datasets.os, "replace", read_only_replace)

    with pytest.raises(TransferError) as excinfo:
        ensure_local(URL, str(target), session=session)

    assert isinstance(excinfo.value.__cause__, PermissionError)
    assert not target.exists()
    assert os.listdir(tmp_path) == []


def test_ensure_local_temp_file_creation_failure(tmp_path, monkeypatch):
    target = tmp_path / "2008.csv.bz2"
    session = FakeSession({URL: make_response(b"archive-bytes", url=URL)})

    def read_only_dir(*args, **kwargs):
        raise PermissionError(13, "Permission denied", str(tmp_path))

    monkeypatch.setattr(datasets.tempfile, "mkstemp", read_only_dir)

    with pytest.raises(TransferError):
        ensure_local(URL, str(target), session=session)

    assert session.calls == []
    assert not target.exists()
    assert os.listdir(tmp_path) == []


def test_ensure_local_rejects_empty_arguments(tmp_path):
    with pytest.raises(ValueError):
        ensure_local("", str(tmp_path / "x"))
    with pytest.raises(ValueError):
        ensure_local(URL, "")


# derive_schema

@pytest.mark.parametrize("data_rows", [0, 1, 5, 50])
def test_derive_schema_declares_every_column_as_text(tmp_path, data_rows):
    path = tmp_path / "sample.csv"
    lines = ["A,B,C"] + ["1,2.5,x"] * data_rows
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")

    assert derive_schema(str(path)) == [("A", "text"), ("B", "text"), ("C", "text")]


def test_derive_schema_ignores_content_types(tmp_path):
    path = tmp_path / "numbers.csv"
    path.write_text("Year,DepDelay\n2008,12\n2008,-3\n", encoding="utf-8")

    assert derive_schema(str(path)) == [("Year", "text"), ("DepDelay", "text")]


def test_derive_schema_reads_bz2_archive(tmp_path):
    path = tmp_path / "2008.csv.bz2"
    with bz2.open(path, "wt", encoding="utf-8") as f:
        f.write("Year,Month,UniqueCarrier\n2008,1,WN\n2008,1,AA\n")

    assert derive_schema(str(path)) == [
        ("Year", "text"),
        ("Month", "text"),
        ("UniqueCarrier", "text"),
    ]


def test_derive_schema_reads_only_the_sample(monkeypatch):
    consumed = []

    def endless_file():
        yield "A,B,C\n"
        for n in itertools.count():
            consumed.append(n)
            yield f"{n},{n},{n}\n"

    monkeypatch.setattr(datasets, "_open_text", lambda path: contextlib.nullcontext(endless_file()))

    schema = derive_schema("ignored.csv", sample_rows=5)

    assert schema == [("A", "text"), ("B", "text"), ("C", "text")]
    assert len(consumed) <= 5


def test_derive_schema_same_result_for_small_and_large_files(tmp_path):
    head = ["A,B,C"] + [f"{i},{i},{i}" for i in range(5)]
    small = tmp_path / "small.csv"
    large = tmp_path / "large.csv"
    small.write_text("\n".join(head + ["9,9,9"] * 4) + "\n", encoding="utf-8")
    large.write_text("\n".join(head + ["9,9,9"] * 20000) + "\n", encoding="utf-8")

    assert derive_schema(str(small)) == derive_schema(str(large))


def test_derive_schema_empty_file(tmp_path):
    path = tmp_path / "empty.csv"
    path.write_text("", encoding="utf-8")

    with pytest.raises(SchemaError):
        derive_schema(str(path))


def test_derive_schema_blank_header(tmp_path):
    path = tmp_path / "blank.csv"
    path.write_text(",,\n1,2,3\n", encoding="utf-8")

    with pytest.raises(SchemaError):
        derive_schema(str(path))


def test_derive_schema_corrupt_archive(tmp_path):
    path = tmp_path / "broken.csv.bz2"
    path.write_bytes(b"this is not bzip2 data")

    with pytest.raises(SchemaError):
        derive_schema(str(path))


def test_derive_schema_rejects_non_positive_sample(tmp_path):
    path = tmp_path / "sample.csv"
    path.write_text("A\n1\n", encoding="utf-8")

    with pytest.raises(ValueError):
        derive_schema(str(path), sample_rows=0)


# prime_datasets

def test_prime_datasets_fetches_all_archives_and_samples_the_first(tmp_path):
    urls = ["http://example.test/2007.csv", "http://example.test/2008.csv"]
    session = FakeSession({
        urls[0]: make_response(b"Year,Month,Dest\n2007,1,SFO\n", url=urls[0]),
        urls[1]: make_response(b"Year,Month,Dest\n2008,1,LAX\n", url=urls[1]),
    })
    settings = WalkthroughSettings(data_dir=str(tmp_path / "data"), archive_urls=urls)

    primed = prime_datasets(settings, session=session)

    assert session.calls == urls
    assert [os.path.basename(a.path) for a in primed.archives] == ["2007.csv", "2008.csv"]
    assert all(os.path.getsize(a.path) > 0 for a in primed.archives)
    assert primed.column_names == ["Year", "Month", "Dest"]
    assert primed.directory == str(tmp_path / "data")


def test_prime_datasets_keeps_same_named_archives_apart(tmp_path):
    urls = ["http://mirror.test/2007/flights.csv", "http://mirror.test/2008/flights.csv"]
    session = FakeSession({
        urls[0]: make_response(b"Year,Dest\n2007,SFO\n", url=urls[0]),
        urls[1]: make_response(b"Year,Dest\n2008,LAX\n", url=urls[1]),
    })
    settings = WalkthroughSettings(data_dir=str(tmp_path / "data"), archive_urls=urls)

    primed = prime_datasets(settings, session=session)

    paths = [a.path for a in primed.archives]
    assert session.calls == urls
    assert len(set(paths)) == 2
    assert open(paths[0], encoding="utf-8").read().endswith("2007,SFO\n")
    assert open(paths[1], encoding="utf-8").read().endswith("2008,LAX\n")


def test_prime_datasets_propagates_transfer_errors(tmp_path):
    settings = WalkthroughSettings(
        data_dir=str(tmp_path / "data"),
        archive_urls=["http://example.test/2008.csv"],
    )
    session = FakeSession(error=requests.Timeout("timed out"))

    with pytest.raises(TransferError):
        prime_datasets(settings, session=session)
