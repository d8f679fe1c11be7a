"""Tests for the S3 folder, its rules and the S3 driver using an in-memory client."""

from __future__ import annotations

import hashlib
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

import pytest
from botocore.exceptions import ClientError

from ruleverify.exceptions import StorageError, VerificationFailedError
from ruleverify.storage.s3 import (
    FileModtimeS3Rule,
    S3MetaData,
    S3ObjectInfo,
    S3Operations,
    S3SearchTerm,
    S3Storage,
)
from ruleverify.verification import S3Verification

MODIFIED = datetime(2026, 10, 19, 8, 30, 15, 250000, tzinfo=timezone.utc)


class FakeS3Client:
    """Implements the ``list_objects_v2`` subset used by :class:`S3Operations`."""

    def __init__(self, objects: Dict[str, bytes] | None = None, page_size: int = 1000) -> None:
        self.objects: Dict[str, bytes] = dict(objects or {})
        self.page_size = page_size
        self.requests: List[Dict[str, Any]] = []
        self.error: ClientError | None = None

    def list_objects_v2(self, **request: Any) -> Dict[str, Any]:
        self.requests.append(dict(request))
        if self.error is not None:
            raise self.error
        prefix = request.get("Prefix", "")
        keys = sorted(key for key in self.objects if key.startswith(prefix))
        if request.get("Delimiter") == "/":
            keys = [key for key in keys if "/" not in key[len(prefix) :].rstrip("/")]
        start = int(request.get("ContinuationToken", 0))
        page = keys[start : start + self.page_size]
        response: Dict[str, Any] = {
            "Contents": [
                {
                    "Key": key,
                    "Size": len(self.objects[key]),
                    "ETag": '"' + _md5(self.objects[key]) + '"',
                    "LastModified": MODIFIED,
                }
                for key in page
            ],
            "IsTruncated": start + self.page_size < len(keys),
        }
        if response["IsTruncated"]:
            response["NextContinuationToken"] = str(start + self.page_size)
        return response


def _md5(payload: bytes) -> str:
    return hashlib.md5(payload).hexdigest()


def _client_error(code: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, "ListObjectsV2")


@pytest.fixture
def client() -> FakeS3Client:
    return FakeS3Client(
        {
            "incoming/": b"",
            "incoming/report.csv": b"a,b\n1,2\n",
            "incoming/notes.txt": b"hello",
            "incoming/archive/old.csv": b"old",
        }
    )


@pytest.fixture
def storage(client: FakeS3Client) -> S3Storage:
    return S3Storage(lambda term: S3Operations(term.bucket_name, client=client))


def _driver(storage: S3Storage, settings, clock, name: str | None = None, **kwargs: Any) -> S3Verification:
    return S3Verification(
        "bucket", "incoming/", name, storage=storage, settings=settings, clock=clock, sleep=clock.sleep, **kwargs
    )


def test_list_objects_strips_etag_quotes_and_converts_dates(client: FakeS3Client) -> None:
    operations = S3Operations("bucket", client=client)
    objects = operations.list_objects("incoming/", re.compile(r"report\.csv"))
    assert objects == [
        S3ObjectInfo(
            bucket_name="bucket",
            key="incoming/report.csv",
            size=8,
            md5=_md5(b"a,b\n1,2\n"),
            last_modified=MODIFIED.replace(tzinfo=None),
        )
    ]
    assert client.requests[0]["Delimiter"] == "/"


def test_list_objects_follows_continuation_tokens(client: FakeS3Client) -> None:
    client.page_size = 1
    operations = S3Operations("bucket", client=client)
    objects = operations.list_objects("incoming/", re.compile(".*"), recursive=True)
    assert [info.key for info in objects] == [
        "incoming/",
        "incoming/archive/old.csv",
        "incoming/notes.txt",
        "incoming/report.csv",
    ]
    assert len(client.requests) == 4
    assert "Delimiter" not in client.requests[0]


def test_missing_bucket_polls_as_empty(storage: S3Storage, client: FakeS3Client) -> None:
    client.error = _client_error("NoSuchBucket")
    folder = storage.get_folder(S3SearchTerm("bucket", "incoming/"))
    with folder:
        assert folder.get_all_meta_data() == []


def test_other_client_errors_propagate(storage: S3Storage, client: FakeS3Client) -> None:
    client.error = _client_error("AccessDenied")
    folder = storage.get_folder(S3SearchTerm("bucket", "incoming/"))
    with folder, pytest.raises(StorageError, match="AccessDenied"):
        folder.get_all_meta_data()


def test_folder_reports_new_objects(storage: S3Storage, client: FakeS3Client) -> None:
    folder = storage.get_folder(S3SearchTerm("bucket", "incoming/", r"\.csv$", True))
    with folder:
        assert [m.get_property(S3MetaData.FILE_NAME) for m in folder.get_new_meta_data()] == [
            "incoming/report.csv"
        ]
        client.objects["incoming/second.csv"] = b"x"
        assert [m.get_property(S3MetaData.FILE_NAME) for m in folder.get_new_meta_data()] == [
            "incoming/second.csv"
        ]
        assert folder.get_meta_data_counts() == "Total objects: 2, new objects: 1"


def test_modtime_rule_compares_at_second_precision() -> None:
    info = S3ObjectInfo("bucket", "a", 1, "x", MODIFIED.replace(tzinfo=None))
    meta = S3MetaData(info)
    assert FileModtimeS3Rule(MODIFIED.replace(microsecond=0), "checkModificationTime").is_match(meta)
    assert FileModtimeS3Rule(int(MODIFIED.timestamp()), "checkModificationTime").is_match(meta)
    assert FileModtimeS3Rule(
        MODIFIED + timedelta(seconds=1), "checkModificationTimeDifferent", False
    ).is_match(meta)


def test_verify_object_exists_skips_folder_keys(storage: S3Storage, settings, clock) -> None:
    infos = _driver(storage, settings, clock).verify_object_exists()
    assert [info.key for info in infos] == ["incoming/notes.txt", "incoming/report.csv"]


def test_checks(storage: S3Storage, settings, clock) -> None:
    driver = _driver(storage, settings, clock, "report.csv")
    driver.check_size(8)
    driver.check_md5(_md5(b"a,b\n1,2\n").upper())
    driver.check_modification_time(MODIFIED)
    driver.check_size_different(9)
    assert [info.key for info in driver.verify_object_exists()] == ["incoming/report.csv"]


def test_failed_check_reports_rule(storage: S3Storage, settings, clock) -> None:
    driver = _driver(storage, settings, clock, "report.csv")
    driver.check_md5_different(_md5(b"a,b\n1,2\n"))
    with pytest.raises(VerificationFailedError) as excinfo:
        driver.verify_object_exists()
    assert "checkMd5Different" in excinfo.value.rule_description
    assert clock.sleeps == [1.0, 1.0]


def test_verify_object_does_not_exist(storage: S3Storage, settings, clock) -> None:
    _driver(storage, settings, clock, "missing.csv").verify_object_does_not_exist()


def test_monitor_name(storage: S3Storage, settings, clock) -> None:
    assert _driver(storage, settings, clock).monitor_name == "s3_monitor_bucket"


def test_default_operations_use_configured_endpoint(settings) -> None:
    storage = S3Storage(settings=settings)
    settings.policies.object_storage.endpoint_url = "http://localhost:9000"
    settings.policies.object_storage.region = "us-east-1"
    folder = storage.get_folder(S3SearchTerm("bucket", access_key="key", secret_key="secret"))
    assert "http://localhost:9000" in folder.description
