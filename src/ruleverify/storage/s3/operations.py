"""Thin boto3 wrapper listing the objects of one bucket."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ...exceptions import EntityNotFoundError, StorageError
from ...utils.helpers import to_naive_utc
from ...utils.logging import get_logger

_LOGGER = get_logger(component="s3.operations")

_NOT_FOUND_CODES = {"NoSuchBucket", "404", "NotFound"}


@dataclass(frozen=True)
class S3ObjectInfo:
    """Summary of one object as returned by a bucket listing."""

    bucket_name: str
    key: str
    size: int
    md5: str
    last_modified: datetime

    @property
    def is_folder(self) -> bool:
        return self.key.endswith("/")


class S3Operations:
    """List objects of ``bucket_name`` through a boto3 S3 client.

    A client can be injected; otherwise one is created from the explicit
    endpoint and credentials (falling back to boto3's own resolution when
    they are ``None``).
    """

    def __init__(
        self,
        bucket_name: str,
        *,
        endpoint: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        region: str | None = None,
        path_style_addressing: bool = True,
        client: Any = None,
    ) -> None:
        self.bucket_name = bucket_name
        self.endpoint = endpoint
        if client is None:
            session = boto3.Session(
                aws_access_key_id=access_key,
                aws_secret_access_key=secret_key,
                region_name=region,
            )
            config = Config(s3={"addressing_style": "path" if path_style_addressing else "auto"})
            client = session.client("s3", endpoint_url=endpoint, config=config)
        self._client = client

    @property
    def description(self) -> str:
        endpoint = self.endpoint or "default endpoint"
        return f"bucket '{self.bucket_name}' on {endpoint}"

    def list_objects(
        self, prefix: str, pattern: re.Pattern[str], recursive: bool = False
    ) -> List[S3ObjectInfo]:
        """Objects under ``prefix`` whose last key segment matches ``pattern`` (``search``)."""

        request: Dict[str, Any] = {"Bucket": self.bucket_name, "Prefix": prefix or ""}
        if not recursive:
            request["Delimiter"] = "/"

        objects: List[S3ObjectInfo] = []
        try:
            while True:
                response = self._client.list_objects_v2(**request)
                for item in response.get("Contents", []):
                    key = item["Key"]
                    if pattern.search(_last_segment(key)) is None:
                        continue
                    objects.append(
                        S3ObjectInfo(
                            bucket_name=self.bucket_name,
                            key=key,
                            size=int(item.get("Size", 0)),
                            md5=str(item.get("ETag", "")).strip('"'),
                            last_modified=to_naive_utc(item["LastModified"]),
                        )
                    )
                if not response.get("IsTruncated"):
                    break
                request["ContinuationToken"] = response["NextContinuationToken"]
        except ClientError as exc:
            raise self._translate(exc) from exc
        except BotoCoreError as exc:
            raise StorageError(f"Unable to list {self.description}: {exc}") from exc

        _LOGGER.debug(
            "Listed {count} objects under '{prefix}' in {target}",
            count=len(objects),
            prefix=prefix,
            target=self.description,
        )
        return objects

    def _translate(self, exc: ClientError) -> StorageError:
        code = _error_code(exc)
        if code in _NOT_FOUND_CODES:
            return EntityNotFoundError(f"{self.description} does not exist")
        message = exc.response.get("Error", {}).get("Message", str(exc))
        return StorageError(f"Unable to list {self.description}: {code} - {message}")


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", "Unknown"))


def _last_segment(key: str) -> str:
    return key.rstrip("/").rsplit("/", 1)[-1]


__all__ = ["S3ObjectInfo", "S3Operations"]
