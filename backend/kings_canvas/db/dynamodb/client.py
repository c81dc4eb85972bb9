from __future__ import annotations

from functools import lru_cache
from typing import Any

import boto3
from botocore.config import Config

from ...settings import get_settings


@lru_cache(maxsize=1)
def botocore_config() -> Config:
    # botocore retries stay on; ddb_call adds an app-layer retry for throttling.
    return Config(
        retries={"max_attempts": 5, "mode": "adaptive"},
        connect_timeout=2,
        read_timeout=10,
    )


def resource_kwargs() -> dict[str, Any]:
    s = get_settings()
    kwargs: dict[str, Any] = {"region_name": s.aws_region, "config": botocore_config()}
    endpoint = str(s.ddb_endpoint_url or "").strip()
    if endpoint:
        kwargs["endpoint_url"] = endpoint
    return kwargs


@lru_cache(maxsize=1)
def dynamodb_resource():
    return boto3.resource("dynamodb", **resource_kwargs())


def table_resource(table_name: str):
    return dynamodb_resource().Table(table_name)
