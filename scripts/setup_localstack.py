#!/usr/bin/env python3
"""
Prepare a LocalStack S3 bucket for the integration tests.

This script:
1. Creates the test bucket (if missing)
2. Runs a health check through S3Store
3. Prints the environment the integration tests expect
"""

import asyncio
import os
import sys

import boto3
from botocore.exceptions import ClientError

# Add project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from s3cache import S3Store

ENDPOINT = os.getenv("LOCALSTACK_ENDPOINT", "http://localhost:4566")
BUCKET = os.getenv("S3_TEST_BUCKET", "test-bucket")
REGION = os.getenv("AWS_REGION", "us-east-1")


def create_bucket() -> None:
    """Create the test bucket, tolerating one that already exists."""
    client = boto3.client(
        "s3",
        endpoint_url=ENDPOINT,
        region_name=REGION,
        aws_access_key_id="test",
        aws_secret_access_key="test",
    )
    try:
        client.create_bucket(Bucket=BUCKET)
        print(f"✓ Created bucket: {BUCKET}")
    except ClientError as e:
        code = e.response.get("Error", {}).get("Code")
        if code not in ("BucketAlreadyOwnedByYou", "BucketAlreadyExists"):
            raise
        print(f"✓ Bucket already exists: {BUCKET}")


async def verify() -> bool:
    """Check the bucket through the cache's own health check."""
    async with S3Store(
        bucket=BUCKET,
        region=REGION,
        endpoint=ENDPOINT,
        access_key_id="test",
        secret_access_key="test",
    ) as store:
        status = await store.health_check()

    print(f"✓ Health: {status.status} ({status.sdk_version})")
    if status.error:
        print(f"  - Error: {status.error}")
    return status.healthy


if __name__ == "__main__":
    print("=" * 60)
    print("LocalStack S3 Setup")
    print("=" * 60)
    try:
        create_bucket()
        healthy = asyncio.run(verify())
    except Exception as e:
        print(f"\n✗ ERROR: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)

    print("\nRun the integration tests with:")
    print(f"  LOCALSTACK_ENDPOINT={ENDPOINT} S3_TEST_BUCKET={BUCKET} \\")
    print("  AWS_ACCESS_KEY_ID=test AWS_SECRET_ACCESS_KEY=test pytest tests/integration")
    sys.exit(0 if healthy else 1)
