# Make the package and the CDK app directory importable without installation
import os
import sys

import pytest

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
CDK_DIR = os.path.join(ROOT, "cdk")
for path in (ROOT, CDK_DIR):
    if path not in sys.path:
        sys.path.insert(0, path)

from matsight_storage.storage_utils import StorageKeyCodec  # noqa: E402

FIXED_NOW_MS = 1700000000000


class FixedRandom:
    """Random source returning a fixed fraction"""

    def __init__(self, value: float):
        self.value = value

    def random(self) -> float:
        return self.value


@pytest.fixture
def codec():
    return StorageKeyCodec(
        bucket_name="test-customer-images",
        clock=lambda: FIXED_NOW_MS,
        rng=FixedRandom(0.5),
    )
