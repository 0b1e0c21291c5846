"""Tests for environment-driven configuration."""
from matsight_storage.config import StorageConfig


def test_defaults(monkeypatch):
    for name in ("CUSTOMER_IMAGES_BUCKET", "CUSTOMER_IMAGES_TABLE", "MODELS_BUCKET",
                 "AWS_REGION", "AWS_DEFAULT_REGION", "PRESIGNED_URL_EXPIRES_IN"):
        monkeypatch.delenv(name, raising=False)

    config = StorageConfig.from_env()

    assert config.bucket_name == "matsight-customer-images"
    assert config.table_name == "CustomerImages"
    assert config.region == "us-west-2"
    assert config.presigned_url_expires_in == 3600


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("CUSTOMER_IMAGES_BUCKET", "acme-images")
    monkeypatch.setenv("CUSTOMER_IMAGES_TABLE", "AcmeImages")
    monkeypatch.delenv("AWS_REGION", raising=False)
    monkeypatch.setenv("AWS_DEFAULT_REGION", "eu-west-1")
    monkeypatch.setenv("PRESIGNED_URL_EXPIRES_IN", "600")

    config = StorageConfig.from_env()

    assert config.bucket_name == "acme-images"
    assert config.table_name == "AcmeImages"
    assert config.region == "eu-west-1"
    assert config.presigned_url_expires_in == 600


def test_region_prefers_aws_region(monkeypatch):
    monkeypatch.setenv("AWS_REGION", "ap-southeast-2")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "eu-west-1")

    assert StorageConfig.from_env().region == "ap-southeast-2"
