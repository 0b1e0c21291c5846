#!/usr/bin/env python3
"""
Customer image storage walkthrough.
Generates keys, builds a metadata record and exercises the parsing helpers
without touching AWS.
"""

import json
import logging

from matsight_storage import ImageType, InvalidFormatError, StorageConfig, StorageKeyCodec

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def main():
    codec = StorageKeyCodec(bucket_name=StorageConfig.from_env().bucket_name)

    customer_id = "customer-12345"
    image_id = codec.generate_image_id(ImageType.UPLOADED)

    print("=== Customer Image Storage Example ===\n")

    print("1. S3 keys:")
    original_key = codec.get_original_image_key(customer_id, image_id)
    thumbnail_key = codec.get_uploaded_thumbnail_key(customer_id, image_id)
    print(f"   Original image: {original_key}")
    print(f"   Thumbnail: {thumbnail_key}")
    print(f"   URL: {codec.get_s3_url(original_key)}\n")

    print("2. Metadata record:")
    record = codec.create_image_metadata(
        customer_id, image_id, ImageType.UPLOADED,
        material_type="graphene",
        image_size=2048576,
        image_format="jpg",
        processing_status="pending",
        width=1920,
        height=1080,
        upload_source="web",
        original_filename="graphene_sample.jpg",
        ttl_days=365,
    )
    print(json.dumps(record.model_dump(by_alias=True, exclude_none=True, mode="json"), indent=2))
    print()

    print("3. Validation:")
    print(f"   Customer ID valid: {codec.validate_customer_id(customer_id)}")
    print(f"   Image ID valid: {codec.validate_image_id(image_id)}")
    print(f"   Image format valid: {codec.validate_image_format('jpg')}\n")

    print("4. Parsed image ID:")
    try:
        parsed = codec.parse_image_id(image_id)
        print(f"   Type: {parsed.type}")
        print(f"   Timestamp: {parsed.timestamp}")
        print(f"   Random: {parsed.random}\n")
    except InvalidFormatError as e:
        logger.error(f"Error parsing image ID: {e}")

    print("5. Information from the S3 key:")
    print(f"   Customer ID: {codec.extract_customer_id_from_s3_key(original_key)}")
    print(f"   Image ID: {codec.extract_image_id_from_s3_key(original_key)}")
    print(f"   Image type: {codec.get_image_type_from_s3_key(original_key).value}")
    print(f"   Is thumbnail: {codec.is_thumbnail(thumbnail_key)}\n")

    print("6. File utilities:")
    filename = "sample_image.jpg"
    print(f"   Extension: {codec.get_file_extension(filename)}")
    print(f"   Thumbnail filename: {codec.generate_thumbnail_filename(filename)}")
    print(f"   File size: {codec.format_file_size(2048576)}\n")

    print("7. Processing metadata:")
    print(json.dumps(codec.create_processing_metadata(1920, 1080, "web", "graphene_sample.jpg"), indent=2))
    print()

    print("8. Folder structure:")
    print(json.dumps(codec.get_customer_folder_structure(customer_id), indent=2))

    print("\n=== Example Complete ===")


if __name__ == "__main__":
    main()
