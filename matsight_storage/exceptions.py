"""Exceptions raised by the customer image storage package."""


class StorageError(Exception):
    """Base class for customer image storage errors."""


class InvalidFormatError(StorageError, ValueError):
    """An identifier or key does not have the expected shape."""


class ImageAlreadyExistsError(StorageError):
    """A record with the same (customerID, imageID) is already stored."""

    def __init__(self, customer_id: str, image_id: str):
        super().__init__(f"Image {image_id} already exists for customer {customer_id}")
        self.customer_id = customer_id
        self.image_id = image_id


class ImageNotFoundError(StorageError):
    """No record exists for the given (customerID, imageID)."""

    def __init__(self, customer_id: str, image_id: str):
        super().__init__(f"Image {image_id} not found for customer {customer_id}")
        self.customer_id = customer_id
        self.image_id = image_id
