"""Content storage module."""

from eventbase.infrastructure.storage.pinata import (
    PinataContentStore,
    build_event_metadata,
    get_content_store,
    reset_content_store,
    safe_filename,
    validate_image_upload,
)

__all__ = [
    "PinataContentStore",
    "build_event_metadata",
    "get_content_store",
    "reset_content_store",
    "safe_filename",
    "validate_image_upload",
]
