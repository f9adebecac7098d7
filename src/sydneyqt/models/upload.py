"""Upload outcome models for sydneyqt.

These are returned by the user-driven upload flows. A canceled pick is
a distinct outcome, not an error, and carries no payload.
"""

from pydantic import BaseModel

__all__ = [
    "UploadDocumentResult",
    "UploadImageResult",
]


class UploadImageResult(BaseModel, frozen=True):
    """Outcome of an image upload.

    Attributes:
        base64_url: Local JPEG ``data:`` URL
        bing_url: Remote URL from the Sydney image upload, if performed
        canceled: The user canceled the pick or the upload task was canceled
        error: Ingestion failure message
        reference_uuid: uuid of the attached reference, if one was attached
    """

    base64_url: str = ""
    bing_url: str = ""
    canceled: bool = False
    error: str = ""
    reference_uuid: str = ""


class UploadDocumentResult(BaseModel, frozen=True):
    """Outcome of a document upload."""

    canceled: bool = False
    text: str = ""
    ext: str = ""
    error: str = ""
    reference_uuid: str = ""
