"""Pydantic schemas for the page metadata endpoint."""
from schemas.base import ApiModel


class MetadataRequest(ApiModel):
    """URL whose page metadata should be fetched."""

    url: str


class MetadataResponse(ApiModel):
    """
    Metadata extracted from a page.

    When the page could not be fetched only favicon is set (the site's
    default /favicon.ico).
    """

    url: str
    title: str | None = None
    description: str | None = None
    favicon: str | None = None
    image: str | None = None
