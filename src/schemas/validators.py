"""
Shared validation functions for Pydantic schemas.

Services reuse the normalizers directly (e.g. for import items and
duplicate checks) so every entry point applies the same rules.
"""
import re

from pydantic import HttpUrl, TypeAdapter, ValidationError

from core.config import get_settings

_http_url = TypeAdapter(HttpUrl)
_WHITESPACE = re.compile(r"\s+")


def normalize_url(url: str) -> str:
    """
    Normalize a bookmark URL for storage and duplicate detection.

    Surrounding whitespace is stripped; scheme and host are lowercased and a
    bare host gets a trailing slash (https://Example.com -> https://example.com/).
    Path, query and fragment keep their case.

    Raises:
        ValueError: If the URL is blank, not http(s), or too long.
    """
    stripped = url.strip() if isinstance(url, str) else ""
    if not stripped:
        raise ValueError("URL cannot be empty")
    try:
        normalized = str(_http_url.validate_python(stripped))
    except ValidationError as e:
        raise ValueError(f"Invalid URL: '{stripped}'") from e
    max_len = get_settings().max_url_length
    if len(normalized) > max_len:
        raise ValueError(
            f"URL exceeds maximum length of {max_len:,} characters "
            f"(got {len(normalized):,} characters).",
        )
    return normalized


def normalize_tag_name(name: str) -> str:
    """Lowercase a tag name, trim it and collapse inner whitespace to single spaces."""
    return _WHITESPACE.sub(" ", name).strip().lower()


def validate_and_normalize_tag(tag: str) -> str:
    """
    Normalize and validate a single tag.

    Raises:
        ValueError: If tag is empty or too long.
    """
    normalized = normalize_tag_name(tag)
    if not normalized:
        raise ValueError("Tag name cannot be empty")
    max_len = get_settings().max_tag_name_length
    if len(normalized) > max_len:
        raise ValueError(
            f"Tag name exceeds maximum length of {max_len} characters: '{normalized}'",
        )
    return normalized


def validate_and_normalize_tags(tags: list[str]) -> list[str]:
    """
    Normalize and validate a list of tags.

    Empty entries are skipped silently and duplicates (after normalization)
    are dropped, keeping the first occurrence.
    """
    normalized: list[str] = []
    for tag in tags:
        if not normalize_tag_name(tag):
            continue
        value = validate_and_normalize_tag(tag)
        if value not in normalized:
            normalized.append(value)
    return normalized


def validate_required_text(value: str, field_name: str, max_len: int) -> str:
    """Trim a required text field and check it is non-blank and within max_len."""
    trimmed = value.strip()
    if not trimmed:
        raise ValueError(f"{field_name} cannot be empty")
    if len(trimmed) > max_len:
        raise ValueError(
            f"{field_name} exceeds maximum length of {max_len:,} characters "
            f"(got {len(trimmed):,} characters).",
        )
    return trimmed


def validate_title(title: str | None) -> str | None:
    """Validate a bookmark title (None passes through for partial updates)."""
    if title is None:
        return None
    return validate_required_text(title, "Title", get_settings().max_title_length)


def validate_description_length(description: str | None) -> str | None:
    """Validate that description doesn't exceed maximum length."""
    settings = get_settings()
    if description is not None and len(description) > settings.max_description_length:
        max_len = settings.max_description_length
        raise ValueError(
            f"Description exceeds maximum length of {max_len:,} characters "
            f"(got {len(description):,} characters).",
        )
    return description


def validate_folder_name(name: str | None) -> str | None:
    """Validate a folder name (None passes through for partial updates)."""
    if name is None:
        return None
    return validate_required_text(name, "Folder name", get_settings().max_folder_name_length)
