"""Fetch a web page and extract title, description, favicon and preview image."""
import asyncio
import ipaddress
import logging
import socket
from dataclasses import dataclass
from urllib.parse import urlparse

import httpx
from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

USER_AGENT = 'BookmarkManager/1.0'
DEFAULT_TIMEOUT = 10.0

# Checked in this order; a link's rel must match exactly
FAVICON_RELS = ('icon', 'shortcut icon', 'apple-touch-icon', 'apple-touch-icon-precomposed')


class SSRFBlockedError(Exception):
    """Raised when a URL targets a private/internal network address."""

    pass


def is_private_ip(ip_str: str) -> bool:
    """
    Check if an IP address is private, loopback, or otherwise internal.

    Args:
        ip_str: IP address string (IPv4 or IPv6).

    Returns:
        True if the IP is private/internal, False if public.
    """
    try:
        ip = ipaddress.ip_address(ip_str)
        return (
            ip.is_private
            or ip.is_loopback
            or ip.is_link_local
            or ip.is_multicast
            or ip.is_reserved
            or ip.is_unspecified
        )
    except ValueError:
        # Unparseable addresses are treated as internal
        return True


async def validate_url_not_private(
    url: str, timeout: float = DEFAULT_TIMEOUT,  # noqa: ASYNC109
) -> None:
    """
    Validate that a URL does not target a private/internal network.

    Resolves the hostname to check the actual IP address, preventing
    DNS rebinding attacks where a hostname resolves to an internal IP.
    Resolution runs on the event loop and is bounded by timeout.

    Raises:
        SSRFBlockedError: If the URL targets a private network.
        ValueError: If the URL is malformed or the host cannot be resolved in time.
    """
    parsed = urlparse(url)
    hostname = parsed.hostname

    if not hostname:
        raise ValueError(f"Invalid URL (no hostname): {url}")

    if hostname.lower() in ('localhost', 'localhost.localdomain'):
        raise SSRFBlockedError(f"Blocked request to localhost: {url}")

    loop = asyncio.get_running_loop()
    try:
        addrinfo = await asyncio.wait_for(
            loop.getaddrinfo(hostname, None, family=socket.AF_UNSPEC, type=socket.SOCK_STREAM),
            timeout,
        )
    except socket.gaierror as e:
        raise ValueError(f"Could not resolve hostname: {hostname}") from e
    except TimeoutError as e:
        raise ValueError(f"Timed out resolving hostname: {hostname}") from e

    # sockaddr is (ip, port) for IPv4 or (ip, port, flow, scope) for IPv6
    for _, _, _, _, sockaddr in addrinfo:
        ip_str = sockaddr[0]
        if is_private_ip(ip_str):
            raise SSRFBlockedError(
                f"Blocked request to private/internal address: {url} resolves to {ip_str}",
            )


@dataclass
class FetchResult:
    """Result of fetching a URL (raw HTML before extraction)."""

    html: str | None
    final_url: str
    status_code: int | None
    content_type: str | None
    error: str | None


@dataclass
class ExtractedMetadata:
    """Fields extracted from an HTML document."""

    title: str | None
    description: str | None
    favicon: str | None
    image: str | None


@dataclass
class UrlMetadata:
    """
    Metadata for a URL.

    When the page could not be fetched or parsed, only favicon is populated
    (the site's default /favicon.ico).
    """

    url: str
    title: str | None = None
    description: str | None = None
    favicon: str | None = None
    image: str | None = None


def site_root(url: str) -> str | None:
    """
    Return scheme://host[:port] for a URL, or None if it has no scheme or host.

    >>> site_root('https://Example.com:8443/a/b?c=1')
    'https://example.com:8443'
    """
    try:
        parsed = urlparse(url.strip())
        hostname = parsed.hostname
        port = parsed.port
    except ValueError:
        return None
    if not parsed.scheme or not hostname:
        return None
    if ':' in hostname:
        hostname = f'[{hostname}]'
    root = f'{parsed.scheme.lower()}://{hostname}'
    return f'{root}:{port}' if port else root


def default_favicon(url: str) -> str | None:
    """The conventional favicon location for the URL's site, or None for an unparseable URL."""
    root = site_root(url)
    return f'{root}/favicon.ico' if root else None


def make_absolute_url(href: str, root: str) -> str:
    """
    Resolve an href found in a page against the site root.

    - http:// and https:// URLs pass through unchanged
    - protocol-relative URLs (//cdn.example.com/x.png) get https:
    - root-relative paths (/x.png) get the site root prefixed
    - anything else is joined to the site root with a /
    """
    href = href.strip()
    if href.lower().startswith(('http://', 'https://')):
        return href
    if href.startswith('//'):
        return f'https:{href}'
    if href.startswith('/'):
        return f'{root}{href}'
    return f'{root}/{href}'


def _meta_content(soup: BeautifulSoup, attribute: str, key: str) -> str | None:
    """Content of the first <meta {attribute}="{key}"> with a non-blank content."""
    for tag in soup.find_all('meta', attrs={attribute: key}):
        content = tag.get('content')
        if content and content.strip():
            return content.strip()
    return None


def _first_meta(soup: BeautifulSoup, *candidates: tuple[str, str]) -> str | None:
    for attribute, key in candidates:
        value = _meta_content(soup, attribute, key)
        if value:
            return value
    return None


def _find_favicon_href(soup: BeautifulSoup) -> str | None:
    links = soup.find_all('link', href=True)
    for rel in FAVICON_RELS:
        for link in links:
            # BeautifulSoup splits rel into a list ("shortcut icon" -> ["shortcut", "icon"])
            link_rel = link.get('rel') or []
            if isinstance(link_rel, str):
                link_rel = link_rel.split()
            if ' '.join(link_rel).lower() == rel and link['href'].strip():
                return link['href']
    return None


def extract_html_metadata(html: str, root: str) -> ExtractedMetadata:
    """
    Extract title, description, favicon and image from HTML.

    Pure function with no I/O. Uses BeautifulSoup for parsing.

    Title extraction priority:
    1. <meta property="og:title">
    2. <meta name="twitter:title">
    3. <title> tag

    Description extraction priority:
    1. <meta property="og:description">
    2. <meta name="twitter:description">
    3. <meta name="description">

    Favicon: the first <link> whose rel is icon, shortcut icon,
    apple-touch-icon or apple-touch-icon-precomposed (in that priority),
    otherwise {root}/favicon.ico.

    Image: <meta property="og:image">, then <meta name="twitter:image">.

    Args:
        html:
            Raw HTML string to parse.
        root:
            scheme://host[:port] that relative favicon/image URLs resolve against.

    Returns:
        ExtractedMetadata; title, description and image may be None.
    """
    soup = BeautifulSoup(html, 'lxml')

    title = _first_meta(soup, ('property', 'og:title'), ('name', 'twitter:title'))
    if not title:
        title_tag = soup.find('title')
        if title_tag and title_tag.get_text().strip():
            title = title_tag.get_text().strip()

    description = _first_meta(
        soup,
        ('property', 'og:description'),
        ('name', 'twitter:description'),
        ('name', 'description'),
    )

    favicon_href = _find_favicon_href(soup)
    favicon = (
        make_absolute_url(favicon_href, root) if favicon_href
        else f'{root}/favicon.ico'
    )

    image_href = _first_meta(soup, ('property', 'og:image'), ('name', 'twitter:image'))
    image = make_absolute_url(image_href, root) if image_href else None

    return ExtractedMetadata(
        title=title,
        description=description,
        favicon=favicon,
        image=image,
    )


async def fetch_url(url: str, timeout: float = DEFAULT_TIMEOUT) -> FetchResult:  # noqa: ASYNC109, PLR0911
    """
    Fetch an HTML page.

    Best-effort fetch that returns error info on failure rather than raising.
    Follows redirects and captures the final URL.

    Security: Validates that the URL does not target private/internal networks
    to prevent SSRF attacks.

    Args:
        url:
            The URL to fetch.
        timeout:
            Request timeout in seconds.

    Returns:
        FetchResult containing the HTML or error info.
    """
    try:
        await validate_url_not_private(url, timeout)
    except (SSRFBlockedError, ValueError) as e:
        return FetchResult(
            html=None,
            final_url=url,
            status_code=None,
            content_type=None,
            error=str(e),
        )

    try:
        async with httpx.AsyncClient(
            follow_redirects=True,
            timeout=timeout,
            headers={'User-Agent': USER_AGENT},
            http2=True,
        ) as client:
            response = await client.get(url)

            # Redirects may point somewhere internal
            final_url = str(response.url)
            try:
                await validate_url_not_private(final_url, timeout)
            except (SSRFBlockedError, ValueError) as e:
                return FetchResult(
                    html=None,
                    final_url=final_url,
                    status_code=response.status_code,
                    content_type=None,
                    error=f"Redirect blocked: {e}",
                )

            content_type = response.headers.get('content-type', '')

            if not response.is_success:
                return FetchResult(
                    html=None,
                    final_url=final_url,
                    status_code=response.status_code,
                    content_type=content_type,
                    error=f"HTTP {response.status_code}",
                )

            if 'html' not in content_type.lower():
                return FetchResult(
                    html=None,
                    final_url=final_url,
                    status_code=response.status_code,
                    content_type=content_type,
                    error=f"Unsupported content type: {content_type}",
                )

            return FetchResult(
                html=response.text,
                final_url=final_url,
                status_code=response.status_code,
                content_type=content_type,
                error=None,
            )
    except httpx.TimeoutException:
        return FetchResult(
            html=None,
            final_url=url,
            status_code=None,
            content_type=None,
            error="Request timed out",
        )
    except httpx.RequestError as e:
        return FetchResult(
            html=None,
            final_url=url,
            status_code=None,
            content_type=None,
            error=f"Request failed: {e}",
        )


async def fetch_metadata(url: str, timeout: float = DEFAULT_TIMEOUT) -> UrlMetadata:  # noqa: ASYNC109
    """
    Fetch a page and extract its metadata.

    Never raises: network errors, timeouts, non-2xx responses, non-HTML
    content and parse failures all produce a result with only the default
    favicon set. Relative favicon/image URLs resolve against the final URL
    after redirects.

    Args:
        url: The URL to fetch.
        timeout: Request timeout in seconds.

    Returns:
        UrlMetadata for the requested URL.
    """
    degraded = UrlMetadata(url=url, favicon=default_favicon(url))

    try:
        result = await fetch_url(url, timeout)
    except Exception:
        logger.warning("Metadata fetch for %s raised", url, exc_info=True)
        return degraded
    if result.error:
        logger.warning("Metadata fetch for %s failed: %s", url, result.error)
        return degraded

    root = site_root(result.final_url) or site_root(url)
    if root is None:
        return degraded

    try:
        extracted = extract_html_metadata(result.html or '', root)
    except Exception:
        logger.warning("Could not parse HTML from %s", result.final_url, exc_info=True)
        return degraded

    return UrlMetadata(
        url=url,
        title=extracted.title,
        description=extracted.description,
        favicon=extracted.favicon,
        image=extracted.image,
    )
