import io
import re
import gzip
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Optional, Union

import requests

CATALOG_URL = "https://downloads.dell.com/catalog/Catalog.xml.gz"

HEADERS = {
    "User-Agent": "Mozilla/5.0 (dell-catalog-mirror) PythonRequests",
}

_XML_DECL = re.compile(r"^\s*<\?xml[^>]*\?>")


class CatalogError(Exception):
    pass


class CatalogFetchError(CatalogError):
    pass


class CatalogParseError(CatalogError):
    pass


def decode_gzip_catalog(payload: bytes) -> str:
    """
    The gzip feed is UTF-16 LE with a two byte marker in front;
    drop exactly those two bytes before decoding.
    """
    try:
        with gzip.GzipFile(fileobj=io.BytesIO(payload)) as gz:
            raw = gz.read()
        return raw[2:].decode("utf-16-le")
    except (OSError, EOFError, UnicodeDecodeError) as e:
        raise CatalogParseError(f"malformed catalog: cannot decode gzip payload: {e}") from e


def parse_catalog(data: Union[str, bytes]) -> ET.Element:
    if isinstance(data, str):
        # a str is already decoded; its declaration (usually utf-16) would only confuse expat
        data = _XML_DECL.sub("", data.lstrip("\ufeff"), count=1)
    try:
        return ET.fromstring(data)
    except ET.ParseError as e:
        raise CatalogParseError(f"malformed catalog: {e}") from e


def fetch_catalog(url: str = CATALOG_URL, timeout: float = 60) -> ET.Element:
    try:
        r = requests.get(url, headers=HEADERS, timeout=timeout)
        print(f"[debug] GET {url} -> {r.status_code} {r.reason}")
        r.raise_for_status()
    except requests.RequestException as e:
        raise CatalogFetchError(f"cannot fetch catalog from {url}: {e}") from e

    ctype = r.headers.get("Content-Type", "")
    if "gzip" in ctype.lower():
        text = decode_gzip_catalog(r.content)
    else:
        text = r.text
    return parse_catalog(text)


def read_catalog(path: Union[str, Path]) -> ET.Element:
    path = Path(path)
    try:
        # bytes keep the BOM/declaration so expat picks the right encoding
        data = path.read_bytes()
    except OSError as e:
        raise CatalogFetchError(f"cannot read catalog {path}: {e}") from e
    return parse_catalog(data)


def load_catalog(source: Optional[Union[str, Path]] = None, timeout: float = 60) -> ET.Element:
    """Load from a URL, a local file, or the default Dell endpoint when `source` is None."""
    if source is None:
        return fetch_catalog(CATALOG_URL, timeout=timeout)
    if isinstance(source, str) and source.lower().startswith(("http://", "https://")):
        return fetch_catalog(source, timeout=timeout)
    return read_catalog(source)
