"""Fetch and decode the flow table and geometry sources.

Locators may be local paths, ``file://`` URLs or ``http(s)://`` URLs.
Geometry sources come in two formats:

- **ESRI shapefile**: the ``.shp`` geometry file and its sibling ``.dbf``
  attribute file are fetched as one unit and read with geopandas.
- **GeoJSON**: a single FeatureCollection (or Feature) document.

Both decode to the same raw feature shape::

    {"geometry": {"type": ..., "coordinates": ...} or None,
     "properties": {...}}

No reprojection happens here; coordinates are handed on as stored.
"""

import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path, PurePosixPath
from typing import List, Optional
from urllib.parse import urlsplit, urlunsplit
from urllib.request import url2pathname

import geopandas as gpd
import requests

__all__ = [
    'FetchError',
    'SourceDecodeError',
    'SourceFetcher',
    'source_format',
    'sibling_locator',
    'decode_shapefile',
    'decode_geojson',
    'fetch_source_features',
]

logger = logging.getLogger(__name__)

_HTTP_SCHEMES = ("http", "https")


class FetchError(RuntimeError):
    """Raised when a locator cannot be retrieved.

    Attributes
    ----------
    locator : str
        The path or URL that failed.
    reason : str
        Short description (HTTP status, OS error, request exception).
    """

    def __init__(self, locator: str, reason: str):
        self.locator = locator
        self.reason = reason
        super().__init__(f"Failed to fetch {locator}: {reason}")


class SourceDecodeError(ValueError):
    """Raised when a fetched payload cannot be decoded."""
    pass


class SourceFetcher:
    """Retrieve raw bytes or text from local paths and HTTP URLs.

    One fetcher is shared by all sources of a run. ``requests.Session`` is
    thread-safe for plain GET requests, so sources may be fetched from a
    thread pool.

    Parameters
    ----------
    timeout_sec : float, optional
        Timeout for HTTP requests (default 30 seconds).
    session : requests.Session, optional
        Session used for HTTP requests. Allows injection for testing.

    Examples
    --------
    >>> fetcher = SourceFetcher(timeout_sec=10)
    >>> text = fetcher.fetch_text("data/0_KERN_RIVER_MASTER_DATA_rev6.csv")
    """

    def __init__(self, timeout_sec: float = 30.0, session: Optional[requests.Session] = None):
        self.timeout_sec = timeout_sec
        self.session = session or requests.Session()

    def fetch_bytes(self, locator: str) -> bytes:
        """Return the raw contents of ``locator``.

        Raises
        ------
        FetchError
            Missing file, HTTP error status, or network failure.
        """
        parts = urlsplit(locator)
        scheme = parts.scheme.lower()

        if scheme in _HTTP_SCHEMES:
            try:
                response = self.session.get(locator, timeout=self.timeout_sec)
            except requests.RequestException as e:
                raise FetchError(locator, str(e)) from e
            if not response.ok:
                raise FetchError(locator, f"HTTP {response.status_code} {response.reason}")
            logger.debug("Fetched %s (%d bytes)", locator, len(response.content))
            return response.content

        path = Path(url2pathname(parts.path)) if scheme == "file" else Path(locator)
        try:
            data = path.read_bytes()
        except OSError as e:
            raise FetchError(locator, e.strerror or str(e)) from e
        logger.debug("Read %s (%d bytes)", path, len(data))
        return data

    def fetch_text(self, locator: str, encoding: str = "utf-8-sig") -> str:
        """Return the contents of ``locator`` decoded as text (BOM stripped).

        Raises
        ------
        FetchError
            If the locator cannot be retrieved.
        SourceDecodeError
            If the bytes are not valid in ``encoding``.
        """
        data = self.fetch_bytes(locator)
        try:
            return data.decode(encoding)
        except UnicodeDecodeError as e:
            raise SourceDecodeError(f"{locator} is not valid {encoding} text: {e}") from e


def _locator_path(locator: str) -> str:
    parts = urlsplit(locator)
    if parts.scheme.lower() in _HTTP_SCHEMES + ("file",):
        return parts.path
    return locator


def source_format(locator: str) -> str:
    """Return "shapefile" or "geojson" from the locator's extension.

    Raises
    ------
    SourceDecodeError
        For any other extension.
    """
    suffix = PurePosixPath(_locator_path(locator).replace("\\", "/")).suffix.lower()
    if suffix == ".shp":
        return "shapefile"
    if suffix in (".geojson", ".json"):
        return "geojson"
    raise SourceDecodeError(f"Unsupported geometry source format '{suffix}' for {locator}")


def sibling_locator(locator: str, suffix: str) -> str:
    """Return ``locator`` with its extension replaced by ``suffix``.

    Query strings of URLs are preserved; an upper-case extension
    (``.SHP``) gives an upper-case sibling (``.DBF``).

    Examples
    --------
    >>> sibling_locator("/data/canals/Canals_KernRiver_Merged_rev.shp", ".dbf")
    '/data/canals/Canals_KernRiver_Merged_rev.dbf'
    >>> sibling_locator("https://host/layers/rivers.shp?v=6", ".dbf")
    'https://host/layers/rivers.dbf?v=6'
    """
    parts = urlsplit(locator)
    is_url = parts.scheme.lower() in _HTTP_SCHEMES + ("file",)
    path = parts.path if is_url else locator

    stem, dot, ext = path.rpartition(".")
    if not dot or "/" in ext or "\\" in ext:
        new_path = path + suffix
    else:
        new_suffix = suffix.upper() if ext.isupper() else suffix
        new_path = stem + new_suffix

    if is_url:
        return urlunsplit(parts._replace(path=new_path))
    return new_path


# GDAL reads config options from the environment, which is process-wide
_GDAL_ENV_LOCK = threading.Lock()


@contextmanager
def _restore_shx():
    """Let GDAL rebuild a missing .shx index while the block runs.

    Only .shp + .dbf are fetched, so the index is always missing. The
    previous SHAPE_RESTORE_SHX value is put back afterwards; reads are
    serialized by a lock so concurrent sources never see each other's
    setting restored early.
    """
    with _GDAL_ENV_LOCK:
        previous = os.environ.get("SHAPE_RESTORE_SHX")
        os.environ["SHAPE_RESTORE_SHX"] = "YES"
        try:
            yield
        finally:
            if previous is None:
                os.environ.pop("SHAPE_RESTORE_SHX", None)
            else:
                os.environ["SHAPE_RESTORE_SHX"] = previous


def decode_shapefile(shp_bytes: bytes, dbf_bytes: bytes) -> List[dict]:
    """Decode a shapefile geometry/attribute pair into raw features.

    The pair is written to a temporary directory and read with geopandas;
    the directory is removed before returning.

    Raises
    ------
    SourceDecodeError
        If the pair cannot be read as a shapefile.
    """
    with tempfile.TemporaryDirectory(prefix="flowmap_") as tmp:
        base = Path(tmp) / "source"
        base.with_suffix(".shp").write_bytes(shp_bytes)
        base.with_suffix(".dbf").write_bytes(dbf_bytes)
        try:
            with _restore_shx():
                gdf = gpd.read_file(base.with_suffix(".shp"))
        except Exception as e:
            # GDAL backends raise their own exception types
            raise SourceDecodeError(f"Unreadable shapefile: {e}") from e

    return [
        {"geometry": feature.get("geometry"), "properties": feature.get("properties") or {}}
        for feature in gdf.iterfeatures(na="null")
    ]


def decode_geojson(data: bytes) -> List[dict]:
    """Decode a GeoJSON FeatureCollection (or single Feature) into raw features.

    Raises
    ------
    SourceDecodeError
        If the payload is not JSON or not a Feature/FeatureCollection.
    """
    try:
        doc = json.loads(data.decode("utf-8-sig"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise SourceDecodeError(f"Invalid GeoJSON: {e}") from e

    if not isinstance(doc, dict):
        raise SourceDecodeError(f"Invalid GeoJSON: top level is {type(doc).__name__}")

    doc_type = doc.get("type")
    if doc_type == "FeatureCollection":
        features = doc.get("features") or []
    elif doc_type == "Feature":
        features = [doc]
    else:
        raise SourceDecodeError(f"Invalid GeoJSON: expected FeatureCollection, got {doc_type}")

    return [
        {"geometry": f.get("geometry"), "properties": f.get("properties") or {}}
        for f in features
        if isinstance(f, dict)
    ]


def fetch_source_features(fetcher: SourceFetcher, locator: str) -> List[dict]:
    """Fetch and decode one geometry source.

    For shapefiles the ``.shp`` and ``.dbf`` artifacts are both required;
    failure to retrieve either fails the whole source.

    Raises
    ------
    FetchError
        If any artifact cannot be retrieved.
    SourceDecodeError
        If the payload cannot be decoded.
    """
    kind = source_format(locator)

    if kind == "shapefile":
        shp_bytes = fetcher.fetch_bytes(locator)
        dbf_bytes = fetcher.fetch_bytes(sibling_locator(locator, ".dbf"))
        logger.debug("SHP and DBF fetched for %s", locator)
        return decode_shapefile(shp_bytes, dbf_bytes)

    return decode_geojson(fetcher.fetch_bytes(locator))
