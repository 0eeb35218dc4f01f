"""Image catalog loading and resumable downloads."""

from __future__ import annotations

import hashlib
import json
import logging as py_logging
import os
import shutil
import tarfile
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from nido_tui.errors import NotFoundError, ProviderError
from nido_tui.logging import OPERATOR
from nido_tui.providers import ImageVersion

logger = py_logging.getLogger(__name__)

CATALOG_URL = "https://raw.githubusercontent.com/Josepavese/nido/main/registry/images.json"
RELEASES_URL = "https://api.github.com/repos/Josepavese/nido/releases/latest"
CATALOG_CACHE_FILE = ".catalog.json"
DEFAULT_CACHE_TTL = 6 * 60 * 60
CHUNK_SIZE = 256 * 1024

Fetcher = Callable[[str], bytes]


def _default_fetch(url: str) -> bytes:
    request = Request(url, headers={"User-Agent": "nido-tui"}, method="GET")
    try:
        with urlopen(request, timeout=20) as response:  # nosec B310
            return response.read()
    except HTTPError as exc:
        raise ProviderError(f"HTTP {exc.code} fetching {url}") from exc
    except URLError as exc:
        raise ProviderError(
            f"Could not reach {url}",
            hint=str(exc.reason) or "Check your network connection.",
        ) from exc


@dataclass
class Catalog:
    """Parsed ``images.json`` registry."""

    images: list[dict] = field(default_factory=list)
    schema_version: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> Catalog:
        return cls(
            images=list(data.get("images") or []),
            schema_version=str(data.get("schema_version", "")),
        )

    def find_image(self, name: str, version: str = "") -> ImageVersion:
        """Match ``version`` exactly or by alias; empty picks the first."""
        for image in self.images:
            if image.get("name") != name:
                continue
            versions = image.get("versions") or []
            if not version:
                if not versions:
                    raise NotFoundError(f"image {name} has no versions")
                return _to_version(name, versions[0])
            for entry in versions:
                if entry.get("version") == version or version in (entry.get("aliases") or []):
                    return _to_version(name, entry)
            raise NotFoundError(f"version {version} not found for image {name}")
        raise NotFoundError(f"image {name} not found in catalog")

    def labels(self) -> list[str]:
        result = []
        for image in self.images:
            for entry in image.get("versions") or []:
                result.append(f"{image.get('name')}:{entry.get('version')}")
        return result


def _to_version(name: str, entry: dict) -> ImageVersion:
    return ImageVersion(
        name=name,
        version=str(entry.get("version", "")),
        url=str(entry.get("url", "")),
        size_bytes=int(entry.get("size_bytes") or 0),
        aliases=tuple(entry.get("aliases") or ()),
        checksum=str(entry.get("checksum") or ""),
        checksum_type=str(entry.get("checksum_type") or "sha256"),
        part_urls=tuple(entry.get("part_urls") or ()),
    )


def _load_file(path: Path) -> Catalog:
    try:
        return Catalog.from_dict(json.loads(path.read_text(encoding="utf-8")))
    except (OSError, json.JSONDecodeError) as exc:
        raise ProviderError(f"Failed to read catalog cache {path}: {exc}") from exc


def load_catalog(
    cache_dir: Path,
    ttl: float = DEFAULT_CACHE_TTL,
    *,
    fetch: Fetcher | None = None,
    now: Callable[[], float] = time.time,
) -> Catalog:
    """Return a fresh cached catalog, else fetch it, else fall back to stale cache."""
    cache_path = Path(cache_dir) / CATALOG_CACHE_FILE
    if cache_path.exists() and now() - cache_path.stat().st_mtime < ttl:
        return _load_file(cache_path)

    fetch = fetch or _default_fetch
    try:
        raw = fetch(CATALOG_URL)
        catalog = Catalog.from_dict(json.loads(raw))
    except (ProviderError, json.JSONDecodeError) as exc:
        if cache_path.exists():
            logger.warning("Catalog fetch failed, using stale cache: %s", exc, extra=OPERATOR)
            return _load_file(cache_path)
        raise ProviderError(f"failed to load catalog: {exc}") from exc

    try:
        cache_path.parent.mkdir(parents=True, exist_ok=True)
        cache_path.write_bytes(raw)
    except OSError as exc:
        logger.warning("Failed to cache catalog: %s", exc)
    return catalog


def latest_version(*, fetch: Fetcher | None = None) -> str:
    """Tag name of the newest published release."""
    fetch = fetch or _default_fetch
    try:
        payload = json.loads(fetch(RELEASES_URL))
    except json.JSONDecodeError as exc:
        raise ProviderError(f"Malformed release response: {exc}") from exc
    return str(payload.get("tag_name", ""))


def stream_download(
    url: str,
    dest: Path,
    expected_size: int = 0,
    *,
    opener: Callable = urlopen,
) -> Iterator[float]:
    """Download ``url`` to ``dest``, yielding progress in [0, 1].

    Bytes land in ``dest.part`` first; an existing part file is resumed with
    a Range request.
    """
    dest = Path(dest)
    part = dest.with_name(dest.name + ".part")
    start = part.stat().st_size if part.exists() else 0

    headers = {"User-Agent": "nido-tui"}
    if start:
        headers["Range"] = f"bytes={start}-"
    try:
        response = opener(Request(url, headers=headers), timeout=30)  # nosec B310
    except HTTPError as exc:
        if exc.code == 416 and start:
            part.unlink()
            yield from stream_download(url, dest, expected_size, opener=opener)
            return
        raise ProviderError(f"HTTP {exc.code}: {exc.reason}") from exc
    except URLError as exc:
        raise ProviderError(f"download failed: {exc.reason}") from exc

    with response:
        status = int(getattr(response, "status", 200))
        mode = "ab" if status == 206 else "wb"
        if status != 206:
            start = 0
        length = int(response.headers.get("Content-Length") or 0)
        total = length + start if length else expected_size
        current = start
        dest.parent.mkdir(parents=True, exist_ok=True)
        yield current / total if total else 0.0
        with open(part, mode) as out:
            while True:
                chunk = response.read(CHUNK_SIZE)
                if not chunk:
                    break
                out.write(chunk)
                current += len(chunk)
                if total:
                    yield min(1.0, current / total)

    if total and part.stat().st_size != total:
        raise ProviderError(f"size mismatch: expected {total}, got {part.stat().st_size}")
    os.replace(part, dest)
    yield 1.0


def verify_checksum(path: Path, expected: str, algorithm: str = "sha256") -> None:
    if algorithm not in ("sha256", "sha512"):
        raise ProviderError(f"unsupported checksum algorithm: {algorithm}")
    digest = hashlib.new(algorithm)
    with open(path, "rb") as source:
        for chunk in iter(lambda: source.read(CHUNK_SIZE), b""):
            digest.update(chunk)
    actual = digest.hexdigest()
    if actual != expected.lower():
        raise ProviderError(f"checksum mismatch: expected {expected}, got {actual}")


def extract_image(archive: Path, dest: Path) -> None:
    """Pull the disk image out of a ``.tar.xz`` archive into ``dest``."""
    archive = Path(archive)
    if not archive.name.endswith(".tar.xz"):
        raise ProviderError(f"unsupported compression format for {archive.name}")

    stem = archive.name[: -len(".tar.xz")]
    # Cloud tarballs ship either <stem>.qcow2 or a qcow2 named disk.raw.
    candidates = (f"{stem}.qcow2", "disk.raw")
    partial = dest.with_name(dest.name + ".extract")
    try:
        with tarfile.open(archive, "r:xz") as bundle:
            members = {Path(m.name).name: m for m in bundle.getmembers() if m.isfile()}
            member = next((members[c] for c in candidates if c in members), None)
            if member is None:
                raise ProviderError(f"no disk image found in {archive.name}")
            source = bundle.extractfile(member)
            with source, open(partial, "wb") as out:
                shutil.copyfileobj(source, out, CHUNK_SIZE)
    except (tarfile.TarError, OSError, EOFError) as exc:
        partial.unlink(missing_ok=True)
        raise ProviderError(f"decompression failed: {exc}") from exc
    os.replace(partial, dest)


def _download_parts(
    image: ImageVersion,
    staging: Path,
    downloader: Callable[..., Iterator[float]],
) -> Iterator[float]:
    count = len(image.part_urls)
    parts = [staging.with_name(f"{staging.name}.{i + 1:03d}") for i in range(count)]
    for index, (url, part) in enumerate(zip(image.part_urls, parts)):
        for fraction in downloader(url, part, 0):
            yield (index + fraction) / count

    with open(staging, "wb") as out:
        for part in parts:
            with open(part, "rb") as source:
                shutil.copyfileobj(source, out, CHUNK_SIZE)
    for part in parts:
        part.unlink()
    if image.size_bytes and staging.stat().st_size != image.size_bytes:
        raise ProviderError(
            f"final size mismatch: expected {image.size_bytes}, got {staging.stat().st_size}"
        )


def fetch_image(
    image: ImageVersion,
    dest: Path,
    downloader: Callable[..., Iterator[float]] = stream_download,
) -> Iterator[float]:
    """Download, verify and unpack ``image``; ``dest`` only ever holds a usable disk.

    The payload lands next to ``dest`` under its archive suffix (or
    ``.download``) and is moved into place after the checksum passes.
    """
    dest = Path(dest)
    suffix = image.archive_suffix
    if suffix == ".zst":
        raise ProviderError(f"unsupported compression format for {image.name}:{image.version} (zstd)")
    staging = dest.with_name(dest.name + (suffix or ".download"))
    dest.parent.mkdir(parents=True, exist_ok=True)

    if image.part_urls:
        yield from _download_parts(image, staging, downloader)
    else:
        yield from downloader(image.url, staging, image.size_bytes)

    try:
        if image.checksum:
            verify_checksum(staging, image.checksum, image.checksum_type)
        if suffix:
            extract_image(staging, dest)
            staging.unlink()
        else:
            os.replace(staging, dest)
    except ProviderError:
        staging.unlink(missing_ok=True)
        raise
    logger.info("Image %s:%s ready at %s", image.name, image.version, dest)
