"""Static asset scanning and cache classification."""

from __future__ import annotations

import mimetypes
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .frameworks import FrameworkProfile

DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Compressed files are typed by their container, not the file inside
ENCODING_CONTENT_TYPES = {
    "gzip": "application/gzip",
    "bzip2": "application/x-bzip2",
    "xz": "application/x-xz",
    "compress": "application/x-compress",
}


class CacheControlClass(str, Enum):
    IMMUTABLE = "immutable"
    NORMAL = "normal"

    @property
    def header(self) -> str:
        return CACHE_CONTROL[self]


# Normal files: browsers always revalidate, edges keep a copy for a day and
# may serve it stale while refetching.
CACHE_CONTROL = {
    CacheControlClass.IMMUTABLE: "public,max-age=31536000,immutable",
    CacheControlClass.NORMAL: "public,max-age=0,s-maxage=86400,stale-while-revalidate=8640",
}


@dataclass(frozen=True)
class Classification:
    cache_control_class: CacheControlClass
    content_type: str


@dataclass(frozen=True)
class AssetRecord:
    """A file from the build output, ready to be written to the site bucket."""

    relative_key: str
    body: bytes
    cache_control_class: CacheControlClass
    content_type: str

    @property
    def cache_control(self) -> str:
        return self.cache_control_class.header


def classify(profile: FrameworkProfile, relative_key: str) -> Classification:
    """Decide cache-control class and MIME type for a key relative to the public dir."""
    if profile.immutable_asset_pattern.match(relative_key):
        cache_class = CacheControlClass.IMMUTABLE
    else:
        cache_class = CacheControlClass.NORMAL
    content_type, encoding = mimetypes.guess_type(relative_key, strict=False)
    if encoding is not None:
        content_type = ENCODING_CONTENT_TYPES.get(encoding)
    return Classification(cache_class, content_type or DEFAULT_CONTENT_TYPE)


def iter_files(root: Path) -> Iterator[Path]:
    """Regular files under root, sorted. Symlinks are skipped, not followed."""
    for path in sorted(root.rglob("*")):
        if path.is_symlink() or not path.is_file():
            continue
        yield path


def scan_assets(profile: FrameworkProfile, project_dir: Path) -> list[AssetRecord]:
    """Read and classify every file in the profile's public directory."""
    root = project_dir / profile.public_dir
    records = []
    for path in iter_files(root):
        key = path.relative_to(root).as_posix()
        classification = classify(profile, key)
        records.append(
            AssetRecord(
                relative_key=key,
                body=path.read_bytes(),
                cache_control_class=classification.cache_control_class,
                content_type=classification.content_type,
            )
        )
    return records


@dataclass(frozen=True)
class PublicEntry:
    name: str
    is_dir: bool


def list_public_entries(public_dir: Path) -> list[PublicEntry]:
    """Immediate children of the public directory that are files or directories, symlinks skipped."""
    entries = []
    for child in sorted(public_dir.iterdir(), key=lambda p: p.name):
        if child.is_symlink():
            continue
        if child.is_dir():
            entries.append(PublicEntry(child.name, True))
        elif child.is_file():
            entries.append(PublicEntry(child.name, False))
    return entries
