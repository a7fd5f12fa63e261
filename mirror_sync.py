import copy
import hashlib
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Set, Union

import requests

from catalog_loader import HEADERS
from catalog_schema import Component, attr

CATALOG_NAME = "Catalog.xml"
CHUNK_SIZE = 1024 * 1024


class MirrorError(Exception):
    pass


@dataclass
class SyncReport:
    downloaded: List[Path] = field(default_factory=list)
    skipped: List[Path] = field(default_factory=list)
    would_download: List[Path] = field(default_factory=list)
    failed: List[Path] = field(default_factory=list)
    removed: List[Path] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    catalog_written: bool = False

    @property
    def dirty(self) -> bool:
        return bool(self.downloaded)

    def warn(self, msg: str):
        print(f"[warn] {msg}")
        self.warnings.append(msg)


def base_url(root: ET.Element) -> str:
    host = (attr(root, "baseLocation") or "").strip().strip("/")
    protocols = [p.strip() for p in (attr(root, "baseLocationAccessProtocols") or "").split(",")]
    schemes = [p.lower() for p in protocols if p.lower() in ("http", "https")]
    if not host or not schemes:
        raise MirrorError(
            f"catalog has no usable download location "
            f"(baseLocation={host!r}, protocols={protocols!r})"
        )
    return f"{schemes[0]}://{host}"


def existing_items(destination: Path) -> Set[Path]:
    """Files below `destination`; files sitting in the root itself are not mirror content."""
    return {p for p in destination.rglob("*") if p.is_file() and p.parent != destination}


def md5_file(path: Path) -> str:
    h = hashlib.md5()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            h.update(chunk)
    return h.hexdigest()


def hash_matches(path: Path, expected) -> bool:
    if not expected:
        return False
    return md5_file(path).lower() == expected.strip().lower()


def local_path(destination: Path, component_path: str) -> Path:
    parts = [p for p in component_path.replace("\\", "/").split("/") if p and p != "."]
    if ".." in parts:
        raise ValueError(f"component path escapes the mirror: {component_path!r}")
    return destination.joinpath(*parts)


def download_file(url: str, target: Path, timeout: float = 60):
    """Stream into `<target>.part` and move it over `target` only once complete."""
    target.parent.mkdir(parents=True, exist_ok=True)
    part = target.with_name(target.name + ".part")
    try:
        with requests.get(url, headers=HEADERS, timeout=timeout, stream=True) as r:
            r.raise_for_status()
            with part.open("wb") as f:
                for chunk in r.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)
        part.replace(target)
    except (requests.RequestException, OSError):
        if part.exists():
            part.unlink()
        raise


def write_if_changed(path: Path, content: str, encoding: str = "utf-8") -> bool:
    path.parent.mkdir(parents=True, exist_ok=True)
    new = content.encode(encoding)
    old = path.read_bytes() if path.exists() else b""
    if hashlib.sha256(old).hexdigest() != hashlib.sha256(new).hexdigest():
        path.write_bytes(new)
        return True
    return False


def export_catalog(root: ET.Element, path: Path) -> bool:
    """Write the catalog without the upstream host so it can be re-pointed at the mirror."""
    out = copy.deepcopy(root)
    for key in list(out.attrib):
        if key.lower() == "baselocationaccessprotocols":
            del out.attrib[key]
        elif key.lower() == "baselocation":
            out.attrib[key] = ""
    if attr(out, "baseLocation") is None:
        out.set("baseLocation", "")
    body = ET.tostring(out, encoding="unicode")
    content = '<?xml version="1.0" encoding="utf-16"?>\n' + body
    return write_if_changed(path, content, encoding="utf-16")


def sync_mirror(
    root: ET.Element,
    destination: Union[str, Path],
    dry_run: bool = False,
    timeout: float = 60,
    lang: str = "en",
) -> SyncReport:
    destination = Path(destination)
    if not destination.is_dir():
        raise MirrorError(f"destination directory does not exist: {destination}")

    url_base = base_url(root)
    existing = existing_items(destination)
    retained = set()
    report = SyncReport()
    print(f"[info] syncing {url_base} -> {destination} ({len(existing)} files on disk)")

    for elem in root.findall("SoftwareComponent"):
        comp = Component.from_element(elem, lang)
        if not comp.path:
            report.warn(f"component {comp.name!r} has no path; skipped")
            continue
        try:
            target = local_path(destination, comp.path)
        except ValueError as e:
            report.warn(f"component {comp.name!r} skipped: {e}")
            continue

        if target in existing:
            if hash_matches(target, comp.hash_md5):
                print(f"[debug] up to date: {target}")
                report.skipped.append(target)
                retained.add(target)
                continue
            report.warn(f"hash mismatch for existing {target} (expected {comp.hash_md5}); downloading again")

        remote = comp.path.replace("\\", "/").lstrip("/")
        url = f"{url_base}/{remote}"
        if dry_run:
            print(f"[info] would download {url} -> {target}")
            report.would_download.append(target)
            continue

        try:
            download_file(url, target, timeout=timeout)
        except (requests.RequestException, OSError) as e:
            refs = ", ".join([url] + [u for u in comp.urls if u != url])
            report.warn(f"download failed for {comp.name!r}: {e}; urls: {refs}; destination: {target}")
            report.failed.append(target)
            if target in existing:
                # the previous copy stays in use
                retained.add(target)
            continue

        print(f"[info] downloaded {url} -> {target}")
        if not hash_matches(target, comp.hash_md5):
            report.warn(f"hash mismatch after download of {target} (expected {comp.hash_md5}); keeping file")
        report.downloaded.append(target)
        retained.add(target)

    if report.dirty:
        catalog_path = destination / CATALOG_NAME
        report.catalog_written = export_catalog(root, catalog_path)
        print(f"[info] wrote {catalog_path} (changed={report.catalog_written})")
        for stale in sorted(existing - retained):
            print(f"[info] removing {stale}")
            stale.unlink()
            report.removed.append(stale)

    return report
