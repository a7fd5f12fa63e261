import xml.etree.ElementTree as ET
from pathlib import PurePosixPath
from typing import List, NamedTuple, Optional


def attr(elem: ET.Element, name: str) -> Optional[str]:
    """Case-insensitive attribute lookup; Dell has shipped both `path` and `Path`."""
    if name in elem.attrib:
        return elem.attrib[name]
    wanted = name.lower()
    for key, value in elem.attrib.items():
        if key.lower() == wanted:
            return value
    return None


def path_of(elem: ET.Element) -> Optional[str]:
    value = attr(elem, "path")
    if value is None:
        value = elem.findtext("Path")
    return value.strip() if value else None


def filename_of_path(p: str) -> str:
    return PurePosixPath(p.replace("\\", "/")).name


def display_text(elem: Optional[ET.Element], lang: str = "en") -> Optional[str]:
    """Pick the `Display` child for `lang`, falling back to the first one."""
    if elem is None:
        return None
    displays = elem.findall("Display")
    if not displays:
        return (elem.text or "").strip() or None
    for d in displays:
        if (attr(d, "lang") or "").lower() == lang.lower():
            return (d.text or "").strip()
    return (displays[0].text or "").strip()


class ModelInfo(NamedTuple):
    brand: Optional[str]
    model: Optional[str]
    system_id: Optional[str]
    type: Optional[str]


class Component(NamedTuple):
    name: Optional[str]
    path: Optional[str]
    hash_md5: Optional[str]
    urls: List[str]

    @property
    def filename(self) -> Optional[str]:
        return filename_of_path(self.path) if self.path else None

    @classmethod
    def from_element(cls, elem: ET.Element, lang: str = "en") -> "Component":
        return cls(
            name=display_text(elem.find("Name"), lang),
            path=path_of(elem),
            hash_md5=attr(elem, "hashMD5"),
            urls=find_urls(elem),
        )


def find_urls(elem: ET.Element) -> List[str]:
    # any attribute or text in the subtree that looks like a link
    urls = []
    for node in elem.iter():
        candidates = list(node.attrib.values()) + [node.text or ""]
        for value in candidates:
            value = value.strip()
            if value.lower().startswith(("http://", "https://", "ftp://")) and value not in urls:
                urls.append(value)
    return urls


def bundle_model_names(bundle: ET.Element) -> List[str]:
    names = []
    for model in bundle.findall("./TargetSystems/Brand/Model"):
        text = display_text(model)
        if text:
            names.append(text)
    return names


def bundle_package_paths(bundle: ET.Element) -> List[str]:
    paths = []
    for pkg in bundle.iter("Package"):
        p = path_of(pkg)
        if p:
            paths.append(p)
    return paths
