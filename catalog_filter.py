import copy
import xml.etree.ElementTree as ET
from typing import Iterable, List

from catalog_schema import (
    ModelInfo,
    attr,
    bundle_model_names,
    bundle_package_paths,
    display_text,
    filename_of_path,
    path_of,
)


def filter_catalog(root: ET.Element, models: Iterable[str], in_place: bool = False) -> ET.Element:
    """
    Keep only the bundles targeting one of `models` (exact `Model/Display`
    match) and the components those bundles reference.

    Components are matched by filename, not by full path: the bundle package
    paths are flat in the feed, so two components sharing a filename in
    different folders cannot be told apart.
    """
    wanted = {models} if isinstance(models, str) else set(models)
    if not wanted:
        raise ValueError("at least one model name is required")

    if not in_place:
        root = copy.deepcopy(root)

    drop = [b for b in root.findall("SoftwareBundle") if not wanted.intersection(bundle_model_names(b))]
    for b in drop:
        root.remove(b)

    keep = set()
    for b in root.findall("SoftwareBundle"):
        keep.update(filename_of_path(p) for p in bundle_package_paths(b))

    drop = []
    for comp in root.findall("SoftwareComponent"):
        p = path_of(comp)
        if not p or filename_of_path(p) not in keep:
            drop.append(comp)
    for comp in drop:
        root.remove(comp)

    print(f"[info] filter {sorted(wanted)}: "
          f"{len(root.findall('SoftwareBundle'))} bundles, "
          f"{len(root.findall('SoftwareComponent'))} components kept")
    return root


def list_models(root: ET.Element) -> List[ModelInfo]:
    seen = []
    for bundle in root.findall("SoftwareBundle"):
        for brand in bundle.findall("./TargetSystems/Brand"):
            for model in brand.findall("Model"):
                info = ModelInfo(
                    brand=display_text(brand),
                    model=display_text(model),
                    system_id=attr(model, "systemID"),
                    type=attr(model, "systemIDType"),
                )
                if info not in seen:
                    seen.append(info)
    return seen
