#!/usr/bin/env python3
import sys
import argparse
from pathlib import Path

import yaml

from catalog_filter import filter_catalog, list_models
from catalog_loader import CATALOG_URL, CatalogError, load_catalog
from mirror_sync import MirrorError, sync_mirror

CONFIG_PATH = Path("mirror.yaml")

DEFAULTS = {
    "catalog_url": CATALOG_URL,
    "catalog_path": None,
    "destination": "mirror",
    "timeout": 60,
    "lang": "en",
    "models": [],
}


def load_config(yaml_path=CONFIG_PATH) -> dict:
    config = dict(DEFAULTS)
    yaml_path = Path(yaml_path)
    if yaml_path.exists():
        data = yaml.safe_load(yaml_path.read_text(encoding="utf-8")) or {}
        config.update({k: v for k, v in data.items() if v is not None})
    return config


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Mirror the Dell update catalog for a set of server models.")
    p.add_argument("--config", default=str(CONFIG_PATH), help="YAML config file (default: %(default)s)")
    p.add_argument("--url", help="catalog URL")
    p.add_argument("--catalog", help="local catalog file instead of a URL")
    p.add_argument("--dest", help="mirror destination directory")
    p.add_argument("--model", action="append", dest="models", help="model name, e.g. R640 (repeatable)")
    p.add_argument("--lang", help="language for component names")
    p.add_argument("--timeout", type=float, help="per request timeout in seconds")
    p.add_argument("--dry-run", action="store_true", help="report what would be downloaded")
    p.add_argument("--list-models", action="store_true", help="print the models found in the catalog and exit")
    return p.parse_args(argv)


def build_config(args) -> dict:
    config = load_config(args.config)
    overrides = {
        "catalog_url": args.url,
        "catalog_path": args.catalog,
        "destination": args.dest,
        "models": args.models,
        "lang": args.lang,
        "timeout": args.timeout,
    }
    config.update({k: v for k, v in overrides.items() if v is not None})
    if args.url:
        config["catalog_path"] = None
    return config


def main(argv=None) -> int:
    args = parse_args(argv)
    config = build_config(args)

    try:
        root = load_catalog(config["catalog_path"] or config["catalog_url"], timeout=config["timeout"])

        if args.list_models:
            for m in list_models(root):
                print(f"{m.brand or ''}\t{m.model or ''}\t{m.system_id or ''}\t{m.type or ''}")
            return 0

        models = [str(m) for m in config["models"]]
        if not models:
            print("[error] no models configured; use --model or 'models:' in the config file")
            return 1
        filtered = filter_catalog(root, models)

        dest = Path(config["destination"])
        dest.mkdir(parents=True, exist_ok=True)
        report = sync_mirror(filtered, dest, dry_run=args.dry_run, timeout=config["timeout"], lang=config["lang"])
    except (CatalogError, MirrorError) as e:
        print(f"[error] {e}")
        return 1

    print(
        f"Synced {dest}: downloaded={len(report.downloaded)} skipped={len(report.skipped)} "
        f"failed={len(report.failed)} removed={len(report.removed)} "
        f"would_download={len(report.would_download)} warnings={len(report.warnings)}"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
