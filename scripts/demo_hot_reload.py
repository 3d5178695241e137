#!/usr/bin/env python3
"""Hot-reload walkthrough against an in-memory store.

Seeds a namespace from a JSON or YAML file, subscribes to it and applies
``--set key=value`` changes one by one, printing the published value after
every reload.

Example::

    python scripts/demo_hot_reload.py seed.json --format properties --set timeout=60
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

import yaml

_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from apollosub import ApolloConf, ApolloError, ApolloSubscriber, MemoryStore  # noqa: E402


def _load_seed(path: Path) -> dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    data = yaml.safe_load(text) if path.suffix.lower() in {".yaml", ".yml"} else json.loads(text)
    if not isinstance(data, dict):
        raise SystemExit(f"Seed root must be a mapping, got {type(data).__name__}")
    return data


def _parse_assignment(raw: str) -> tuple[str, Any]:
    key, sep, value = raw.partition("=")
    if not sep or not key:
        raise SystemExit(f"Invalid --set value {raw!r}, expected key=value")
    try:
        return key, json.loads(value)
    except json.JSONDecodeError:
        return key, value


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("seed", type=Path, help="JSON or YAML file with the initial namespace content")
    parser.add_argument("--namespace", default="application")
    parser.add_argument("--format", default="json", choices=["json", "yaml", "properties"])
    parser.add_argument("--key", default="", help="watch a single key instead of the namespace")
    parser.add_argument("--set", dest="changes", action="append", default=[], metavar="KEY=VALUE")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    store = MemoryStore({args.namespace: _load_seed(args.seed)})
    conf = ApolloConf.from_env(
        app_id="demo",
        meta_addr="http://localhost:8080",
        namespace_name=args.namespace,
        format=args.format,
        key=args.key,
        dispatch_policy="inline",
    )

    try:
        sub = ApolloSubscriber(conf, store)
    except ApolloError as exc:
        print(f"subscribe failed: {exc}", file=sys.stderr)
        return 1

    with sub:
        print(f"initial:\n{sub.value()}\n")
        sub.add_listener(lambda: print(f"reloaded:\n{sub.value()}\n"))
        for raw in args.changes:
            key, value = _parse_assignment(raw)
            store.set(args.namespace, key, value)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
