#!/usr/bin/env python3
"""Send an image (file or URL) to the /analyze endpoint and print the verdict."""
from __future__ import annotations

import argparse
import base64
import json
from pathlib import Path
from typing import Any

import requests


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Analyze an exercise photo")
    parser.add_argument("image", help="Local image path or http(s) URL")
    parser.add_argument("--base-url", default="http://127.0.0.1:8000", help="Backend URL (default: %(default)s)")
    return parser.parse_args()


def build_payload(image: str) -> dict[str, Any]:
    if image.startswith(("http://", "https://", "data:")):
        return {"image_url": image}
    return {"image_base64": base64.b64encode(Path(image).read_bytes()).decode("ascii")}


def main() -> None:
    args = parse_args()
    url = f"{args.base_url.rstrip('/')}/analyze"
    resp = requests.post(url, json=build_payload(args.image), timeout=90)
    resp.raise_for_status()
    data = resp.json()
    if not data.get("success", False):
        raise SystemExit(f"Backend error: {data.get('error')}")
    print(json.dumps(data["data"]["analysis"], indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
