#!/usr/bin/env python3
import argparse
import json
import os
import sys
from typing import Dict, Iterator

from bit_io import BitWriter
from huffman_utils import compress, count_leaves


MANIFEST_NAME = "huffman_manifest.json"


def iter_input_files(root: str) -> Iterator[str]:
    if os.path.isfile(root):
        yield root
        return
    for dirpath, _, filenames in os.walk(root):
        for name in sorted(filenames):
            yield os.path.join(dirpath, name)


def load_json(path: str) -> Dict:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def write_json(path: str, payload: Dict) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)


def encode_file(src_path: str, dst_path: str) -> Dict:
    with open(src_path, "rb") as f:
        data = f.read()
    tmp_path = dst_path + ".part"
    try:
        with open(tmp_path, "wb") as f:
            root = compress(data, BitWriter(f))
        os.replace(tmp_path, dst_path)
    finally:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)

    comp_bytes = os.path.getsize(dst_path)
    return {
        "raw_bytes": len(data),
        "comp_bytes": comp_bytes,
        "distinct_symbols": count_leaves(root),
        "ratio": len(data) / comp_bytes if comp_bytes else 0.0,
    }


def main() -> int:
    parser = argparse.ArgumentParser(description="Huffman-compress a file or every file under a directory.")
    parser.add_argument("--input", required=True, help="Source file or directory.")
    parser.add_argument("--out-dir", default="exp/bitstream/out", help="Output directory.")
    parser.add_argument("--suffix", default=".huff", help="Suffix appended to compressed artifacts.")
    parser.add_argument("--overwrite", action="store_true")
    args = parser.parse_args()

    if not os.path.exists(args.input):
        print(f"Input not found: {args.input}", file=sys.stderr)
        return 1
    src_files = list(iter_input_files(args.input))
    if not src_files:
        print(f"No files found under {args.input}", file=sys.stderr)
        return 1

    encoded = 0
    skipped = 0
    errors = 0
    manifest_path = os.path.join(args.out_dir, MANIFEST_NAME)
    entries = {}
    if os.path.exists(manifest_path):
        entries = {e["artifact"]: e for e in load_json(manifest_path).get("files", [])}

    os.makedirs(args.out_dir, exist_ok=True)
    base_dir = os.path.abspath(args.input)
    if os.path.isfile(args.input):
        base_dir = os.path.dirname(base_dir)

    for src_path in src_files:
        if os.path.getsize(src_path) == 0:
            skipped += 1
            continue

        rel_path = os.path.relpath(src_path, base_dir)
        dst_path = os.path.join(args.out_dir, rel_path + args.suffix)
        if not args.overwrite and os.path.exists(dst_path):
            skipped += 1
            continue
        os.makedirs(os.path.dirname(dst_path), exist_ok=True)

        try:
            stats = encode_file(src_path, dst_path)
        except (OSError, ValueError) as exc:
            print(f"Error {src_path}: {exc}", file=sys.stderr)
            errors += 1
            continue

        entry = {
            "source": os.path.abspath(src_path),
            "artifact": os.path.relpath(dst_path, args.out_dir),
        }
        entry.update(stats)
        entries[entry["artifact"]] = entry
        encoded += 1

    write_json(manifest_path, {
        "layout": "bitstream_huffman",
        "suffix": args.suffix,
        "files": sorted(entries.values(), key=lambda e: e["artifact"]),
    })

    print(f"Encoded: {encoded}")
    print(f"Skipped: {skipped}")
    if errors:
        print(f"Errors: {errors}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
