#!/usr/bin/env python3
import argparse
import json
import os
import sys
from typing import Dict

from bit_io import BitReader, BitWriter
from encode_huffman import MANIFEST_NAME
from huffman_utils import decompress


def load_json(path: str) -> Dict:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def decode_file(src_path: str, dst_path: str) -> None:
    try:
        with open(src_path, "rb") as fin, open(dst_path, "wb") as fout:
            decompress(BitReader(fin), BitWriter(fout))
    except Exception:
        if os.path.exists(dst_path):
            os.remove(dst_path)
        raise


def files_equal(a: str, b: str) -> bool:
    if os.path.getsize(a) != os.path.getsize(b):
        return False
    with open(a, "rb") as fa, open(b, "rb") as fb:
        return fa.read() == fb.read()


def main() -> int:
    parser = argparse.ArgumentParser(description="Decode Huffman artifacts and optionally verify exact match.")
    parser.add_argument("--bitstream-dir", required=True, help=f"Directory containing {MANIFEST_NAME}.")
    parser.add_argument("--out-dir", required=True, help="Directory for decompressed files.")
    parser.add_argument("--verify", action="store_true", help="Compare decoded bytes with the original sources.")
    args = parser.parse_args()

    manifest_path = os.path.join(args.bitstream_dir, MANIFEST_NAME)
    if not os.path.exists(manifest_path):
        print(f"No {MANIFEST_NAME} found under {args.bitstream_dir}", file=sys.stderr)
        return 1
    manifest = load_json(manifest_path)
    suffix = manifest.get("suffix", ".huff")

    checked = 0
    failed = 0

    for entry in manifest.get("files", []):
        artifact = entry["artifact"]
        src_path = os.path.join(args.bitstream_dir, artifact)
        rel_out = artifact[: -len(suffix)] if suffix and artifact.endswith(suffix) else artifact + ".out"
        dst_path = os.path.join(args.out_dir, rel_out)
        os.makedirs(os.path.dirname(dst_path) or ".", exist_ok=True)

        try:
            decode_file(src_path, dst_path)
        except (OSError, ValueError) as exc:
            print(f"Error {src_path}: {exc}", file=sys.stderr)
            failed += 1
            continue

        if args.verify:
            orig_path = entry.get("source", "")
            if not os.path.exists(orig_path):
                print(f"Missing original for {src_path}", file=sys.stderr)
                failed += 1
                continue
            if not files_equal(orig_path, dst_path):
                print(f"Mismatch: {src_path}", file=sys.stderr)
                failed += 1
                continue
        checked += 1

    print(f"Checked: {checked}, Failed: {failed}")
    return 0 if failed == 0 else 2


if __name__ == "__main__":
    raise SystemExit(main())
