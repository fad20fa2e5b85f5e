#!/usr/bin/env python3
import argparse
import csv
import os
import sys
from typing import Dict, List

import numpy as np
import zstandard as zstd

from encode_huffman import iter_input_files
from huffman_utils import (
    build_codes,
    build_trie,
    code_lengths,
    compress_bytes,
    compute_frequencies,
    encoded_bit_length,
)


def entropy_bits(freqs: np.ndarray) -> float:
    total = int(freqs.sum())
    if total == 0:
        return 0.0
    probs = freqs[freqs > 0] / total
    return float(-(probs * np.log2(probs)).sum())


def zstd_ratio(data: bytes, level: int) -> float:
    if not data:
        return 0.0
    compressed = zstd.ZstdCompressor(level=level).compress(data)
    return len(data) / len(compressed) if compressed else 0.0


def ratio(raw: float, comp: float) -> float:
    return raw / comp if comp > 0 else 0.0


def analyze_bytes(data: bytes, zstd_level: int) -> Dict:
    freqs = compute_frequencies(data)
    root = build_trie(freqs)
    codes = build_codes(root)
    comp = len(compress_bytes(data))
    return {
        "raw_bytes": len(data),
        "distinct_symbols": int(np.count_nonzero(freqs)),
        "entropy_bits": entropy_bits(freqs),
        "huffman_bits": encoded_bit_length(freqs, codes) / len(data),
        "max_code_len": max(code_lengths(root)),
        "comp_bytes": comp,
        "huffman_ratio": ratio(len(data), comp),
        "zstd_ratio": zstd_ratio(data, zstd_level),
    }


def write_csv(path: str, rows: List[Dict]) -> None:
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=list(rows[0].keys()) if rows else [])
        writer.writeheader()
        writer.writerows(rows)


def main() -> int:
    parser = argparse.ArgumentParser(description="Analyze Huffman compression against entropy and zstd.")
    parser.add_argument("--input", required=True, help="Source file or directory.")
    parser.add_argument("--out-dir", default="exp/bitstream/out")
    parser.add_argument("--zstd-level", type=int, default=3)
    args = parser.parse_args()

    if not os.path.exists(args.input):
        print(f"Input not found: {args.input}", file=sys.stderr)
        return 1

    os.makedirs(args.out_dir, exist_ok=True)
    rows = []
    totals = {"raw": 0, "comp": 0}

    for path in iter_input_files(args.input):
        with open(path, "rb") as f:
            data = f.read()
        if not data:
            continue
        row = {"file": os.path.relpath(path, args.input) if os.path.isdir(args.input) else os.path.basename(path)}
        row.update(analyze_bytes(data, args.zstd_level))
        rows.append(row)
        totals["raw"] += row["raw_bytes"]
        totals["comp"] += row["comp_bytes"]

    if not rows:
        print(f"No non-empty files found under {args.input}", file=sys.stderr)
        return 1

    csv_path = os.path.join(args.out_dir, "huffman_metrics.csv")
    write_csv(csv_path, rows)

    summary_path = os.path.join(args.out_dir, "huffman_summary.md")
    with open(summary_path, "w", encoding="utf-8") as f:
        f.write("# Huffman Compression Summary\n\n")
        f.write(f"- Files analyzed: {len(rows)}\n")
        f.write(f"- zstd level: {args.zstd_level}\n\n")
        f.write(f"- Total raw bytes: {totals['raw']}\n")
        f.write(f"- Total compressed bytes: {totals['comp']}\n")
        f.write(f"- Weighted Huffman ratio: {ratio(totals['raw'], totals['comp']):.3f}\n")
        f.write(f"- Mean entropy (bits/byte): {np.mean([r['entropy_bits'] for r in rows]):.3f}\n")
        f.write(f"- Mean Huffman code length (bits/byte): {np.mean([r['huffman_bits'] for r in rows]):.3f}\n")

    print(f"Wrote {csv_path}")
    print(f"Wrote {summary_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
