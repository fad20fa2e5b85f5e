#!/usr/bin/env python3
import heapq
from typing import Dict, Iterable, List, NamedTuple, Union

import numpy as np

from bit_io import BitReader, BitWriter, ExhaustedStreamError, ValueOutOfRangeError


ALPHABET_SIZE = 256
MAX_LENGTH = 0xFFFFFFFF


class EmptyInputError(ValueError):
    pass


class TruncatedStreamError(ValueError):
    pass


class MalformedTrieError(ValueError):
    pass


class Leaf(NamedTuple):
    symbol: int
    freq: int = 0


class Internal(NamedTuple):
    left: "Node"
    right: "Node"
    freq: int = 0


Node = Union[Leaf, Internal]


def compute_frequencies(data: Union[bytes, bytearray, memoryview, Iterable[int]]) -> np.ndarray:
    if isinstance(data, (bytes, bytearray, memoryview)):
        arr = np.frombuffer(data, dtype=np.uint8)
    else:
        arr = np.fromiter(data, dtype=np.int64)
        if arr.size and (arr.min() < 0 or arr.max() >= ALPHABET_SIZE):
            raise ValueError("Symbols must be in 0..255.")
    return np.bincount(arr, minlength=ALPHABET_SIZE).astype(np.int64)


def build_trie(freqs: Iterable[int]) -> Node:
    """Greedy Huffman merge over the non-zero entries of `freqs`.

    Heap entries are (freq, seq, node). Leaves are seeded in symbol order and
    every merged node takes the next seq, so equal frequencies pop in
    insertion order.
    """
    heap = []
    for sym, f in enumerate(freqs):
        if f < 0:
            raise ValueError(f"Negative frequency for symbol {sym}.")
        if f > 0:
            heap.append((int(f), len(heap), Leaf(sym, int(f))))
    if not heap:
        raise EmptyInputError("Cannot build a trie without symbols.")
    heapq.heapify(heap)

    seq = len(heap)
    while len(heap) > 1:
        f1, _, first = heapq.heappop(heap)
        f2, _, second = heapq.heappop(heap)
        heapq.heappush(heap, (f1 + f2, seq, Internal(first, second, f1 + f2)))
        seq += 1
    return heap[0][2]


def build_codes(root: Node) -> Dict[int, str]:
    codes: Dict[int, str] = {}

    def walk(node: Node, prefix: str) -> None:
        if isinstance(node, Leaf):
            codes[node.symbol] = prefix
            return
        walk(node.left, prefix + "0")
        walk(node.right, prefix + "1")

    walk(root, "")
    return codes


def code_lengths(root: Node) -> List[int]:
    lengths = [0] * ALPHABET_SIZE
    for sym, code in build_codes(root).items():
        lengths[sym] = len(code)
    return lengths


def encoded_bit_length(freqs: Iterable[int], codes: Dict[int, str]) -> int:
    return sum(int(f) * len(codes[sym]) for sym, f in enumerate(freqs) if f > 0)


def count_leaves(root: Node) -> int:
    if isinstance(root, Leaf):
        return 1
    return count_leaves(root.left) + count_leaves(root.right)


def write_trie(writer: BitWriter, node: Node) -> None:
    if isinstance(node, Leaf):
        writer.write_bit(1)
        writer.write_char(node.symbol, 8)
        return
    writer.write_bit(0)
    write_trie(writer, node.left)
    write_trie(writer, node.right)


def read_trie(reader: BitReader, depth: int = 0) -> Node:
    # 256 leaves bound a Huffman trie to depth 255
    if depth >= ALPHABET_SIZE:
        raise MalformedTrieError(f"Trie deeper than {ALPHABET_SIZE - 1} levels.")
    if reader.read_bit():
        return Leaf(reader.read_char(8))
    left = read_trie(reader, depth + 1)
    right = read_trie(reader, depth + 1)
    return Internal(left, right)


def compress(data: Union[bytes, bytearray, memoryview], writer: BitWriter) -> Node:
    """Encode `data` as trie, 32-bit length, then the packed codes; closes `writer`.

    Returns the trie so callers can report on it without rebuilding it.
    """
    data = bytes(data)
    if not data:
        raise EmptyInputError("Cannot compress empty input.")
    if len(data) > MAX_LENGTH:
        raise ValueOutOfRangeError(f"Input of {len(data)} bytes exceeds the 32-bit length field.")

    freqs = compute_frequencies(data)
    root = build_trie(freqs)
    codes = build_codes(root)

    write_trie(writer, root)
    writer.write_int(len(data))
    # a code may be empty (single-symbol input) or longer than 32 bits
    for byte in data:
        for bit in codes[byte]:
            writer.write_bit(bit == "1")
    writer.close()
    return root


def decompress(reader: BitReader, writer: BitWriter) -> None:
    """Decode one artifact from `reader` into `writer` as 8-bit symbols; closes `writer`."""
    try:
        root = read_trie(reader)
        length = reader.read_int()
    except ExhaustedStreamError as exc:
        raise TruncatedStreamError("Stream ended inside the header.") from exc

    for i in range(length):
        node = root
        while isinstance(node, Internal):
            if reader.is_empty:
                raise TruncatedStreamError(f"Stream ended after {i} of {length} symbols.")
            node = node.right if reader.read_bit() else node.left
        writer.write_byte(node.symbol)
    writer.close()


def compress_bytes(data: Union[bytes, bytearray, memoryview]) -> bytes:
    writer = BitWriter()
    compress(data, writer)
    return writer.getvalue()


def decompress_bytes(blob: bytes) -> bytes:
    writer = BitWriter()
    decompress(BitReader(blob), writer)
    return writer.getvalue()
