# report.py

"""
Huffman code report for a file

Counts the bytes of the input, builds the Huffman tree and prints one line
per symbol with its bit string, code length and frequency, followed by the
number of bytes the encoded file would take.

How to run:
  python report.py notes.txt
  python report.py notes.txt --tree
  python report.py notes.txt --plot tree.png --csv codes.csv

Output line format:
  'e' :     110 (  3 *   16)
  010 :    1111 (  4 *    9)      <- non-printable symbols as 3-digit decimals
"""

from __future__ import annotations

import argparse
import csv
import logging
import sys
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Dict, List, Mapping

import matplotlib

import huffman as huff
import treeart

logger = logging.getLogger(__name__)


# Utilities

def read_frequencies(path: Path) -> Dict[int, int]:
    return huff.build_frequency_table(Path(path).read_bytes())

def format_symbol(symbol: int) -> str:
    ch = chr(symbol)
    if ch.isascii() and ch.isprintable():
        return f"'{ch}'"
    return f"{symbol:03d}"


# Report rows

@dataclass
class SymbolRow:
    symbol: int
    code: str
    length: int
    frequency: int
    bits: int


def build_rows(root: huff.Node, ft: Mapping[int, int]) -> List[SymbolRow]:
    """
    One row per symbol of the frequency table, in ascending symbol order
    Codes are looked up one symbol at a time
    """
    rows: List[SymbolRow] = []
    for symbol in sorted(ft):
        count = ft[symbol]
        if not count:
            continue
        code = huff.encode(root, symbol)
        rows.append(SymbolRow(symbol, code, len(code), count, len(code) * count))
    return rows


def total_bytes(rows: List[SymbolRow]) -> int:
    return huff.bits_to_bytes(sum(r.bits for r in rows))


def format_report(rows: List[SymbolRow], height: int) -> str:
    # codes are right-aligned in a column one wider than the longest code
    width = height + 1
    lines = [
        f"{format_symbol(r.symbol)} :{r.code:>{width}} ({r.length:3d} * {r.frequency:4d})"
        for r in rows
    ]
    lines.append(f"{total_bytes(rows)} Bytes")
    return "\n".join(lines) + "\n\n"  # blank line after the total


def write_csv(path: Path, rows: List[SymbolRow]) -> None:
    with path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=[fld.name for fld in fields(SymbolRow)])
        w.writeheader()
        w.writerows(asdict(r) for r in rows)


# Main

def parse_args(argv=None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Print the Huffman encoding of every byte in a file.")
    ap.add_argument("path", type=Path, help="Input file")
    ap.add_argument("--tree", action="store_true", help="Also print the tree as ASCII art")
    ap.add_argument("--plot", type=Path, default=None, help="Save a drawing of the tree to this image file")
    ap.add_argument("--csv", type=Path, default=None, help="Write the per-symbol rows to this CSV file")
    ap.add_argument("-v", "--verbose", action="store_true", help="Log each merge step")
    return ap.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    store = huff.NodeStore()
    try:
        ft = read_frequencies(args.path)
        root = huff.build_huffman_tree(ft, store)
    except (huff.HuffmanError, OSError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    try:
        rows = build_rows(root, ft)
        sys.stdout.write(format_report(rows, huff.tree_height(root)))

        if args.tree:
            print(treeart.render_ascii(root))

        if args.csv is not None:
            write_csv(args.csv, rows)
            logger.info("wrote %d rows to %s", len(rows), args.csv)

        if args.plot is not None:
            matplotlib.use("Agg")  # image file only, no window
            treeart.plot_tree(root, args.plot, title=f"Huffman Tree: {args.path.name}")
    except OSError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    finally:
        store.destroy_tree(root)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
