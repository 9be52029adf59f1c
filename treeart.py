"""
Tree art: lay a Huffman tree out on a character grid and draw it.

Left children go straight down YOFFSET rows, right children stay on the
parent's row and move right. A right child is pushed past the right
branches of its left sibling's subtree, but never further than the widest
column used so far.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Tuple

import matplotlib.pyplot as plt
from matplotlib.lines import Line2D
from matplotlib.patches import Circle

from huffman import Internal, Leaf, Node, generate_codes

logger = logging.getLogger(__name__)

XOFFSET = 2
YOFFSET = 2
PNODE = '#'
HBRANCH = '-'
VBRANCH = '|'
EMPTY = ' '


def glyph(node: Node) -> str:
    if isinstance(node, Internal):
        return PNODE
    ch = chr(node.symbol)
    return ch if ch.isprintable() and ch.isascii() and ch != EMPTY else '?'


def right_branch_offset(node) -> int:
    # horizontal room needed by the right branches below node
    if isinstance(node, Leaf):
        return 0
    return right_branch_offset(node.left) + right_branch_offset(node.right) + XOFFSET


def grid_height(node, height: int = 0) -> int:
    # deepest row reached, counting only left descents
    if isinstance(node, Leaf):
        return height
    return max(height, grid_height(node.left, height + YOFFSET), grid_height(node.right, height))


def layout(root: Node) -> Dict[Node, Tuple[int, int]]:
    """Return the (x, y) grid cell of every node in the tree."""
    positions: Dict[Node, Tuple[int, int]] = {}
    xmax = 0

    def place(node, y, x):
        nonlocal xmax
        xmax = max(xmax, x)
        positions[node] = (x, y)
        if isinstance(node, Leaf):
            return
        dx = right_branch_offset(node.left) if isinstance(node.right, Internal) else 0
        place(node.left, y + YOFFSET, x)
        place(node.right, y, min(x + dx, xmax) + XOFFSET)

    place(root, 0, 0)
    return positions


def render_grid(root: Node) -> List[List[str]]:
    positions = layout(root)
    width = right_branch_offset(root) + XOFFSET
    height = grid_height(root) + YOFFSET
    grid = [[EMPTY] * width for _ in range(height)]

    def draw(node):
        x, y = positions[node]
        grid[y][x] = glyph(node)
        if isinstance(node, Leaf):
            return
        draw(node.left)
        draw(node.right)
        for i in range(1, YOFFSET):
            grid[y + i][x] = VBRANCH
        i = 1
        while x + i < width and grid[y][x + i] == EMPTY:
            grid[y][x + i] = HBRANCH
            i += 1

    draw(root)
    return grid


def render_ascii(root: Node) -> str:
    lines = ["".join(row).rstrip() for row in render_grid(root)]
    return "\n".join(lines).rstrip("\n")


def plot_tree(root: Node, path, title: str = "Huffman Tree (left=0, right=1)") -> Path:
    """Draw the tree with the grid layout and save it as an image."""
    positions = layout(root)
    codes = generate_codes(root)

    fig, ax = plt.subplots(figsize=(max(4, len(positions) * 0.4), max(3, grid_height(root) * 0.6 + 2)))

    for node, (x, y) in positions.items():
        if isinstance(node, Leaf):
            continue
        for child, bit in ((node.left, "0"), (node.right, "1")):
            cx, cy = positions[child]
            ax.add_line(Line2D([x, cx], [-y, -cy], color="darkblue"))
            ax.text((x + cx) / 2, (-y - cy) / 2 + 0.1, bit, fontsize=8, ha="center", va="bottom", color="darkblue")

    for node, (x, y) in positions.items():
        leaf = isinstance(node, Leaf)
        ax.add_patch(Circle((x, -y), 0.3, facecolor="white" if leaf else "navy", edgecolor="black"))
        ax.text(x, -y, glyph(node) if leaf else str(node.frequency), fontsize=8,
                ha="center", va="center", color="black" if leaf else "white")
        if leaf:
            ax.text(x, -y - 0.45, f"{codes[node.symbol]}\n({node.frequency})", fontsize=7, ha="center", va="top")

    xs = [p[0] for p in positions.values()]
    ys = [-p[1] for p in positions.values()]
    ax.set_xlim(min(xs) - 1, max(xs) + 1)
    ax.set_ylim(min(ys) - 1.5, max(ys) + 1)
    ax.set_aspect("equal")
    ax.axis("off")
    ax.set_title(title)

    path = Path(path)
    fig.tight_layout()
    fig.savefig(path, dpi=150)
    plt.close(fig)
    logger.info("tree drawing saved to %s", path)
    return path
