"""
Huffman tree construction over a sorted array of nodes.

The frontier of unmerged nodes is sorted once. After every merge the parent
is put back in place with a binary search for its slot plus a shift of the
entries in front of it, so the array never needs re-sorting.
"""

from __future__ import annotations

import enum
import logging
from collections import Counter
from dataclasses import dataclass, field
from operator import attrgetter
from typing import Dict, Iterator, List, Mapping, Optional, Tuple, Union

logger = logging.getLogger(__name__)

ALPHABET_SIZE = 256
BITS_PER_BYTE = 8


# Errors

class HuffmanError(Exception):
    """Base class for every error raised while building or reading a tree."""


class InsufficientSymbolsError(HuffmanError):
    def __init__(self, count: int):
        super().__init__(f"too few symbols to build tree: {count} (need at least 2)")
        self.count = count


class AllocationError(HuffmanError):
    pass


class DoubleReleaseError(HuffmanError):
    pass


class EncodingNotFoundError(HuffmanError, LookupError):
    def __init__(self, symbol: int):
        super().__init__(f"symbol {symbol} not found in tree")
        self.symbol = symbol


class FrequencyTableError(HuffmanError, ValueError):
    pass


class FrontierInvariantError(HuffmanError, AssertionError):
    pass


# Nodes

@dataclass(frozen=True, eq=False)
class Leaf:
    symbol: int
    frequency: int
    handle: int = field(default=-1, repr=False)


@dataclass(frozen=True, eq=False)
class Internal:
    frequency: int
    left: "Node"
    right: "Node"
    handle: int = field(default=-1, repr=False)


Node = Union[Leaf, Internal]


class NodeStore:
    """Arena that hands out nodes and releases whole trees.

    Every node gets a stable handle. A node stays live until the tree that
    owns it is passed to destroy_tree.
    """

    def __init__(self, capacity: Optional[int] = None):
        self.capacity = capacity
        self._live: Dict[int, Node] = {}
        self._next_handle = 0

    def __len__(self) -> int:
        return len(self._live)

    def __contains__(self, node: Node) -> bool:
        return self._live.get(node.handle) is node

    @property
    def live_count(self) -> int:
        return len(self._live)

    def _allocate(self, make) -> Node:
        if self.capacity is not None and len(self._live) >= self.capacity:
            raise AllocationError(f"node store exhausted ({self.capacity} nodes)")
        try:
            node = make(self._next_handle)
        except MemoryError as exc:
            raise AllocationError("node allocation failed") from exc
        self._live[node.handle] = node
        self._next_handle += 1
        return node

    def create_leaf(self, symbol: int, frequency: int) -> Leaf:
        return self._allocate(lambda handle: Leaf(symbol, frequency, handle))

    def create_internal(self, frequency: int, left: Node, right: Node) -> Internal:
        return self._allocate(lambda handle: Internal(frequency, left, right, handle))

    def release(self, node: Node) -> None:
        if self._live.pop(node.handle, None) is None:
            raise DoubleReleaseError(f"node {node.handle} released twice")

    def destroy_tree(self, root: Node) -> None:
        # A tree whose root is already gone has been torn down before
        if root not in self:
            return

        def release_subtree(node):
            if isinstance(node, Internal):
                release_subtree(node.left)
                release_subtree(node.right)
            self.release(node)

        release_subtree(root)


# Frontier

class OrderedFrontier:
    """Nodes waiting to be merged, sorted ascending by frequency.

    Slots before `start` have been vacated by earlier merges and hold None.
    """

    def __init__(self, slots: List[Optional[Node]]):
        self._slots = slots
        self.start = 0

    @classmethod
    def load_sorted(cls, leaves) -> "OrderedFrontier":
        return cls(sorted(leaves, key=attrgetter("frequency")))  # stable

    def __len__(self) -> int:
        return len(self._slots) - self.start

    def __iter__(self) -> Iterator[Node]:
        return iter(self._slots[self.start:])

    def __getitem__(self, index: int) -> Optional[Node]:
        return self._slots[index]

    def front_pair(self) -> Tuple[Node, Node]:
        return self._slots[self.start], self._slots[self.start + 1]

    def root(self) -> Node:
        if len(self) != 1:
            raise FrontierInvariantError(f"{len(self)} nodes left in frontier, expected 1")
        return self._slots[-1]

    def find_insertion_point(self, key: int, search_from: int) -> int:
        """Binary search for the slot a node of frequency `key` will occupy.

        An exact match returns the matching slot straight away. Otherwise the
        slot just before the first larger entry is returned: the entries in
        front of it shift left by one when the parent goes in, so that is
        where the parent ends up.
        """
        low, high = search_from, len(self._slots) - 1
        while low <= high:
            mid = (low + high) // 2
            frequency = self._slots[mid].frequency
            if key > frequency:
                low = mid + 1
            elif key < frequency:
                high = mid - 1
            else:
                return mid
        return low - 1

    def remove_front_pair(self) -> Tuple[Node, Node]:
        pair = self.front_pair()
        self._slots[self.start] = self._slots[self.start + 1] = None
        return pair

    def shift_and_insert(self, parent: Node, target_index: int, range_start: int) -> None:
        # close the gap left by the removed pair, then drop the parent in
        self._slots[range_start:target_index] = self._slots[range_start + 1:target_index + 1]
        self._slots[target_index] = parent
        self.start = range_start + 1

    def total_frequency(self) -> int:
        return sum(node.frequency for node in self)

    def is_sorted(self) -> bool:
        live = list(self)
        if any(node is None for node in live):
            return False
        if len(set(map(id, live))) != len(live):
            return False
        return all(a.frequency <= b.frequency for a, b in zip(live, live[1:]))


# Tree building

class BuildState(enum.Enum):
    INITIALIZED = "initialized"
    MERGING = "merging"
    DONE = "done"


class TreeBuilder:
    def __init__(self, frontier: OrderedFrontier, store: Optional[NodeStore] = None,
                 check_invariants: bool = False):
        if len(frontier) < 2:
            raise InsufficientSymbolsError(len(frontier))
        self.frontier = frontier
        self.store = store if store is not None else NodeStore()
        self.check_invariants = check_invariants
        self.state = BuildState.INITIALIZED
        self.merges = 0
        self.total = frontier.total_frequency()

    def step(self) -> Internal:
        """Merge the two lowest-frequency nodes and reinsert the parent."""
        if self.state is BuildState.DONE:
            raise HuffmanError("tree is already built")
        self.state = BuildState.MERGING

        frontier = self.frontier
        start = frontier.start
        left, right = frontier.front_pair()
        parent = self.store.create_internal(left.frequency + right.frequency, left, right)

        # search while the children still sit in their slots
        target = frontier.find_insertion_point(parent.frequency, start)
        frontier.remove_front_pair()
        frontier.shift_and_insert(parent, target, start)
        self.merges += 1
        logger.debug("merge %d: %d + %d -> %d at slot %d",
                     self.merges, left.frequency, right.frequency, parent.frequency, target)

        if self.check_invariants:
            self._check()
        if len(frontier) == 1:
            self.state = BuildState.DONE
        return parent

    def _check(self) -> None:
        if not self.frontier.is_sorted():
            raise FrontierInvariantError(f"frontier out of order after merge {self.merges}")
        remaining = self.frontier.total_frequency()
        if remaining != self.total:
            raise FrontierInvariantError(
                f"frequency not conserved after merge {self.merges}: {remaining} != {self.total}")

    def build(self) -> Node:
        while self.state is not BuildState.DONE:
            self.step()
        return self.frontier.root()


def build_frequency_table(data: bytes) -> Dict[int, int]:
    return dict(Counter(data))


def _validate_table(frequency_table: Mapping[int, int]) -> List[Tuple[int, int]]:
    entries = []
    for symbol, count in frequency_table.items():
        if isinstance(symbol, bool) or not isinstance(symbol, int) or not 0 <= symbol < ALPHABET_SIZE:
            raise FrequencyTableError(f"symbol out of range: {symbol!r}")
        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            raise FrequencyTableError(f"bad count for symbol {symbol}: {count!r}")
        if count:
            entries.append((symbol, count))
    return sorted(entries)


def build_huffman_tree(frequency_table: Mapping[int, int], store: Optional[NodeStore] = None,
                       check_invariants: bool = False) -> Node:
    """Build a Huffman tree from a symbol -> count mapping and return its root.

    Leaves are created in ascending symbol order before the stable frequency
    sort, so equal counts always resolve the same way.
    """
    entries = _validate_table(frequency_table)
    if len(entries) < 2:
        raise InsufficientSymbolsError(len(entries))

    store = store if store is not None else NodeStore()
    leaves = [store.create_leaf(symbol, count) for symbol, count in entries]
    builder = TreeBuilder(OrderedFrontier.load_sorted(leaves), store, check_invariants)
    root = builder.build()
    logger.info("built tree from %d symbols in %d merges (total frequency %d)",
                len(leaves), builder.merges, root.frequency)
    return root


# Codes

def _find_path(node: Node, symbol: int, prefix: str) -> Optional[str]:
    if isinstance(node, Leaf):
        return prefix if node.symbol == symbol else None
    path = _find_path(node.left, symbol, prefix + "0")
    if path is None:
        path = _find_path(node.right, symbol, prefix + "1")
    return path


def encode(root: Node, symbol: int) -> str:
    path = _find_path(root, symbol, "")
    if path is None:
        raise EncodingNotFoundError(symbol)
    return path


def generate_codes(root): # every leaf's code in one walk
    codes = {}
    def generate_codes_helper(node, current_code):
        if isinstance(node, Leaf):
            codes[node.symbol] = current_code
            return
        generate_codes_helper(node.left, current_code + '0')
        generate_codes_helper(node.right, current_code + '1')

    generate_codes_helper(root, '')
    return codes


def tree_height(node: Node) -> int:
    if isinstance(node, Leaf):
        return 0
    return 1 + max(tree_height(node.left), tree_height(node.right))


def encoded_bits(codes: Mapping[int, str], frequency_table: Mapping[int, int]) -> int:
    return sum(len(codes[symbol]) * count for symbol, count in frequency_table.items() if count)


def bits_to_bytes(bits: int) -> int:
    return -(-bits // BITS_PER_BYTE)  # rounds up
