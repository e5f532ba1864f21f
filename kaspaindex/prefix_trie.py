"""A byte-prefix trie mapping prefixes to rule indexes."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class _Node:
    children: dict[int, _Node] = field(default_factory=dict)
    rule_index: int | None = None


class PrefixTrie:
    """Longest-prefix matching over byte strings."""

    def __init__(self) -> None:
        self._root = _Node()

    def insert(self, prefix: bytes, rule_index: int) -> None:
        """Associate a byte prefix with a rule index."""
        node = self._root
        for byte in prefix:
            node = node.children.setdefault(byte, _Node())
        node.rule_index = rule_index

    def lookup(self, data: bytes) -> int | None:
        """Return the rule index of the longest prefix of data, or None."""
        node = self._root
        last_match = None
        for byte in data:
            if node.rule_index is not None:
                last_match = node.rule_index
            child = node.children.get(byte)
            if child is None:
                break
            node = child
        if node.rule_index is not None:
            last_match = node.rule_index
        return last_match

    def is_empty(self) -> bool:
        return not self._root.children

    def node_count(self) -> int:
        """Number of nodes, root included."""
        count = 0
        stack = [self._root]
        while stack:
            node = stack.pop()
            count += 1
            stack.extend(node.children.values())
        return count