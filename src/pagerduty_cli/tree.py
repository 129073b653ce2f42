"""Plain-text tree rendering with box-drawing guides."""

from __future__ import annotations

from dataclasses import dataclass, field

BRANCH = "├─ "
LAST_BRANCH = "└─ "
PIPE = "│  "
SPACE = "   "


@dataclass
class TreeNode:
    label: str
    children: list[TreeNode] = field(default_factory=list)

    def add(self, label: str) -> TreeNode:
        """Append a child node and return it."""
        child = TreeNode(label)
        self.children.append(child)
        return child


def _render_node(node: TreeNode, prefix: str, is_last: bool, lines: list[str]) -> None:
    lines.append(f"{prefix}{LAST_BRANCH if is_last else BRANCH}{node.label}")
    child_prefix = prefix + (SPACE if is_last else PIPE)
    for idx, child in enumerate(node.children):
        _render_node(child, child_prefix, idx == len(node.children) - 1, lines)


def render_tree(roots: list[TreeNode]) -> str:
    """Render a forest depth-first, pre-order, one node per line.

    Returns an empty string for an empty forest. Lines are joined with
    ``\\n`` and carry no trailing newline.
    """
    lines: list[str] = []
    for idx, root in enumerate(roots):
        _render_node(root, "", idx == len(roots) - 1, lines)
    return "\n".join(lines)
