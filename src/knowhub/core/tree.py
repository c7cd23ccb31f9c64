"""Build the navigable vault tree from a flat record list."""

import logging
from collections.abc import Iterable, Iterator, Sequence

from knowhub.core.paths import is_descendant_or_self, normalize
from knowhub.core.types import FolderRecord, NoteRecord, TreeNode

logger = logging.getLogger(__name__)


def sort_key(node: TreeNode) -> tuple[int, str, str]:
    """Folders first, then case-insensitive title, then id."""
    return (0 if node.is_folder else 1, node.title.casefold(), node.id)


def sort_tree(nodes: list[TreeNode]) -> None:
    """Sort every level of the tree in place, each level independently."""
    nodes.sort(key=sort_key)
    for node in nodes:
        if node.children:
            sort_tree(node.children)


def build_tree(records: Sequence[NoteRecord | FolderRecord]) -> list[TreeNode]:
    """
    Convert a flat record list into sorted root nodes.

    Folder nodes are created once and shared by reference, so children attach
    to the same node that is later placed under its own parent. A record whose
    parent path is not a known folder is promoted to root.

    Args:
        records: Notes and folders as reported by the store

    Returns:
        Root-level nodes, recursively sorted
    """
    folders: dict[str, TreeNode] = {}
    for record in records:
        if record.is_folder and record.id not in folders:
            folders[record.id] = TreeNode(record)

    roots: list[TreeNode] = []
    orphans = 0
    for record in records:
        node = folders.get(record.id) if record.is_folder else None
        if node is None or node.record is not record:
            node = TreeNode(record)

        parent = normalize(record.path)
        if not parent:
            roots.append(node)
        elif parent in folders and not (
            record.is_folder and is_descendant_or_self(parent, record.id)
        ):
            folders[parent].children.append(node)
        else:
            orphans += 1
            roots.append(node)

    if orphans:
        logger.debug("Promoted %d orphaned records to root", orphans)

    sort_tree(roots)
    return roots


def iter_nodes(nodes: Iterable[TreeNode]) -> Iterator[TreeNode]:
    """Depth-first walk over every node."""
    for node in nodes:
        yield node
        if node.children:
            yield from iter_nodes(node.children)


def collect_folder_ids(nodes: Iterable[TreeNode]) -> set[str]:
    """Ids of every folder present in the tree."""
    return {node.id for node in iter_nodes(nodes) if node.is_folder}


def find_node(nodes: Iterable[TreeNode], item_id: str) -> TreeNode | None:
    """Locate a node by id."""
    return next((node for node in iter_nodes(nodes) if node.id == item_id), None)
