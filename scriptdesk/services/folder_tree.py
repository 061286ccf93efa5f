"""Pure operations on the folder forest embedded in a Project.

Every mutator takes a forest (list of FolderNode) and returns a new one; the
input is never modified, so callers can validate the result before
persisting it.  Traversal is depth-first pre-order with children in stored
order, so lookups on an unchanged forest are deterministic.

Mutators that can change structure (insert, update) re-run
``validate_forest`` on their result, keeping the acyclic / unique-id
invariant enforced in a single place.
"""

from typing import Callable, Dict, Iterator, List, Optional

from ..exceptions import FolderNotFoundError
from ..schemas.project import FolderNode
from .validation import validate_folder_name, validate_forest

Forest = List[FolderNode]


def iter_folders(forest: Forest) -> Iterator[FolderNode]:
    """Yield every node, depth-first pre-order."""
    for node in forest:
        yield node
        if node.children:
            yield from iter_folders(node.children)


def find_folder(forest: Forest, folder_id: str) -> Optional[FolderNode]:
    for node in iter_folders(forest):
        if node.id == folder_id:
            return node
    return None


def require_folder(forest: Forest, folder_id: str) -> FolderNode:
    node = find_folder(forest, folder_id)
    if node is None:
        raise FolderNotFoundError(folder_id)
    return node


def subtree_ids(forest: Forest, folder_id: str) -> List[str]:
    """Ids of *folder_id* and all of its descendants, pre-order."""
    node = require_folder(forest, folder_id)
    return [n.id for n in iter_folders([node])]


def _map_node(
    forest: Forest,
    folder_id: str,
    fn: Callable[[FolderNode], FolderNode],
) -> Forest:
    """Copy the forest, replacing the first node with *folder_id* by fn(node)."""
    if find_folder(forest, folder_id) is None:
        raise FolderNotFoundError(folder_id)

    def walk(nodes: Forest) -> Forest:
        result = []
        for node in nodes:
            if node.id == folder_id:
                result.append(fn(node))
            elif node.children:
                result.append(node.model_copy(update={"children": walk(node.children)}))
            else:
                result.append(node)
        return result

    return walk(forest)


def insert_folder(
    forest: Forest,
    new_folder: FolderNode,
    parent_id: Optional[str] = None,
) -> Forest:
    """Append *new_folder* as the last root, or as the last child of *parent_id*."""
    if parent_id is None:
        result = list(forest) + [new_folder.model_copy(update={"parent_id": None})]
    else:
        child = new_folder.model_copy(update={"parent_id": parent_id})
        result = _map_node(
            forest,
            parent_id,
            lambda parent: parent.model_copy(
                update={"children": list(parent.children or []) + [child]}
            ),
        )

    validate_forest(result)
    return result


def update_folder(forest: Forest, folder_id: str, name: Optional[str] = None) -> Forest:
    """Replace the mutable fields of a folder. Only ``name`` is mutable."""
    patch = {}
    if name is not None:
        patch["name"] = validate_folder_name(name)

    result = _map_node(forest, folder_id, lambda node: node.model_copy(update=patch))
    validate_forest(result)
    return result


def remove_folder(forest: Forest, folder_id: str) -> Forest:
    """Remove a folder together with its whole subtree.

    Scripts filed under the removed folders are not touched here.
    """
    if find_folder(forest, folder_id) is None:
        raise FolderNotFoundError(folder_id)

    def walk(nodes: Forest) -> Forest:
        result = []
        for node in nodes:
            if node.id == folder_id:
                continue
            if node.children:
                node = node.model_copy(update={"children": walk(node.children)})
            result.append(node)
        return result

    return walk(forest)


def adjust_script_count(forest: Forest, folder_id: str, delta: int) -> Forest:
    """Add *delta* to a folder's script count, clamped at zero."""
    return _map_node(
        forest,
        folder_id,
        lambda node: node.model_copy(
            update={"script_count": max(0, node.script_count + delta)}
        ),
    )


def set_script_counts(forest: Forest, counts: Dict[str, int]) -> Forest:
    """Overwrite every folder's count from *counts*; folders not listed get 0."""
    def walk(nodes: Forest) -> Forest:
        result = []
        for node in nodes:
            update = {"script_count": max(0, counts.get(node.id, 0))}
            if node.children:
                update["children"] = walk(node.children)
            result.append(node.model_copy(update=update))
        return result

    return walk(forest)


def total_scripts(forest: Forest) -> int:
    return sum(node.script_count for node in iter_folders(forest))


def depth(forest: Forest) -> int:
    """Number of levels in the forest; roots are level 1, an empty forest is 0."""
    return max((1 + depth(node.children or []) for node in forest), default=0)
