"""Tree helpers for menu records.

Everything here is pure: inputs are never mutated and every node handed back
is a copy. Menus are stored as a parent-pointer table, so most helpers start
from a flat list of ``MenuNode`` records. The walks are iterative, so tree
depth is bounded only by the data.
"""

from collections import defaultdict, deque
from typing import Dict, Iterable, List, Optional, Set

from exceptions import BadRequestError, TreeIntegrityError
from models import MenuNode, MenuOrder


def group_children(nodes: Iterable[MenuNode]) -> Dict[Optional[str], List[MenuNode]]:
    """Map each parent id (None for the root group) to its children.

    Siblings are sorted by ``order``; the sort is stable, so equal orders keep
    input order (the repositories return rows in insertion order).
    """
    groups: Dict[Optional[str], List[MenuNode]] = defaultdict(list)
    for node in nodes:
        groups[node.parent_id].append(node)
    for siblings in groups.values():
        siblings.sort(key=lambda n: n.order)
    return groups


def build_tree(nodes: Iterable[MenuNode]) -> List[MenuNode]:
    """Assemble flat records into a forest and return its roots.

    Nodes whose parent is missing from ``nodes`` are left out rather than
    promoted to the root group.
    """
    nodes = list(nodes)
    if not nodes:
        return []

    copies = {node.id: node.model_copy(update={"children": []}) for node in nodes}
    roots: List[MenuNode] = []
    for parent_id, siblings in group_children(nodes).items():
        assembled = [copies[sibling.id] for sibling in siblings]
        if parent_id is None:
            roots = assembled
        elif parent_id in copies:
            copies[parent_id].children = assembled

    queue = deque((root, 0) for root in roots)
    while queue:
        node, depth = queue.popleft()
        node.depth = depth
        queue.extend((child, depth + 1) for child in node.children)
    return roots


def flatten_tree(tree: Iterable[MenuNode], with_depth: bool = False) -> List[MenuNode]:
    """Pre-order walk of a nested forest; returned nodes have no children."""
    result: List[MenuNode] = []
    stack = [(node, 0) for node in reversed(list(tree))]
    while stack:
        node, level = stack.pop()
        update = {"children": None}
        if with_depth:
            update["depth"] = level
        result.append(node.model_copy(update=update))
        for child in reversed(node.children or []):
            stack.append((child, level + 1))
    return result


def attach_direct_children(nodes: Iterable[MenuNode]) -> List[MenuNode]:
    """Every node with one level of children; grandchildren are not loaded."""
    nodes = list(nodes)
    groups = group_children(nodes)
    result = []
    for node in sorted(nodes, key=lambda n: n.order):
        children = [child.model_copy(update={"children": None}) for child in groups.get(node.id, [])]
        result.append(node.model_copy(update={"children": children}))
    return result


def _walk_ancestors(node_id: str, nodes_by_id: Dict[str, MenuNode]) -> List[MenuNode]:
    """Return ``[node, parent, grandparent, ...]`` up to the root."""
    node = nodes_by_id[node_id]
    chain = [node]
    seen = {node.id}
    while node.parent_id is not None:
        if node.parent_id in seen:
            raise TreeIntegrityError(f"Cyclic ancestry detected at menu {node.parent_id}")
        parent = nodes_by_id.get(node.parent_id)
        if parent is None:
            raise TreeIntegrityError(
                f"Menu {node.id} references missing parent {node.parent_id}"
            )
        seen.add(parent.id)
        chain.append(parent)
        node = parent
    return chain


def compute_depth(node_id: str, nodes_by_id: Dict[str, MenuNode]) -> int:
    """0 for a root, otherwise one more than the parent's depth."""
    return len(_walk_ancestors(node_id, nodes_by_id)) - 1


def get_ancestor_path(node_id: str, nodes_by_id: Dict[str, MenuNode]) -> List[MenuNode]:
    """Breadcrumb from the root down to (and including) ``node_id``."""
    chain = reversed(_walk_ancestors(node_id, nodes_by_id))
    return [
        node.model_copy(update={"children": None, "depth": depth})
        for depth, node in enumerate(chain)
    ]


def collect_descendants(node_id: str, nodes: Iterable[MenuNode]) -> Set[str]:
    """Ids of every node below ``node_id``."""
    children_of: Dict[str, List[str]] = defaultdict(list)
    for node in nodes:
        if node.parent_id is not None:
            children_of[node.parent_id].append(node.id)

    found: Set[str] = set()
    stack = [node_id]
    while stack:
        current = stack.pop()
        for child_id in children_of.get(current, ()):
            if child_id == node_id or child_id in found:
                raise TreeIntegrityError(f"Cyclic ancestry detected at menu {child_id}")
            found.add(child_id)
            stack.append(child_id)
    return found


def is_descendant(node_id: str, candidate_id: str, nodes: Iterable[MenuNode]) -> bool:
    return candidate_id in collect_descendants(node_id, nodes)


def validate_reorder_set(current_ids: Iterable[str], assignments: List[MenuOrder]) -> None:
    """The assignments must name exactly the current sibling group."""
    requested = [assignment.id for assignment in assignments]
    if len(set(requested)) != len(requested):
        raise BadRequestError("Reorder request lists the same menu more than once")
    if set(requested) != set(current_ids):
        raise BadRequestError("Some menus not found or do not belong to the specified parent")


def densify_orders(assignments: List[MenuOrder]) -> List[MenuOrder]:
    """Renumber to 0..n-1, keeping the requested relative order."""
    ranked = sorted(assignments, key=lambda a: a.order)
    return [MenuOrder(id=assignment.id, order=index) for index, assignment in enumerate(ranked)]
