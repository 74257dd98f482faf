"""TreeView: expansion state and flattening of a pivot forest into rows.

Flattening walks the forest with an explicit stack, so arbitrarily deep
groupings never hit the interpreter's recursion limit.
"""

from collections.abc import Iterable, Iterator, Sequence

from retailpivot.core.logging import get_logger
from retailpivot.features.pivot.schemas import DetailRow, DisplayRow, GroupRow, PivotNode

logger = get_logger(__name__)


def iter_nodes(forest: Sequence[PivotNode]) -> Iterator[PivotNode]:
    """Yield every node of a forest in pre-order."""
    stack = list(reversed(forest))
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def all_node_ids(forest: Sequence[PivotNode]) -> list[str]:
    """Every node id of a forest in pre-order."""
    return [node.id for node in iter_nodes(forest)]


def flatten(forest: Sequence[PivotNode], expanded_ids: Iterable[str]) -> list[DisplayRow]:
    """Project a forest and an expansion set into display rows.

    A group's children (sub-groups, or one detail row per member at the
    deepest level) follow it only when its id is expanded.

    Args:
        forest: Top-level pivot nodes.
        expanded_ids: Ids of expanded nodes. Unknown ids are ignored.

    Returns:
        Group and detail rows in display order.
    """
    expanded = expanded_ids if isinstance(expanded_ids, set | frozenset) else set(expanded_ids)
    rows: list[DisplayRow] = []
    stack = list(reversed(forest))

    while stack:
        node = stack.pop()
        is_expanded = node.id in expanded
        rows.append(
            GroupRow(
                node_id=node.id,
                level=node.level,
                grouping_key=node.grouping_key,
                grouping_value=node.grouping_value,
                aggregates=dict(node.aggregates),
                has_children=node.has_children,
                is_expanded=is_expanded,
                record_count=node.record_count,
            )
        )
        if not is_expanded:
            continue
        if node.children:
            stack.extend(reversed(node.children))
        else:
            rows.extend(
                DetailRow(
                    row_id=f"{node.id}:{index}",
                    parent_id=node.id,
                    level=node.level + 1,
                    record=record,
                )
                for index, record in enumerate(node.member_records)
            )
    return rows


class TreeView:
    """Expansion state for one pivot screen.

    Ids are derived from grouping paths, so after a rebuild the same groups
    keep the same ids. ``reconcile`` decides whether expansion carries over.
    """

    def __init__(self, expanded_ids: Iterable[str] = ()) -> None:
        self.expanded_ids: set[str] = set(expanded_ids)

    def flatten(self, forest: Sequence[PivotNode]) -> list[DisplayRow]:
        """Flatten a forest with the current expansion state."""
        return flatten(forest, self.expanded_ids)

    def is_expanded(self, node_id: str) -> bool:
        return node_id in self.expanded_ids

    def expand(self, node_id: str) -> None:
        self.expanded_ids.add(node_id)

    def collapse(self, node_id: str) -> None:
        self.expanded_ids.discard(node_id)

    def toggle(self, node_id: str) -> bool:
        """Flip one node's expansion and return the new state."""
        if node_id in self.expanded_ids:
            self.expanded_ids.remove(node_id)
            return False
        self.expanded_ids.add(node_id)
        return True

    def expand_all(self, forest: Sequence[PivotNode]) -> None:
        """Expand every node of the forest."""
        self.expanded_ids = set(all_node_ids(forest))

    def collapse_all(self) -> None:
        self.expanded_ids = set()

    def expand_to_level(self, forest: Sequence[PivotNode], depth: int) -> None:
        """Expand exactly the nodes above ``depth``.

        ``expand_to_level(forest, 1)`` expands the top-level groups, so
        their children become visible.
        """
        self.expanded_ids = {node.id for node in iter_nodes(forest) if node.level < depth}

    def reconcile(self, forest: Sequence[PivotNode], preserve: bool = True) -> int:
        """Align expansion state with a freshly built forest.

        Args:
            forest: The new forest.
            preserve: Keep expanded ids that still exist in the new forest.
                When False, all expansion is reset.

        Returns:
            Number of expanded ids dropped.
        """
        before = len(self.expanded_ids)
        if preserve:
            self.expanded_ids &= set(all_node_ids(forest))
        else:
            self.expanded_ids = set()
        dropped = before - len(self.expanded_ids)
        if dropped:
            logger.debug("pivot.expansion_reconciled", dropped=dropped, preserve=preserve)
        return dropped
