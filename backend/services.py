import io
import logging
from typing import Any, Dict, Iterable, List, Optional, Union

import pandas as pd

from exceptions import BadRequestError, ConflictError, NotFoundError
from models import MenuCreate, MenuNode, MenuOrder, MenuUpdate
from repository import UNSET, MenuRepository
from tree_utils import (
    attach_direct_children,
    build_tree,
    compute_depth,
    densify_orders,
    flatten_tree,
    get_ancestor_path,
    group_children,
    is_descendant,
    validate_reorder_set,
)

logger = logging.getLogger(__name__)


class MenuService:
    """Service for managing the menu tree.

    The only writer of menu rows. Every check runs before the first write, so
    a rejected call leaves the store untouched.
    """

    def __init__(self, repository: MenuRepository):
        self.repository = repository

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _reject(self, error):
        logger.warning(f"Menu request rejected ({error.error}): {error.message}")
        return error

    def _get_or_404(self, menu_id: str, label: str = "Menu") -> MenuNode:
        menu = self.repository.find_by_id(menu_id)
        if menu is None:
            raise self._reject(NotFoundError(f"{label} with ID {menu_id} not found"))
        return menu

    def _ensure_unique_name(self, name: str, parent_id: Optional[str], exclude_id: Optional[str] = None):
        if self.repository.find_many(parent_id=parent_id, name=name, exclude_id=exclude_id):
            raise self._reject(ConflictError(f'Menu with name "{name}" already exists at this level'))

    def _index(self) -> Dict[str, MenuNode]:
        return {node.id: node for node in self.repository.find_many()}

    @staticmethod
    def _with_direct_children(nodes: Iterable[MenuNode], all_nodes: Iterable[MenuNode]) -> List[MenuNode]:
        groups = group_children(all_nodes)
        return [
            node.model_copy(update={"children": [child.model_copy() for child in groups.get(node.id, [])]})
            for node in nodes
        ]

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_flat(self) -> List[MenuNode]:
        """Every menu with its direct children, for list and admin views."""
        return attach_direct_children(self.repository.find_many())

    def list_tree(self) -> List[MenuNode]:
        return build_tree(self.repository.find_many())

    def get_one(self, menu_id: str) -> MenuNode:
        menu = self._get_or_404(menu_id)
        index = self._index()
        children = self.repository.find_many(parent_id=menu_id)
        return menu.model_copy(update={"children": children, "depth": compute_depth(menu_id, index)})

    def get_path(self, menu_id: str) -> List[MenuNode]:
        """Breadcrumb from the root menu down to ``menu_id``."""
        self._get_or_404(menu_id)
        return get_ancestor_path(menu_id, self._index())

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(self, data: MenuCreate) -> MenuNode:
        fields = data.model_dump()
        parent_id = fields.get("parent_id")

        if parent_id is not None:
            self._get_or_404(parent_id, "Parent menu")

        self._ensure_unique_name(fields["name"], parent_id)

        menu = self.repository.create(fields)
        logger.info(f"Created menu '{menu.name}' ({menu.id}) under {parent_id or 'root'}")
        return menu.model_copy(update={"children": []})

    def update(self, menu_id: str, data: Union[MenuUpdate, Dict[str, Any]]) -> MenuNode:
        """Apply a partial update.

        A ``parent_id`` key in the patch reparents the node (``None`` moves it
        to the root group); a missing key leaves the parent alone.
        """
        existing = self._get_or_404(menu_id)
        fields = data.model_dump(exclude_unset=True) if isinstance(data, MenuUpdate) else dict(data)

        new_parent_id = fields.get("parent_id", existing.parent_id)
        parent_changed = "parent_id" in fields and new_parent_id != existing.parent_id

        if "parent_id" in fields and new_parent_id is not None:
            if new_parent_id == menu_id:
                raise self._reject(BadRequestError("Menu cannot be its own parent"))

            if is_descendant(menu_id, new_parent_id, self.repository.find_many()):
                raise self._reject(
                    BadRequestError("Cannot set parent to a descendant menu (circular reference)")
                )

            self._get_or_404(new_parent_id, "Parent menu")

        name_changed = "name" in fields and fields["name"] != existing.name
        if name_changed or parent_changed:
            self._ensure_unique_name(fields.get("name", existing.name), new_parent_id, exclude_id=menu_id)

        if fields:
            self.repository.update(menu_id, fields)
            logger.info(f"Updated menu {menu_id}: {', '.join(sorted(fields))}")
        return self.get_one(menu_id)

    def move(self, menu_id: str, parent_id: Any = UNSET) -> MenuNode:
        """Reparent through ``update``; ``None`` moves to the root, UNSET keeps the parent."""
        return self.update(menu_id, {} if parent_id is UNSET else {"parent_id": parent_id})

    def remove(self, menu_id: str) -> Dict[str, str]:
        menu = self._get_or_404(menu_id)

        if self.repository.find_many(parent_id=menu_id):
            raise self._reject(
                BadRequestError(
                    "Cannot delete menu that has children. "
                    "Delete children first or move them to another parent."
                )
            )

        self.repository.delete(menu_id)
        logger.info(f"Deleted menu '{menu.name}' ({menu_id})")
        return {"message": f'Menu "{menu.name}" deleted successfully'}

    def reorder_siblings(
        self,
        parent_id: Optional[str],
        assignments: List[Union[MenuOrder, Dict[str, Any]]],
        dense: bool = False,
    ) -> List[MenuNode]:
        """Set ``order`` for one whole sibling group in a single transaction.

        ``assignments`` must name exactly the current children of
        ``parent_id`` (the root group when ``None``). With ``dense`` the
        requested sequence is renumbered 0..n-1.
        """
        orders = [a if isinstance(a, MenuOrder) else MenuOrder(**a) for a in assignments]
        siblings = self.repository.find_many(parent_id=parent_id)
        try:
            validate_reorder_set((sibling.id for sibling in siblings), orders)
        except BadRequestError as exc:
            raise self._reject(exc)

        if dense:
            orders = densify_orders(orders)

        self.repository.run_atomic([(item.id, {"order": item.order}) for item in orders])
        logger.info(f"Reordered {len(orders)} menu(s) under {parent_id or 'root'}")

        refreshed = self.repository.find_many()
        group = [node for node in refreshed if node.parent_id == parent_id]
        return self._with_direct_children(sorted(group, key=lambda n: n.order), refreshed)


class MenuExportService:
    """Export the menu tree as CSV or Excel for administration views"""

    COLUMNS = ["id", "name", "path", "depth", "order", "isActive", "url", "icon", "description", "parentId"]

    @staticmethod
    def export_rows(tree: List[MenuNode]) -> pd.DataFrame:
        """One row per menu in pre-order, with depth and a name path."""
        trail: List[str] = []
        records = []
        for node in flatten_tree(tree, with_depth=True):
            del trail[node.depth:]
            trail.append(node.name)
            records.append(
                {
                    "id": node.id,
                    "name": node.name,
                    "path": " / ".join(trail),
                    "depth": node.depth,
                    "order": node.order,
                    "isActive": node.is_active,
                    "url": node.url,
                    "icon": node.icon,
                    "description": node.description,
                    "parentId": node.parent_id,
                }
            )
        return pd.DataFrame(records, columns=MenuExportService.COLUMNS)

    @staticmethod
    def export_to_csv(df: pd.DataFrame) -> str:
        logger.info(f"Starting CSV export for {len(df)} menus")
        output = io.StringIO()
        try:
            df.to_csv(output, index=False, lineterminator="\n")
            return output.getvalue()
        finally:
            output.close()

    @staticmethod
    def export_to_excel(df: pd.DataFrame) -> bytes:
        logger.info(f"Starting Excel export for {len(df)} menus")
        output = io.BytesIO()
        try:
            with pd.ExcelWriter(output, engine="xlsxwriter") as writer:
                df.to_excel(writer, sheet_name="Menus", index=False)

                workbook = writer.book
                worksheet = writer.sheets["Menus"]
                header_format = workbook.add_format({
                    "bold": True,
                    "valign": "top",
                    "fg_color": "#D7E4BC",
                    "border": 1,
                })
                for col_num, value in enumerate(df.columns.values):
                    worksheet.write(0, col_num, value, header_format)

                # Cap column width to reasonable size
                for i, col in enumerate(df.columns):
                    longest = df[col].astype(str).map(len).max() if not df.empty else 0
                    worksheet.set_column(i, i, min(max(longest, len(col)) + 2, 50))

            result = output.getvalue()
            logger.info(f"Excel export completed, file size: {len(result)} bytes")
            return result
        finally:
            output.close()
