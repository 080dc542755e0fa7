"""MenuService tests

Each rule of the tree is checked through the service against the in-memory
store: sibling name uniqueness, reparent guards, childless delete and the
all-or-nothing sibling reorder.
"""

import pytest

from exceptions import BadRequestError, ConflictError, NotFoundError, TreeIntegrityError
from models import MenuCreate, MenuOrder, MenuUpdate


def orders_of(service, parent_id=None):
    return [(m.name, m.order) for m in service.repository.find_many(parent_id=parent_id)]


class TestCreate:

    def test_create_root(self, service):
        menu = service.create(MenuCreate(name="Dashboard", order=1, icon="dashboard"))
        assert menu.parent_id is None
        assert menu.children == []
        assert menu.icon == "dashboard"
        assert menu.is_active is True

    def test_create_child(self, service, make_menu):
        settings = make_menu("Settings")
        general = make_menu("General", parent=settings)
        assert general.parent_id == settings.id

    def test_missing_parent(self, service):
        with pytest.raises(NotFoundError, match="Parent menu with ID ghost not found"):
            service.create(MenuCreate(name="Orphan", parent_id="ghost"))
        assert service.repository.find_many() == []

    def test_duplicate_name_at_root(self, make_menu):
        make_menu("Settings")
        with pytest.raises(ConflictError, match='"Settings" already exists'):
            make_menu("Settings")

    def test_same_name_under_different_parents(self, make_menu):
        a = make_menu("Admin")
        b = make_menu("User")
        make_menu("Settings", parent=a)
        make_menu("Settings", parent=b)
        make_menu("Settings")


class TestQueries:

    def test_get_one(self, service, make_menu):
        root = make_menu("Root")
        mid = make_menu("Mid", parent=root)
        leaf = make_menu("Leaf", parent=mid)

        fetched = service.get_one(mid.id)
        assert fetched.depth == 1
        assert [c.id for c in fetched.children] == [leaf.id]
        assert service.get_one(leaf.id).depth == 2
        assert service.get_one(leaf.id).children == []

    def test_get_one_missing(self, service):
        with pytest.raises(NotFoundError, match="Menu with ID nope not found"):
            service.get_one("nope")

    def test_get_path(self, service, make_menu):
        root = make_menu("Root")
        mid = make_menu("Mid", parent=root)
        leaf = make_menu("Leaf", parent=mid)
        assert [m.name for m in service.get_path(leaf.id)] == ["Root", "Mid", "Leaf"]
        with pytest.raises(NotFoundError):
            service.get_path("nope")

    def test_list_flat(self, service, make_menu):
        settings = make_menu("Settings", order=2)
        make_menu("Dashboard", order=1)
        make_menu("Security", order=2, parent=settings)
        general = make_menu("General", order=1, parent=settings)
        make_menu("Password", parent=general)

        flat = service.list_flat()
        assert len(flat) == 5
        entry = next(m for m in flat if m.id == settings.id)
        assert [c.name for c in entry.children] == ["General", "Security"]
        assert all(c.children is None for c in entry.children)

    def test_list_tree_unbounded_depth(self, service, make_menu):
        parent = None
        for level in range(8):
            parent = make_menu(f"Level {level}", parent=parent)

        tree = service.list_tree()
        depth = 0
        current = tree[0]
        while current.children:
            current = current.children[0]
            depth += 1
        assert depth == 7
        assert current.depth == 7

    def test_corrupted_ancestry_surfaces_integrity_error(self, service, repository, make_menu):
        a = make_menu("A")
        b = make_menu("B", parent=a)
        # Bypass the service to plant a cycle
        repository.update(a.id, {"parent_id": b.id})
        with pytest.raises(TreeIntegrityError):
            service.get_one(a.id)


class TestUpdate:

    def test_rename(self, service, make_menu):
        menu = make_menu("Dashboard")
        updated = service.update(menu.id, MenuUpdate(name="Home", url="/home"))
        assert updated.name == "Home"
        assert updated.url == "/home"

    def test_missing_target(self, service):
        with pytest.raises(NotFoundError):
            service.update("nope", MenuUpdate(name="x"))

    def test_only_sent_fields_change(self, service, make_menu):
        menu = make_menu("Dashboard", order=3, icon="dash", description="Main")
        updated = service.update(menu.id, MenuUpdate(description="Changed"))
        assert updated.icon == "dash"
        assert updated.order == 3
        assert updated.description == "Changed"

    def test_self_parent(self, service, make_menu):
        menu = make_menu("A")
        with pytest.raises(BadRequestError, match="its own parent"):
            service.update(menu.id, MenuUpdate(parent_id=menu.id))

    def test_parent_onto_descendant(self, service, make_menu):
        a = make_menu("A")
        b = make_menu("B", parent=a)
        c = make_menu("C", parent=b)
        with pytest.raises(BadRequestError, match="circular reference"):
            service.update(a.id, MenuUpdate(parent_id=c.id))
        assert service.repository.find_by_id(a.id).parent_id is None

    def test_missing_new_parent(self, service, make_menu):
        a = make_menu("A")
        with pytest.raises(NotFoundError, match="Parent menu"):
            service.update(a.id, MenuUpdate(parent_id="ghost"))

    def test_rename_collides_with_sibling(self, service, make_menu):
        make_menu("Reports")
        menu = make_menu("Dashboard")
        with pytest.raises(ConflictError):
            service.update(menu.id, MenuUpdate(name="Reports"))

    def test_rename_to_own_name_is_fine(self, service, make_menu):
        menu = make_menu("Dashboard")
        assert service.update(menu.id, MenuUpdate(name="Dashboard")).name == "Dashboard"

    def test_reparent_collides_in_target_group(self, service, make_menu):
        target = make_menu("Target")
        make_menu("General", parent=target)
        loose = make_menu("General")
        with pytest.raises(ConflictError):
            service.update(loose.id, MenuUpdate(parent_id=target.id))

    def test_explicit_null_parent_moves_to_root(self, service, make_menu):
        parent = make_menu("Parent")
        child = make_menu("Child", parent=parent)
        moved = service.update(child.id, MenuUpdate.model_validate({"parentId": None}))
        assert moved.parent_id is None
        assert moved.depth == 0

    def test_empty_patch_returns_node(self, service, make_menu):
        menu = make_menu("Dashboard")
        assert service.update(menu.id, MenuUpdate()).id == menu.id


class TestMove:

    def test_move_under_new_parent(self, service, make_menu):
        a = make_menu("A")
        b = make_menu("B")
        moved = service.move(b.id, a.id)
        assert moved.parent_id == a.id
        assert [c.id for c in service.get_one(a.id).children] == [b.id]

    def test_move_to_root(self, service, make_menu):
        a = make_menu("A")
        b = make_menu("B", parent=a)
        assert service.move(b.id, None).parent_id is None

    def test_move_without_parent_keeps_parent(self, service, make_menu):
        a = make_menu("A")
        b = make_menu("B", parent=a)
        assert service.move(b.id).parent_id == a.id
        assert service.repository.find_by_id(b.id).parent_id == a.id

    def test_move_shares_update_guards(self, service, make_menu):
        a = make_menu("A")
        b = make_menu("B", parent=a)
        with pytest.raises(BadRequestError):
            service.move(a.id, b.id)
        with pytest.raises(BadRequestError):
            service.move(a.id, a.id)


class TestRemove:

    def test_remove_leaf(self, service, make_menu):
        menu = make_menu("Dashboard")
        assert service.remove(menu.id) == {"message": 'Menu "Dashboard" deleted successfully'}
        assert service.repository.find_by_id(menu.id) is None

    def test_remove_missing(self, service):
        with pytest.raises(NotFoundError):
            service.remove("nope")

    def test_remove_with_child_then_after_move(self, service, make_menu):
        parent = make_menu("Parent")
        child = make_menu("Child", parent=parent)
        with pytest.raises(BadRequestError, match="has children"):
            service.remove(parent.id)

        service.move(child.id, None)
        assert "deleted successfully" in service.remove(parent.id)["message"]


class TestReorder:

    def test_swap_order(self, service, make_menu):
        parent = make_menu("Parent")
        x = make_menu("X", order=1, parent=parent)
        y = make_menu("Y", order=2, parent=parent)

        result = service.reorder_siblings(parent.id, [MenuOrder(id=x.id, order=2), MenuOrder(id=y.id, order=1)])
        assert [m.name for m in result] == ["Y", "X"]
        assert all(m.children == [] for m in result)

        tree_children = service.list_tree()[0].children
        assert [m.name for m in tree_children] == ["Y", "X"]

    def test_root_group(self, service, make_menu):
        a = make_menu("A", order=0)
        b = make_menu("B", order=1)
        result = service.reorder_siblings(None, [{"id": a.id, "order": 5}, {"id": b.id, "order": 3}])
        assert [m.name for m in result] == ["B", "A"]

    def test_result_includes_direct_children(self, service, make_menu):
        a = make_menu("A", order=0)
        make_menu("A child", parent=a)
        result = service.reorder_siblings(None, [{"id": a.id, "order": 0}])
        assert [c.name for c in result[0].children] == ["A child"]

    def test_dense(self, service, make_menu):
        parent = make_menu("Parent")
        x = make_menu("X", order=10, parent=parent)
        y = make_menu("Y", order=20, parent=parent)
        z = make_menu("Z", order=30, parent=parent)
        result = service.reorder_siblings(
            parent.id,
            [MenuOrder(id=x.id, order=7), MenuOrder(id=y.id, order=3), MenuOrder(id=z.id, order=50)],
            dense=True,
        )
        assert [(m.name, m.order) for m in result] == [("Y", 0), ("X", 1), ("Z", 2)]

    def test_omitted_sibling_rejected(self, service, make_menu):
        parent = make_menu("Parent")
        x = make_menu("X", order=1, parent=parent)
        make_menu("Y", order=2, parent=parent)
        with pytest.raises(BadRequestError):
            service.reorder_siblings(parent.id, [MenuOrder(id=x.id, order=5)])
        assert orders_of(service, parent.id) == [("X", 1), ("Y", 2)]

    def test_foreign_id_rejected(self, service, make_menu):
        parent = make_menu("Parent")
        x = make_menu("X", order=1, parent=parent)
        y = make_menu("Y", order=2, parent=parent)
        stranger = make_menu("Stranger")
        with pytest.raises(BadRequestError):
            service.reorder_siblings(
                parent.id,
                [MenuOrder(id=x.id, order=2), MenuOrder(id=y.id, order=1), MenuOrder(id=stranger.id, order=0)],
            )
        assert orders_of(service, parent.id) == [("X", 1), ("Y", 2)]

    def test_failed_batch_leaves_orders(self, service, repository, make_menu, monkeypatch):
        parent = make_menu("Parent")
        x = make_menu("X", order=1, parent=parent)
        y = make_menu("Y", order=2, parent=parent)

        original = repository.run_atomic

        def failing(updates):
            return original(list(updates) + [("vanished", {"order": 0})])

        monkeypatch.setattr(repository, "run_atomic", failing)
        with pytest.raises(LookupError):
            service.reorder_siblings(parent.id, [MenuOrder(id=x.id, order=2), MenuOrder(id=y.id, order=1)])
        assert orders_of(service, parent.id) == [("X", 1), ("Y", 2)]


def test_end_to_end_scenario(service, make_menu):
    dashboard = make_menu("Dashboard", order=1)
    settings = make_menu("Settings", order=2)
    general = make_menu("General", order=1, parent=settings)
    security = make_menu("Security", order=2, parent=settings)

    tree = service.list_tree()
    assert [m.name for m in tree] == ["Dashboard", "Settings"]
    assert [m.name for m in tree[1].children] == ["General", "Security"]
    assert tree[0].id == dashboard.id

    with pytest.raises(BadRequestError):
        service.remove(settings.id)

    service.remove(general.id)
    service.remove(security.id)
    service.remove(settings.id)
    assert [m.name for m in service.list_tree()] == ["Dashboard"]
