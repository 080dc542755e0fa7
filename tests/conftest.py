"""Shared fixtures: an in-memory menu store, the service over it, and an API client."""

import itertools
import os

import pytest

# Keep the module-level app in main.py off Oracle during collection
os.environ.setdefault("MENU_STORE", "memory")

from fastapi.testclient import TestClient

from main import create_app
from models import MenuCreate, MenuNode
from repository import InMemoryMenuRepository
from services import MenuService


@pytest.fixture
def repository():
    counter = itertools.count(1)
    return InMemoryMenuRepository(id_factory=lambda: f"m{next(counter)}")


@pytest.fixture
def service(repository):
    return MenuService(repository)


@pytest.fixture
def client(repository):
    app = create_app(repository, seed=False)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_menu(service):
    """Create a menu through the service: ``make_menu("Name", order=1, parent=node)``."""

    def _make(name, order=0, parent=None, **extra):
        parent_id = parent.id if isinstance(parent, MenuNode) else parent
        return service.create(MenuCreate(name=name, order=order, parent_id=parent_id, **extra))

    return _make
