import logging

from config import settings
from models import MenuCreate
from repository import create_repository
from services import MenuService

logger = logging.getLogger(__name__)

# (name, description, icon, url, order, children)
DEFAULT_MENUS = [
    ("Dashboard", "Main dashboard page", "dashboard", "/dashboard", 1, []),
    ("User Management", "User and role management", "users", "/users", 2, [
        ("All Users", "View all users", "user-list", "/users/all", 1),
        ("Add User", "Create new user", "user-plus", "/users/add", 2),
        ("Roles & Permissions", "Manage roles and permissions", "shield", "/users/roles", 3),
    ]),
    ("Settings", "Application settings", "settings", "/settings", 3, [
        ("General Settings", "General application settings", "cog", "/settings/general", 1),
        ("Security", "Security settings", "lock", "/settings/security", 2),
        ("Integrations", "Third-party integrations", "plug", "/settings/integrations", 3),
    ]),
    ("Reports", "Analytics and reports", "chart", "/reports", 4, [
        ("User Analytics", "User activity reports", "chart-line", "/reports/users", 1),
        ("System Performance", "System performance metrics", "activity", "/reports/performance", 2),
        ("Financial Reports", "Financial analytics", "dollar", "/reports/financial", 3),
    ]),
]


def seed_default_menus(service: MenuService) -> int:
    """Insert the demo menu forest unless menus already exist.

    Returns the number of menus created.
    """
    if service.repository.find_many():
        logger.info("Default menus already exist")
        return 0

    created = 0
    for name, description, icon, url, order, children in DEFAULT_MENUS:
        root = service.create(
            MenuCreate(name=name, description=description, icon=icon, url=url, order=order)
        )
        created += 1
        for child_name, child_description, child_icon, child_url, child_order in children:
            service.create(
                MenuCreate(
                    name=child_name,
                    description=child_description,
                    icon=child_icon,
                    url=child_url,
                    order=child_order,
                    parent_id=root.id,
                )
            )
            created += 1

    logger.info(f"Seeded {created} default menus")
    return created


if __name__ == "__main__":
    logging.basicConfig(level=settings.LOG_LEVEL)
    repository = create_repository(settings.MENU_STORE)
    repository.init_schema()
    seed_default_menus(MenuService(repository))
