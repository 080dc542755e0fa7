import asyncio
import logging
from datetime import datetime
from functools import partial
from typing import List

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import Response

from exceptions import BadRequestError
from models import MenuCreate, MenuMove, MenuNode, MenuReorder, MenuUpdate, MessageResponse
from services import MenuExportService, MenuService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/menus", tags=["menus"])

ERROR_RESPONSES = {
    400: {"description": "Invalid request or tree rule violated"},
    404: {"description": "Menu or parent menu not found"},
    409: {"description": "Menu with same name already exists at this level"},
}


def get_menu_service(request: Request) -> MenuService:
    return request.app.state.menu_service


@router.post(
    "",
    response_model=MenuNode,
    status_code=status.HTTP_201_CREATED,
    responses={k: ERROR_RESPONSES[k] for k in (400, 404, 409)},
)
async def create_menu(request: MenuCreate, service: MenuService = Depends(get_menu_service)):
    """Create a new menu."""
    return service.create(request)


@router.get("", response_model=List[MenuNode])
async def list_menus(service: MenuService = Depends(get_menu_service)):
    """All menus (flat list), each with its direct children."""
    return service.list_flat()


@router.get("/tree", response_model=List[MenuNode])
async def get_menu_tree(service: MenuService = Depends(get_menu_service)):
    """Root menus with children nested to any depth."""
    return service.list_tree()


@router.get("/export")
async def export_menus(format: str = "csv", service: MenuService = Depends(get_menu_service)):
    """Download the whole tree as CSV or Excel, one row per menu in tree order."""
    fmt = format.lower()
    if fmt not in ("csv", "excel"):
        raise BadRequestError("Unsupported format; choose 'excel' or 'csv'")

    df = MenuExportService.export_rows(service.list_tree())
    filename = f"menus_{datetime.now().strftime('%Y%m%d_%H%M%S')}"
    loop = asyncio.get_running_loop()

    if fmt == "excel":
        filename += ".xlsx"
        file_bytes: bytes = await loop.run_in_executor(None, partial(MenuExportService.export_to_excel, df))
        media_type = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    else:
        filename += ".csv"
        csv_str: str = await loop.run_in_executor(None, partial(MenuExportService.export_to_csv, df))
        file_bytes = csv_str.encode("utf-8")
        media_type = "text/csv"

    logger.info(f"Menu export ready: {filename}, {len(file_bytes)} bytes")
    return Response(content=file_bytes, media_type=media_type, headers={
        "Content-Disposition": f"attachment; filename={filename}",
    })


@router.post("/reorder", response_model=List[MenuNode], responses={400: ERROR_RESPONSES[400]})
async def reorder_menus(
    request: MenuReorder,
    dense: bool = False,
    service: MenuService = Depends(get_menu_service),
):
    """Reorder menus within the same parent.

    ``orders`` must list every current child of ``parentId`` (root menus when
    omitted). Pass ``?dense=true`` to renumber the result 0..n-1.
    """
    return service.reorder_siblings(request.parent_id, request.orders, dense=dense)


@router.get("/{menu_id}", response_model=MenuNode, responses={404: ERROR_RESPONSES[404]})
async def get_menu(menu_id: str, service: MenuService = Depends(get_menu_service)):
    return service.get_one(menu_id)


@router.get("/{menu_id}/path", response_model=List[MenuNode], responses={404: ERROR_RESPONSES[404]})
async def get_menu_path(menu_id: str, service: MenuService = Depends(get_menu_service)):
    """Breadcrumb from the root menu down to this one."""
    return service.get_path(menu_id)


@router.patch("/{menu_id}", response_model=MenuNode, responses=ERROR_RESPONSES)
async def update_menu(menu_id: str, request: MenuUpdate, service: MenuService = Depends(get_menu_service)):
    return service.update(menu_id, request)


@router.patch("/{menu_id}/move", response_model=MenuNode, responses=ERROR_RESPONSES)
async def move_menu(menu_id: str, request: MenuMove, service: MenuService = Depends(get_menu_service)):
    """Move a menu under another parent; ``parentId: null`` moves it to the root.

    An omitted ``parentId`` leaves the parent unchanged.
    """
    return service.move(menu_id, **request.model_dump(exclude_unset=True))


@router.delete(
    "/{menu_id}",
    response_model=MessageResponse,
    responses={k: ERROR_RESPONSES[k] for k in (400, 404)},
)
async def delete_menu(menu_id: str, service: MenuService = Depends(get_menu_service)):
    """Delete a menu that has no children."""
    return service.remove(menu_id)
