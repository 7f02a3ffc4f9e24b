"""Collaborator Route Groups — mount externally implemented routers under fixed prefixes.

Invariants:
    - Each group is mounted at <api_prefix>/<group>; the group owns everything below it
    - Groups come from explicit routers passed to create_app, or from <package>.<group>
      modules exposing `router`
    - A missing or broken group module is logged and skipped; the server still starts
"""

import logging
from importlib import import_module
from typing import Mapping

from fastapi import APIRouter, FastAPI

logger = logging.getLogger(__name__)

ROUTE_GROUPS = (
    "auth",
    "settings",
    "users",
    "reservations",
    "menus",
    "dashboard",
    "categories",
    "dishes",
    "favorites",
)


def load_route_groups(package: str) -> dict[str, APIRouter]:
    """Import <package>.<group>:router for every known group that exists."""
    routers: dict[str, APIRouter] = {}
    if not package:
        logger.warning("ROUTES_PACKAGE not set, no collaborator routes mounted")
        return routers
    for group in ROUTE_GROUPS:
        module_path = f"{package}.{group}"
        try:
            module = import_module(module_path)
        except ModuleNotFoundError as e:
            logger.warning(f"Route group '{group}' unavailable ({e})")
            continue
        router = getattr(module, "router", None)
        if not isinstance(router, APIRouter):
            logger.warning(f"Route group '{group}': {module_path} has no APIRouter `router`")
            continue
        routers[group] = router
    return routers


def mount_route_groups(app: FastAPI, routers: Mapping[str, APIRouter], api_prefix: str = "") -> None:
    for group, router in routers.items():
        if group not in ROUTE_GROUPS:
            logger.warning(f"Unknown route group '{group}' mounted as-is")
        app.include_router(router, prefix=f"{api_prefix}/{group}", tags=[group])
        logger.info(f"Mounted route group {api_prefix}/{group}")
