"""FastAPI integration: reading resource options from the query string."""

import json
from typing import Annotated, Any, Dict, List, Optional

from fastapi import Depends, HTTPException, Request, status

from fastapi_rqc.exceptions import ResourceOptionsError
from fastapi_rqc.models import ResourceOptions


def _load_json(raw: str, name: str) -> Any:
    """
    Decode a JSON encoded query parameter.

    Raises:
        HTTPException: If the parameter is not valid JSON
    """
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Query parameter '{name}' must be valid JSON.",
        ) from e


def _parse_includes(request: Request) -> Optional[List[str]]:
    query_params = request.query_params
    includes = query_params.getlist("includes[]")
    for raw in query_params.getlist("includes"):
        includes.extend(item.strip() for item in raw.split(",") if item.strip())
    return includes or None


def _parse_sort(raw: str) -> Any:
    """
    Parse the sort parameter.

    Supports a JSON list of rules (``[{"key": "name", "direction": "desc"}]``) or
    comma-separated keys sorted ascending (``name,age``).
    """
    if raw.lstrip().startswith(("[", "{")):
        return _load_json(raw, "sort")
    return [key.strip() for key in raw.split(",") if key.strip()]


def parse_resource_options(request: Request) -> ResourceOptions:
    """
    Parse resource options from query parameters.

    Supported parameters:
        includes[]=posts&includes[]=country or includes=posts,country
        filter_groups=[{"or": false, "filters": [{"key": "age", "operator": "gt", "value": 18}]}]
        sort=[{"key": "name", "direction": "desc"}] or sort=name,age
        limit=20&page=2

    Args:
        request: FastAPI Request object containing query parameters

    Returns:
        ResourceOptions: Validated options

    Raises:
        HTTPException: If a parameter is malformed
    """
    query_params = request.query_params
    raw: Dict[str, Any] = {}

    includes = _parse_includes(request)
    if includes is not None:
        raw["includes"] = includes

    filter_groups = query_params.get("filter_groups") or query_params.get("filterGroups")
    if filter_groups:
        raw["filter_groups"] = _load_json(filter_groups, "filter_groups")

    sort = query_params.get("sort")
    if sort:
        raw["sort"] = _parse_sort(sort)

    for name in ("limit", "page"):
        value = query_params.get(name)
        if value not in (None, ""):
            raw[name] = value

    try:
        return ResourceOptions.parse(raw)
    except ResourceOptionsError as e:
        raise e.to_http_exception() from e


ResourceOptionsDep = Annotated[ResourceOptions, Depends(parse_resource_options)]
