"""
aiohttp handlers exposing projects and secrets over HTTP.

Authentication happens upstream: a middleware is expected to store the
caller under ``request["principal"]`` (a ``Principal`` or a mapping with
``id``/``email``). Requests without it are answered with 401.

Routes:
    GET    /health
    GET    /projects
    POST   /projects
    GET    /projects/{project_id}
    PUT    /projects/{project_id}
    DELETE /projects/{project_id}
    GET    /projects/{project_id}/secrets
    POST   /projects/{project_id}/secrets
    GET    /projects/{project_id}/secrets/{secret_id}
    PUT    /projects/{project_id}/secrets/{secret_id}
    DELETE /projects/{project_id}/secrets/{secret_id}
"""
import logging
from typing import Any, Iterable, Optional
from collections.abc import Mapping

import orjson
from aiohttp import web

from .exceptions import InvalidInputError, VaultError
from .models import Principal, Project
from .vault.controller import SecretController, require_principal
from .vault.projects import MISSING, ProjectController

logger = logging.getLogger("navigator.secrets")

PRINCIPAL_KEY = "principal"
SECRET_CONTROLLER = web.AppKey("secret_controller", SecretController)
PROJECT_CONTROLLER = web.AppKey("project_controller", ProjectController)

routes = web.RouteTableDef()


def _dumps(obj: Any) -> str:
    return orjson.dumps(obj).decode("utf-8")


def json_response(data: Any, status: int = 200) -> web.Response:
    return web.json_response(data, status=status, dumps=_dumps)


def _project(project: Project) -> dict:
    return project.model_dump(by_alias=True, exclude={"owner_id"})


def get_principal(request: web.Request) -> Optional[Principal]:
    """Principal attached by the authentication middleware, if any."""
    value = request.get(PRINCIPAL_KEY)
    if isinstance(value, Principal):
        return value
    if isinstance(value, Mapping):
        principal_id = value.get("id") or value.get("user_id") or value.get("userId")
        if principal_id:
            return Principal(id=str(principal_id), email=value.get("email"))
    return None


async def read_json(request: web.Request) -> dict:
    """Parse the request body as a JSON object.

    Raises:
        InvalidInputError: If the body is not a JSON object.
    """
    if not request.can_read_body:
        return {}
    try:
        data = await request.json(loads=orjson.loads)
    except ValueError:
        raise InvalidInputError("Request body must be valid JSON") from None
    if not isinstance(data, dict):
        raise InvalidInputError("Request body must be a JSON object")
    return data


async def project_body(request: web.Request) -> tuple[Principal, dict]:
    """Authorize the caller on the routed project, then read the body.

    An unauthenticated caller or a foreign project is refused before the
    body is parsed.
    """
    principal = require_principal(get_principal(request))
    await request.app[PROJECT_CONTROLLER].get_project(
        principal, request.match_info["project_id"],
    )
    return principal, await read_json(request)


@web.middleware
async def error_middleware(request: web.Request, handler) -> web.StreamResponse:
    """Map vault errors to JSON error responses.

    Anything unexpected is logged and answered with an opaque 500.
    """
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except VaultError as err:
        if err.status >= 500:
            logger.error(
                "%s %s failed: %s", request.method, request.path, err.__class__.__name__
            )
        return json_response({"error": err.message}, status=err.status)
    except Exception:
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return json_response({"error": "Internal server error"}, status=500)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

@routes.get("/health")
async def health(request: web.Request) -> web.Response:
    return json_response({"status": "ok"})


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------

@routes.get("/projects")
async def list_projects(request: web.Request) -> web.Response:
    controller = request.app[PROJECT_CONTROLLER]
    projects = await controller.list_projects(get_principal(request))
    return json_response({"projects": [_project(p) for p in projects]})


@routes.post("/projects")
async def create_project(request: web.Request) -> web.Response:
    controller = request.app[PROJECT_CONTROLLER]
    principal = require_principal(get_principal(request))
    data = await read_json(request)
    project = await controller.create_project(
        principal, data.get("name"), data.get("description"),
    )
    return json_response(
        {"message": "Project created successfully", "project": _project(project)},
        status=201,
    )


@routes.get("/projects/{project_id}")
async def get_project(request: web.Request) -> web.Response:
    controller = request.app[PROJECT_CONTROLLER]
    project = await controller.get_project(
        get_principal(request), request.match_info["project_id"],
    )
    return json_response({"project": _project(project)})


@routes.put("/projects/{project_id}")
async def update_project(request: web.Request) -> web.Response:
    controller = request.app[PROJECT_CONTROLLER]
    principal, data = await project_body(request)
    project = await controller.update_project(
        principal,
        request.match_info["project_id"],
        name=data.get("name", MISSING),
        description=data.get("description", MISSING),
    )
    return json_response(
        {"message": "Project updated successfully", "project": _project(project)}
    )


@routes.delete("/projects/{project_id}")
async def delete_project(request: web.Request) -> web.Response:
    controller = request.app[PROJECT_CONTROLLER]
    await controller.delete_project(
        get_principal(request), request.match_info["project_id"],
    )
    return json_response({"message": "Project deleted successfully"})


# ---------------------------------------------------------------------------
# Secrets
# ---------------------------------------------------------------------------

@routes.get("/projects/{project_id}/secrets")
async def list_secrets(request: web.Request) -> web.Response:
    controller = request.app[SECRET_CONTROLLER]
    secrets = await controller.list_secrets(
        get_principal(request), request.match_info["project_id"],
    )
    return json_response(
        {"secrets": [s.model_dump(by_alias=True) for s in secrets]}
    )


@routes.post("/projects/{project_id}/secrets")
async def create_secret(request: web.Request) -> web.Response:
    controller = request.app[SECRET_CONTROLLER]
    principal, data = await project_body(request)
    secret = await controller.create_secret(
        principal,
        request.match_info["project_id"],
        data.get("key"),
        data.get("value"),
    )
    return json_response(
        {
            "message": "Secret created successfully",
            "secret": secret.model_dump(by_alias=True),
        },
        status=201,
    )


@routes.get("/projects/{project_id}/secrets/{secret_id}")
async def get_secret(request: web.Request) -> web.Response:
    controller = request.app[SECRET_CONTROLLER]
    secret = await controller.get_secret(
        get_principal(request),
        request.match_info["project_id"],
        request.match_info["secret_id"],
    )
    return json_response({"secret": secret.model_dump(by_alias=True)})


@routes.put("/projects/{project_id}/secrets/{secret_id}")
async def update_secret(request: web.Request) -> web.Response:
    controller = request.app[SECRET_CONTROLLER]
    principal, data = await project_body(request)
    secret = await controller.update_secret(
        principal,
        request.match_info["project_id"],
        request.match_info["secret_id"],
        data.get("value"),
    )
    return json_response(
        {
            "message": "Secret updated successfully",
            "secret": secret.model_dump(by_alias=True),
        }
    )


@routes.delete("/projects/{project_id}/secrets/{secret_id}")
async def delete_secret(request: web.Request) -> web.Response:
    controller = request.app[SECRET_CONTROLLER]
    await controller.delete_secret(
        get_principal(request),
        request.match_info["project_id"],
        request.match_info["secret_id"],
    )
    return json_response({"message": "Secret deleted successfully"})


def setup_routes(
    app: web.Application,
    secrets: SecretController,
    projects: ProjectController,
) -> None:
    """Register controllers and routes on an existing application.

    ``error_middleware`` must be part of the application middlewares.
    """
    app[SECRET_CONTROLLER] = secrets
    app[PROJECT_CONTROLLER] = projects
    app.add_routes(routes)


def create_app(
    secrets: SecretController,
    projects: ProjectController,
    middlewares: Iterable = (),
) -> web.Application:
    """Create an application serving the vault routes.

    Args:
        secrets: Secret lifecycle controller.
        projects: Project controller.
        middlewares: Extra middlewares, typically the authentication one that
            fills ``request["principal"]``.
    """
    app = web.Application(middlewares=[error_middleware, *middlewares])
    setup_routes(app, secrets, projects)
    return app
