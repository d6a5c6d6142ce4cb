"""Board endpoints: snapshot, load, discard and intents."""

from __future__ import annotations

from fastapi import APIRouter, Query, Response, status

from boardsync.api.dependencies import RegistryDep
from boardsync.api.models import (
    APIResponse,
    BoardResponse,
    CollaboratorAdd,
    ColumnCreate,
    IssueCreate,
    IssueMove,
    OperationResponse,
    ProjectUpdate,
    board_to_response,
    outcome_to_response,
)
from boardsync.board.exceptions import UpstreamMutationError
from boardsync.board.session import OperationHandle

router = APIRouter(prefix="/projects/{project_id}/board", tags=["board"])

WaitQuery = Query(default=False, description="Wait for the operation to reconcile")


async def _operation_response(
    handle: OperationHandle, wait: bool, response: Response
) -> APIResponse[OperationResponse]:
    """Answer 202 right away, or the outcome when asked to wait.

    A committed operation answers 200; a rolled-back one answers 502 with
    the attempted delta and the number of steps that reached upstream.
    """
    if not wait:
        return APIResponse(
            data=OperationResponse(
                operation_id=handle.operation_id, intent=str(handle.intent), status="pending"
            )
        )
    try:
        await handle
    except UpstreamMutationError as e:
        response.status_code = status.HTTP_502_BAD_GATEWAY
        return APIResponse(data=outcome_to_response(handle.outcome), error=str(e))
    response.status_code = status.HTTP_200_OK
    return APIResponse(data=outcome_to_response(handle.outcome))


@router.get("", response_model=APIResponse[BoardResponse])
async def get_board(project_id: str, registry: RegistryDep) -> APIResponse[BoardResponse]:
    """Current board, optimistic changes included."""
    return APIResponse(data=board_to_response(registry.get(project_id).board))


@router.post("", response_model=APIResponse[BoardResponse])
async def load_board(project_id: str, registry: RegistryDep) -> APIResponse[BoardResponse]:
    """Load the board, or re-fetch it if already loaded."""
    first_load = project_id not in registry
    session = registry.open(project_id)
    try:
        board = await session.load()
    except Exception:
        if first_load:
            await registry.close(project_id, drain=False)
        raise
    return APIResponse(data=board_to_response(board))


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def close_board(project_id: str, registry: RegistryDep) -> None:
    """Discard the board after in-flight operations reconcile."""
    await registry.close(project_id)


@router.get("/operations", response_model=APIResponse[list[str]])
async def list_operations(project_id: str, registry: RegistryDep) -> APIResponse[list[str]]:
    """Ids of operations still running upstream."""
    return APIResponse(data=registry.get(project_id).in_flight)


@router.post(
    "/columns",
    response_model=APIResponse[OperationResponse],
    status_code=status.HTTP_202_ACCEPTED,
)
async def add_column(
    project_id: str,
    column: ColumnCreate,
    registry: RegistryDep,
    response: Response,
    wait: bool = WaitQuery,
) -> APIResponse[OperationResponse]:
    handle = registry.get(project_id).add_column(column.name, column.color, column.description)
    return await _operation_response(handle, wait, response)


@router.delete(
    "/columns/{column_id}",
    response_model=APIResponse[OperationResponse],
    status_code=status.HTTP_202_ACCEPTED,
)
async def delete_column(
    project_id: str,
    column_id: str,
    registry: RegistryDep,
    response: Response,
    wait: bool = WaitQuery,
) -> APIResponse[OperationResponse]:
    """Delete a column; its issues become unassigned."""
    handle = registry.get(project_id).delete_column(column_id)
    return await _operation_response(handle, wait, response)


@router.post(
    "/issues",
    response_model=APIResponse[OperationResponse],
    status_code=status.HTTP_202_ACCEPTED,
)
async def create_issue(
    project_id: str,
    issue: IssueCreate,
    registry: RegistryDep,
    response: Response,
    wait: bool = WaitQuery,
) -> APIResponse[OperationResponse]:
    handle = registry.get(project_id).create_issue(
        issue.repository_id, issue.title, issue.body, issue.column_id
    )
    return await _operation_response(handle, wait, response)


@router.post(
    "/issues/{issue_id}/move",
    response_model=APIResponse[OperationResponse],
    status_code=status.HTTP_202_ACCEPTED,
)
async def move_issue(
    project_id: str,
    issue_id: str,
    move: IssueMove,
    registry: RegistryDep,
    response: Response,
    wait: bool = WaitQuery,
) -> APIResponse[OperationResponse]:
    handle = registry.get(project_id).move_issue(issue_id, move.column_id)
    return await _operation_response(handle, wait, response)


@router.delete(
    "/issues/{issue_id}",
    response_model=APIResponse[OperationResponse],
    status_code=status.HTTP_202_ACCEPTED,
)
async def delete_issue(
    project_id: str,
    issue_id: str,
    registry: RegistryDep,
    response: Response,
    wait: bool = WaitQuery,
) -> APIResponse[OperationResponse]:
    handle = registry.get(project_id).delete_issue(issue_id)
    return await _operation_response(handle, wait, response)


@router.patch(
    "/project",
    response_model=APIResponse[OperationResponse],
    status_code=status.HTTP_202_ACCEPTED,
)
async def update_project(
    project_id: str,
    update: ProjectUpdate,
    registry: RegistryDep,
    response: Response,
    wait: bool = WaitQuery,
) -> APIResponse[OperationResponse]:
    """Update the project title and/or description (partial update)."""
    handle = registry.get(project_id).update_project(update.title, update.description)
    return await _operation_response(handle, wait, response)


@router.post(
    "/collaborators",
    response_model=APIResponse[OperationResponse],
    status_code=status.HTTP_202_ACCEPTED,
)
async def add_collaborator(
    project_id: str,
    collaborator: CollaboratorAdd,
    registry: RegistryDep,
    response: Response,
    wait: bool = WaitQuery,
) -> APIResponse[OperationResponse]:
    handle = registry.get(project_id).add_collaborator(
        collaborator.user_id, collaborator.role, collaborator.login
    )
    return await _operation_response(handle, wait, response)


@router.delete(
    "/collaborators/{user_id}",
    response_model=APIResponse[OperationResponse],
    status_code=status.HTTP_202_ACCEPTED,
)
async def remove_collaborator(
    project_id: str,
    user_id: str,
    registry: RegistryDep,
    response: Response,
    wait: bool = WaitQuery,
) -> APIResponse[OperationResponse]:
    handle = registry.get(project_id).remove_collaborator(user_id)
    return await _operation_response(handle, wait, response)


@router.post(
    "/repositories/{repository_id}/link",
    response_model=APIResponse[OperationResponse],
    status_code=status.HTTP_202_ACCEPTED,
)
async def link_repository(
    project_id: str,
    repository_id: str,
    registry: RegistryDep,
    response: Response,
    wait: bool = WaitQuery,
) -> APIResponse[OperationResponse]:
    handle = registry.get(project_id).link_repository(repository_id)
    return await _operation_response(handle, wait, response)


@router.post(
    "/repositories/{repository_id}/disable",
    response_model=APIResponse[OperationResponse],
    status_code=status.HTTP_202_ACCEPTED,
)
async def disable_repository(
    project_id: str,
    repository_id: str,
    registry: RegistryDep,
    response: Response,
    wait: bool = WaitQuery,
) -> APIResponse[OperationResponse]:
    """Disable a repository without unlinking it."""
    handle = registry.get(project_id).disable_repository(repository_id)
    return await _operation_response(handle, wait, response)


@router.post(
    "/repositories/{repository_id}/enable",
    response_model=APIResponse[OperationResponse],
    status_code=status.HTTP_202_ACCEPTED,
)
async def enable_repository(
    project_id: str,
    repository_id: str,
    registry: RegistryDep,
    response: Response,
    wait: bool = WaitQuery,
) -> APIResponse[OperationResponse]:
    handle = registry.get(project_id).enable_repository(repository_id)
    return await _operation_response(handle, wait, response)
