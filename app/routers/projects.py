"""
Projects API router.
Provides endpoints for building and testing submitted Anchor projects.
"""
import logging
from fastapi import APIRouter, Depends, Request, status
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.config import Settings, get_settings
from app.models.schemas import (
    BuildResponse, CompileRequest, CreateProjectRequest, CreateProjectResponse,
    ParseLogRequest, TestReportSchema, TestRunResponse
)
from app.parser import parse_test_log
from app.services.anchor_service import AnchorCommandError
from app.services.manifest_service import ManifestError
from app.services.project_service import ProjectService, TestRunError
from app.utils.helpers import error_response, toolchain_failure_message

logger = logging.getLogger(__name__)
router = APIRouter()

_settings = get_settings()
limiter = Limiter(key_func=get_remote_address, enabled=_settings.RATE_LIMIT_ENABLED)
TOOLCHAIN_RATE_LIMIT = f"{_settings.RATE_LIMIT_PER_MINUTE}/minute"

TOOLCHAIN_ERROR_RESPONSES = {
    500: {"description": "Workspace preparation or toolchain failure"},
}


def get_project_service(settings: Settings = Depends(get_settings)) -> ProjectService:
    """Dependency providing a ProjectService bound to current settings."""
    return ProjectService(settings)


@router.post("", response_model=CreateProjectResponse, status_code=status.HTTP_201_CREATED)
def create_project(
    body: CreateProjectRequest,
    service: ProjectService = Depends(get_project_service)
):
    """
    Scaffold an empty program directory in the workspace.

    Args:
        body: Project name
        service: Project service

    Returns:
        Created program directory
    """
    try:
        program_dir = service.create_project(body.project_name)
    except ManifestError as e:
        logger.error(f"Project scaffolding failed: {e}")
        return error_response(str(e))

    return {
        "message": "Project created successfully",
        "projectName": body.project_name,
        "path": str(program_dir),
    }


@router.post("/build", response_model=BuildResponse, responses=TOOLCHAIN_ERROR_RESPONSES)
@limiter.limit(TOOLCHAIN_RATE_LIMIT)
def build_project(
    request: Request,
    body: CompileRequest,
    service: ProjectService = Depends(get_project_service)
):
    """
    Write project files, inject a fresh program id and run `anchor build`.

    Rate limited because every call compiles a program.

    Args:
        request: FastAPI request object (required by rate limiter)
        body: Project files
        service: Project service

    Returns:
        Build output
    """
    try:
        result = service.build(body)
    except AnchorCommandError as e:
        return error_response(
            toolchain_failure_message("compile", str(e)),
            extra={"output": e.output}
        )
    except ManifestError as e:
        logger.error(f"Workspace preparation failed: {e}")
        return error_response(str(e))

    return {"stdout": result.output, "error": ""}


@router.post("/test", response_model=TestRunResponse, responses=TOOLCHAIN_ERROR_RESPONSES)
@limiter.limit(TOOLCHAIN_RATE_LIMIT)
def run_tests(
    request: Request,
    body: CompileRequest,
    service: ProjectService = Depends(get_project_service)
):
    """
    Build the project, run its tests and return the parsed results.

    A failing test run still returns the report parsed from the captured
    output, next to the error message.

    Args:
        request: FastAPI request object (required by rate limiter)
        body: Project files
        service: Project service

    Returns:
        Program id and parsed test results
    """
    try:
        outcome = service.build_and_test(body)
    except TestRunError as e:
        return error_response(
            toolchain_failure_message("test", str(e)),
            extra={"testResults": e.report.to_dict()}
        )
    except AnchorCommandError as e:
        return error_response(
            toolchain_failure_message("compile", str(e)),
            extra={"output": e.output}
        )
    except ManifestError as e:
        logger.error(f"Workspace preparation failed: {e}")
        return error_response(str(e))

    return {
        "message": "Project compiled successfully",
        "programId": outcome.program_id,
        "testResults": outcome.report.to_dict(),
    }


@router.post("/parse", response_model=TestReportSchema)
async def parse_output(body: ParseLogRequest):
    """
    Parse previously captured `anchor test` output.

    Args:
        body: Raw runner output

    Returns:
        Parsed test report
    """
    return parse_test_log(body.output).to_dict()


# Original top-level endpoint kept for existing clients
legacy_router = APIRouter()
legacy_router.add_api_route(
    "/test",
    run_tests,
    methods=["POST"],
    response_model=TestRunResponse,
    responses=TOOLCHAIN_ERROR_RESPONSES,
)
