"""
Pydantic schemas for API request/response validation.

Field names follow the JSON contract existing clients already use
(camelCase on the wire), while Python code uses snake_case.
"""
from typing import List, Tuple
from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.config import get_settings
from app.constants import PROJECT_NAME_MAX_LENGTH, PROJECT_NAME_PATTERN

# [relative_path, content]
FileEntry = Tuple[str, str]


# Request Schemas

class CreateProjectRequest(BaseModel):
    """Schema for scaffolding an empty program directory."""
    model_config = ConfigDict(populate_by_name=True)

    project_name: str = Field(
        ...,
        alias="projectName",
        min_length=1,
        max_length=PROJECT_NAME_MAX_LENGTH,
        pattern=PROJECT_NAME_PATTERN,
    )


class CompileRequest(CreateProjectRequest):
    """Schema for a build or build-and-test request."""
    program_files: List[FileEntry] = Field(default_factory=list, alias="programFiles")
    test_files: List[FileEntry] = Field(default_factory=list, alias="testFiles")
    config_files: List[FileEntry] = Field(default_factory=list, alias="configFiles")

    @field_validator('program_files', 'test_files', 'config_files')
    @classmethod
    def validate_files(cls, v: List[FileEntry]) -> List[FileEntry]:
        """Enforce per-request file count and size limits."""
        settings = get_settings()
        if len(v) > settings.MAX_FILES_PER_REQUEST:
            raise ValueError(
                f'Too many files: {len(v)} (max {settings.MAX_FILES_PER_REQUEST})'
            )
        for path, content in v:
            if not path.strip():
                raise ValueError('File path must not be empty')
            if len(content.encode('utf-8')) > settings.MAX_FILE_SIZE_BYTES:
                raise ValueError(
                    f"File '{path}' exceeds {settings.MAX_FILE_SIZE_BYTES} bytes"
                )
        return v


class ParseLogRequest(BaseModel):
    """Schema for parsing previously captured runner output."""
    output: str = ""


# Response Schemas

class TestSummarySchema(BaseModel):
    """Aggregate counts of a test run."""
    total: int = 0
    passed: int = 0
    failed: int = 0
    duration: str = ""


class TestCaseSchema(BaseModel):
    """Schema for one parsed test case."""
    suite: str
    name: str
    passed: bool
    error: str = ""
    duration: str = ""


class TestReportSchema(BaseModel):
    """Schema for a parsed test run."""
    model_config = ConfigDict(populate_by_name=True)

    summary: TestSummarySchema
    tests: List[TestCaseSchema] = []
    execution_logs: List[str] = Field(default_factory=list, alias="executionLogs")
    raw_output: str = Field("", alias="rawOutput")


class TestRunResponse(BaseModel):
    """Schema for a successful build-and-test run."""
    model_config = ConfigDict(populate_by_name=True)

    message: str
    program_id: str = Field(..., alias="programId")
    test_results: TestReportSchema = Field(..., alias="testResults")


class BuildResponse(BaseModel):
    """Schema for a build-only run."""
    stdout: str
    error: str = ""


class CreateProjectResponse(BaseModel):
    """Schema for a scaffolded program directory."""
    model_config = ConfigDict(populate_by_name=True)

    message: str
    project_name: str = Field(..., alias="projectName")
    path: str
