"""
Pytest configuration and fixtures for testing.
"""
import os
import sys
from pathlib import Path
import pytest

# Add parent directory to path
TESTS_DIR = Path(__file__).resolve().parent
PROJECT_DIR = TESTS_DIR.parent
sys.path.insert(0, str(PROJECT_DIR))

# Must be set before app.main reads settings at import time
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ.setdefault("LOG_LEVEL", "WARNING")

from app.config import Settings, get_settings


ORIGINAL_PROGRAM_ID = "Fg6PaFpoGXkYsidMpWTK6W2BeZ7FEfcYkg476zPFsLnS"

ANCHOR_TOML = f"""[toolchain]

[features]
seeds = false
skip-lint = false

[programs.localnet]
existing = "{ORIGINAL_PROGRAM_ID}"

[registry]
url = "https://api.apr.dev"

[provider]
cluster = "Localnet"
wallet = "~/.config/solana/id.json"

[scripts]
test = "yarn run ts-mocha -p ./tsconfig.json -t 1000000 tests/**/*.ts"
"""

LIB_RS = f"""use anchor_lang::prelude::*;

declare_id!("{ORIGINAL_PROGRAM_ID}");

#[program]
pub mod counter {{
    use super::*;

    pub fn initialize(_ctx: Context<Initialize>) -> Result<()> {{
        Ok(())
    }}
}}

#[derive(Accounts)]
pub struct Initialize {{}}
"""

COUNTER_TEST_TS = """import * as anchor from "@coral-xyz/anchor";

describe("counter", () => {
  it("initializes", async () => {});
});
"""

PASSING_OUTPUT = """
  counter
    ✔ initializes (120ms)
    ✔ increments (48ms)


  2 passing (170ms)

Done in 12.34s.
"""

FAILING_OUTPUT = """
  counter
    ✔ initializes (120ms)
    1) rejects overflow
Error: AnchorError occurred. Error Code: Overflow.
      at Function.parse (node_modules/@coral-xyz/anchor/dist/cjs/error.js:138:20)

  1 passing (150ms)
  1 failing
"""


@pytest.fixture
def workspace_dir(tmp_path):
    """Create a scaffolded Anchor workspace in a temporary directory."""
    root = tmp_path / "workspace"
    root.mkdir()
    (root / "Anchor.toml").write_text(ANCHOR_TOML, encoding="utf-8")
    (root / "tests").mkdir()
    return root


@pytest.fixture
def test_settings(workspace_dir):
    """Settings pointing at the temporary workspace."""
    return Settings(
        WORKSPACE_PATH=str(workspace_dir),
        ANCHOR_BINARY="anchor",
        RATE_LIMIT_ENABLED=False,
        CLEANUP_TEST_FILES_AFTER_RUN=True,
    )


@pytest.fixture
def compile_payload():
    """A minimal build-and-test request body in wire format."""
    return {
        "projectName": "counter",
        "programFiles": [
            ["src/lib.rs", LIB_RS],
            ["Cargo.toml", '[package]\nname = "counter"\nversion = "0.1.0"\n'],
        ],
        "testFiles": [["counter.ts", COUNTER_TEST_TS]],
        "configFiles": [],
    }


@pytest.fixture
def override_settings(test_settings):
    """
    Override FastAPI's settings dependency with the temporary workspace.

    Usage in test files:
        def test_endpoint(client, override_settings):
            response = client.post("/api/v1/projects/parse", json={...})
    """
    from app.main import app

    app.dependency_overrides[get_settings] = lambda: test_settings
    yield test_settings
    # Cleanup: Remove override after test
    app.dependency_overrides.clear()


@pytest.fixture
def fake_runner():
    """AnchorRunner stand-in whose build and test succeed with canned output."""
    from unittest.mock import Mock
    from app.services.anchor_service import AnchorRunner, ToolchainResult

    runner = Mock(spec=AnchorRunner)
    runner.build.return_value = ToolchainResult(
        command=["anchor", "build", "-p", "counter"], returncode=0, output="Finished release"
    )
    runner.test.return_value = ToolchainResult(
        command=["anchor", "test", "-p", "counter"], returncode=0, output=PASSING_OUTPUT
    )
    return runner


@pytest.fixture
def override_project_service(test_settings, fake_runner):
    """Route ProjectService construction through the fake runner."""
    from app.main import app
    from app.routers.projects import get_project_service
    from app.services.project_service import ProjectService

    app.dependency_overrides[get_project_service] = lambda: ProjectService(test_settings, runner=fake_runner)
    yield fake_runner
    app.dependency_overrides.clear()
