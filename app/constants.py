"""
Application-wide constants.

Defines shared constants used across the application to avoid magic strings
and ensure consistency.
"""

# Workspace layout
ANCHOR_MANIFEST_FILENAME = "Anchor.toml"
"""Workspace manifest that maps program names to program ids per cluster."""

PROGRAMS_DIRNAME = "programs"
TESTS_DIRNAME = "tests"

PROGRAM_ENTRYPOINT = ("src", "lib.rs")
"""Path of the program entry point relative to programs/<name>/."""

KEYPAIR_DIR = ("target", "deploy")
KEYPAIR_FILENAME_TEMPLATE = "{project_name}-keypair.json"
"""Anchor reads the program keypair from target/deploy/<name>-keypair.json."""

# File permissions
DIR_MODE = 0o755
FILE_MODE = 0o644
KEYPAIR_FILE_MODE = 0o600

# Project names end up in paths, TOML keys and `anchor -p` arguments
PROJECT_NAME_PATTERN = r"^[A-Za-z0-9_-]+$"
PROJECT_NAME_MAX_LENGTH = 64

# Mocha markers
PASS_MARKER = "✔"
"""Checkmark glyph mocha prints in front of a passing test."""

# Exit code reported when the toolchain binary cannot be executed
COMMAND_NOT_FOUND_EXIT_CODE = 127
