"""
Manifest Service - Injects program ids into Anchor.toml and lib.rs.

Anchor needs the same program id in three places: the keypair file under
target/deploy, the [programs.<cluster>] table of Anchor.toml and the
declare_id! macro of the program entry point.
"""
import logging
import re
from pathlib import Path
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

# Any TOML table header, e.g. "[registry]" or "[programs.devnet]"
SECTION_HEADER_PATTERN = re.compile(r'^[ \t]*\[', re.MULTILINE)

# declare_id!("Fg6PaFpoGXkYsidMpWTK6W2BeZ7FEfcYkg476zPFsLnS")
DECLARE_ID_PATTERN = re.compile(r'declare_id!\s*\(\s*"[^"]+"\s*\)')


class ManifestError(Exception):
    """Raised when a manifest or entry-point file cannot be read or written."""
    pass


def _section_header_pattern(cluster: str) -> re.Pattern:
    return re.compile(
        rf'^[ \t]*\[programs\.{re.escape(cluster)}\][ \t]*$',
        re.MULTILINE
    )


def _entry_pattern(project_name: str) -> re.Pattern:
    return re.compile(
        rf'^([ \t]*{re.escape(project_name)}[ \t]*=[ \t]*")([^"]*)(")',
        re.MULTILINE
    )


def _find_section(content: str, cluster: str) -> Optional[Tuple[int, int]]:
    """
    Locate the body of [programs.<cluster>].

    Returns:
        (start, end) offsets of the section body, or None if the table is missing
    """
    header = _section_header_pattern(cluster).search(content)
    if not header:
        return None
    next_header = SECTION_HEADER_PATTERN.search(content, header.end())
    end = next_header.start() if next_header else len(content)
    return header.end(), end


def find_program_id(content: str, project_name: str, cluster: str = "localnet") -> Optional[str]:
    """
    Get the program id registered for a project in Anchor.toml content.

    Returns:
        Program id, or None if the project has no entry for the cluster
    """
    section = _find_section(content, cluster)
    if section is None:
        return None
    start, end = section
    match = _entry_pattern(project_name).search(content[start:end])
    return match.group(2) if match else None


def set_program_id(content: str, project_name: str, program_id: str, cluster: str = "localnet") -> str:
    """
    Register program_id for project_name under [programs.<cluster>].

    An existing entry gets its value replaced, otherwise a new entry is
    appended to the end of the table. A missing table is appended to the
    end of the document.

    Args:
        content: Anchor.toml content
        project_name: Program name (TOML key)
        program_id: Base58 program id
        cluster: Cluster table to update

    Returns:
        Updated Anchor.toml content
    """
    entry_line = f'{project_name} = "{program_id}"'
    section = _find_section(content, cluster)

    if section is None:
        head = content.rstrip('\n')
        separator = '\n\n' if head else ''
        return f'{head}{separator}[programs.{cluster}]\n{entry_line}\n'

    start, end = section
    body = content[start:end]
    entry = _entry_pattern(project_name)

    if entry.search(body):
        body = entry.sub(lambda m: f'{m.group(1)}{program_id}{m.group(3)}', body, count=1)
    else:
        stripped = body.rstrip()
        trailing = body[len(stripped):] or '\n'
        body = f'{stripped}\n{entry_line}{trailing}'

    return content[:start] + body + content[end:]


def replace_declare_id(source: str, program_id: str) -> Tuple[str, int]:
    """
    Point every declare_id! macro at program_id.

    Returns:
        Tuple of (updated source, number of replacements)
    """
    return DECLARE_ID_PATTERN.subn(f'declare_id!("{program_id}")', source)


def update_anchor_toml(manifest_path: Path, project_name: str, program_id: str, cluster: str) -> None:
    """
    Rewrite Anchor.toml so project_name maps to program_id.

    Raises:
        ManifestError: If the file cannot be read or written
    """
    try:
        content = manifest_path.read_text(encoding='utf-8')
    except OSError as e:
        raise ManifestError(f"Failed to read Anchor.toml: {e}") from e

    previous_id = find_program_id(content, project_name, cluster)
    updated = set_program_id(content, project_name, program_id, cluster)

    try:
        manifest_path.write_text(updated, encoding='utf-8')
    except OSError as e:
        raise ManifestError(f"Failed to update Anchor.toml: {e}") from e

    if previous_id:
        logger.info(f"Replaced program id for '{project_name}' ({previous_id} -> {program_id})")
    else:
        logger.info(f"Registered program '{project_name}' in [programs.{cluster}]")


def update_entrypoint(entrypoint_path: Path, program_id: str) -> int:
    """
    Rewrite the declare_id! macro of a program entry point.

    Returns:
        Number of macros replaced

    Raises:
        ManifestError: If the file cannot be read or written
    """
    try:
        source = entrypoint_path.read_text(encoding='utf-8')
    except OSError as e:
        raise ManifestError(f"Failed to read {entrypoint_path.name}: {e}") from e

    updated, count = replace_declare_id(source, program_id)
    if count == 0:
        logger.warning(f"No declare_id! macro found in {entrypoint_path}")
        return 0

    try:
        entrypoint_path.write_text(updated, encoding='utf-8')
    except OSError as e:
        raise ManifestError(f"Failed to update {entrypoint_path.name}: {e}") from e

    return count
