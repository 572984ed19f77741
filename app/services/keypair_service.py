"""
Keypair Service - Generates program keypairs in the Solana CLI format.

A Solana keypair file is a JSON array of the 64 secret-key bytes
(32-byte Ed25519 seed followed by the 32-byte public key). The program id
is the base58 encoding of the public key.
"""
import json
import logging
from dataclasses import dataclass
from pathlib import Path

import base58
from Crypto.PublicKey import ECC

from app.constants import (
    DIR_MODE,
    KEYPAIR_DIR,
    KEYPAIR_FILE_MODE,
    KEYPAIR_FILENAME_TEMPLATE,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgramKeypair:
    """Ed25519 keypair for a deployable program."""
    seed: bytes
    public_key: bytes

    @property
    def secret_key(self) -> bytes:
        """64-byte secret key as stored by the Solana CLI."""
        return self.seed + self.public_key

    @property
    def program_id(self) -> str:
        """Base58 program id derived from the public key."""
        return base58.b58encode(self.public_key).decode('ascii')


def generate_keypair() -> ProgramKeypair:
    """
    Generate a new random Ed25519 keypair.

    Returns:
        ProgramKeypair
    """
    key = ECC.generate(curve='Ed25519')
    public_key = key.public_key().export_key(format='raw')
    return ProgramKeypair(seed=key.seed, public_key=public_key)


def format_keypair(keypair: ProgramKeypair) -> str:
    """
    Serialize a keypair as a JSON byte array.

    Example:
        [174, 47, 154, ...]
    """
    return json.dumps(list(keypair.secret_key))


def keypair_path(workspace_root: Path, project_name: str) -> Path:
    """Location Anchor reads the program keypair from."""
    return workspace_root.joinpath(*KEYPAIR_DIR) / KEYPAIR_FILENAME_TEMPLATE.format(
        project_name=project_name
    )


def write_keypair(workspace_root: Path, project_name: str, keypair: ProgramKeypair) -> Path:
    """
    Write the keypair file for a program, readable by the owner only.

    Args:
        workspace_root: Anchor workspace root
        project_name: Program name
        keypair: Keypair to store

    Returns:
        Path of the written keypair file
    """
    path = keypair_path(workspace_root, project_name)
    path.parent.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
    path.write_text(format_keypair(keypair), encoding='utf-8')
    path.chmod(KEYPAIR_FILE_MODE)
    logger.info(f"Wrote program keypair for '{project_name}' ({keypair.program_id})")
    return path
