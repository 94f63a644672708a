"""
Locating compiled artifacts in a build output tree
"""

import json
import logging
import os
import shlex
import subprocess
from typing import List, Optional

from crossx.errors import ArtifactNotFound, CompileError, InvalidInput
from crossx.models import CompiledArtifact

logger = logging.getLogger('crossx')

DEFAULT_COMPILE_COMMAND = "npx hardhat compile"


def compile_contracts(project_root: str, command: str = DEFAULT_COMPILE_COMMAND, timeout: int = 600) -> str:
    """Run the external compiler and return its stdout"""
    logger.info(f"Compiling contracts in {project_root}: {command}")
    try:
        result = subprocess.run(
            shlex.split(command),
            cwd=project_root,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        raise CompileError(f"Could not run '{command}': {e}")

    if result.returncode != 0:
        logger.error(f"Compiler output: {result.stderr.strip() or result.stdout.strip()}")
        raise CompileError(f"'{command}' exited with code {result.returncode}")
    return result.stdout


def _artifact_files(build_tree: str) -> List[str]:
    paths = []
    for root, _dirs, files in os.walk(build_tree):
        for filename in files:
            if filename.endswith('.json') and not filename.endswith('.dbg.json'):
                paths.append(os.path.join(root, filename))
    return paths


def _read_source(source_name: Optional[str], project_root: Optional[str]) -> Optional[str]:
    if not source_name or not project_root:
        return None
    path = os.path.join(project_root, source_name)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return f.read()
    except OSError:
        logger.debug(f"Contract source {path} not found")
        return None


def locate(build_tree: str, project_root: Optional[str] = None) -> CompiledArtifact:
    """Return the most recently modified deployable artifact under build_tree

    Hardhat writes one JSON per contract (plus *.dbg.json debug files). Files
    without an ABI or with empty bytecode (interfaces, abstract contracts) are
    skipped.
    """
    if not os.path.isdir(build_tree):
        raise ArtifactNotFound(f"Build output directory {build_tree} does not exist")

    candidates = sorted(_artifact_files(build_tree), key=os.path.getmtime, reverse=True)
    for path in candidates:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.debug(f"Skipping unreadable artifact {path}: {e}")
            continue
        if not isinstance(data, dict):
            continue

        try:
            artifact = CompiledArtifact.from_json(data)
        except InvalidInput:
            continue
        if not artifact.bytecode:
            continue

        source = _read_source(artifact.source_name, project_root)
        if source is not None:
            artifact = CompiledArtifact(
                name=artifact.name,
                bytecode=artifact.bytecode,
                abi=artifact.abi,
                source=source,
                source_name=artifact.source_name,
            )
        logger.info(f"Located artifact {artifact.name} at {path}")
        return artifact

    raise ArtifactNotFound(f"No compiled artifact found under {build_tree}")
