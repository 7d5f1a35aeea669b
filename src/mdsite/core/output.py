"""All-or-nothing publication of rendered artifacts"""

import logging
import os
import shutil
import tempfile
from pathlib import Path, PurePosixPath
from typing import Iterable

from mdsite.core.errors import OutputWriteFailure
from mdsite.core.models import Artifact


logger = logging.getLogger(__name__)


def _target(root: Path, artifact: Artifact) -> Path:
    """Resolve an artifact path under root, refusing paths that escape it."""
    rel = PurePosixPath(artifact.path)
    if rel.is_absolute() or ".." in rel.parts:
        raise OutputWriteFailure(artifact.path, OSError("artifact path escapes the output directory"))
    return root.joinpath(*rel.parts)


def write_staging(artifacts: Iterable[Artifact], staging: Path) -> int:
    """Write artifacts beneath staging. Returns the number of files written."""
    count = 0
    for artifact in artifacts:
        dest = _target(staging, artifact)
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            dest.write_bytes(artifact.content)
        except OSError as e:
            raise OutputWriteFailure(dest, e) from e
        count += 1
    return count


def _swap(staging: Path, output_dir: Path) -> None:
    """Move staging into place; a previous output tree is kept until the swap succeeded."""
    backup = None
    if output_dir.exists():
        backup = output_dir.with_name(f".{output_dir.name}.previous")
        if backup.exists():
            shutil.rmtree(backup)
        os.replace(output_dir, backup)
    try:
        os.replace(staging, output_dir)
    except OSError:
        if backup is not None:
            os.replace(backup, output_dir)
        raise
    if backup is not None:
        shutil.rmtree(backup, ignore_errors=True)


def write_tree(artifacts: Iterable[Artifact], output_dir: Path) -> int:
    """Publish artifacts as the complete contents of output_dir.

    Files are written to a sibling staging directory first; output_dir is only
    replaced once every file is on disk. On failure output_dir is untouched
    and OutputWriteFailure is raised.
    """
    output_dir = output_dir.resolve()
    try:
        output_dir.parent.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=f".{output_dir.name}.staging-", dir=output_dir.parent))
        staging.chmod(0o755)    # mkdtemp creates 0700
    except OSError as e:
        raise OutputWriteFailure(output_dir.parent, e) from e

    try:
        count = write_staging(artifacts, staging)
        _swap(staging, output_dir)
    except OSError as e:
        shutil.rmtree(staging, ignore_errors=True)
        raise OutputWriteFailure(output_dir, e) from e
    except OutputWriteFailure:
        shutil.rmtree(staging, ignore_errors=True)
        raise
    logger.info("published %d file(s) to %s", count, output_dir)
    return count
