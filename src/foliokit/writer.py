"""Safe file output for the cache, the build manifest, and foliokit.yaml.

  confine_output_path()  user-supplied output path → absolute Path; relative
                         paths may not leave the project (../../etc/passwd)
  write_atomic()         text → sibling temp file → os.replace()
  write_json()           write_atomic() for JSON documents; dates and other
                         non-JSON scalars (YAML front-matter) are stringified
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any


def confine_output_path(output: str | Path, project_dir: Path) -> Path:
    """Resolve *output* for writing.

    An absolute path is the user's explicit choice and is returned resolved.
    A relative path is taken from *project_dir* and must stay inside it.

    Raises:
        ValueError: If a relative path resolves outside *project_dir*.
    """
    path = Path(output)
    if path.is_absolute():
        return path.resolve()

    base = project_dir.resolve()
    target = (base / path).resolve()
    if not target.is_relative_to(base):
        raise ValueError(
            f"Output path '{output}' resolves outside the project directory "
            f"'{base}'. Path traversal is not permitted."
        )
    return target


def write_atomic(path: Path, text: str) -> None:
    """Replace *path* with *text* in one step; parent directories are created.

    Readers see either the old file or the complete new one, never a partial
    write. The temp file is removed if anything fails.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        "w", encoding="utf-8", dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False
    ) as tmp:
        tmp_path = Path(tmp.name)
        try:
            tmp.write(text)
        except BaseException:
            tmp.close()
            tmp_path.unlink(missing_ok=True)
            raise
    try:
        os.replace(tmp_path, path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise


def write_json(path: Path, data: Any) -> None:
    write_atomic(path, json.dumps(data, indent=2, ensure_ascii=False, default=str) + "\n")
