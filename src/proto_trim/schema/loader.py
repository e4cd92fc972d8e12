from collections.abc import Sequence
from pathlib import Path

from proto_trim.errors import EntryFileNotFound


def load_protos(roots: Sequence[str | Path]) -> dict[str, str]:
    """Read every ``.proto`` file below ``roots``, keyed by absolute POSIX path.

    A file reachable from overlapping roots is read once.
    """
    contents: dict[str, str] = {}
    for root in roots:
        root_path = Path(root).resolve()
        if not root_path.is_dir():
            raise FileNotFoundError(f"Import path not found: {root}")
        for file_path in sorted(root_path.rglob("*.proto")):
            if not file_path.is_file():
                continue
            key = file_path.as_posix()
            if key in contents:
                continue
            contents[key] = file_path.read_text(encoding="utf-8")
    return contents


def locate_entry(entry: str, roots: Sequence[str | Path]) -> str:
    """Absolute POSIX path of ``entry``, which must sit inside one of ``roots``.

    The entry is tried as given first, then relative to each root.
    """
    resolved_roots = [Path(root).resolve() for root in roots]
    candidates = [Path(entry).resolve(), *(root / entry for root in resolved_roots)]
    for candidate in candidates:
        if not candidate.is_file():
            continue
        candidate = candidate.resolve()
        if any(candidate.is_relative_to(root) for root in resolved_roots):
            return candidate.as_posix()
    raise EntryFileNotFound(entry)


def relative_to_roots(path: str, roots: Sequence[str | Path]) -> Path:
    """Path of ``path`` relative to the first root containing it."""
    file_path = Path(path)
    for root in roots:
        root_path = Path(root).resolve()
        if file_path.is_relative_to(root_path):
            return file_path.relative_to(root_path)
    return Path(file_path.name)
