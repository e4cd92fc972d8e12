"""Map caller-supplied file paths onto one virtual import root and back."""

from __future__ import annotations

import posixpath
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from proto_trim.errors import PathConflict


def split_segments(path: str) -> tuple[str, ...]:
    normalized = posixpath.normpath(path.replace("\\", "/"))
    if normalized == ".":
        return ()
    if normalized.startswith("/"):
        return ("/", *(part for part in normalized.split("/") if part))
    return tuple(normalized.split("/"))


def _join(segments: Sequence[str]) -> str:
    if segments and segments[0] == "/":
        return "/" + "/".join(segments[1:])
    return "/".join(segments)


def _relative(segments: Sequence[str]) -> tuple[str, ...]:
    # canonical names always live below the virtual root
    return tuple(segments[1:]) if segments and segments[0] == "/" else tuple(segments)


def common_prefix(paths: Sequence[tuple[str, ...]]) -> tuple[str, ...]:
    """Longest common segment prefix, never covering a whole path."""
    if not paths:
        return ()
    if len(paths) == 1:
        return paths[0][:-1]
    limit = min(len(p) for p in paths) - 1
    prefix: list[str] = []
    for index in range(max(limit, 0)):
        segment = paths[0][index]
        if any(p[index] != segment for p in paths[1:]):
            break
        prefix.append(segment)
    return tuple(prefix)


@dataclass
class PathCanonicalizer:
    root: str
    _to_canonical: dict[str, str] = field(default_factory=dict)
    _to_original: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_identities(cls, identities: Iterable[str], import_paths: Sequence[str] = ()) -> PathCanonicalizer:
        """Build the rewrite table for every identity of a run.

        Identities inside an import path become relative to the first such
        import path. The rest lose their longest common segment prefix, which
        for a single identity is its directory.
        """
        roots = [split_segments(p) for p in import_paths]
        unique = list(dict.fromkeys(identities))

        rooted: dict[str, tuple[str, ...]] = {}
        loose: dict[str, tuple[str, ...]] = {}
        for identity in unique:
            segments = split_segments(identity)
            for root in roots:
                if len(segments) > len(root) and segments[: len(root)] == root:
                    rooted[identity] = segments[len(root) :]
                    break
            else:
                loose[identity] = segments

        prefix = common_prefix(list(loose.values()))
        canonicalizer = cls(root=_join(prefix))
        for identity, relative in rooted.items():
            canonicalizer._register(identity, _join(_relative(relative)))
        for identity, segments in loose.items():
            canonicalizer._register(identity, _join(_relative(segments[len(prefix) :])))
        return canonicalizer

    def _register(self, identity: str, canonical: str) -> None:
        existing = self._to_original.get(canonical)
        if existing is not None and existing != identity:
            raise PathConflict(canonical, existing, identity)
        self._to_canonical[identity] = canonical
        self._to_original[canonical] = identity

    def canonical(self, identity: str) -> str:
        return self._to_canonical[identity]

    def original(self, canonical: str) -> str:
        return self._to_original.get(canonical, canonical)

    def __contains__(self, identity: object) -> bool:
        return identity in self._to_canonical
