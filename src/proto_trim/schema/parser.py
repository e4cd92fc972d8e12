"""Parse ``.proto`` text into a :class:`SchemaGraph` with ``protoc``."""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import sys
import tempfile
from collections.abc import Mapping, Sequence
from pathlib import Path

from google.protobuf import descriptor_pb2

from proto_trim.core.graph import SchemaGraph
from proto_trim.errors import ParseFailure
from proto_trim.schema.pool import rebuild_pool

logger = logging.getLogger(__name__)

_DESCRIPTOR_SET = "descriptor_set.pb"


def get_protoc_command() -> list[str]:
    command = os.getenv("PROTO_TRIM_PROTOC")
    if command:
        return shlex.split(command)
    # running the module form also puts the bundled well-known types on the include path
    return [sys.executable, "-m", "grpc_tools.protoc"]


def _write_sources(root: Path, contents: Mapping[str, str]) -> None:
    resolved_root = root.resolve()
    for name, text in contents.items():
        target = (root / name).resolve()
        if not target.is_relative_to(resolved_root):
            raise ParseFailure([name], "file path escapes the virtual import root")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")


class ProtocSchemaAccessor:
    """Schema accessor backed by a ``protoc`` subprocess.

    Every run writes the corpus to a temporary source tree, asks ``protoc``
    for a descriptor set with imports and source info, and builds the graph
    from it.
    """

    def __init__(self, command: Sequence[str] | None = None) -> None:
        self._command = list(command) if command is not None else get_protoc_command()

    def parse_files(self, entry_files: Sequence[str], contents: Mapping[str, str]) -> SchemaGraph:
        descriptor_set = self.compile(entry_files, contents)
        return SchemaGraph.from_file_protos(descriptor_set.file)

    def compile(self, entry_files: Sequence[str], contents: Mapping[str, str]) -> descriptor_pb2.FileDescriptorSet:
        with tempfile.TemporaryDirectory(prefix="proto-trim-src-") as src_dir, tempfile.TemporaryDirectory(
            prefix="proto-trim-out-"
        ) as out_dir:
            source_root = Path(src_dir)
            output = Path(out_dir) / _DESCRIPTOR_SET
            _write_sources(source_root, contents)

            cmd = [
                *self._command,
                "--proto_path=.",
                f"--descriptor_set_out={output}",
                "--include_imports",
                "--include_source_info",
                *entry_files,
            ]
            logger.debug("Running %s", " ".join(cmd))
            try:
                result = subprocess.run(cmd, cwd=source_root, capture_output=True, text=True)
            except OSError as exc:
                raise ParseFailure(entry_files, f"could not run protoc command {self._command[0]!r}: {exc}") from exc
            if result.returncode != 0:
                details = result.stderr.strip() or result.stdout.strip() or f"exit code {result.returncode}"
                raise ParseFailure(entry_files, details)
            if result.stderr.strip():
                logger.warning("protoc: %s", result.stderr.strip())

            return descriptor_pb2.FileDescriptorSet.FromString(output.read_bytes())

    def rebuild_files(self, files: Sequence[descriptor_pb2.FileDescriptorProto]) -> None:
        rebuild_pool(files)
