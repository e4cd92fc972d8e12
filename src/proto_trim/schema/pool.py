from collections.abc import Sequence

from google.protobuf import descriptor_pb2, descriptor_pool

from proto_trim.errors import DescriptorRebuildFailure


def dependency_order(
    files: Sequence[descriptor_pb2.FileDescriptorProto],
) -> list[descriptor_pb2.FileDescriptorProto]:
    """Order files so every file follows the files it imports."""
    by_name = {file.name: file for file in files}
    ordered: list[descriptor_pb2.FileDescriptorProto] = []
    visited: set[str] = set()

    def visit(name: str) -> None:
        if name in visited or name not in by_name:
            return
        visited.add(name)
        file = by_name[name]
        for dependency in file.dependency:
            visit(dependency)
        ordered.append(file)

    for file in files:
        visit(file.name)
    return ordered


def rebuild_pool(files: Sequence[descriptor_pb2.FileDescriptorProto]) -> descriptor_pool.DescriptorPool:
    """Load ``files`` into a fresh pool, failing on the first file it rejects."""
    pool = descriptor_pool.DescriptorPool()
    for file in dependency_order(files):
        try:
            pool.AddSerializedFile(file.SerializeToString())
            pool.FindFileByName(file.name)
        except (KeyError, TypeError, ValueError) as exc:
            raise DescriptorRebuildFailure(file.name, str(exc)) from exc
    return pool
