from dataclasses import dataclass, field

from proto_trim.core.graph import FileNode, MethodType


@dataclass
class TrimContext:
    """Working state of one trimming run. Only ever grows."""

    required_records: set[str] = field(default_factory=set)
    required_enums: set[str] = field(default_factory=set)
    entry_methods: list[MethodType] = field(default_factory=list)
    retained_files: dict[str, FileNode] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    def methods_by_service(self, file_name: str) -> dict[str, list[MethodType]]:
        """Entry methods declared in ``file_name``, grouped per service, first resolution wins."""
        grouped: dict[str, list[MethodType]] = {}
        seen: set[str] = set()
        for method in self.entry_methods:
            if method.file != file_name or method.full_name in seen:
                continue
            seen.add(method.full_name)
            grouped.setdefault(method.service, []).append(method)
        return grouped
