"""End-to-end trimming through the bundled protoc."""

from __future__ import annotations

import pytest

from proto_trim.core.graph import SchemaGraph
from proto_trim.core.trim import list_methods, run_trim
from proto_trim.errors import MethodNotFound, ParseFailure
from proto_trim.models import TrimRequest, TrimResult
from proto_trim.schema import ProtocSchemaAccessor, ProtoPrinter

COMMON = """
syntax = "proto3";
package common.v1;
option go_package = "example/commonv1";

message User {
  string user_id = 1;
  string display_name = 2;
}
enum Status {
  STATUS_UNSPECIFIED = 0;
  ACTIVE = 1;
  INACTIVE = 2;
}
message UnusedCommonMessage {
  string id = 1;
}
"""

PROJECT = """
syntax = "proto3";
package project.v1;
import "common.proto";
option go_package = "example/projectv1";

message Project {
  string project_id = 1;
  string name = 2;
  common.v1.Status status = 3;
  common.v1.User owner = 4;
}
message UnrelatedMessage {
  string data = 1;
}
service ProjectService {
  rpc CreateProject(CreateProjectRequest) returns (CreateProjectResponse);
  rpc DeleteProject(DeleteProjectRequest) returns (DeleteProjectResponse);
}
message CreateProjectRequest {
  string name = 1;
  string owner_user_id = 2;
}
message CreateProjectResponse {
  Project project = 1;
}
message DeleteProjectRequest {
  string project_id = 1;
}
message DeleteProjectResponse {
  bool success = 1;
}
"""

BILLING = """
syntax = "proto3";
package billing.v1;
import "common.proto";

message Invoice {
  string invoice_id = 1;
  common.v1.User billing_contact = 2;
}
message GenerateInvoiceRequest {
  string user_id_for_invoice = 1;
}
message GenerateInvoiceResponse {
  Invoice invoice = 1;
}
service BillingService {
  rpc GenerateInvoice(GenerateInvoiceRequest) returns (GenerateInvoiceResponse);
}
"""

CORPUS = {"common.proto": COMMON, "project.proto": PROJECT, "billing.proto": BILLING}


def _trim(
    accessor: ProtocSchemaAccessor,
    printer: ProtoPrinter,
    entries: list[str],
    methods: list[str],
    contents: dict[str, str],
    import_paths: list[str] | None = None,
) -> TrimResult:
    request = TrimRequest(entry_files=entries, methods=methods, contents=contents, import_paths=import_paths or [])
    return run_trim(accessor, printer, request)


def _reparse(accessor: ProtocSchemaAccessor, files: dict[str, str]) -> SchemaGraph:
    """Compile trimmed output again; protoc rejects anything unsound."""
    return accessor.parse_files(sorted(files), files)


class TestSingleEntry:
    def test_create_project_keeps_its_closure(self, accessor: ProtocSchemaAccessor, printer: ProtoPrinter) -> None:
        result = _trim(accessor, printer, ["project.proto"], ["ProjectService.CreateProject"], CORPUS)
        assert set(result.files) == {"project.proto", "common.proto"}
        assert result.methods == ["project.v1.ProjectService.CreateProject"]

        graph = _reparse(accessor, result.files)
        assert set(graph.records) == {
            "project.v1.Project",
            "project.v1.CreateProjectRequest",
            "project.v1.CreateProjectResponse",
            "common.v1.User",
        }
        assert set(graph.enums) == {"common.v1.Status"}
        assert list(graph.methods) == ["project.v1.ProjectService.CreateProject"]

    def test_both_methods_union(self, accessor: ProtocSchemaAccessor, printer: ProtoPrinter) -> None:
        result = _trim(
            accessor, printer, ["project.proto"], ["ProjectService.CreateProject", "DeleteProject"], CORPUS
        )
        graph = _reparse(accessor, result.files)
        assert set(graph.methods) == {
            "project.v1.ProjectService.CreateProject",
            "project.v1.ProjectService.DeleteProject",
        }
        assert "project.v1.DeleteProjectResponse" in graph.records
        assert "project.v1.UnrelatedMessage" not in graph.records
        assert 'import "common.proto";' in result.files["project.proto"]

    def test_delete_only_drops_common(self, accessor: ProtocSchemaAccessor, printer: ProtoPrinter) -> None:
        result = _trim(accessor, printer, ["project.proto"], ["project.v1.ProjectService.DeleteProject"], CORPUS)
        assert list(result.files) == ["project.proto"]
        assert "import" not in result.files["project.proto"]
        _reparse(accessor, result.files)


class TestMultiEntry:
    def test_merges_closures(self, accessor: ProtocSchemaAccessor, printer: ProtoPrinter) -> None:
        result = _trim(
            accessor,
            printer,
            ["project.proto", "billing.proto"],
            ["ProjectService.DeleteProject", "BillingService.GenerateInvoice"],
            CORPUS,
        )
        assert set(result.files) == {"project.proto", "billing.proto", "common.proto"}

        graph = _reparse(accessor, result.files)
        assert "project.v1.ProjectService.CreateProject" not in graph.methods
        assert "project.v1.ProjectService.DeleteProject" in graph.methods
        assert "project.v1.Project" not in graph.records
        assert "billing.v1.Invoice" in graph.records
        assert "common.v1.User" in graph.records
        assert "common.v1.Status" not in graph.enums


class TestSelectors:
    def test_substring_matches_several(self, accessor: ProtocSchemaAccessor, printer: ProtoPrinter) -> None:
        contents = {
            "svc.proto": """
syntax = "proto3";
package svc;
message Req {}
message Resp {}
service Admin {
  rpc CreateProject(Req) returns (Resp);
  rpc CreateInvoice(Req) returns (Resp);
  rpc Purge(Req) returns (Resp);
}
"""
        }
        result = _trim(accessor, printer, ["svc.proto"], ["Create"], contents)
        assert result.methods == ["svc.Admin.CreateProject", "svc.Admin.CreateInvoice"]
        assert "Purge" not in result.files["svc.proto"]

    def test_unknown_qualified_method(self, accessor: ProtocSchemaAccessor, printer: ProtoPrinter) -> None:
        with pytest.raises(MethodNotFound):
            _trim(accessor, printer, ["project.proto"], ["ProjectService.Archive"], CORPUS)

    def test_no_match_is_a_warning(self, accessor: ProtocSchemaAccessor, printer: ProtoPrinter) -> None:
        result = _trim(accessor, printer, ["project.proto"], ["Archive"], CORPUS)
        assert result.files == {}
        assert result.warnings

    def test_cleanup_mode(self, accessor: ProtocSchemaAccessor, printer: ProtoPrinter) -> None:
        everything = _trim(accessor, printer, ["project.proto"], [], CORPUS)
        single = _trim(accessor, printer, ["project.proto"], ["CreateProject"], CORPUS)
        assert set(single.files) <= set(everything.files)
        graph = _reparse(accessor, everything.files)
        assert "project.v1.UnrelatedMessage" not in graph.records
        assert "common.v1.UnusedCommonMessage" not in graph.records
        assert len(graph.methods) == 2


class TestPaths:
    def test_unrelated_roots(self, accessor: ProtocSchemaAccessor, printer: ProtoPrinter) -> None:
        contents = {
            "/mnt/left/ping.proto": """
syntax = "proto3";
package left;
message PingMsg {}
service Pinger { rpc Ping(PingMsg) returns (PingMsg); }
""",
            "/srv/right/pong.proto": """
syntax = "proto3";
package right;
message PongMsg {}
service Ponger { rpc Pong(PongMsg) returns (PongMsg); }
""",
        }
        result = _trim(accessor, printer, list(contents), ["Pinger.Ping", "Ponger.Pong"], contents)
        assert sorted(result.files) == ["/mnt/left/ping.proto", "/srv/right/pong.proto"]
        assert "rpc Ping(PingMsg) returns (PingMsg);" in result.files["/mnt/left/ping.proto"]

    def test_import_paths_resolve_cross_root_imports(
        self, accessor: ProtocSchemaAccessor, printer: ProtoPrinter
    ) -> None:
        contents = {
            "/mnt/left/api.proto": """
syntax = "proto3";
package api;
import "shared/types.proto";
service Api { rpc Call(shared.Req) returns (shared.Req); }
""",
            "/srv/right/shared/types.proto": """
syntax = "proto3";
package shared;
message Req { string id = 1; }
message Other {}
""",
        }
        result = _trim(
            accessor,
            printer,
            ["/mnt/left/api.proto"],
            [],
            contents,
            import_paths=["/mnt/left", "/srv/right"],
        )
        assert set(result.files) == set(contents)
        assert "Other" not in result.files["/srv/right/shared/types.proto"]

    def test_root_relative_imports_with_dot(self, accessor: ProtocSchemaAccessor, printer: ProtoPrinter) -> None:
        contents = {
            "example/common.proto": COMMON,
            "example/project.proto": PROJECT.replace('import "common.proto";', 'import "example/common.proto";'),
        }
        result = _trim(
            accessor, printer, ["example/project.proto"], ["CreateProject"], contents, import_paths=["."]
        )
        assert set(result.files) == set(contents)
        assert 'import "example/common.proto";' in result.files["example/project.proto"]


class TestTypeGraphs:
    def test_self_reference(self, accessor: ProtocSchemaAccessor, printer: ProtoPrinter) -> None:
        contents = {
            "tree.proto": """
syntax = "proto3";
package tree;
message Node {
  string value = 1;
  repeated Node children = 2;
}
service Trees { rpc Walk(Node) returns (Node); }
"""
        }
        result = _trim(accessor, printer, ["tree.proto"], ["Walk"], contents)
        assert result.files["tree.proto"].count("message Node {") == 1
        assert list(_reparse(accessor, result.files).records) == ["tree.Node"]

    def test_well_known_types_stay_imported(self, accessor: ProtocSchemaAccessor, printer: ProtoPrinter) -> None:
        contents = {
            "events.proto": """
syntax = "proto3";
package events;
import "google/protobuf/timestamp.proto";
import "google/protobuf/duration.proto";
message Event { google.protobuf.Timestamp at = 1; }
message Window { google.protobuf.Duration size = 1; }
service Events {
  rpc Get(Event) returns (Event);
  rpc Span(Window) returns (Window);
}
"""
        }
        result = _trim(accessor, printer, ["events.proto"], ["Get"], contents)
        text = result.files["events.proto"]
        assert list(result.files) == ["events.proto"]
        assert 'import "google/protobuf/timestamp.proto";' in text
        assert "duration" not in text
        assert ".google.protobuf.Timestamp at = 1;" in text
        _reparse(accessor, result.files)

    def test_nested_extend_blocks_are_dropped(self, accessor: ProtocSchemaAccessor, printer: ProtoPrinter) -> None:
        contents = {
            "holder.proto": """
syntax = "proto2";
package h;
import "google/protobuf/descriptor.proto";
import "base.proto";
import "payload.proto";
message Holder {
  extend google.protobuf.FieldOptions { optional string tag = 50001; }
  message Inner {
    extend b.Base { optional p.Payload payload = 100; }
  }
  optional string id = 1;
}
service Holders { rpc Get(Holder) returns (Holder); }
""",
            "base.proto": """
syntax = "proto2";
package b;
message Base { extensions 100 to 199; }
""",
            "payload.proto": """
syntax = "proto2";
package p;
message Payload { optional string value = 1; }
""",
        }
        result = _trim(accessor, printer, ["holder.proto"], ["Get"], contents)
        text = result.files["holder.proto"]
        assert list(result.files) == ["holder.proto"]
        assert "import" not in text
        assert "extend" not in text
        assert "message Inner" in text
        assert sorted(_reparse(accessor, result.files).records) == ["h.Holder", "h.Holder.Inner"]

    def test_nested_maps_and_oneofs(self, accessor: ProtocSchemaAccessor, printer: ProtoPrinter) -> None:
        contents = {
            "inv.proto": """
syntax = "proto3";
package inv;
message Item {
  enum Kind {
    KIND_UNSPECIFIED = 0;
    TOOL = 1;
  }
  message Dimensions { double width = 1; }
  Kind kind = 1;
  map<string, Dimensions> sizes = 2;
  oneof origin {
    string vendor = 3;
    int64 batch = 4;
  }
  optional string note = 5;
}
message Unused {}
service Inventory { rpc Get(Item) returns (Item); }
"""
        }
        result = _trim(accessor, printer, ["inv.proto"], ["Get"], contents)
        text = result.files["inv.proto"]
        assert "map<string, Dimensions> sizes = 2;" in text
        assert "oneof origin {" in text
        assert "optional string note = 5;" in text
        assert "Unused" not in text
        graph = _reparse(accessor, result.files)
        assert "inv.Item.Dimensions" in graph.records


class TestSourceComments:
    SOURCE = """syntax = "proto3";

package demo.v1;

// Shared user record.
message User {
  string id = 1; // primary key
}

// Only used by Drop.
message DropRequest {
  string id = 1;
}

message Empty {}

// The user service.
service Users {
  // Fetches a user.
  rpc Get(User) returns (User);
  // Drops a user.
  rpc Drop(DropRequest) returns (Empty);
}
"""

    def test_comments_follow_kept_elements(self, accessor: ProtocSchemaAccessor, printer: ProtoPrinter) -> None:
        result = _trim(accessor, printer, ["users.proto"], ["Users.Get"], {"users.proto": self.SOURCE})
        assert result.files["users.proto"] == (
            'syntax = "proto3";\n'
            "\n"
            "package demo.v1;\n"
            "\n"
            "// Shared user record.\n"
            "message User {\n"
            "  string id = 1; // primary key\n"
            "}\n"
            "\n"
            "// The user service.\n"
            "service Users {\n"
            "  // Fetches a user.\n"
            "  rpc Get(User) returns (User);\n"
            "}\n"
        )

    def test_trimming_is_idempotent(self, accessor: ProtocSchemaAccessor, printer: ProtoPrinter) -> None:
        first = _trim(accessor, printer, ["users.proto"], ["Users.Get"], {"users.proto": self.SOURCE})
        second = _trim(accessor, printer, ["users.proto"], ["Users.Get"], first.files)
        assert second.files == first.files


def test_list_methods(accessor: ProtocSchemaAccessor) -> None:
    found = list_methods(accessor, ["project.proto"], CORPUS)
    assert [m.full_name for m in found] == [
        "project.v1.ProjectService.CreateProject",
        "project.v1.ProjectService.DeleteProject",
    ]


def test_syntax_error_is_parse_failure(accessor: ProtocSchemaAccessor, printer: ProtoPrinter) -> None:
    with pytest.raises(ParseFailure) as exc_info:
        _trim(accessor, printer, ["bad.proto"], [], {"bad.proto": "syntax = \"proto3\";\nmessage {"})
    assert "bad.proto" in exc_info.value.details
