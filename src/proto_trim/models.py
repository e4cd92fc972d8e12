from pydantic import BaseModel, Field


class TrimRequest(BaseModel):
    entry_files: list[str] = Field(min_length=1)
    methods: list[str] = Field(default_factory=list)
    contents: dict[str, str]
    import_paths: list[str] = Field(default_factory=list)


class TrimResult(BaseModel):
    files: dict[str, str] = Field(default_factory=dict)
    methods: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class MethodInfo(BaseModel):
    full_name: str
    service: str
    name: str
    file: str
    input_type: str
    output_type: str
    client_streaming: bool = False
    server_streaming: bool = False
