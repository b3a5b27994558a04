from __future__ import annotations

from enum import Enum

from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator

LOCAL_TARGET = "local"


class TargetKind(str, Enum):
    LOCAL = "local"
    REMOTE_SHELL = "remote-shell"
    REMOTE_CODESPACE = "remote-codespace"


# on-disk values written by older releases
_LEGACY_KINDS = {"ssh": TargetKind.REMOTE_SHELL, "codespace": TargetKind.REMOTE_CODESPACE}


class ModelMapping(BaseModel):
    vscode_id: str
    relay_id: str


class MCPServer(BaseModel):
    name: str
    enabled: bool = True
    command: str
    args: list[str] = Field(default_factory=list)


class Target(BaseModel):
    name: str = Field(min_length=1)
    kind: TargetKind = Field(validation_alias=AliasChoices("kind", "type"))
    host: str | None = None

    @field_validator("kind", mode="before")
    @classmethod
    def _legacy_kind(cls, value):
        if isinstance(value, str):
            return _LEGACY_KINDS.get(value, value)
        return value

    @model_validator(mode="after")
    def _remote_needs_host(self) -> "Target":
        if self.kind is not TargetKind.LOCAL and not self.host:
            raise ValueError(f"target {self.name!r} of kind {self.kind.value} needs a host")
        return self

    @property
    def is_remote(self) -> bool:
        return self.kind is not TargetKind.LOCAL


class Config(BaseModel):
    api_key: str = ""
    base_url: str = ""
    model_mappings: list[ModelMapping] = Field(default_factory=list)
    default_opus_model: str = ""
    default_sonnet_model: str = ""
    default_haiku_model: str = ""
    mcp_servers: list[MCPServer] = Field(default_factory=list)
    targets: list[Target] = Field(default_factory=list)
    auto_detect: bool = False

    @model_validator(mode="after")
    def _local_target_first(self) -> "Config":
        local = [t for t in self.targets if t.name == LOCAL_TARGET]
        others = [t for t in self.targets if t.name != LOCAL_TARGET]
        if not local:
            local = [Target(name=LOCAL_TARGET, kind=TargetKind.LOCAL)]
        self.targets = local[:1] + others
        return self

    def mapping_table(self) -> dict[str, str]:
        return {m.vscode_id: m.relay_id for m in self.model_mappings if m.vscode_id and m.relay_id}

    def find_target(self, name: str) -> Target | None:
        for target in self.targets:
            if target.name == name:
                return target
        return None


class DeployStatus(BaseModel):
    target: str
    cli_path: str = "not found"
    cli_patched: bool = False
    cli_backup_exists: bool = False
    config_exists: bool = False
    # legacy extension.js patch, reported so it can be cleaned up
    ext_path: str = "not found"
    patched: bool = False
    backup_exists: bool = False


class RelayModel(BaseModel):
    id: str


def default_config() -> Config:
    return Config(
        base_url="https://api.anthropic.com",
        auto_detect=True,
        model_mappings=[
            ModelMapping(vscode_id="claude-opus-4.6", relay_id="claude-opus-4-6"),
            ModelMapping(vscode_id="claude-sonnet-4.5", relay_id="claude-sonnet-4-5-20250929"),
            ModelMapping(vscode_id="claude-haiku-4.5", relay_id="claude-haiku-4-5-20251001"),
        ],
        default_opus_model="claude-opus-4-6",
        default_sonnet_model="claude-sonnet-4-5-20250929",
        default_haiku_model="claude-haiku-4-5-20251001",
        mcp_servers=[
            MCPServer(name="fetch", enabled=True, command="uvx", args=["mcp-server-fetch"]),
            MCPServer(name="deepwiki", enabled=True, command="npx", args=["-y", "mcp-deepwiki@latest"]),
        ],
        targets=[Target(name=LOCAL_TARGET, kind=TargetKind.LOCAL)],
    )
