"""Configuration for workflow import/export and the editing adapters."""

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass
class ReflowConfig:
    """Runtime settings, overridable through REFLOW_* environment variables."""

    default_workflow_name: str = "Imported Workflow"
    untitled_workflow_name: str = "Untitled Workflow"
    history_limit: int = 50
    max_open_documents: int = 32
    workspace_dir: Path | None = None
    debug: bool = False

    def __post_init__(self):
        if self.workspace_dir is None:
            self.workspace_dir = Path.home() / "reflow-workflows"
        elif isinstance(self.workspace_dir, str):
            self.workspace_dir = Path(self.workspace_dir)
        if self.history_limit < 1:
            raise ValueError(f"history_limit must be at least 1, got {self.history_limit}")
        if self.max_open_documents < 1:
            raise ValueError(f"max_open_documents must be at least 1, got {self.max_open_documents}")

    @classmethod
    def from_env(cls) -> "ReflowConfig":
        """Create configuration from environment variables."""
        workspace = os.getenv("REFLOW_WORKSPACE_DIR")
        return cls(
            default_workflow_name=os.getenv("REFLOW_DEFAULT_NAME", "Imported Workflow"),
            history_limit=int(os.getenv("REFLOW_HISTORY_LIMIT", "50")),
            max_open_documents=int(os.getenv("REFLOW_MAX_OPEN_DOCUMENTS", "32")),
            workspace_dir=Path(workspace) if workspace else None,
            debug=os.getenv("REFLOW_DEBUG", "false").lower() == "true",
        )


DEFAULT_CONFIG = ReflowConfig()


def get_config() -> ReflowConfig:
    """Get the active configuration."""
    if any(key.startswith("REFLOW_") for key in os.environ):
        return ReflowConfig.from_env()

    return DEFAULT_CONFIG
