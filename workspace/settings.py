"""Workspace configuration.

Configuration priority (highest to lowest):
    1. Programmatic (keyword overrides passed to ``from_env``)
    2. Environment variables (``VWS_*`` prefix, optionally from a ``.env`` file)
    3. Built-in defaults

Environment Variables:
    VWS_HOME - Directory ``~`` resolves to
    VWS_USERNAME - User name reported by ``whoami`` and ``env``
    VWS_HISTORY_LIMIT - Commands kept per terminal history ring
    VWS_AI_DELAY_SECONDS - Simulated latency of the AI delegation command
    VWS_DEFAULT_SHELL - Shell flavour for new terminals
    VWS_SEED_DEMO_TREE - Whether to populate the demo tree ("true"/"false")
    VWS_BOUND_ROOT - Real directory to bind at start-up
    VWS_TERMINAL_STORE_PATH - JSON file used to persist terminal sessions
"""

import os
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator


ENV_PREFIX = "VWS_"

SHELL_TYPES = ("henu", "bash", "zsh", "powershell", "cmd")


class WorkspaceSettings(BaseModel):
    """Settings shared by the VFS, interpreters and terminal manager.

    Args:
        home: Absolute virtual path ``~`` resolves to.
        username: User name reported by ``whoami`` and ``env``.
        history_limit: Maximum commands retained per terminal history ring.
        ai_delay_seconds: Simulated latency before the AI command completes.
        default_shell: Shell flavour used for new terminals.
        seed_demo_tree: Whether a fresh in-memory VFS gets the demo tree.
        bound_root: Real directory to bind at start-up (None for simulation mode).
        terminal_store_path: JSON file for terminal persistence (None disables it).
        bridge_max_depth: Maximum directory depth the local disk bridge enumerates.
        bridge_max_file_bytes: Files larger than this are listed without content.
    """

    home: str = Field(default="/home/user", description="Virtual home directory")
    username: str = Field(default="henu", description="Reported user name")
    history_limit: int = Field(default=100, ge=1, description="History ring size")
    ai_delay_seconds: float = Field(
        default=1.5, ge=0, description="Simulated AI command latency"
    )
    default_shell: str = Field(default="henu", description="Shell for new terminals")
    seed_demo_tree: bool = Field(default=True, description="Populate the demo tree")
    bound_root: Optional[str] = Field(
        default=None, description="Real directory bound at start-up"
    )
    terminal_store_path: Optional[str] = Field(
        default=None, description="Terminal persistence file"
    )
    bridge_max_depth: int = Field(default=8, ge=1, description="Disk enumeration depth")
    bridge_max_file_bytes: int = Field(
        default=100_000, ge=0, description="Largest file read during enumeration"
    )

    @field_validator("home")
    @classmethod
    def validate_home(cls, v: str) -> str:
        """Validate that home is an absolute virtual path.

        Args:
            v: The home value.

        Returns:
            The normalized home path (no trailing separator).

        Raises:
            ValueError: If home is not absolute.
        """
        if not v.startswith("/"):
            raise ValueError(f"home must be an absolute path, got '{v}'")
        return "/" + "/".join(part for part in v.split("/") if part)

    @field_validator("default_shell")
    @classmethod
    def validate_default_shell(cls, v: str) -> str:
        if v not in SHELL_TYPES:
            raise ValueError(
                f"Unknown shell '{v}'. Available: {', '.join(SHELL_TYPES)}"
            )
        return v

    @classmethod
    def from_env(cls, **overrides: Any) -> "WorkspaceSettings":
        """Build settings from ``VWS_*`` environment variables.

        A ``.env`` file in the working directory is loaded first (without
        overriding variables already set in the process environment).

        Args:
            **overrides: Programmatic values that win over the environment.

        Returns:
            Validated settings.
        """
        load_dotenv()
        values: dict[str, Any] = {}
        for field_name in cls.model_fields:
            raw = os.environ.get(f"{ENV_PREFIX}{field_name.upper()}")
            if raw is not None and raw != "":
                values[field_name] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.model_validate(values)
