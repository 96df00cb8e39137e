"""
Configuration settings for the ctf-tools manager.
"""

from typing import Optional, List
from pathlib import Path
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Niceness used by ``manage -n``
DEFAULT_NICE_LEVEL = 10

STATE_BACKENDS = ("marker", "git")


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = Field(default="INFO", description="Logging level")
    file_path: Optional[Path] = Field(default=None, description="Optional rotating log file")
    max_file_size_mb: int = Field(default=10, description="Maximum log file size in MB")
    backup_count: int = Field(default=5, description="Number of log backups to keep")


class Settings(BaseSettings):
    """
    Process-wide flags and paths.

    Built once at startup, from the environment (and ``.env``) overlaid with
    command line flags, then handed to the orchestrator. Nothing reads the
    environment after this point.
    """
    # Flags
    allow_sudo: bool = Field(default=False, validation_alias="ALLOW_SUDO",
                             description="Allow install-dep scripts to run under sudo")
    force: bool = Field(default=False, validation_alias="FORCE",
                        description="Install over an installed tool, run gated tests")
    verbose: bool = Field(default=False, validation_alias="VERBOSE_OUTPUT",
                          description="Stream script output while it runs")
    nice_level: int = Field(default=0, validation_alias="NICE_LEVEL",
                            description="Niceness of install scripts")
    expect_fail: bool = Field(default=False, validation_alias="EXPECTFAIL",
                              description="Invert the outcome of the test action")

    # Layout
    tools_root: Path = Field(default_factory=Path.cwd, validation_alias="CTF_TOOLS_ROOT",
                             description="Directory holding the tool directories and bin/")
    catalog_name: str = Field(default="README.md", validation_alias="CTF_TOOLS_CATALOG",
                              description="Catalog file, relative to the tools root")
    setup_script: Optional[Path] = Field(default=None, validation_alias="CTF_TOOLS_SETUP_SCRIPT",
                                         description="Environment installer run by setup")
    shell_profile: Path = Field(default_factory=lambda: Path.home() / ".bashrc",
                                validation_alias="CTF_TOOLS_PROFILE",
                                description="Shell profile that setup extends")

    # Policy
    state_backend: str = Field(default="marker", validation_alias="CTF_TOOLS_STATE",
                               description="How installed state is tracked: marker or git")
    enforce_script_header: bool = Field(default=True, validation_alias="CTF_TOOLS_STRICT_HEADERS",
                                        description="Refuse scripts without a strict-mode header")
    sudo_command: List[str] = Field(default_factory=lambda: ["sudo", "-E"],
                                    validation_alias="CTF_TOOLS_SUDO",
                                    description="Prefix used to run privileged scripts")

    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        populate_by_name=True,
        extra="ignore",
    )

    @field_validator("nice_level")
    @classmethod
    def validate_nice_level(cls, v):
        if not 0 <= v <= 19:
            raise ValueError(f"nice level must be between 0 and 19, got {v}")
        return v

    @field_validator("state_backend")
    @classmethod
    def validate_state_backend(cls, v):
        v = v.lower()
        if v not in STATE_BACKENDS:
            raise ValueError(f"unknown state backend {v!r}, expected one of {STATE_BACKENDS}")
        return v

    @field_validator("tools_root")
    @classmethod
    def resolve_tools_root(cls, v):
        return Path(v).expanduser().resolve()

    @property
    def bin_dir(self) -> Path:
        """Global directory the tool binaries are linked into."""
        return self.tools_root / "bin"

    @property
    def catalog_path(self) -> Path:
        return self.tools_root / self.catalog_name

    @property
    def environment_installer(self) -> Path:
        return self.setup_script or self.bin_dir / "setup-env"
