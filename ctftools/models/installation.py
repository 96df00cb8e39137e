"""
Script execution, validation and install-state models.
"""

from enum import Enum
from typing import Optional, List
from datetime import datetime, timezone
from pathlib import Path
from pydantic import BaseModel, ConfigDict, Field


class ValidationStatus(str, Enum):
    """Status of validation steps."""
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


class ValidationResult(BaseModel):
    """Result of a validation step."""
    step: str = Field(..., description="Validation step name")
    status: ValidationStatus = Field(..., description="Validation status")
    script: Optional[Path] = Field(None, description="Script the check ran against")
    output: Optional[str] = Field(None, description="Validation output")
    error: Optional[str] = Field(None, description="Error message if failed")

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "step": "strict_header",
            "status": "failed",
            "script": "/home/ctf/tools/foo/install",
            "error": "Missing strict-mode header: #!/bin/bash"
        }
    })


class ScriptResult(BaseModel):
    """Outcome of running one lifecycle script."""
    script: Path = Field(..., description="Script that was run")
    exit_code: int = Field(..., description="Process exit status")
    output: str = Field(default="", description="Combined stdout and stderr")
    log_path: Optional[Path] = Field(None, description="Log file the output was appended to")
    duration_seconds: Optional[float] = Field(None, description="Wall clock run time")

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class InstallState(BaseModel):
    """Install manifest persisted inside a tool directory."""
    tracked_files: List[str] = Field(
        default_factory=list,
        description="Paths, relative to the tool directory, that belong to the tool itself"
    )
    produced_files: List[str] = Field(
        default_factory=list,
        description="Paths left behind by lifecycle scripts"
    )
    installed: bool = Field(default=False, description="Whether the last install succeeded")
    installed_at: Optional[datetime] = Field(None, description="When the last install succeeded")

    def mark_installed(self) -> None:
        """Record a successful install."""
        self.installed = True
        self.installed_at = datetime.now(timezone.utc)
