"""
Result objects for core operations.

Provides a unified result structure the CLI uses to display operation
outcomes consistently.
"""

from dataclasses import dataclass, field
from typing import List, Dict, Any


@dataclass
class OperationResult:
    """
    Unified result object for all core operations.

    Attributes:
        ok: Whether the operation completed successfully
        operation: Name of the operation (e.g., "extract", "serial_set")
        variant: Device variant the operation worked on, if any
        output: Path written by the operation, if any
        bytes_len: Number of bytes produced
        hashes: Dict of hash values (sha256 of outputs)
        warnings: Non-blocking issues encountered
        errors: Blocking errors that caused failure
        metadata: Additional operation-specific data
        logs: Captured log lines from the operation
    """
    ok: bool
    operation: str
    variant: str = ""
    output: str = ""
    bytes_len: int = 0
    hashes: Dict[str, str] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    logs: List[str] = field(default_factory=list)

    def add_warning(self, message: str) -> None:
        """Add a warning message."""
        self.warnings.append(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "ok": self.ok,
            "operation": self.operation,
            "variant": self.variant,
            "output": self.output,
            "bytes_len": self.bytes_len,
            "hashes": self.hashes,
            "warnings": self.warnings,
            "errors": self.errors,
            "metadata": self.metadata,
            "logs": self.logs,
        }

    @classmethod
    def success(cls, operation: str, **kwargs) -> "OperationResult":
        """Create a successful result."""
        return cls(ok=True, operation=operation, **kwargs)

    @classmethod
    def failure(cls, operation: str, error: str, **kwargs) -> "OperationResult":
        """Create a failed result."""
        result = cls(ok=False, operation=operation, **kwargs)
        result.errors.append(error)
        return result
