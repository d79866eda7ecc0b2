from typing import Optional


class DeploymentError(Exception):
    """Base class for every failure raised while assembling a topology."""


class SecretNotFoundError(DeploymentError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Parameter {name!r} does not exist in the parameter store")
        self.name = name


class ResourceNotFoundError(DeploymentError):
    def __init__(self, kind: str, lookup: str) -> None:
        super().__init__(f"No existing {kind} matches {lookup}")
        self.kind = kind
        self.lookup = lookup


class AmbiguousResourceError(DeploymentError):
    def __init__(self, kind: str, lookup: str, matches: list[str]) -> None:
        super().__init__(
            f"{len(matches)} existing {kind}s match {lookup}: {', '.join(matches)}"
        )
        self.kind = kind
        self.lookup = lookup
        self.matches = matches


class InvalidSpecError(DeploymentError):
    """Local validation failure (port, cpu, memory, priority, names...)."""


class AssemblyAbortedError(DeploymentError):
    """Wraps a non-domain failure raised by an external collaborator."""

    def __init__(self, stage: str, cause: Optional[BaseException] = None) -> None:
        message = f"Assembly aborted during {stage}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
        self.stage = stage
