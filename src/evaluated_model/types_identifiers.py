from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Severity(str, Enum):
    """Severity of an issue or rule violation."""

    ERROR = "ERROR"
    WARNING = "WARNING"
    HINT = "HINT"


@dataclass(frozen=True, order=True)
class Identifier:
    """Stable key of a project or package: type, namespace, name and version."""

    type: str
    namespace: str
    name: str
    version: str

    @classmethod
    def from_coordinates(cls, coordinates: str) -> "Identifier":
        parts = coordinates.split(":", 3)
        if len(parts) != 4:
            raise ValueError(f"Identifier coordinates '{coordinates}' must have four ':'-separated parts")
        return cls(*parts)

    def to_coordinates(self) -> str:
        return ":".join([self.type, self.namespace, self.name, self.version])

    def to_purl(self) -> str:
        namespace = f"{self.namespace}/" if self.namespace else ""
        return f"pkg:{self.type.lower()}/{namespace}{self.name}@{self.version}"

    def __str__(self) -> str:
        return self.to_coordinates()


@dataclass(frozen=True)
class VcsInfo:
    type: str = ""
    url: str = ""
    revision: str = ""
    path: str = ""

    def normalize(self) -> "VcsInfo":
        url = self.url.strip().rstrip("/")
        if url.startswith("git+"):
            url = url[len("git+") :]
        return VcsInfo(type=self.type.strip().lower(), url=url, revision=self.revision.strip(), path=self.path.strip("/"))


@dataclass(frozen=True)
class RemoteArtifact:
    url: str = ""
    hash: str = ""
    hash_algorithm: str = ""

    @classmethod
    def empty(cls) -> "RemoteArtifact":
        return cls()


@dataclass(frozen=True)
class Provenance:
    """Where the scanned source code came from."""

    download_time: datetime | None = None
    source_artifact: RemoteArtifact | None = None
    vcs_info: VcsInfo | None = None


@dataclass(frozen=True)
class ScannerDetails:
    name: str
    version: str
    configuration: str = ""


@dataclass(frozen=True)
class TextLocation:
    path: str
    start_line: int
    end_line: int
