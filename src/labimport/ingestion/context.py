# labimport/ingestion/context.py

from dataclasses import dataclass

from labimport.ingestion.manifest import ImportKind


@dataclass(frozen=True)
class ImportContext:
    """Who is importing: passed in by the host instead of read from ambient state."""
    user_id: int
    team_id: int


@dataclass(frozen=True)
class EntityHandle:
    """A freshly persisted item or experiment."""
    kind: ImportKind
    id: int

    @property
    def type_name(self) -> str:
        return self.kind.value
