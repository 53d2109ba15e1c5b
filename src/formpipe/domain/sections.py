"""Section and field view models.

Every SectionSource emission produces fresh frozen snapshots. Rule effects
never mutate a snapshot; they derive a new one via ``model_copy``.
"""

from __future__ import annotations

from collections.abc import Sequence

from pydantic import BaseModel, Field


class FieldViewModel(BaseModel):
    """A single renderable field inside a section."""

    model_config = {"frozen": True}

    uid: str
    label: str = ""
    value: str | None = None
    section_uid: str | None = None
    visible: bool = True
    editable: bool = True
    mandatory: bool = False
    warning: str | None = None
    error: str | None = None


class SectionViewModel(BaseModel):
    """A named, ordered group of fields within a form."""

    model_config = {"frozen": True}

    section_uid: str
    label: str = ""
    order: int = 0
    fields: tuple[FieldViewModel, ...] = Field(default_factory=tuple)

    def field(self, uid: str) -> FieldViewModel | None:
        """Return the field with *uid*, or None."""
        for item in self.fields:
            if item.uid == uid:
                return item
        return None

    def replace_field(self, updated: FieldViewModel) -> SectionViewModel:
        """Return a new section with the field of the same uid swapped in."""
        fields = tuple(updated if f.uid == updated.uid else f for f in self.fields)
        return self.model_copy(update={"fields": fields})


def section_uids(sections: Sequence[SectionViewModel]) -> list[str]:
    """Section identifiers in order."""
    return [s.section_uid for s in sections]
