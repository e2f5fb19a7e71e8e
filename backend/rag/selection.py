from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Union

from rag.errors import NoSelection
from rag.types import DocumentSelection, OnlyDocuments

NO_DOCUMENTS_SELECTED = "no documents selected"


@dataclass(frozen=True)
class Accepted:
    selection: DocumentSelection

    def scope(self) -> OnlyDocuments:
        return OnlyDocuments(self.selection)


@dataclass(frozen=True)
class Rejected:
    reason: str


GateDecision = Union[Accepted, Rejected]


@dataclass(frozen=True)
class SelectionAbsent:
    """The request carried no document parameter at all."""


@dataclass(frozen=True)
class SelectionProvided:
    """The request carried document parameters; the list may be empty."""

    selection: DocumentSelection


SelectionParam = Union[SelectionAbsent, SelectionProvided]


def selection_param(ids: Iterable[str] | None) -> SelectionParam:
    """Map a raw optional id list to a SelectionParam. Blank ids are dropped, others kept byte-exact."""
    if ids is None:
        return SelectionAbsent()
    return SelectionProvided(DocumentSelection.of(i for i in ids if i and i.strip()))


class SelectionGate:
    """Precondition check run before any retrieval request is issued."""

    def validate(self, selection: DocumentSelection | Iterable[str] | None) -> GateDecision:
        if selection is None:
            return Rejected(NO_DOCUMENTS_SELECTED)
        if isinstance(selection, str):
            selection = DocumentSelection.of([selection])
        elif not isinstance(selection, DocumentSelection):
            selection = DocumentSelection.of(selection)
        if selection.is_empty:
            return Rejected(NO_DOCUMENTS_SELECTED)
        return Accepted(selection)

    def require(self, selection: DocumentSelection | Iterable[str] | None) -> DocumentSelection:
        decision = self.validate(selection)
        if isinstance(decision, Rejected):
            raise NoSelection(decision.reason)
        return decision.selection
