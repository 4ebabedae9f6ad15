"""Error taxonomy for the contestación flow.

Backend failures are raised inside each component and caught at the
component boundary, where they are logged and turned into a degraded but
schema-valid result. Only ``DraftGenerationFailure`` and the boundary errors
(``UnknownBlockError``, ``UnknownActionTransition``,
``SessionVersionConflict``) reach callers, along with the document
upload errors raised before any backend call.
"""


class ContestacionError(Exception):
    """Base class for contestación flow errors."""


class ParseFailure(ContestacionError):
    """The parsing backend call failed or returned no blocks."""


class AnalysisFailure(ContestacionError):
    """The block analysis backend call failed."""


class QuestionGenerationFailure(ContestacionError):
    """The question generation backend call failed."""


class ConsolidationFailure(ContestacionError):
    """The consolidation backend call failed."""


class SelectionFailure(ContestacionError):
    """The variant selection backend call failed."""


class DecisionFailure(ContestacionError):
    """The adaptive decision policy backend call failed."""


class DraftGenerationFailure(ContestacionError):
    """The draft generation backend call failed or returned empty text."""


class UnknownActionTransition(ContestacionError):
    """An action tag is not part of the orchestrator vocabulary."""

    def __init__(self, action_type: str):
        self.action_type = action_type
        super().__init__(f"Unknown orchestrator action: {action_type!r}")


class UnknownBlockError(ContestacionError):
    """A per-block map references a block id that does not exist in the session."""

    def __init__(self, bloque_ids: list[str]):
        self.bloque_ids = bloque_ids
        super().__init__(f"Unknown block ids: {', '.join(bloque_ids)}")


class SessionVersionConflict(ContestacionError):
    """A session was modified concurrently; the write lost compare-and-swap."""

    def __init__(self, session_id: str, expected_version: int):
        self.session_id = session_id
        self.expected_version = expected_version
        super().__init__(
            f"Session {session_id} changed since version {expected_version}"
        )


class UnsupportedDocumentError(ContestacionError):
    """An uploaded demand document is empty, too large or not PDF/Word."""


class DocumentExtractionFailure(ContestacionError):
    """A demand document could not be read as PDF or Word."""
