"""Session lifecycle: the closed set of statuses and the legal transition graph.

    CREATED -> UPLOADING -> TRANSCRIBING -> ANALYZING -> COMPLETED
                   |             |              |
                   +-------------+--------------+--> FAILED -> UPLOADING

Only CREATED and FAILED accept a new upload. COMPLETED is terminal.
"""
import enum

from .errors import IllegalTransition


class SessionStatus(str, enum.Enum):
    CREATED = "CREATED"
    UPLOADING = "UPLOADING"
    TRANSCRIBING = "TRANSCRIBING"
    ANALYZING = "ANALYZING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    def __str__(self):
        return self.value


TRANSITIONS = {
    SessionStatus.CREATED: frozenset({SessionStatus.UPLOADING}),
    SessionStatus.UPLOADING: frozenset({SessionStatus.TRANSCRIBING, SessionStatus.FAILED}),
    SessionStatus.TRANSCRIBING: frozenset({SessionStatus.ANALYZING, SessionStatus.FAILED}),
    SessionStatus.ANALYZING: frozenset({SessionStatus.COMPLETED, SessionStatus.FAILED}),
    SessionStatus.COMPLETED: frozenset(),
    SessionStatus.FAILED: frozenset({SessionStatus.UPLOADING}),
}

UPLOADABLE = frozenset({SessionStatus.CREATED, SessionStatus.FAILED})

# states a pipeline run may be interrupted in
IN_FLIGHT = frozenset({
    SessionStatus.UPLOADING,
    SessionStatus.TRANSCRIBING,
    SessionStatus.ANALYZING,
})

TERMINAL = frozenset({SessionStatus.COMPLETED, SessionStatus.FAILED})


def can_transition(src, dst):
    return SessionStatus(dst) in TRANSITIONS[SessionStatus(src)]


def ensure_transition(src, dst, session_id=None):
    """Raise IllegalTransition unless src -> dst is an edge of the graph."""
    if not can_transition(src, dst):
        raise IllegalTransition(SessionStatus(src), SessionStatus(dst), session_id)
