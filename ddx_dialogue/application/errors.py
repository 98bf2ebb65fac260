class DialogueError(Exception):
    """Base class for errors raised to callers of the assessment service."""


class SessionNotFoundError(DialogueError, KeyError):
    def __init__(self, session_id: str):
        super().__init__(f"No assessment session with id '{session_id}'")
        self.session_id = session_id


class UnknownQuestionError(DialogueError):
    """The answered question is not one the session is waiting on."""

    def __init__(self, session_id: str, question_id: str, pending: list):
        super().__init__(
            f"Question '{question_id}' is not pending in session '{session_id}' "
            f"(pending: {', '.join(pending) or 'none'})"
        )
        self.session_id = session_id
        self.question_id = question_id
        self.pending = list(pending)


class InvalidSessionStateError(DialogueError):
    pass


class KnowledgeBaseError(DialogueError):
    """A knowledge base catalog could not be loaded or failed validation."""
