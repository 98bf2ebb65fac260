import logging
from typing import Any, Dict, List, Optional, Tuple

from ddx_dialogue.application.conversation import ConversationManager
from ddx_dialogue.application.errors import SessionNotFoundError
from ddx_dialogue.application.ports import QuestionAdvisorPort
from ddx_dialogue.application.question_selection import build_question_selector
from ddx_dialogue.application.schemas import DiagnosticsSnapshot, TurnResult
from ddx_dialogue.domain.models import EngineConfig, KnowledgeBase, QuestionTemplate


logger = logging.getLogger(__name__)


class AssessmentService:
    """Entry point for callers: owns the sessions of one engine instance."""

    def __init__(
        self,
        knowledge_base: KnowledgeBase,
        config: Optional[EngineConfig] = None,
        advisor: Optional[QuestionAdvisorPort] = None,
    ):
        self.knowledge_base = knowledge_base
        self.config = config or EngineConfig()
        self.advisor = advisor
        self._sessions: Dict[str, ConversationManager] = {}

    def _manager(self, session_id: str) -> ConversationManager:
        manager = self._sessions.get(session_id)
        if manager is None:
            raise SessionNotFoundError(session_id)
        return manager

    def start_session(self, session_id: Optional[str] = None) -> Tuple[str, Optional[QuestionTemplate]]:
        """
        Opens a new session and returns its id with the first question.
        Passing the id of a session that was reset restarts it in place.
        """
        if session_id is not None:
            manager = self._manager(session_id)
        else:
            selector = build_question_selector(self.knowledge_base, self.config, self.advisor)
            manager = ConversationManager(self.knowledge_base, selector, self.config)
            self._sessions[manager.session_id] = manager

        question = manager.start()
        logger.info("Assessment session %s opened", manager.session_id)
        return manager.session_id, question

    def submit_answer(self, session_id: str, question_id: str, answer: Any) -> TurnResult:
        return self._manager(session_id).submit_answer(question_id, answer)

    def get_diagnostics(self, session_id: str) -> DiagnosticsSnapshot:
        return self._manager(session_id).diagnostics()

    def get_question_batch(self, session_id: str, n: int) -> List[QuestionTemplate]:
        return self._manager(session_id).next_batch(n)

    def reset(self, session_id: str) -> None:
        self._manager(session_id).reset()

    def end_session(self, session_id: str) -> None:
        manager = self._sessions.pop(session_id, None)
        if manager is None:
            raise SessionNotFoundError(session_id)
        logger.info("Assessment session %s closed in state %s", session_id, manager.state.value)

    def session(self, session_id: str) -> ConversationManager:
        return self._manager(session_id)

    def active_session_ids(self) -> List[str]:
        return [sid for sid, m in self._sessions.items() if not m.is_terminated]
