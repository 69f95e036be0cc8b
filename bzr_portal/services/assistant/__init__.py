from bzr_portal.services.assistant.agent import AnswerContext, AnswerResult, BZRAssistant

__all__ = ["AnswerContext", "AnswerResult", "BZRAssistant"]
