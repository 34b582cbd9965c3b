class QuizBotError(Exception):
    code = "unknown"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NoActiveQuestionBank(QuizBotError):
    """The quiz cannot start: there are no active questions."""

    code = "no_question_bank"


class InvalidAnswerToken(QuizBotError):
    code = "invalid_answer"

    def __init__(self, raw_input: str, valid_tokens: list[str]):
        self.raw_input = raw_input
        self.valid_tokens = valid_tokens
        super().__init__(f"Answer {raw_input!r} is not one of {valid_tokens}")


class ConcurrentModification(QuizBotError):
    code = "concurrent_modification"


class StorageUnavailable(QuizBotError):
    code = "storage_unavailable"


class DependencyTimeout(QuizBotError):
    code = "timeout"


class FallbackUnavailable(QuizBotError):
    code = "fallback_unavailable"
