"""
Error taxonomy.

Every failure the service reports to a caller is a DocChatError subclass
carrying an HTTP status code. Errors marked public=True have messages that
are safe to show the user verbatim; for the rest the API layer substitutes
a generic message and logs the original.

Usage:
    raise NotFoundOrForbidden("문서를 찾을 수 없거나 접근 권한이 없습니다.")

    try:
        ...
    except DocChatError as exc:
        return {"error": exc.user_message}, exc.status_code
"""

GENERIC_ERROR_MESSAGE = "요청을 처리하는 중 오류가 발생했습니다. 잠시 후 다시 시도해주세요."


class DocChatError(Exception):
    """Base class for all service errors."""

    status_code = 500
    public = False

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    @property
    def user_message(self) -> str:
        if self.public and self.message:
            return self.message
        return GENERIC_ERROR_MESSAGE


# ---------------------------------------------------------------------------
# Request errors (message is user-facing)
# ---------------------------------------------------------------------------

class AuthRequired(DocChatError):
    status_code = 401
    public = True

    def __init__(self, message: str = "로그인이 필요합니다."):
        super().__init__(message)


class NotFoundOrForbidden(DocChatError):
    """The resource does not exist or the caller may not see it. Deliberately indistinguishable."""

    status_code = 404
    public = True

    def __init__(self, message: str = "문서를 찾을 수 없거나 접근 권한이 없습니다."):
        super().__init__(message)


class ValidationError(DocChatError):
    status_code = 400
    public = True


class UnsupportedFormat(DocChatError):
    status_code = 415
    public = True


class ExtractionEmpty(DocChatError):
    status_code = 422
    public = True

    def __init__(self, message: str = "본문을 추출할 수 없습니다."):
        super().__init__(message)


# ---------------------------------------------------------------------------
# Collaborator failures
# ---------------------------------------------------------------------------

class EmbeddingProviderError(DocChatError):
    status_code = 502


class RetrievalError(DocChatError):
    status_code = 500


class ModerationServiceError(DocChatError):
    status_code = 503
    public = True

    def __init__(self, message: str = "안전성 검사 중 오류가 발생했습니다. 잠시 후 다시 시도해주세요."):
        super().__init__(message)


class GenerationError(DocChatError):
    """The answer model or the web search call failed mid-turn."""

    status_code = 502


class PersistenceError(DocChatError):
    status_code = 500


class BlobStoreError(DocChatError):
    status_code = 502


class PipelineFailure(DocChatError):
    status_code = 500


class IngestionInProgress(PipelineFailure):
    """Another ingestion run already holds the document."""

    status_code = 409
    public = True

    def __init__(self, message: str = "문서 처리 중입니다. 잠시 후 다시 시도해주세요."):
        super().__init__(message)
