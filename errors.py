class AnalysisError(Exception):
    """Base class for every failure of the analyze flow.

    The user only ever sees one generic message for these; ``kind`` is what
    ends up in the logs so the causes can still be told apart.
    """

    kind = 'analysis'


class AIRequestError(AnalysisError):
    kind = 'ai_request'


class EmptyResponseError(AnalysisError):
    kind = 'empty_response'


class ResponseParseError(AnalysisError):
    kind = 'parse'


class PersistenceError(AnalysisError):
    kind = 'persistence'


class StoreError(Exception):
    pass


class AuthError(Exception):
    pass
