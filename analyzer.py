from dataclasses import dataclass

from loguru import logger

from errors import AnalysisError, PersistenceError, StoreError
from llm import call_model, get_analysis_prompt, parse_analysis
from risk import AnalysisResult, CONTENT_TYPES

MISSING_KEY_MESSAGE = "API Key eksik. Lütfen ortam değişkenlerini kontrol edin."
INVALID_TYPE_MESSAGE = "Geçersiz içerik türü. Dizi/Film, Kitap veya Şarkı seçin."
GENERIC_ERROR_MESSAGE = "Analiz sırasında bir hata oluştu veya içerik bulunamadı. Lütfen tekrar deneyin."


@dataclass
class AnalyzerState:
    content_type: str = 'movie'
    loading: bool = False
    result: AnalysisResult = None
    error: str = None
    record_id: str = None


class Analyzer:

    def __init__(self, client, model, store=None, path=None, persist_failure_is_error=True):
        self.client = client
        self.model = model
        self.store = store
        self.path = path
        self.persist_failure_is_error = persist_failure_is_error

    def analyze(self, state, query, content_type='movie', session=None):
        """Run one analysis into ``state``.

        Returns False when nothing was sent to the model: an empty query leaves
        ``state`` untouched, a missing credential or unknown content type only
        sets ``state.error``.
        """
        if not query or not query.strip():
            return False
        if self.client is None:
            state.error = MISSING_KEY_MESSAGE
            return False
        if content_type not in CONTENT_TYPES:
            state.error = INVALID_TYPE_MESSAGE
            return False

        state.content_type = content_type
        state.loading = True
        state.error = None
        state.result = None
        state.record_id = None

        try:
            prompt = get_analysis_prompt(query.strip(), content_type)
            text = call_model(self.client, self.model, prompt)
            state.result = parse_analysis(text)
            logger.info(f"Analyzed {query.strip()!r} ({content_type}): score {state.result.overall_risk_score}")
            state.record_id = self._persist(state.result, content_type, session)
        except PersistenceError as e:
            logger.error(f"Analysis Error [{e.kind}]: {e}")
            if self.persist_failure_is_error:
                state.error = GENERIC_ERROR_MESSAGE
        except AnalysisError as e:
            logger.error(f"Analysis Error [{e.kind}]: {e}")
            state.error = GENERIC_ERROR_MESSAGE
        except Exception:
            logger.exception("Analysis Error [unexpected]")
            state.error = GENERIC_ERROR_MESSAGE
        finally:
            state.loading = False
        return True

    def _persist(self, result, content_type, session):
        if session is None or self.store is None:
            return None
        try:
            return self.store.append(self.path, result.to_search_body(content_type), owner_uid=session.uid)
        except StoreError as e:
            raise PersistenceError(str(e)) from e
