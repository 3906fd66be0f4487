"""Risk assessment types shared by the analyzer, the live feed and the templates."""
import math
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import List, Optional

from loguru import logger

from errors import ResponseParseError

CONTENT_TYPES = ('movie', 'book', 'song')

CONTENT_TYPE_LABELS = {
    'movie': 'Dizi/Film',
    'book': 'Kitap',
    'song': 'Şarkı',
}

# Fixed order of the category breakdown requested from the model
CATEGORY_NAMES = ('Fiziksel Şiddet', 'Psikolojik Baskı', 'Kültürel Baskı', 'Dil & Argo')


@dataclass(frozen=True)
class RiskBand:
    key: str
    label: str
    color: str


LOW = RiskBand('low', 'Düşük', 'green')
MEDIUM = RiskBand('medium', 'Orta', 'amber')
HIGH = RiskBand('high', 'Yüksek', 'red')


def risk_band(score):
    """Map a 0-100 score to its band. Missing scores count as 0."""
    score = score or 0
    if score < 30:
        return LOW
    if score < 60:
        return MEDIUM
    return HIGH


def content_type_label(content_type):
    return CONTENT_TYPE_LABELS.get(content_type, CONTENT_TYPE_LABELS['song'])


def _score(value, where):
    if isinstance(value, bool) or value is None:
        raise ResponseParseError(f"{where}: score missing or not a number ({value!r})")
    if isinstance(value, str):
        value = value.strip().strip('%')
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ResponseParseError(f"{where}: score is not a number ({value!r})")
    if not math.isfinite(number) or number != int(number):
        raise ResponseParseError(f"{where}: score must be an integer ({value!r})")
    number = int(number)
    if not 0 <= number <= 100:
        raise ResponseParseError(f"{where}: score {number} outside 0-100")
    return number


def _text(data, key, where, required=False):
    value = data.get(key)
    if value is None:
        if required:
            raise ResponseParseError(f"{where}: missing '{key}'")
        return ''
    if not isinstance(value, str):
        raise ResponseParseError(f"{where}: '{key}' must be text")
    return value


@dataclass(frozen=True)
class RiskCategory:
    name: str
    score: int
    reason: str = ''

    @classmethod
    def from_dict(cls, data, index=0):
        where = f"categories[{index}]"
        if not isinstance(data, dict):
            raise ResponseParseError(f"{where}: expected an object")
        return cls(
            name=_text(data, 'name', where, required=True),
            score=_score(data.get('score'), where),
            reason=_text(data, 'reason', where),
        )


@dataclass(frozen=True)
class AnalysisResult:
    title: str
    overall_risk_score: int
    risk_level: str
    categories: tuple
    summary: str = ''
    analysis_details: str = ''
    age_recommendation: str = ''
    positive_traits: tuple = ()

    @property
    def band(self):
        return risk_band(self.overall_risk_score)

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise ResponseParseError("analysis: expected a JSON object")

        score = _score(data.get('overall_risk_score'), 'overall_risk_score')
        # The score decides the band; the label only has to agree with it.
        level = _text(data, 'risk_level', 'analysis')
        expected = risk_band(score).label
        if level != expected:
            logger.warning(f"risk_level {level!r} disagrees with score {score}, using {expected!r}")
            level = expected

        categories = data.get('categories')
        if not isinstance(categories, list):
            raise ResponseParseError("analysis: 'categories' must be a list")

        traits = data.get('positive_traits') or []
        if not isinstance(traits, list) or not all(isinstance(t, str) for t in traits):
            raise ResponseParseError("analysis: 'positive_traits' must be a list of text")

        return cls(
            title=_text(data, 'title', 'analysis', required=True),
            overall_risk_score=score,
            risk_level=level,
            categories=tuple(RiskCategory.from_dict(c, i) for i, c in enumerate(categories)),
            summary=_text(data, 'summary', 'analysis'),
            analysis_details=_text(data, 'analysis_details', 'analysis'),
            age_recommendation=_text(data, 'age_recommendation', 'analysis'),
            positive_traits=tuple(traits),
        )

    def to_dict(self):
        data = asdict(self)
        data['categories'] = [asdict(c) for c in self.categories]
        data['positive_traits'] = list(self.positive_traits)
        return data

    def to_search_body(self, content_type):
        """Projection persisted to the shared searches collection."""
        return {
            'title': self.title,
            'riskScore': self.overall_risk_score,
            'riskLevel': self.risk_level,
            'type': content_type,
            'summary': self.summary,
        }


@dataclass
class SearchRecord:
    id: Optional[str]
    title: str
    risk_score: int
    risk_level: str
    type: str
    created_at: Optional[object] = None
    summary: Optional[str] = None

    @property
    def band(self):
        return risk_band(self.risk_score)

    @classmethod
    def from_document(cls, doc_id, body):
        return cls(
            id=str(doc_id) if doc_id is not None else None,
            title=body.get('title', ''),
            risk_score=body.get('riskScore') or 0,
            risk_level=body.get('riskLevel', ''),
            type=body.get('type', ''),
            created_at=body.get('createdAt'),
            summary=body.get('summary'),
        )

    def to_dict(self):
        created = self.created_at
        if isinstance(created, datetime):
            created = created.isoformat()
        return {
            'id': self.id,
            'title': self.title,
            'riskScore': self.risk_score,
            'riskLevel': self.risk_level,
            'type': self.type,
            'createdAt': created,
            'summary': self.summary,
        }


DEMO_SEARCHES = (
    SearchRecord(id='1', title='Örnek: Kurtlar Vadisi', risk_score=85, risk_level='Yüksek', type='movie'),
    SearchRecord(id='2', title='Örnek: Küçük Prens', risk_score=5, risk_level='Düşük', type='book'),
)


def demo_searches() -> List[SearchRecord]:
    return [SearchRecord(**asdict(r)) for r in DEMO_SEARCHES]
