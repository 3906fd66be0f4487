"""Shared fixtures: a Flask app over in-memory SQLite and a fake OpenAI client."""
import json
from unittest.mock import Mock

import pytest

from app import create_app
from config import Settings
from models import db

SAMPLE_RESULT = {
    "title": "X",
    "summary": "Kısa özet.",
    "overall_risk_score": 45,
    "risk_level": "Orta",
    "categories": [
        {"name": "Fiziksel Şiddet", "score": 20, "reason": "Az kavga sahnesi"},
        {"name": "Psikolojik Baskı", "score": 55, "reason": "Dışlama var"},
        {"name": "Kültürel Baskı", "score": 60, "reason": "El âlem ne der"},
        {"name": "Dil & Argo", "score": 10, "reason": "Hafif argo"},
    ],
    "analysis_details": "Ebeveyn eşliğinde izlenmeli.",
    "age_recommendation": "13+",
    "positive_traits": [],
}


def make_completion(text):
    message = Mock()
    message.content = text
    choice = Mock()
    choice.message = message
    return Mock(choices=[choice])


def make_client(payload=SAMPLE_RESULT):
    """Fake OpenAI client whose completions return ``payload`` (dict -> JSON text)."""
    client = Mock()
    text = json.dumps(payload) if isinstance(payload, dict) else payload
    client.chat.completions.create.return_value = make_completion(text)
    return client


@pytest.fixture
def settings():
    return Settings(openai_api_key='test-key', database_url='sqlite://', secret_key='test')


@pytest.fixture
def demo_settings():
    return Settings(openai_api_key='test-key', database_url=None, secret_key='test')


@pytest.fixture
def fake_client():
    return make_client()


@pytest.fixture
def app(settings, fake_client):
    app = create_app(settings, llm_client=fake_client)
    app.config['TESTING'] = True
    yield app
    with app.app_context():
        db.drop_all()


@pytest.fixture
def demo_app(demo_settings, fake_client):
    app = create_app(demo_settings, llm_client=fake_client)
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(app):
    """Test client that has loaded the page once, so it carries an anonymous session."""
    client = app.test_client()
    client.get('/')
    return client


@pytest.fixture
def store(app):
    return app.extensions['media_advisor']['store']
