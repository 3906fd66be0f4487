import json

from loguru import logger
from openai import AzureOpenAI, OpenAI

from errors import AIRequestError, EmptyResponseError, ResponseParseError
from risk import AnalysisResult, CATEGORY_NAMES

SYSTEM_PROMPT = "Sen Türkçe içerik analizinde uzmanlaşmış, kültürel hassasiyetleri bilen bir Yapay Zeka asistanısın."


def get_analysis_prompt(query, content_type):
    categories = ",\n".join(
        f'            {{"name": "{name}", "score": 0-100, "reason": "Sebep"}}' for name in CATEGORY_NAMES
    )
    PROMPT_TEMPLATE = f"""
{SYSTEM_PROMPT}
GÖREV: "{content_type}" türündeki "{query}" adlı eseri analiz et.

ANALİZ KRİTERLERİ (TÜRK KÜLTÜRÜ ODAKLI):
    1. AÇIK ZORBALIK: Fiziksel şiddet, küfür.
    2. PSİKOLOJİK ZORBALIK: Aşağılama, "adam yerine koymama", dışlama.
    3. KÜLTÜREL BASKI: "El âlem ne der?", namus/erkeklik baskısı.

Yanıtını yalnızca aşağıdaki yapıda tek bir JSON nesnesi olarak ver.

ÇIKTI FORMATI (JSON):
    {{
        "title": "Eser Adı",
        "summary": "Çok kısa özet.",
        "overall_risk_score": 0-100 (Sayı),
        "risk_level": "Düşük" | "Orta" | "Yüksek",
        "categories": [
{categories}
        ],
        "analysis_details": "Detaylı ebeveyn açıklaması.",
        "age_recommendation": "Yaş grubu (örn: 13+)",
        "positive_traits": ["Olumlu yön 1", "Olumlu yön 2"]
    }}

risk_level değeri overall_risk_score ile uyumlu olmalı: 30 altı "Düşük", 30-59 arası "Orta", 60 ve üstü "Yüksek".
    """

    return PROMPT_TEMPLATE


def build_client(settings):
    """Create the OpenAI client described by the settings, or None without a credential."""
    if not settings.openai_api_key:
        return None
    # A single attempt per analysis; the user re-triggers on failure.
    if settings.azure_openai_endpoint:
        return AzureOpenAI(
            azure_endpoint=settings.azure_openai_endpoint,
            api_version=settings.azure_openai_api_version,
            api_key=settings.openai_api_key,
            max_retries=0,
        )
    return OpenAI(api_key=settings.openai_api_key, max_retries=0)


def call_model(client, model, prompt):
    """Send one prompt and return the raw JSON text of the reply."""
    try:
        response = client.chat.completions.create(
            model=model,
            response_format={"type": "json_object"},
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt}
            ],
            temperature=0
        )
    except Exception as e:
        raise AIRequestError(f"AI request failed: {e}") from e

    text = response.choices[0].message.content if response.choices else None
    if not text or not text.strip():
        raise EmptyResponseError("AI yanıtı boş döndü.")
    return text


def parse_analysis(text):
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        logger.error(f"Load JSON Failed\n{text}")
        raise ResponseParseError(f"AI response is not valid JSON: {e}") from e
    return AnalysisResult.from_dict(data)
